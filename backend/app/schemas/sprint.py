"""
Pydantic schemas for sprint planning, selection and performance feedback.
"""

from datetime import date, datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import (
    DifficultyPreference,
    PerformanceLevel,
    SessionType,
    SprintStrategy,
)


class PageProgress(BaseModel):
    """Reading state of one page for one reader."""

    page_number: int = Field(ge=1)
    is_completed: bool = False
    last_read_at: Optional[datetime] = None
    difficulty_rating: Optional[int] = Field(default=None, ge=1, le=5)
    time_spent_seconds: int = 0


class SprintDocument(BaseModel):
    """A document offered to the candidate generator."""

    document_id: int
    title: str
    total_pages: int = Field(ge=1)
    difficulty_level: int = Field(default=3, ge=1, le=5)
    priority: int = Field(default=3, ge=1, le=5)
    updated_at: Optional[datetime] = None
    pages: List[PageProgress] = Field(default_factory=list)


class _CandidateBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: int
    document_title: str
    start_page: int = Field(ge=1)
    end_page: int = Field(ge=1)
    estimated_time_seconds: int = Field(ge=0)
    difficulty_score: float
    priority_score: int
    description: str

    @model_validator(mode="after")
    def _check_page_range(self):
        if self.start_page > self.end_page:
            raise ValueError("start_page must not be greater than end_page")
        return self

    @property
    def page_count(self) -> int:
        return self.end_page - self.start_page + 1


class SequentialCandidate(_CandidateBase):
    """Continue from the reader's first unread page."""

    strategy: Literal[SprintStrategy.SEQUENTIAL] = SprintStrategy.SEQUENTIAL


class DifficultyFocusedCandidate(_CandidateBase):
    """Start at the first unread page in the requested difficulty band."""

    strategy: Literal[SprintStrategy.DIFFICULTY_FOCUSED] = (
        SprintStrategy.DIFFICULTY_FOCUSED
    )
    difficulty_preference: DifficultyPreference


class ReviewCandidate(_CandidateBase):
    """Re-read the most recently completed pages."""

    strategy: Literal[SprintStrategy.REVIEW] = SprintStrategy.REVIEW
    review_pages: List[int] = Field(default_factory=list)


SprintCandidate = Annotated[
    Union[SequentialCandidate, DifficultyFocusedCandidate, ReviewCandidate],
    Field(discriminator="strategy"),
]


class ScoredCandidate(BaseModel):
    candidate: SprintCandidate
    final_score: int


class SprintGenerateRequest(BaseModel):
    """Request body for sprint generation."""

    reader_id: str
    document_ids: Optional[List[int]] = None
    preferred_duration_minutes: Optional[int] = Field(default=None, ge=1)
    difficulty_preference: DifficultyPreference = DifficultyPreference.ADAPTIVE
    session_type: SessionType = SessionType.READING


class SprintPlan(BaseModel):
    """Candidates plus the single recommendation (None if nothing to schedule)."""

    sprint_suggestions: List[SprintCandidate] = Field(default_factory=list)
    recommended_sprint: Optional[ScoredCandidate] = None
    user_context: Dict[str, Optional[float]] = Field(default_factory=dict)


class ManualSprintRequest(BaseModel):
    reader_id: str
    document_id: int
    start_page: int
    end_page: int
    title: Optional[str] = None
    estimated_time_seconds: Optional[int] = Field(default=None, ge=0)
    target_date: Optional[date] = None
    difficulty_level: int = Field(default=3, ge=1, le=5)
    sprint_type: SessionType = SessionType.READING


class SprintCompletion(BaseModel):
    """Reader-reported outcome of a sprint."""

    actual_time_seconds: Optional[int] = Field(default=None, ge=0)
    pages_actually_completed: Optional[int] = Field(default=None, ge=0)
    completion_quality: Optional[int] = Field(default=None, ge=1, le=5)
    focus_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class PerformanceMetrics(BaseModel):
    time_efficiency_percentage: int
    completion_rate_percentage: int
    average_time_per_page_seconds: int
    performance_level: PerformanceLevel
    pages_completed: int
    total_time_seconds: int
    pace_comparison: str


class FeedbackMessage(BaseModel):
    tag: PerformanceLevel
    text: str
    xp_gained: int


class ProfileUpdate(BaseModel):
    """What changed on the reader profile after a sprint."""

    xp_gained: int
    total_xp: int
    previous_level: int
    new_level: int
    current_streak_days: int
    longest_streak_days: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.previous_level


class SprintOutcome(BaseModel):
    """Committed sprint plus its completion metrics."""

    sprint_id: Optional[int] = None
    document_id: int
    strategy: Optional[SprintStrategy] = None
    start_page: int
    end_page: int
    estimated_time_seconds: int
    actual_time_seconds: int
    pages_actually_completed: int
    completion_quality: Optional[int] = None
    efficiency_percentage: int
    completion_percentage: int
    performance_level: PerformanceLevel


class FeedbackResult(BaseModel):
    outcome: SprintOutcome
    performance: PerformanceMetrics
    profile_update: ProfileUpdate
    feedback: FeedbackMessage


class SprintAnalytics(BaseModel):
    total_sprints: int
    completed_sprints: int
    completion_rate_percentage: int
    average_time_efficiency_percentage: int
    sprint_type_distribution: Dict[str, int]
    performance_trend: str
    total_pages_in_sprints: int
    total_time_in_sprints: int


class CommitCandidateRequest(BaseModel):
    """Commits a generated candidate as a pending sprint."""

    reader_id: str
    candidate: SprintCandidate
    session_type: SessionType = SessionType.READING
