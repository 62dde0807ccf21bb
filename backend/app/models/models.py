from typing import Optional, List, Dict
from sqlmodel import JSON, Column, SQLModel, Field, Relationship, Text
from datetime import date, datetime, timezone

from app.core.config import DEFAULT_FOCUS_SCORE, DEFAULT_SECONDS_PER_PAGE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReaderProfile(SQLModel, table=True):
    """Reading pace, streak and gamification state for one reader.

    Created with neutral defaults on first activity. Only the performance
    feedback engine mutates it.
    """

    __tablename__ = "reader_profile"
    reader_id: str = Field(primary_key=True)

    # --- PACE ---
    average_reading_speed_seconds: float = Field(default=DEFAULT_SECONDS_PER_PAGE)
    preferred_session_minutes: Optional[int] = Field(default=None)

    # --- LIFETIME TOTALS ---
    total_pages_read: int = Field(default=0)
    total_time_spent_seconds: int = Field(default=0)
    total_study_sessions: int = Field(default=0)
    average_session_duration_seconds: int = Field(default=0)

    # --- STREAKS ---
    current_streak_days: int = Field(default=0)
    longest_streak_days: int = Field(default=0)
    last_activity_date: Optional[date] = Field(default=None)

    # --- GAMIFICATION ---
    total_xp_points: int = Field(default=0)
    current_level: int = Field(default=1)

    # --- CONTEXT ---
    focus_score_average: float = Field(default=DEFAULT_FOCUS_SCORE)
    focus_sessions: int = Field(default=0)
    peak_performance_hour: Optional[int] = Field(default=None, ge=0, le=23)

    updated_at: datetime = Field(default_factory=_utcnow)


class Document(SQLModel, table=True):
    """An uploaded document and its document-level analysis."""

    id: Optional[int] = Field(default=None, primary_key=True)
    reader_id: str = Field(index=True)
    title: str
    filename: Optional[str] = Field(default=None)
    total_pages: int = Field(default=0)
    priority: int = Field(default=3, ge=1, le=5)

    # --- DIFFICULTY & METRICS ---
    difficulty_level: int = Field(default=3)
    average_difficulty: float = Field(default=3.0)
    estimated_reading_seconds: int = Field(default=0)
    content_type: str = Field(default="standard_text")
    structural_complexity: str = Field(default="minimal")

    # --- DETAILED DATA (JSON) ---
    structure: Dict = Field(default={}, sa_column=Column(JSON))
    metrics: Dict = Field(default={}, sa_column=Column(JSON))
    processing_metadata: Dict = Field(default={}, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    # --- RELATIONSHIPS ---
    pages: List["DocumentPage"] = Relationship(
        back_populates="document",
        sa_relationship_kwargs={
            "order_by": "DocumentPage.page_number",
            "cascade": "all, delete-orphan",
        },
    )


class DocumentPage(SQLModel, table=True):
    """Per-page analysis plus the reader's progress on that page."""

    __tablename__ = "document_page"
    id: Optional[int] = Field(default=None, primary_key=True)
    document_id: int = Field(foreign_key="document.id", index=True)
    page_number: int

    # --- ANALYSIS ---
    text_content: str = Field(default="")
    # Untruncated page text; re-analysis reads this, text_content is a preview
    source_text: str = Field(default="", sa_column=Column(Text))
    word_count: int = Field(default=0)
    sentence_count: int = Field(default=0)
    paragraph_count: int = Field(default=0)
    avg_words_per_sentence: float = Field(default=0.0)
    avg_syllables_per_word: float = Field(default=0.0)
    complex_word_count: int = Field(default=0)
    technical_term_count: int = Field(default=0)
    difficulty_score: float = Field(default=3.0)
    difficulty_level: int = Field(default=3)
    estimated_reading_seconds: int = Field(default=120)
    content_type: str = Field(default="unknown")
    has_headings: bool = Field(default=False)
    has_bullet_points: bool = Field(default=False)
    has_images: bool = Field(default=False)
    has_equations: bool = Field(default=False)
    has_code: bool = Field(default=False)
    chapter_title: Optional[str] = Field(default=None)
    section_title: Optional[str] = Field(default=None)
    is_table_of_contents: bool = Field(default=False)
    is_appendix: bool = Field(default=False)
    is_bibliography: bool = Field(default=False)
    extraction_failed: bool = Field(default=False)

    # --- PROGRESS ---
    is_completed: bool = Field(default=False)
    time_spent_seconds: int = Field(default=0)
    last_read_at: Optional[datetime] = Field(default=None)

    document: Optional[Document] = Relationship(back_populates="pages")


class Sprint(SQLModel, table=True):
    """A committed reading sprint and, once completed, its outcome."""

    id: Optional[int] = Field(default=None, primary_key=True)
    reader_id: str = Field(index=True)
    document_id: int = Field(foreign_key="document.id", index=True)
    title: str
    strategy: Optional[str] = Field(default=None)
    sprint_type: str = Field(default="reading")
    start_page: int
    end_page: int
    estimated_time_seconds: int = Field(default=0)
    difficulty_level: int = Field(default=3)
    target_date: Optional[date] = Field(default=None)
    status: str = Field(default="pending")

    created_at: datetime = Field(default_factory=_utcnow)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # --- OUTCOME ---
    actual_time_seconds: Optional[int] = Field(default=None)
    pages_actually_completed: Optional[int] = Field(default=None)
    completion_quality: Optional[int] = Field(default=None)
    efficiency_percentage: Optional[int] = Field(default=None)
    completion_percentage: Optional[int] = Field(default=None)
    performance_level: Optional[str] = Field(default=None)


class ExamGoal(SQLModel, table=True):
    """A dated goal to finish a set of documents."""

    __tablename__ = "exam_goal"
    id: Optional[int] = Field(default=None, primary_key=True)
    reader_id: str = Field(index=True)
    title: str
    exam_date: date
    study_hours_per_day: float = Field(default=1.0)
    document_ids: List[int] = Field(default=[], sa_column=Column(JSON))
    created_at: date = Field(default_factory=lambda: _utcnow().date())
    is_completed: bool = Field(default=False)
