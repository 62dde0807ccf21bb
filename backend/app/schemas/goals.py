"""
Pydantic schemas for exam goals and generated study schedules.
"""

from datetime import date
from typing import List

from pydantic import BaseModel, Field


class GoalCreate(BaseModel):
    title: str
    exam_date: date
    document_ids: List[int] = Field(default_factory=list)
    study_hours_per_day: float = Field(default=1.0, gt=0)


class GoalProgress(BaseModel):
    """Time-based progress of an exam goal."""

    total_pages: int
    completed_pages: int
    days_until_exam: int
    required_pages_per_day: int
    required_study_seconds_per_day: int
    urgency_level: str
    target_completion_rate: int
    current_completion_rate: int
    on_track: bool


class SchedulePage(BaseModel):
    document_id: int
    document_title: str
    page_number: int


class ScheduledDocument(BaseModel):
    document_id: int
    document_title: str
    pages: List[int]


class ScheduleEntry(BaseModel):
    date: date
    session_number: int
    estimated_duration_minutes: int
    documents: List[ScheduledDocument]
    total_pages: int


class StudySchedule(BaseModel):
    entries: List[ScheduleEntry] = Field(default_factory=list)
    total_days: int = 0
    total_pages: int = 0
    pages_per_session: int = 0
    estimated_total_hours: int = 0


class ScheduleRequest(BaseModel):
    sessions_per_day: int = Field(default=2, ge=1)
    session_minutes: int = Field(default=30, ge=1)


class GoalStatus(BaseModel):
    goal_id: int
    title: str
    exam_date: date
    document_ids: List[int]
    progress: GoalProgress
