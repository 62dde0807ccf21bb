import math
from datetime import date, timedelta
from typing import Dict, List, Sequence

from app.core.exceptions import SprintValidationError
from app.models.models import ExamGoal
from app.schemas.goals import (
    GoalProgress,
    ScheduledDocument,
    ScheduleEntry,
    SchedulePage,
    StudySchedule,
)

# (maximum days left, urgency), checked from the top.
URGENCY_LEVELS = ((0, "overdue"), (3, "critical"), (7, "high"), (14, "medium"))
ON_TRACK_TOLERANCE = 10


def urgency_level(days_until_exam: int) -> str:
    for max_days, level in URGENCY_LEVELS:
        if days_until_exam <= max_days:
            return level
    return "low"


def target_completion_rate(created_on: date, exam_date: date, today: date) -> float:
    """Share of the material that should be done by now, in percent.

    Assumes linear progress from goal creation to the exam:
    100 - days_left / total_span * 100, floored at 0. A goal whose exam is on
    or before its creation date has no span to spread work over, so its
    target is 100.
    """
    span_days = (exam_date - created_on).days
    if span_days <= 0:
        return 100.0

    days_left = (exam_date - today).days
    return max(0.0, 100 - days_left / span_days * 100)


def calculate_goal_progress(
    goal: ExamGoal,
    total_pages: int,
    completed_pages: int,
    seconds_per_page: float,
    today: date,
) -> GoalProgress:
    """Time-based progress of an exam goal.

    Args:
        goal (ExamGoal): The goal.
        total_pages (int): Pages across the goal's documents.
        completed_pages (int): Pages already read.
        seconds_per_page (float): The reader's average pace.
        today (date): Reference date.

    Returns:
        GoalProgress: Required pace, urgency and whether the reader is on track.
    """
    days_until = (goal.exam_date - today).days
    remaining = max(0, total_pages - completed_pages)
    pages_per_day = math.ceil(remaining / days_until) if days_until > 0 else 0

    target = target_completion_rate(goal.created_at, goal.exam_date, today)
    current = round(completed_pages / total_pages * 100) if total_pages > 0 else 0

    return GoalProgress(
        total_pages=total_pages,
        completed_pages=completed_pages,
        days_until_exam=days_until,
        required_pages_per_day=pages_per_day,
        required_study_seconds_per_day=round(pages_per_day * seconds_per_page),
        urgency_level=urgency_level(days_until),
        target_completion_rate=round(target),
        current_completion_rate=current,
        on_track=current >= target - ON_TRACK_TOLERANCE,
    )


def generate_study_schedule(
    remaining_pages: Sequence[SchedulePage],
    exam_date: date,
    today: date,
    sessions_per_day: int = 2,
    session_minutes: int = 30,
) -> StudySchedule:
    """Spreads the remaining pages evenly over the sessions left before the exam.

    Pages keep their given order. Each session lists its pages grouped by
    document.

    Args:
        remaining_pages (Sequence[SchedulePage]): Unread pages in reading order.
        exam_date (date): The exam date (exclusive).
        today (date): First day of the schedule.
        sessions_per_day (int): Sessions per study day.
        session_minutes (int): Length of each session.

    Returns:
        StudySchedule: Dated session entries plus a summary.

    Raises:
        SprintValidationError: If the exam date is not in the future or
            ``sessions_per_day`` is below 1.
    """
    if sessions_per_day < 1:
        raise SprintValidationError("sessions_per_day must be at least 1")

    days_until = (exam_date - today).days
    if days_until <= 0:
        raise SprintValidationError("Exam date has passed")

    if not remaining_pages:
        return StudySchedule(total_days=days_until)

    pages_per_session = math.ceil(len(remaining_pages) / (days_until * sessions_per_day))

    entries: List[ScheduleEntry] = []
    index = 0
    for day in range(days_until):
        if index >= len(remaining_pages):
            break
        for session_number in range(1, sessions_per_day + 1):
            session_pages = remaining_pages[index : index + pages_per_session]
            if not session_pages:
                break

            by_document: Dict[int, ScheduledDocument] = {}
            for page in session_pages:
                entry = by_document.setdefault(
                    page.document_id,
                    ScheduledDocument(
                        document_id=page.document_id,
                        document_title=page.document_title,
                        pages=[],
                    ),
                )
                entry.pages.append(page.page_number)

            entries.append(
                ScheduleEntry(
                    date=today + timedelta(days=day),
                    session_number=session_number,
                    estimated_duration_minutes=session_minutes,
                    documents=list(by_document.values()),
                    total_pages=len(session_pages),
                )
            )
            index += len(session_pages)

    return StudySchedule(
        entries=entries,
        total_days=days_until,
        total_pages=len(remaining_pages),
        pages_per_session=pages_per_session,
        estimated_total_hours=round(len(entries) * session_minutes / 60),
    )
