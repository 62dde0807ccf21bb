from datetime import date, timedelta

import pytest

from app.core.exceptions import SprintValidationError
from app.models.models import ExamGoal
from app.schemas.goals import SchedulePage
from app.services.goal_service import (
    calculate_goal_progress,
    generate_study_schedule,
    target_completion_rate,
    urgency_level,
)

CREATED = date(2026, 1, 1)
EXAM = date(2026, 1, 31)


def _goal(created_at=CREATED, exam_date=EXAM) -> ExamGoal:
    return ExamGoal(reader_id="r", title="Final", exam_date=exam_date, created_at=created_at)


def _pages(count, document_id=1, title="Guide"):
    return [
        SchedulePage(document_id=document_id, document_title=title, page_number=n)
        for n in range(1, count + 1)
    ]


# --- Goal Progress Tests ---


def test_goal_halfway_through():
    """Test a 30-day goal with 15 days left and 40 of 100 pages read."""
    progress = calculate_goal_progress(
        _goal(), total_pages=100, completed_pages=40, seconds_per_page=120, today=date(2026, 1, 16)
    )

    assert progress.days_until_exam == 15
    assert progress.required_pages_per_day == 4
    assert progress.required_study_seconds_per_day == 480
    assert progress.urgency_level == "low"
    assert progress.target_completion_rate == 50
    assert progress.current_completion_rate == 40
    assert progress.on_track is True


def test_goal_falls_behind():
    progress = calculate_goal_progress(
        _goal(), total_pages=100, completed_pages=39, seconds_per_page=120, today=date(2026, 1, 16)
    )
    assert progress.on_track is False


def test_goal_on_creation_day():
    """Test that nothing is expected yet on the day the goal is set."""
    progress = calculate_goal_progress(
        _goal(), total_pages=100, completed_pages=0, seconds_per_page=120, today=CREATED
    )
    assert progress.target_completion_rate == 0
    assert progress.on_track is True
    assert progress.required_pages_per_day == 4


def test_goal_after_exam():
    progress = calculate_goal_progress(
        _goal(), total_pages=100, completed_pages=100, seconds_per_page=120, today=date(2026, 2, 2)
    )
    assert progress.days_until_exam == -2
    assert progress.urgency_level == "overdue"
    assert progress.required_pages_per_day == 0
    assert progress.required_study_seconds_per_day == 0
    assert progress.target_completion_rate == 107


def test_goal_without_span():
    """Test goals whose exam is on or before their creation date."""
    same_day = _goal(created_at=EXAM, exam_date=EXAM)
    progress = calculate_goal_progress(same_day, 10, 0, 120, today=EXAM)
    assert progress.target_completion_rate == 100
    assert progress.urgency_level == "overdue"
    assert progress.required_pages_per_day == 0

    assert target_completion_rate(EXAM + timedelta(days=3), EXAM, EXAM) == 100.0


def test_goal_without_pages():
    progress = calculate_goal_progress(_goal(), 0, 0, 120, today=date(2026, 1, 16))
    assert progress.current_completion_rate == 0
    assert progress.required_pages_per_day == 0


def test_urgency_thresholds():
    assert urgency_level(-1) == "overdue"
    assert urgency_level(0) == "overdue"
    assert urgency_level(3) == "critical"
    assert urgency_level(4) == "high"
    assert urgency_level(7) == "high"
    assert urgency_level(8) == "medium"
    assert urgency_level(14) == "medium"
    assert urgency_level(15) == "low"


# --- Study Schedule Tests ---


def test_schedule_spreads_pages_evenly():
    """Test 10 pages over 3 days of 2 sessions: 2 pages per session."""
    today = date(2026, 1, 1)
    schedule = generate_study_schedule(
        _pages(10), exam_date=today + timedelta(days=3), today=today, sessions_per_day=2, session_minutes=60
    )

    assert schedule.pages_per_session == 2
    assert schedule.total_days == 3
    assert schedule.total_pages == 10
    assert schedule.estimated_total_hours == 5
    assert [(e.date.day, e.session_number) for e in schedule.entries] == [
        (1, 1),
        (1, 2),
        (2, 1),
        (2, 2),
        (3, 1),
    ]
    scheduled = [n for e in schedule.entries for d in e.documents for n in d.pages]
    assert scheduled == list(range(1, 11))


def test_schedule_groups_pages_by_document():
    today = date(2026, 1, 1)
    pages = _pages(2, document_id=1, title="Guide") + _pages(1, document_id=2, title="Notes")
    schedule = generate_study_schedule(
        pages, exam_date=today + timedelta(days=1), today=today, sessions_per_day=1
    )

    (entry,) = schedule.entries
    assert entry.total_pages == 3
    assert [(d.document_title, d.pages) for d in entry.documents] == [
        ("Guide", [1, 2]),
        ("Notes", [1]),
    ]


def test_schedule_without_pages():
    today = date(2026, 1, 1)
    schedule = generate_study_schedule([], exam_date=today + timedelta(days=5), today=today)
    assert schedule.entries == []
    assert schedule.total_days == 5


def test_schedule_rejects_past_exam():
    today = date(2026, 1, 10)
    for exam in (today, today - timedelta(days=1)):
        with pytest.raises(SprintValidationError, match="Exam date has passed"):
            generate_study_schedule(_pages(3), exam_date=exam, today=today)


def test_schedule_needs_sessions():
    today = date(2026, 1, 1)
    with pytest.raises(SprintValidationError):
        generate_study_schedule(
            _pages(3), exam_date=today + timedelta(days=2), today=today, sessions_per_day=0
        )
