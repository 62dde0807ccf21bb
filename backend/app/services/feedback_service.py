import math
import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional, Sequence

import structlog

from app.core.exceptions import SprintValidationError
from app.models.models import ReaderProfile, Sprint
from app.schemas.common import PerformanceLevel, SprintStatus, SprintStrategy
from app.schemas.sprint import (
    FeedbackMessage,
    FeedbackResult,
    PerformanceMetrics,
    ProfileUpdate,
    SprintAnalytics,
    SprintCompletion,
    SprintOutcome,
)

logger = structlog.get_logger(__name__)

BASE_XP = 10
XP_BY_LEVEL: Dict[PerformanceLevel, int] = {
    PerformanceLevel.EXCELLENT: 25,
    PerformanceLevel.GOOD: 15,
}
# (minimum streak, bonus); bonuses stack.
STREAK_XP_BONUSES = ((7, 5), (30, 10))

XP_PER_LEVEL_UNIT = 100

FEEDBACK_TEXTS: Dict[PerformanceLevel, Sequence[str]] = {
    PerformanceLevel.EXCELLENT: (
        "Outstanding performance! You're on fire!",
        "Stellar work! Your focus is incredible!",
        "Champion level reading! Keep dominating!",
    ),
    PerformanceLevel.GOOD: (
        "Great job! You hit your targets!",
        "Solid performance! Your consistency is paying off!",
        "Excellent progress! You're building momentum!",
    ),
    PerformanceLevel.FAIR: (
        "Good effort! Every step counts!",
        "Nice work! You're growing stronger!",
        "Keep going! Your dedication is admirable!",
    ),
    PerformanceLevel.NEEDS_IMPROVEMENT: (
        "Don't give up! Progress takes time!",
        "Every attempt makes you stronger!",
        "Focus on consistency! You've got this!",
    ),
}

# Number of most recent completed sprints the trend looks at.
TREND_WINDOW = 10
NEUTRAL_QUALITY = 3


def classify_performance(efficiency: int, completion: int) -> PerformanceLevel:
    if efficiency >= 120 or completion >= 120:
        return PerformanceLevel.EXCELLENT
    if efficiency >= 90 and completion >= 90:
        return PerformanceLevel.GOOD
    if efficiency >= 70 and completion >= 70:
        return PerformanceLevel.FAIR
    return PerformanceLevel.NEEDS_IMPROVEMENT


def calculate_performance_metrics(
    estimated_seconds: int, planned_pages: int, completion: SprintCompletion
) -> PerformanceMetrics:
    """Compares a sprint's outcome with its plan.

    Missing reports fall back to the plan: no reported time means the sprint
    took as long as estimated, no reported page count means every planned
    page was read.

    Args:
        estimated_seconds (int): The sprint's estimated duration.
        planned_pages (int): Pages in the sprint's range.
        completion (SprintCompletion): What the reader reported.

    Returns:
        PerformanceMetrics: Efficiency, completion rate, pace and level.
    """
    actual_seconds = (
        completion.actual_time_seconds
        if completion.actual_time_seconds is not None
        else estimated_seconds
    )
    pages_completed = (
        completion.pages_actually_completed
        if completion.pages_actually_completed is not None
        else planned_pages
    )

    efficiency = round(100 * estimated_seconds / actual_seconds) if actual_seconds > 0 else 100
    completion_rate = round(100 * pages_completed / planned_pages) if planned_pages > 0 else 0
    per_page = round(actual_seconds / pages_completed) if pages_completed > 0 else 0

    return PerformanceMetrics(
        time_efficiency_percentage=efficiency,
        completion_rate_percentage=completion_rate,
        average_time_per_page_seconds=per_page,
        performance_level=classify_performance(efficiency, completion_rate),
        pages_completed=pages_completed,
        total_time_seconds=actual_seconds,
        pace_comparison="faster_than_expected" if efficiency >= 100 else "slower_than_expected",
    )


def calculate_user_level(xp: int) -> int:
    """floor(sqrt(xp / 100)) + 1, computed on integers so boundaries are exact."""
    return math.isqrt(max(xp, 0) // XP_PER_LEVEL_UNIT) + 1


def update_streak(current_streak: int, last_activity: Optional[date], today: date) -> int:
    """Streak length after activity on ``today``."""
    if last_activity == today:
        return current_streak
    if last_activity == today - timedelta(days=1):
        return current_streak + 1
    return 1


def calculate_xp(level: PerformanceLevel, streak_days: int) -> int:
    xp = XP_BY_LEVEL.get(level, BASE_XP)
    for min_streak, bonus in STREAK_XP_BONUSES:
        if streak_days >= min_streak:
            xp += bonus
    return xp


def apply_sprint_feedback(
    profile: ReaderProfile,
    performance: PerformanceMetrics,
    focus_score: Optional[float] = None,
    today: Optional[date] = None,
) -> ProfileUpdate:
    """Folds one completed sprint into the reader's profile.

    Updates lifetime totals, average pace and session length, the daily
    streak, XP and level, and (when reported) the running focus average.
    The profile is mutated in place; the caller persists it.

    Args:
        profile (ReaderProfile): The reader's profile.
        performance (PerformanceMetrics): Metrics of the completed sprint.
        focus_score (Optional[float]): Reported focus for this session (0-1).
        today (Optional[date]): The activity date; defaults to today in UTC.

    Returns:
        ProfileUpdate: XP, level and streak changes.
    """
    today = today or datetime.now(timezone.utc).date()
    previous_level = profile.current_level

    profile.total_pages_read += performance.pages_completed
    profile.total_time_spent_seconds += performance.total_time_seconds
    if profile.total_pages_read > 0:
        profile.average_reading_speed_seconds = (
            profile.total_time_spent_seconds / profile.total_pages_read
        )

    profile.total_study_sessions += 1
    profile.average_session_duration_seconds = round(
        profile.total_time_spent_seconds / profile.total_study_sessions
    )

    if focus_score is not None:
        # Running mean over the sessions that reported focus
        profile.focus_sessions += 1
        profile.focus_score_average += (
            focus_score - profile.focus_score_average
        ) / profile.focus_sessions

    streak = update_streak(profile.current_streak_days, profile.last_activity_date, today)
    profile.current_streak_days = streak
    profile.longest_streak_days = max(profile.longest_streak_days, streak)
    profile.last_activity_date = today

    xp_gained = calculate_xp(performance.performance_level, streak)
    profile.total_xp_points += xp_gained
    profile.current_level = calculate_user_level(profile.total_xp_points)
    profile.updated_at = datetime.now(timezone.utc)

    return ProfileUpdate(
        xp_gained=xp_gained,
        total_xp=profile.total_xp_points,
        previous_level=previous_level,
        new_level=profile.current_level,
        current_streak_days=streak,
        longest_streak_days=profile.longest_streak_days,
    )


def build_feedback_message(
    level: PerformanceLevel, xp_gained: int, rng: Optional[random.Random] = None
) -> FeedbackMessage:
    texts = FEEDBACK_TEXTS.get(level, FEEDBACK_TEXTS[PerformanceLevel.GOOD])
    chooser = rng or random
    return FeedbackMessage(tag=level, text=chooser.choice(texts), xp_gained=xp_gained)


def complete_sprint(
    sprint: Sprint,
    profile: ReaderProfile,
    completion: SprintCompletion,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> FeedbackResult:
    """Records a sprint's outcome and updates the reader's profile.

    Both ``sprint`` and ``profile`` are mutated in place. Callers must hold
    the reader's lock around this call and the save that follows.

    Args:
        sprint (Sprint): A pending or in-progress sprint.
        profile (ReaderProfile): The sprint owner's profile.
        completion (SprintCompletion): The reader's report.
        today (Optional[date]): Activity date for the streak.
        rng (Optional[random.Random]): Source for the encouragement text.

    Returns:
        FeedbackResult: Outcome, metrics, profile changes and feedback message.

    Raises:
        SprintValidationError: If the sprint was already completed.
    """
    if sprint.status == SprintStatus.COMPLETED.value:
        raise SprintValidationError(f"Sprint {sprint.id} is already completed")

    planned_pages = sprint.end_page - sprint.start_page + 1
    performance = calculate_performance_metrics(
        sprint.estimated_time_seconds, planned_pages, completion
    )

    sprint.status = SprintStatus.COMPLETED.value
    sprint.completed_at = datetime.now(timezone.utc)
    sprint.actual_time_seconds = performance.total_time_seconds
    sprint.pages_actually_completed = performance.pages_completed
    sprint.completion_quality = completion.completion_quality
    sprint.efficiency_percentage = performance.time_efficiency_percentage
    sprint.completion_percentage = performance.completion_rate_percentage
    sprint.performance_level = performance.performance_level.value

    profile_update = apply_sprint_feedback(
        profile, performance, focus_score=completion.focus_score, today=today
    )
    feedback = build_feedback_message(
        performance.performance_level, profile_update.xp_gained, rng
    )

    logger.info(
        "sprint_completed",
        sprint_id=sprint.id,
        reader_id=profile.reader_id,
        performance_level=performance.performance_level.value,
        xp_gained=profile_update.xp_gained,
        new_level=profile_update.new_level,
    )

    outcome = SprintOutcome(
        sprint_id=sprint.id,
        document_id=sprint.document_id,
        strategy=SprintStrategy(sprint.strategy) if sprint.strategy else None,
        start_page=sprint.start_page,
        end_page=sprint.end_page,
        estimated_time_seconds=sprint.estimated_time_seconds,
        actual_time_seconds=performance.total_time_seconds,
        pages_actually_completed=performance.pages_completed,
        completion_quality=completion.completion_quality,
        efficiency_percentage=performance.time_efficiency_percentage,
        completion_percentage=performance.completion_rate_percentage,
        performance_level=performance.performance_level,
    )

    return FeedbackResult(
        outcome=outcome,
        performance=performance,
        profile_update=profile_update,
        feedback=feedback,
    )


def summarize_sprints(sprints: Sequence[Sprint]) -> SprintAnalytics:
    """Aggregates a reader's sprint history.

    The trend compares the completion quality of the most recent completed
    sprint with the oldest of the last ten: "improving" if it is higher,
    "stable" otherwise, "insufficient_data" with fewer than two.
    """
    completed = sorted(
        (s for s in sprints if s.status == SprintStatus.COMPLETED.value),
        key=lambda s: s.completed_at or s.created_at,
        reverse=True,
    )
    total = len(sprints)

    efficiencies = [
        100 * s.estimated_time_seconds / (s.actual_time_seconds or s.estimated_time_seconds)
        if s.estimated_time_seconds > 0
        else 100
        for s in completed
    ]

    type_distribution: Dict[str, int] = {}
    for s in sprints:
        type_distribution[s.sprint_type] = type_distribution.get(s.sprint_type, 0) + 1

    recent = completed[:TREND_WINDOW]
    if len(recent) > 1:
        newest = recent[0].completion_quality or NEUTRAL_QUALITY
        oldest = recent[-1].completion_quality or NEUTRAL_QUALITY
        trend = "improving" if newest > oldest else "stable"
    else:
        trend = "insufficient_data"

    return SprintAnalytics(
        total_sprints=total,
        completed_sprints=len(completed),
        completion_rate_percentage=round(len(completed) / total * 100) if total else 0,
        average_time_efficiency_percentage=(
            round(sum(efficiencies) / len(efficiencies)) if efficiencies else 0
        ),
        sprint_type_distribution=type_distribution,
        performance_trend=trend,
        total_pages_in_sprints=sum(s.pages_actually_completed or 0 for s in completed),
        total_time_in_sprints=sum(s.actual_time_seconds or 0 for s in completed),
    )
