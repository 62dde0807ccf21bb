import math
from typing import List, Optional, Sequence

from app.core.config import DEFAULT_SECONDS_PER_PAGE, MIN_PAGES_FOR_PERSONALIZED_SPEED
from app.models.models import ReaderProfile
from app.schemas.analysis import (
    DocumentAnalysis,
    PageAnalysis,
    PageTimeEstimate,
    ReadingRecommendation,
    ReadingSpeed,
    TimeEstimate,
)
from app.services.stats_service import get_dominant_content_type

# Base reading speed (words per minute) by difficulty level
READING_SPEEDS_WPM = {1: 300, 2: 250, 3: 200, 4: 150, 5: 100}
DEFAULT_WPM = 200

MIN_PAGE_SECONDS = 30
MAX_PAGE_SECONDS = 1800
# Pages without text are assumed to be images or diagrams.
EMPTY_PAGE_SECONDS = 30

EQUATION_MULTIPLIER = 1.5
CODE_MULTIPLIER = 1.3
BULLET_MULTIPLIER = 0.9

# Number of pages at which a personalized speed reaches full confidence.
FULL_CONFIDENCE_PAGES = 100


def get_reading_speed(profile: Optional[ReaderProfile]) -> ReadingSpeed:
    """Derives the pace used for a reader's personalized estimates.

    The reader's historical average is used once it is backed by more than
    MIN_PAGES_FOR_PERSONALIZED_SPEED pages. Confidence grows linearly with
    pages read and saturates at FULL_CONFIDENCE_PAGES.

    Args:
        profile (Optional[ReaderProfile]): The reader, or None for an anonymous estimate.

    Returns:
        ReadingSpeed: Seconds per page plus whether and how confidently it is personal.
    """
    if (
        profile is None
        or profile.total_pages_read <= MIN_PAGES_FOR_PERSONALIZED_SPEED
        or not profile.average_reading_speed_seconds
    ):
        return ReadingSpeed(
            has_personalized_speed=False,
            avg_seconds_per_page=DEFAULT_SECONDS_PER_PAGE,
            confidence=0.0,
        )

    return ReadingSpeed(
        has_personalized_speed=True,
        avg_seconds_per_page=profile.average_reading_speed_seconds,
        confidence=min(profile.total_pages_read / FULL_CONFIDENCE_PAGES, 1.0),
    )


def estimate_page_seconds(page: PageAnalysis, pace_factor: float = 1.0) -> int:
    """Estimated reading time of a single page, clamped to [30, 1800] seconds.

    Args:
        page (PageAnalysis): The analyzed page.
        pace_factor (float): Reader pace relative to the default (2.0 = twice as slow).

    Returns:
        int: Estimated seconds.
    """
    if page.word_count == 0:
        return EMPTY_PAGE_SECONDS

    wpm = READING_SPEEDS_WPM.get(page.difficulty_level, DEFAULT_WPM)
    seconds = page.word_count / wpm * 60 * pace_factor

    if page.has_equations:
        seconds *= EQUATION_MULTIPLIER
    if page.has_code:
        seconds *= CODE_MULTIPLIER
    if page.has_bullet_points:
        seconds *= BULLET_MULTIPLIER

    return round(max(MIN_PAGE_SECONDS, min(seconds, MAX_PAGE_SECONDS)))


def generate_time_estimates(
    pages: Sequence[PageAnalysis], reading_speed: Optional[ReadingSpeed] = None
) -> TimeEstimate:
    """Builds per-page and document-level reading time estimates.

    Without a personalized speed the per-difficulty WPM table is used as is.
    With one, every rate is scaled by how the reader's seconds-per-page compare
    to the default, so the reader's own pace replaces the generic one while
    harder pages still take longer.

    Args:
        pages (Sequence[PageAnalysis]): Page analyses in any order.
        reading_speed (Optional[ReadingSpeed]): The reader's pace, if known.

    Returns:
        TimeEstimate: Page estimates, total, per-level totals and average.
    """
    personalized = bool(reading_speed and reading_speed.has_personalized_speed)
    pace_factor = (
        reading_speed.avg_seconds_per_page / DEFAULT_SECONDS_PER_PAGE
        if personalized
        else 1.0
    )

    estimate = TimeEstimate(
        personalized=personalized,
        confidence=reading_speed.confidence if personalized else 0.0,
    )

    for page in sorted(pages, key=lambda p: p.page_number):
        seconds = estimate_page_seconds(page, pace_factor)
        estimate.page_estimates.append(
            PageTimeEstimate(
                page_number=page.page_number,
                estimated_seconds=seconds,
                difficulty_level=page.difficulty_level,
                word_count=page.word_count,
            )
        )
        estimate.total_seconds += seconds
        estimate.difficulty_based_totals[page.difficulty_level] += seconds

    if estimate.page_estimates:
        estimate.average_seconds_per_page = round(
            estimate.total_seconds / len(estimate.page_estimates)
        )

    return estimate


def generate_reading_recommendations(
    analysis: DocumentAnalysis, reading_speed: ReadingSpeed
) -> List[ReadingRecommendation]:
    """Produces advice for approaching a document, most important first."""
    recommendations: List[ReadingRecommendation] = []
    metrics = analysis.metrics

    if metrics.average_difficulty > 4:
        recommendations.append(
            ReadingRecommendation(
                type="difficulty",
                priority="high",
                title="Challenging Content Detected",
                message="This document contains advanced material. Consider shorter "
                "study sessions (20-30 minutes) with breaks.",
                actionable=True,
                suggested_session_seconds=25 * 60,
            )
        )

    dominant_type = get_dominant_content_type(metrics.content_type_distribution)
    if dominant_type == "mathematical":
        recommendations.append(
            ReadingRecommendation(
                type="content",
                priority="medium",
                title="Mathematical Content",
                message="Take extra time with equations and formulas. Have paper "
                "ready for working through problems.",
                actionable=True,
            )
        )
    elif dominant_type == "code_documentation":
        recommendations.append(
            ReadingRecommendation(
                type="content",
                priority="medium",
                title="Code Documentation",
                message="Consider having a code editor open to test examples as you read.",
                actionable=True,
            )
        )

    if len(analysis.structure.chapters) > 10:
        recommendations.append(
            ReadingRecommendation(
                type="structure",
                priority="low",
                title="Complex Document Structure",
                message="Focus on one chapter at a time. Use the table of contents "
                "to plan your reading schedule.",
                actionable=True,
            )
        )

    total_hours = analysis.time_estimate.total_seconds / 3600
    if total_hours > 10:
        recommendations.append(
            ReadingRecommendation(
                type="time",
                priority="high",
                title="Long Document",
                message=f"This document will take approximately {round(total_hours)} "
                "hours to read. Plan multiple study sessions.",
                actionable=True,
                suggested_sessions=math.ceil(total_hours / 2),
            )
        )

    if reading_speed.has_personalized_speed:
        speed_difference = reading_speed.avg_seconds_per_page - DEFAULT_SECONDS_PER_PAGE
        if speed_difference > 60:
            recommendations.append(
                ReadingRecommendation(
                    type="personalization",
                    priority="medium",
                    title="Adjusted for Your Reading Pace",
                    message="Based on your reading history, you might need extra time "
                    "with this material. The estimates have been adjusted.",
                    actionable=False,
                )
            )
        elif speed_difference < -30:
            recommendations.append(
                ReadingRecommendation(
                    type="personalization",
                    priority="low",
                    title="Fast Reader Detected",
                    message="You read faster than average! Consider tackling larger "
                    "sections or more challenging material.",
                    actionable=True,
                )
            )

    priority_order = {"high": 3, "medium": 2, "low": 1}
    return sorted(recommendations, key=lambda r: priority_order[r.priority], reverse=True)
