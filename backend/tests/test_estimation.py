from datetime import datetime, timezone

import pytest

from app.models.models import ReaderProfile
from app.schemas.analysis import (
    ChapterSpan,
    DocumentAnalysis,
    DocumentMetrics,
    DocumentStructure,
    PageAnalysis,
    ProcessingMetadata,
    ReadingSpeed,
    TimeEstimate,
)
from app.services.estimation_service import (
    MAX_PAGE_SECONDS,
    MIN_PAGE_SECONDS,
    estimate_page_seconds,
    generate_reading_recommendations,
    generate_time_estimates,
    get_reading_speed,
)


def _page(page_number=1, words=100, level=3, **flags) -> PageAnalysis:
    return PageAnalysis(
        page_number=page_number,
        word_count=words,
        difficulty_score=float(level),
        difficulty_level=level,
        **flags,
    )


def _analysis(avg_difficulty=3.0, total_seconds=0, content_types=None, chapters=0):
    return DocumentAnalysis(
        total_pages=1,
        pages=[],
        structure=DocumentStructure(
            chapters=[
                ChapterSpan(title=f"Chapter {i}", start_page=i + 1, end_page=i + 1)
                for i in range(chapters)
            ]
        ),
        metrics=DocumentMetrics(
            average_difficulty=avg_difficulty,
            content_type_distribution=content_types or {},
        ),
        time_estimate=TimeEstimate(total_seconds=total_seconds),
        metadata=ProcessingMetadata(
            processed_at=datetime.now(timezone.utc),
            processing_version="1.0.0",
            total_words=0,
            avg_difficulty=avg_difficulty,
            estimated_total_reading_seconds=total_seconds,
        ),
    )


DEFAULT_SPEED = ReadingSpeed(avg_seconds_per_page=120)

# --- Page Estimate Tests ---


def test_ten_medium_pages_take_five_minutes():
    """Test 10 pages of 100 words at level 3 (200 wpm): 30 s each, 300 s total."""
    pages = [_page(n) for n in range(1, 11)]
    estimate = generate_time_estimates(pages)

    assert [e.estimated_seconds for e in estimate.page_estimates] == [30] * 10
    assert estimate.total_seconds == 300
    assert estimate.average_seconds_per_page == 30
    assert estimate.difficulty_based_totals == {1: 0, 2: 0, 3: 300, 4: 0, 5: 0}
    assert estimate.personalized is False
    assert estimate.confidence == 0.0


def test_empty_page_gets_fixed_time():
    assert estimate_page_seconds(PageAnalysis.fallback(1)) == 30
    assert estimate_page_seconds(PageAnalysis.fallback(2, extraction_failed=True)) == 30


def test_harder_pages_take_longer():
    """Test that time never decreases with difficulty at a fixed word count."""
    seconds = [estimate_page_seconds(_page(words=500, level=level)) for level in range(1, 6)]
    assert seconds == [100, 120, 150, 200, 300]
    assert seconds == sorted(seconds)


def test_content_multipliers():
    assert estimate_page_seconds(_page(words=400)) == 120
    assert estimate_page_seconds(_page(words=400, has_equations=True)) == 180
    assert estimate_page_seconds(_page(words=400, has_code=True)) == 156
    assert estimate_page_seconds(_page(words=400, has_bullet_points=True)) == 108
    assert estimate_page_seconds(_page(words=400, has_equations=True, has_code=True)) == 234


def test_page_estimates_are_clamped():
    assert estimate_page_seconds(_page(words=10000, level=5)) == MAX_PAGE_SECONDS
    assert estimate_page_seconds(_page(words=20, level=1)) == MIN_PAGE_SECONDS


def test_estimates_are_in_page_order():
    pages = [_page(3), _page(1), _page(2)]
    estimate = generate_time_estimates(pages)
    assert [e.page_number for e in estimate.page_estimates] == [1, 2, 3]


def test_empty_document_estimate():
    estimate = generate_time_estimates([])
    assert estimate.total_seconds == 0
    assert estimate.page_estimates == []
    assert estimate.average_seconds_per_page == 0


# --- Reading Speed Tests ---


def test_reading_speed_needs_history():
    """Test that a personalized pace needs more than ten pages of history."""
    assert get_reading_speed(None).has_personalized_speed is False
    assert get_reading_speed(None).avg_seconds_per_page == 120

    new_reader = ReaderProfile(
        reader_id="r", total_pages_read=10, average_reading_speed_seconds=180.0
    )
    assert get_reading_speed(new_reader).has_personalized_speed is False


def test_reading_speed_confidence():
    profile = ReaderProfile(
        reader_id="r", total_pages_read=50, average_reading_speed_seconds=180.0
    )
    speed = get_reading_speed(profile)
    assert speed.has_personalized_speed is True
    assert speed.avg_seconds_per_page == 180.0
    assert speed.confidence == pytest.approx(0.5)

    profile.total_pages_read = 250
    assert get_reading_speed(profile).confidence == 1.0


def test_personalized_estimates_scale_with_pace():
    """Test that a reader twice as slow as the default gets twice the time."""
    speed = ReadingSpeed(has_personalized_speed=True, avg_seconds_per_page=240, confidence=0.5)
    estimate = generate_time_estimates([_page(1), _page(2)], speed)

    assert [e.estimated_seconds for e in estimate.page_estimates] == [60, 60]
    assert estimate.personalized is True
    assert estimate.confidence == 0.5


def test_unpersonalized_speed_is_ignored():
    speed = ReadingSpeed(has_personalized_speed=False, avg_seconds_per_page=600)
    estimate = generate_time_estimates([_page(1)], speed)
    assert estimate.page_estimates[0].estimated_seconds == 30
    assert estimate.personalized is False


# --- Recommendation Tests ---


def test_recommendations_are_ordered_by_priority():
    analysis = _analysis(
        avg_difficulty=4.5,
        total_seconds=40000,
        content_types={"mathematical": 3, "standard_text": 1},
        chapters=11,
    )
    recommendations = generate_reading_recommendations(analysis, DEFAULT_SPEED)

    assert [r.type for r in recommendations] == ["difficulty", "time", "content", "structure"]
    assert [r.priority for r in recommendations] == ["high", "high", "medium", "low"]
    assert recommendations[0].suggested_session_seconds == 25 * 60
    # 40000 s is about 11.1 hours, split into 2-hour sessions
    assert recommendations[1].suggested_sessions == 6
    assert recommendations[2].title == "Mathematical Content"


def test_code_documentation_recommendation():
    analysis = _analysis(content_types={"code_documentation": 2})
    recommendations = generate_reading_recommendations(analysis, DEFAULT_SPEED)
    assert [r.title for r in recommendations] == ["Code Documentation"]


def test_easy_short_document_needs_no_advice():
    assert generate_reading_recommendations(_analysis(total_seconds=600), DEFAULT_SPEED) == []


def test_personalization_recommendations():
    analysis = _analysis()

    slow = ReadingSpeed(has_personalized_speed=True, avg_seconds_per_page=200, confidence=1.0)
    (advice,) = generate_reading_recommendations(analysis, slow)
    assert advice.type == "personalization"
    assert advice.priority == "medium"
    assert advice.actionable is False

    fast = ReadingSpeed(has_personalized_speed=True, avg_seconds_per_page=80, confidence=1.0)
    (advice,) = generate_reading_recommendations(analysis, fast)
    assert advice.title == "Fast Reader Detected"
    assert advice.priority == "low"

    typical = ReadingSpeed(has_personalized_speed=True, avg_seconds_per_page=150, confidence=1.0)
    assert generate_reading_recommendations(analysis, typical) == []
