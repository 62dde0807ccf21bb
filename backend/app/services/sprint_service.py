import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from app.core.config import DEFAULT_FOCUS_SCORE, DEFAULT_SECONDS_PER_PAGE, DEFAULT_SESSION_MINUTES
from app.core.exceptions import SprintValidationError
from app.models.models import ReaderProfile, Sprint
from app.schemas.common import DifficultyPreference, SessionType, SprintStatus
from app.schemas.sprint import (
    DifficultyFocusedCandidate,
    ManualSprintRequest,
    ReviewCandidate,
    ScoredCandidate,
    SequentialCandidate,
    SprintCandidate,
    SprintDocument,
    SprintPlan,
)

logger = structlog.get_logger(__name__)

MAX_CANDIDATES = 5

# Page difficulty ratings that belong to each requested band.
DIFFICULTY_BANDS: Dict[DifficultyPreference, Tuple[int, ...]] = {
    DifficultyPreference.EASY: (1, 2),
    DifficultyPreference.MEDIUM: (3,),
    DifficultyPreference.HARD: (4, 5),
}
DIFFICULTY_MULTIPLIERS: Dict[DifficultyPreference, float] = {
    DifficultyPreference.EASY: 0.8,
    DifficultyPreference.MEDIUM: 1.0,
    DifficultyPreference.HARD: 1.3,
}
UNRATED_PAGE_DIFFICULTY = 3

REVIEW_TIME_MULTIPLIER = 0.7
REVIEW_DIFFICULTY = 2
REVIEW_PRIORITY_BOOST = 1

SESSION_TYPE_ICONS = {SessionType.READING: "📖", SessionType.REVIEW: "📝"}


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored in UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def target_page_count(duration_minutes: int, seconds_per_page: float) -> int:
    """Pages that fit in a session; at least one so every span is non-empty."""
    if seconds_per_page <= 0:
        seconds_per_page = DEFAULT_SECONDS_PER_PAGE
    return max(1, math.floor(duration_minutes * 60 / seconds_per_page))


def calculate_priority_score(document: SprintDocument, now: datetime) -> int:
    """Priority from the document rank (1 = most important) plus a recency bonus.

    Args:
        document (SprintDocument): The document.
        now (datetime): Reference time for the recency bonus.

    Returns:
        int: The priority score; higher is more urgent.
    """
    score = 6 - document.priority

    if document.updated_at is not None:
        age_days = (_as_utc(now) - _as_utc(document.updated_at)).total_seconds() / 86400
        if age_days < 1:
            score += 2
        elif age_days < 7:
            score += 1

    return score


def calculate_difficulty_score(
    document: SprintDocument, start_page: int, end_page: int
) -> int:
    """Blends the document difficulty with the ratings of pages in the range."""
    ratings = [
        p.difficulty_rating
        for p in document.pages
        if start_page <= p.page_number <= end_page and p.difficulty_rating
    ]
    if not ratings:
        return document.difficulty_level

    return round((document.difficulty_level + sum(ratings) / len(ratings)) / 2)


def unread_page_numbers(document: SprintDocument) -> List[int]:
    """Pages 1..total_pages not marked complete, in page order."""
    completed = {p.page_number for p in document.pages if p.is_completed}
    return [n for n in range(1, document.total_pages + 1) if n not in completed]


def _band_pages(
    document: SprintDocument, unread: List[int], preference: DifficultyPreference
) -> List[int]:
    ratings = {p.page_number: p.difficulty_rating for p in document.pages}
    band = DIFFICULTY_BANDS[preference]
    return [
        n for n in unread if (ratings.get(n) or UNRATED_PAGE_DIFFICULTY) in band
    ]


def _document_candidates(
    document: SprintDocument,
    seconds_per_page: float,
    target_pages: int,
    difficulty_preference: DifficultyPreference,
    session_type: SessionType,
    now: datetime,
) -> List[SprintCandidate]:
    unread = unread_page_numbers(document)
    if not unread:
        return []

    priority = calculate_priority_score(document, now)
    candidates: List[SprintCandidate] = []

    start = unread[0]
    end = min(start + target_pages - 1, document.total_pages)
    candidates.append(
        SequentialCandidate(
            document_id=document.document_id,
            document_title=document.title,
            start_page=start,
            end_page=end,
            estimated_time_seconds=round((end - start + 1) * seconds_per_page),
            difficulty_score=calculate_difficulty_score(document, start, end),
            priority_score=priority,
            description=f"Continue reading from page {start}",
        )
    )

    if difficulty_preference != DifficultyPreference.ADAPTIVE:
        band_pages = _band_pages(document, unread, difficulty_preference)
        if band_pages:
            start = band_pages[0]
            end = min(start + target_pages - 1, document.total_pages)
            multiplier = DIFFICULTY_MULTIPLIERS[difficulty_preference]
            candidates.append(
                DifficultyFocusedCandidate(
                    document_id=document.document_id,
                    document_title=document.title,
                    start_page=start,
                    end_page=end,
                    estimated_time_seconds=round(
                        (end - start + 1) * seconds_per_page * multiplier
                    ),
                    difficulty_score=calculate_difficulty_score(document, start, end),
                    priority_score=priority,
                    description=f"{difficulty_preference.value.capitalize()} difficulty pages",
                    difficulty_preference=difficulty_preference,
                )
            )

    if session_type == SessionType.REVIEW:
        recently_read = sorted(
            (p for p in document.pages if p.is_completed and p.last_read_at),
            key=lambda p: _as_utc(p.last_read_at),
            reverse=True,
        )[:target_pages]
        if recently_read:
            review_pages = sorted(p.page_number for p in recently_read)
            candidates.append(
                ReviewCandidate(
                    document_id=document.document_id,
                    document_title=document.title,
                    start_page=review_pages[0],
                    end_page=review_pages[-1],
                    estimated_time_seconds=round(
                        len(review_pages) * seconds_per_page * REVIEW_TIME_MULTIPLIER
                    ),
                    difficulty_score=REVIEW_DIFFICULTY,
                    priority_score=priority + REVIEW_PRIORITY_BOOST,
                    description="Review recently read pages",
                    review_pages=review_pages,
                )
            )

    return candidates


def generate_sprint_candidates(
    documents: Sequence[SprintDocument],
    seconds_per_page: float,
    preferred_duration_minutes: int = DEFAULT_SESSION_MINUTES,
    difficulty_preference: DifficultyPreference = DifficultyPreference.ADAPTIVE,
    session_type: SessionType = SessionType.READING,
    now: Optional[datetime] = None,
) -> List[SprintCandidate]:
    """Proposes up to five alternative sprints across the given documents.

    Every document with unread pages yields a sequential candidate; a
    difficulty-focused one is added for a non-adaptive preference and a review
    one for review sessions. Candidates are ranked by priority score, ties
    keeping document order.

    Args:
        documents (Sequence[SprintDocument]): Documents with page progress.
        seconds_per_page (float): The reader's average pace.
        preferred_duration_minutes (int): Desired session length.
        difficulty_preference (DifficultyPreference): Requested difficulty band.
        session_type (SessionType): Reading or review session.
        now (Optional[datetime]): Reference time for recency bonuses.

    Returns:
        List[SprintCandidate]: At most five candidates, best first.
    """
    now = now or datetime.now(timezone.utc)
    target_pages = target_page_count(preferred_duration_minutes, seconds_per_page)

    candidates: List[SprintCandidate] = []
    for document in documents:
        candidates.extend(
            _document_candidates(
                document,
                seconds_per_page,
                target_pages,
                difficulty_preference,
                session_type,
                now,
            )
        )

    candidates.sort(key=lambda c: c.priority_score, reverse=True)
    return candidates[:MAX_CANDIDATES]


def _hour_distance(a: int, b: int) -> int:
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


def score_candidate(
    candidate: SprintCandidate, profile: Optional[ReaderProfile], current_hour: int
) -> int:
    """Adjusts a candidate's priority to the reader's level, focus and peak hour."""
    score = candidate.priority_score

    level = profile.current_level if profile else 1
    if level < 3 and candidate.difficulty_score > 3:
        score -= 2
    elif level > 5 and candidate.difficulty_score < 2:
        score -= 1

    focus = (
        profile.focus_score_average
        if profile and profile.focus_score_average is not None
        else DEFAULT_FOCUS_SCORE
    )
    if focus < 0.7 and candidate.estimated_time_seconds > 1800:
        score -= 1

    peak_hour = profile.peak_performance_hour if profile else None
    if peak_hour is not None and _hour_distance(current_hour, peak_hour) <= 2:
        score += 1

    return score


def select_optimal_sprint(
    candidates: Sequence[SprintCandidate],
    profile: Optional[ReaderProfile],
    current_hour: Optional[int] = None,
) -> Optional[ScoredCandidate]:
    """Picks the best candidate for the reader right now.

    Args:
        candidates (Sequence[SprintCandidate]): Candidates from the generator.
        profile (Optional[ReaderProfile]): The reader; None scores as a new reader.
        current_hour (Optional[int]): Hour of day (0-23); defaults to the local hour.

    Returns:
        Optional[ScoredCandidate]: The winner, or None when there is nothing to schedule.
    """
    if not candidates:
        return None

    if current_hour is None:
        current_hour = datetime.now().hour

    scored = [
        ScoredCandidate(
            candidate=c, final_score=score_candidate(c, profile, current_hour)
        )
        for c in candidates
    ]
    return max(scored, key=lambda s: s.final_score)


def plan_sprints(
    documents: Sequence[SprintDocument],
    profile: Optional[ReaderProfile],
    preferred_duration_minutes: Optional[int] = None,
    difficulty_preference: DifficultyPreference = DifficultyPreference.ADAPTIVE,
    session_type: SessionType = SessionType.READING,
    now: Optional[datetime] = None,
    current_hour: Optional[int] = None,
) -> SprintPlan:
    """Generates candidates and selects the recommendation in one pass."""
    seconds_per_page = (
        profile.average_reading_speed_seconds
        if profile and profile.average_reading_speed_seconds
        else DEFAULT_SECONDS_PER_PAGE
    )
    duration = (
        preferred_duration_minutes
        or (profile.preferred_session_minutes if profile else None)
        or DEFAULT_SESSION_MINUTES
    )

    candidates = generate_sprint_candidates(
        documents,
        seconds_per_page,
        preferred_duration_minutes=duration,
        difficulty_preference=difficulty_preference,
        session_type=session_type,
        now=now,
    )
    recommended = select_optimal_sprint(candidates, profile, current_hour)

    if recommended is None:
        logger.info("nothing_to_schedule", documents=len(documents))

    return SprintPlan(
        sprint_suggestions=candidates,
        recommended_sprint=recommended,
        user_context={
            "current_level": profile.current_level if profile else 1,
            "avg_reading_speed": seconds_per_page,
            "focus_score": profile.focus_score_average if profile else DEFAULT_FOCUS_SCORE,
            "peak_performance_hour": profile.peak_performance_hour if profile else None,
        },
    )


def validate_page_range(start_page: int, end_page: int, total_pages: int) -> None:
    """Rejects a manual sprint range outside the document.

    Raises:
        SprintValidationError: If start > end or either end lies outside [1, total_pages].
    """
    if start_page > end_page:
        raise SprintValidationError(
            f"start_page ({start_page}) must not be greater than end_page ({end_page})"
        )
    if start_page < 1 or end_page > total_pages:
        raise SprintValidationError(
            f"Page range {start_page}-{end_page} is outside the document (1-{total_pages})"
        )


def generate_sprint_title(
    document_title: str,
    start_page: int,
    end_page: int,
    session_type: SessionType = SessionType.READING,
) -> str:
    if start_page == end_page:
        page_range = f"Page {start_page}"
    else:
        page_range = f"Pages {start_page}-{end_page}"
    icon = SESSION_TYPE_ICONS.get(session_type, SESSION_TYPE_ICONS[SessionType.READING])
    return f"{icon} {document_title}: {page_range}"


def build_manual_sprint(
    request: ManualSprintRequest,
    document_title: str,
    total_pages: int,
    seconds_per_page: float,
) -> Sprint:
    """Creates a pending sprint for a reader-chosen page range.

    The range is validated before anything else. Missing estimate and title
    are filled from the reader's pace and the page range.

    Args:
        request (ManualSprintRequest): The requested sprint.
        document_title (str): Title of the target document.
        total_pages (int): Page count of the target document.
        seconds_per_page (float): The reader's average pace.

    Returns:
        Sprint: An unsaved sprint in the pending state.

    Raises:
        SprintValidationError: If the page range is invalid.
    """
    validate_page_range(request.start_page, request.end_page, total_pages)

    page_count = request.end_page - request.start_page + 1
    estimated = request.estimated_time_seconds
    if estimated is None:
        estimated = round(page_count * seconds_per_page)

    return Sprint(
        reader_id=request.reader_id,
        document_id=request.document_id,
        title=request.title
        or generate_sprint_title(
            document_title, request.start_page, request.end_page, request.sprint_type
        ),
        strategy=None,
        sprint_type=request.sprint_type.value,
        start_page=request.start_page,
        end_page=request.end_page,
        estimated_time_seconds=estimated,
        difficulty_level=request.difficulty_level,
        target_date=request.target_date,
    )


def sprint_from_candidate(
    candidate: SprintCandidate, reader_id: str, session_type: SessionType
) -> Sprint:
    """Commits a generated candidate as a pending sprint."""
    return Sprint(
        reader_id=reader_id,
        document_id=candidate.document_id,
        title=generate_sprint_title(
            candidate.document_title,
            candidate.start_page,
            candidate.end_page,
            session_type,
        ),
        strategy=candidate.strategy.value,
        sprint_type=session_type.value,
        start_page=candidate.start_page,
        end_page=candidate.end_page,
        estimated_time_seconds=candidate.estimated_time_seconds,
        difficulty_level=max(1, min(5, round(candidate.difficulty_score))),
    )


def start_sprint(sprint: Sprint, now: Optional[datetime] = None) -> Sprint:
    """Moves a pending sprint to in_progress.

    Raises:
        SprintValidationError: If the sprint is not pending.
    """
    if sprint.status != SprintStatus.PENDING.value:
        raise SprintValidationError(
            f"Sprint {sprint.id} is {sprint.status} and cannot be started"
        )
    sprint.status = SprintStatus.IN_PROGRESS.value
    sprint.started_at = now or datetime.now(timezone.utc)
    return sprint
