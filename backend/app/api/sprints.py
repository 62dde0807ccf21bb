from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.core.concurrency import reader_locks
from app.core.database import get_session
from app.core.exceptions import DocumentNotFoundError, SprintValidationError
from app.crud.crud import (
    get_document,
    get_reader_profile,
    get_reader_sprints,
    load_sprint_documents,
    mark_sprint_pages_completed,
)
from app.models.models import Sprint
from app.schemas.sprint import (
    CommitCandidateRequest,
    FeedbackResult,
    ManualSprintRequest,
    SprintAnalytics,
    SprintCompletion,
    SprintGenerateRequest,
    SprintPlan,
)
from app.services.feedback_service import complete_sprint, summarize_sprints
from app.services.sprint_service import (
    build_manual_sprint,
    plan_sprints,
    sprint_from_candidate,
    start_sprint,
    validate_page_range,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/sprints", tags=["Sprints"])


def _get_sprint_or_404(session: Session, sprint_id: int, reader_id: str) -> Sprint:
    sprint = session.get(Sprint, sprint_id)
    if not sprint or sprint.reader_id != reader_id:
        raise HTTPException(status_code=404, detail="Sprint not found")
    return sprint


@router.post("/generate")
def generate_sprints(
    request: SprintGenerateRequest, session: Session = Depends(get_session)
) -> SprintPlan:
    """Proposes sprints over the reader's documents and recommends one.

    An empty plan (``recommended_sprint`` is null) means there is nothing left
    to read in the requested documents.

    Args:
        request (SprintGenerateRequest): Documents, duration and preferences.
        session (Session): The database session.

    Returns:
        SprintPlan: Ranked suggestions and the recommended sprint.
    """
    profile = get_reader_profile(session, request.reader_id)
    documents = load_sprint_documents(session, request.reader_id, request.document_ids)

    return plan_sprints(
        documents,
        profile,
        preferred_duration_minutes=request.preferred_duration_minutes,
        difficulty_preference=request.difficulty_preference,
        session_type=request.session_type,
    )


@router.post("", status_code=201)
def create_sprint(
    request: ManualSprintRequest, session: Session = Depends(get_session)
) -> Sprint:
    """Creates a sprint over a reader-chosen page range.

    Raises:
        HTTPException: 404 for an unknown document, 400 for an invalid range.
    """
    try:
        document = get_document(session, request.document_id, request.reader_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")

    profile = get_reader_profile(session, request.reader_id)
    try:
        sprint = build_manual_sprint(
            request,
            document_title=document.title,
            total_pages=document.total_pages,
            seconds_per_page=profile.average_reading_speed_seconds,
        )
    except SprintValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.add(sprint)
    session.commit()
    session.refresh(sprint)
    return sprint


@router.post("/commit", status_code=201)
def commit_candidate(
    request: CommitCandidateRequest, session: Session = Depends(get_session)
) -> Sprint:
    """Saves a generated candidate as a pending sprint."""
    candidate = request.candidate
    try:
        document = get_document(session, candidate.document_id, request.reader_id)
        validate_page_range(
            candidate.start_page, candidate.end_page, document.total_pages
        )
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except SprintValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    sprint = sprint_from_candidate(candidate, request.reader_id, request.session_type)
    session.add(sprint)
    session.commit()
    session.refresh(sprint)
    return sprint


@router.get("")
def list_sprints(reader_id: str, session: Session = Depends(get_session)) -> List[Sprint]:
    return get_reader_sprints(session, reader_id)


@router.get("/analytics")
def sprint_analytics(
    reader_id: str, session: Session = Depends(get_session)
) -> SprintAnalytics:
    return summarize_sprints(get_reader_sprints(session, reader_id))


@router.patch("/{sprint_id}/start")
def start(
    sprint_id: int, reader_id: str, session: Session = Depends(get_session)
) -> Sprint:
    sprint = _get_sprint_or_404(session, sprint_id, reader_id)
    try:
        start_sprint(sprint)
    except SprintValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.add(sprint)
    session.commit()
    session.refresh(sprint)
    return sprint


@router.patch("/{sprint_id}/complete")
def complete(
    sprint_id: int,
    reader_id: str,
    completion: SprintCompletion,
    session: Session = Depends(get_session),
) -> FeedbackResult:
    """Records a sprint's outcome and updates the reader's profile.

    The whole read-modify-write of the profile runs under the reader's lock.

    Args:
        sprint_id (int): The sprint.
        reader_id (str): Owner of the sprint.
        completion (SprintCompletion): Reported time, pages, quality and focus.
        session (Session): The database session.

    Returns:
        FeedbackResult: Outcome, metrics, profile changes and feedback.

    Raises:
        HTTPException: 404 for an unknown sprint, 400 if already completed.
    """
    with reader_locks.hold(reader_id):
        sprint = _get_sprint_or_404(session, sprint_id, reader_id)
        profile = get_reader_profile(session, reader_id)
        session.refresh(profile)

        try:
            result = complete_sprint(sprint, profile, completion)
        except SprintValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        mark_sprint_pages_completed(
            session,
            sprint,
            result.performance.pages_completed,
            result.performance.average_time_per_page_seconds,
        )
        session.add(sprint)
        session.add(profile)
        session.commit()

    return result
