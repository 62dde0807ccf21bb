from datetime import date, datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from app.core.concurrency import reader_locks
from app.core.database import get_session
from app.core.exceptions import SprintValidationError
from app.crud.crud import (
    count_pages,
    get_reader_profile,
    get_schedule_pages,
    load_sprint_documents,
    save_reader_profile,
)
from app.models.models import ExamGoal, ReaderProfile
from app.schemas.goals import GoalCreate, GoalStatus, ScheduleRequest, StudySchedule
from app.schemas.reader import ProfileSettings
from app.services.goal_service import calculate_goal_progress, generate_study_schedule

router = APIRouter(prefix="/readers", tags=["Readers"])


def _today() -> date:
    return datetime.now(timezone.utc).date()


@router.get("/{reader_id}/profile")
def get_profile(reader_id: str, session: Session = Depends(get_session)) -> ReaderProfile:
    return get_reader_profile(session, reader_id)


@router.patch("/{reader_id}/profile")
def update_profile(
    reader_id: str,
    settings: ProfileSettings,
    session: Session = Depends(get_session),
) -> ReaderProfile:
    """Updates reader-editable preferences; unset fields are left as they are."""
    with reader_locks.hold(reader_id):
        profile = get_reader_profile(session, reader_id)
        for field, value in settings.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        profile.updated_at = datetime.now(timezone.utc)
        return save_reader_profile(session, profile)


@router.post("/{reader_id}/goals", status_code=201)
def create_goal(
    reader_id: str, request: GoalCreate, session: Session = Depends(get_session)
) -> ExamGoal:
    """Creates an exam goal over some of the reader's documents.

    A goal without documents covers all of the reader's documents.

    Raises:
        HTTPException: If any of the documents does not belong to the reader.
    """
    documents = load_sprint_documents(session, reader_id, request.document_ids)
    known = {d.document_id for d in documents}
    missing = set(request.document_ids) - known
    if missing:
        raise HTTPException(
            status_code=404, detail=f"Documents not found: {sorted(missing)}"
        )

    goal = ExamGoal(
        reader_id=reader_id,
        title=request.title,
        exam_date=request.exam_date,
        study_hours_per_day=request.study_hours_per_day,
        document_ids=list(request.document_ids),
        created_at=_today(),
    )
    session.add(goal)
    session.commit()
    session.refresh(goal)
    return goal


@router.get("/{reader_id}/goals")
def list_goals(reader_id: str, session: Session = Depends(get_session)) -> List[GoalStatus]:
    """Lists the reader's open goals with their progress, soonest exam first."""
    profile = get_reader_profile(session, reader_id)
    goals = session.exec(
        select(ExamGoal)
        .where(ExamGoal.reader_id == reader_id)
        .where(ExamGoal.is_completed == False)  # noqa: E712
        .order_by(ExamGoal.exam_date)
    ).all()

    today = _today()
    statuses = []
    for goal in goals:
        pages = count_pages(session, reader_id, goal.document_ids)
        statuses.append(
            GoalStatus(
                goal_id=goal.id,
                title=goal.title,
                exam_date=goal.exam_date,
                document_ids=goal.document_ids,
                progress=calculate_goal_progress(
                    goal,
                    total_pages=pages["total"],
                    completed_pages=pages["completed"],
                    seconds_per_page=profile.average_reading_speed_seconds,
                    today=today,
                ),
            )
        )
    return statuses


@router.post("/{reader_id}/goals/{goal_id}/schedule")
def create_schedule(
    reader_id: str,
    goal_id: int,
    request: ScheduleRequest,
    session: Session = Depends(get_session),
) -> StudySchedule:
    """Spreads the goal's unread pages over the sessions left before the exam.

    Raises:
        HTTPException: 404 for an unknown goal, 400 if the exam date has passed.
    """
    goal = session.get(ExamGoal, goal_id)
    if not goal or goal.reader_id != reader_id:
        raise HTTPException(status_code=404, detail="Goal not found")

    pages = get_schedule_pages(session, reader_id, goal.document_ids)
    try:
        return generate_study_schedule(
            pages,
            exam_date=goal.exam_date,
            today=_today(),
            sessions_per_day=request.sessions_per_day,
            session_minutes=request.session_minutes,
        )
    except SprintValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
