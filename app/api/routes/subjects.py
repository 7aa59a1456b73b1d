# app/api/routes/subjects.py
from datetime import date as date_type
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.class_session import ClassSession
from app.models.subject import Subject
from app.schemas.class_session import ClassSessionRead
from app.schemas.subject import SubjectCreate, SubjectRead, SubjectSchedule, SubjectUpdate
from app.services.meeting_link import resolve_meet_code

router = APIRouter(prefix="/subjects", tags=["Subjects"])


def _apply_schedule(subject: Subject, schedule: SubjectSchedule | None) -> None:
    if schedule is None:
        subject.schedule_weekdays = []
        subject.schedule_start_time = None
        subject.schedule_end_time = None
        subject.schedule_start_date = None
        subject.schedule_end_date = None
        return
    subject.schedule_weekdays = list(schedule.weekdays)
    subject.schedule_start_time = schedule.start_time
    subject.schedule_end_time = schedule.end_time
    subject.schedule_start_date = schedule.start_date
    subject.schedule_end_date = schedule.end_date


async def _ensure_meet_code_available(
    db: AsyncSession,
    meeting_link: str | None,
    exclude_subject_id: int | None = None,
) -> None:
    """
    Sessions are keyed by (meet code, day), so two active subjects must never
    resolve to the same meet code.
    """
    meet_code = resolve_meet_code(meeting_link)
    if meet_code is None:
        return

    result = await db.execute(select(Subject).where(Subject.is_active.is_(True)))
    for other in result.scalars():
        if other.id == exclude_subject_id:
            continue
        if resolve_meet_code(other.meeting_link) == meet_code:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail=(
                    f"Meet code '{meet_code}' is already used by subject "
                    f"'{other.subject_code}'."
                ),
            )


async def _get_subject_or_404(db: AsyncSession, subject_id: int) -> Subject:
    result = await db.execute(select(Subject).where(Subject.id == subject_id))
    subject = result.scalar_one_or_none()
    if subject is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Subject with id {subject_id} not found.",
        )
    return subject


@router.post(
    "",
    response_model=SubjectRead,
    status_code=HTTPStatus.CREATED,
    summary="Create a new subject",
    description=(
        "Register a subject together with its weekly schedule and meeting link.\n\n"
        "Active subjects with a schedule and a resolvable meeting link are "
        "materialized into class sessions by the schedule engine."
    ),
    responses={
        400: {
            "description": "Duplicate subject_code or meet code already used by another subject.",
        },
    },
)
async def create_subject(
    payload: SubjectCreate,
    db: AsyncSession = Depends(get_db),
) -> SubjectRead:
    existing_result = await db.execute(
        select(Subject).where(Subject.subject_code == payload.subject_code)
    )
    if existing_result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Subject with code '{payload.subject_code}' already exists.",
        )

    if payload.is_active:
        await _ensure_meet_code_available(db, payload.meeting_link)

    subject = Subject(
        name=payload.name,
        subject_code=payload.subject_code,
        meeting_link=payload.meeting_link,
        sections=list(payload.sections),
        is_active=payload.is_active,
    )
    _apply_schedule(subject, payload.schedule)
    db.add(subject)
    await db.commit()
    await db.refresh(subject)

    return SubjectRead.model_validate(subject)


@router.get(
    "",
    response_model=list[SubjectRead],
    summary="List subjects",
    description="Return all subjects, optionally filtered by active/inactive status.",
)
async def list_subjects(
    only_active: bool | None = Query(
        default=None,
        description=(
            "If true, returns only active subjects. If false, returns only "
            "inactive subjects. If omitted, returns all."
        ),
    ),
    db: AsyncSession = Depends(get_db),
) -> list[SubjectRead]:
    stmt = select(Subject)
    if only_active is True:
        stmt = stmt.where(Subject.is_active.is_(True))
    elif only_active is False:
        stmt = stmt.where(Subject.is_active.is_(False))

    result = await db.execute(stmt.order_by(Subject.id.asc()))
    return [SubjectRead.model_validate(s) for s in result.scalars().all()]


@router.get(
    "/{subject_id}",
    response_model=SubjectRead,
    summary="Get subject details by ID",
    responses={404: {"description": "No subject exists with the given ID."}},
)
async def get_subject(
    subject_id: int = Path(..., description="Numeric ID of the subject.", ge=1),
    db: AsyncSession = Depends(get_db),
) -> SubjectRead:
    subject = await _get_subject_or_404(db, subject_id)
    return SubjectRead.model_validate(subject)


@router.patch(
    "/{subject_id}",
    response_model=SubjectRead,
    summary="Partially update a subject",
    description=(
        "Update the schedule, meeting link, sections or active flag of a subject.\n\n"
        "Already materialized sessions are never rewritten; changes apply to "
        "occurrences materialized afterwards."
    ),
    responses={
        400: {"description": "Duplicate subject_code or meet code."},
        404: {"description": "No subject exists with the given ID."},
    },
)
async def update_subject(
    subject_id: int = Path(..., description="Numeric ID of the subject.", ge=1),
    payload: SubjectUpdate | None = None,
    db: AsyncSession = Depends(get_db),
) -> SubjectRead:
    subject = await _get_subject_or_404(db, subject_id)

    if payload is None:
        return SubjectRead.model_validate(subject)

    update_data = payload.model_dump(exclude_unset=True)

    new_code = update_data.get("subject_code")
    if new_code and new_code != subject.subject_code:
        existing_result = await db.execute(
            select(Subject).where(Subject.subject_code == new_code)
        )
        if existing_result.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail=f"Subject with code '{new_code}' already exists.",
            )

    will_be_active = update_data.get("is_active", subject.is_active)
    if will_be_active and ("meeting_link" in update_data or "is_active" in update_data):
        await _ensure_meet_code_available(
            db,
            update_data.get("meeting_link", subject.meeting_link),
            exclude_subject_id=subject.id,
        )

    if "schedule" in update_data:
        _apply_schedule(subject, payload.schedule)
        update_data.pop("schedule")

    for field, value in update_data.items():
        setattr(subject, field, value)

    await db.commit()
    await db.refresh(subject)

    return SubjectRead.model_validate(subject)


@router.get(
    "/{subject_id}/sessions",
    response_model=list[ClassSessionRead],
    summary="List materialized sessions of a subject",
    description=(
        "Return the class sessions materialized for a subject, optionally "
        "filtered by an inclusive date range."
    ),
)
async def list_subject_sessions(
    subject_id: int = Path(..., description="Numeric ID of the subject.", ge=1),
    from_date: date_type | None = Query(
        default=None, description="Start date (inclusive) in ISO format (YYYY-MM-DD)."
    ),
    to_date: date_type | None = Query(
        default=None, description="End date (inclusive) in ISO format (YYYY-MM-DD)."
    ),
    db: AsyncSession = Depends(get_db),
) -> list[ClassSessionRead]:
    await _get_subject_or_404(db, subject_id)

    stmt = select(ClassSession).where(ClassSession.subject_id == subject_id)
    if from_date is not None:
        stmt = stmt.where(ClassSession.session_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(ClassSession.session_date <= to_date)

    result = await db.execute(stmt.order_by(ClassSession.start_time.asc()))
    return [ClassSessionRead.model_validate(s) for s in result.scalars().all()]
