import logging
from typing import Iterable, List
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_active_academic_year
from app.api.v1.teacher_assignments.cache import ResolutionCache
from app.core.enums import SelectionStatus
from app.core.exceptions import NotFoundError, ServiceError
from app.core.models import AcademicYear, Student, StudentSubjectSelection
from app.db.session import utcnow

from .schemas import SelectionCreate, SelectionResponse

logger = logging.getLogger(__name__)


def _unique_ids(values: Iterable[UUID]) -> List[str]:
    out: List[str] = []
    for v in values:
        key = str(v)
        if key not in out:
            out.append(key)
    return out


def _to_response(s: StudentSubjectSelection) -> SelectionResponse:
    return SelectionResponse(
        id=s.id,
        student_id=s.student_id,
        academic_year_id=s.academic_year_id,
        core_subject_ids=[UUID(str(v)) for v in (s.core_subject_ids or [])],
        optional_subject_ids=[UUID(str(v)) for v in (s.optional_subject_ids or [])],
        status=SelectionStatus(s.status),
        reviewed_at=s.reviewed_at,
        created_at=s.created_at,
    )


async def _get_or_404(db: AsyncSession, selection_id: UUID) -> StudentSubjectSelection:
    selection = await db.get(StudentSubjectSelection, selection_id)
    if selection is None:
        raise NotFoundError(f"Subject selection with ID {selection_id} not found")
    return selection


async def create_selection(db: AsyncSession, payload: SelectionCreate) -> SelectionResponse:
    student = await db.get(Student, payload.student_id)
    if student is None:
        raise NotFoundError(f"Student with ID {payload.student_id} not found")
    if payload.academic_year_id is None:
        ay = await require_active_academic_year(db)
    else:
        ay = await db.get(AcademicYear, payload.academic_year_id)
        if ay is None:
            raise NotFoundError(f"Academic year with ID {payload.academic_year_id} not found")

    existing = await db.execute(
        select(StudentSubjectSelection.id).where(
            StudentSubjectSelection.student_id == student.id,
            StudentSubjectSelection.academic_year_id == ay.id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ServiceError(
            "A subject selection already exists for this student and academic year",
            status.HTTP_409_CONFLICT,
        )

    selection = StudentSubjectSelection(
        student_id=student.id,
        academic_year_id=ay.id,
        core_subject_ids=_unique_ids(payload.core_subject_ids),
        optional_subject_ids=_unique_ids(payload.optional_subject_ids),
        status=SelectionStatus.PENDING.value,
    )
    db.add(selection)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "A subject selection already exists for this student and academic year",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(selection)
    logger.info("Created subject selection %s for student %s", selection.id, student.id)
    return _to_response(selection)


async def get_selection(db: AsyncSession, selection_id: UUID) -> SelectionResponse:
    return _to_response(await _get_or_404(db, selection_id))


async def _review(db: AsyncSession, selection_id: UUID, target: SelectionStatus) -> SelectionResponse:
    selection = await _get_or_404(db, selection_id)
    if selection.status != SelectionStatus.PENDING.value:
        raise ServiceError(
            f"Only PENDING selections can be reviewed (current status: {selection.status})",
            status.HTTP_409_CONFLICT,
        )
    selection.status = target.value
    selection.reviewed_at = utcnow()
    await db.commit()
    await db.refresh(selection)
    logger.info("Subject selection %s %s", selection.id, target.value.lower())
    return _to_response(selection)


async def approve_selection(db: AsyncSession, cache: ResolutionCache, selection_id: UUID) -> SelectionResponse:
    """Approval changes which subjects the class takes, so every resolution is dropped."""
    result = await _review(db, selection_id, SelectionStatus.APPROVED)
    cache.invalidate_all()
    return result


async def reject_selection(db: AsyncSession, selection_id: UUID) -> SelectionResponse:
    return await _review(db, selection_id, SelectionStatus.REJECTED)
