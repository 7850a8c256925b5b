"""Teacher assignment writes: assign, assign-all, unassign, diagnose-and-fix.

Every store write is find-or-create / update-only-if-different, so replaying the same
intent is a no-op. Stores are written one after another inside the caller's session and
committed once; a crash in between leaves a partial state that the next diagnose_and_fix
heals. The resolution cache is invalidated for every affected teacher before returning.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_active_academic_year
from app.core.config import settings
from app.core.enums import AssignmentStatus
from app.core.exceptions import EmptyClassError, NotFoundError, ServiceError
from app.core.models import (
    AcademicYear,
    ClassSubjectEntry,
    Subject,
    Teacher,
    TeacherAssignment,
    TeacherSubjectLink,
)
from app.db.session import utcnow

from .auditor import audit_assignments, get_class_or_404, get_teacher_or_404, load_class_entries
from .cache import ResolutionCache
from .resolver import teacher_subject_ids_anywhere
from .schemas import AssignAllResult, DiagnoseResult, StoreMutationCounts, SubjectMutation

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "A concurrent assignment wrote the same record; retry the request"


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return moment.replace(year=moment.year + years, day=28)


def _add_teacher_subjects(teacher: Teacher, subject_ids: Iterable[UUID]) -> int:
    current = [str(s) for s in (teacher.subject_ids or [])]
    added = []
    for subject_id in subject_ids:
        key = str(subject_id)
        if key not in current and key not in added:
            added.append(key)
    if added:
        # Reassign so the JSON column is flagged dirty
        teacher.subject_ids = current + added
    return len(added)


async def _ensure_class_entry(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
) -> Tuple[int, Optional[UUID]]:
    """Returns (rows written, teacher displaced from the entry)."""
    result = await db.execute(
        select(ClassSubjectEntry).where(
            ClassSubjectEntry.class_id == class_id,
            ClassSubjectEntry.subject_id == subject_id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        max_position = await db.execute(
            select(func.max(ClassSubjectEntry.position)).where(ClassSubjectEntry.class_id == class_id)
        )
        last = max_position.scalar_one_or_none()
        db.add(
            ClassSubjectEntry(
                class_id=class_id,
                subject_id=subject_id,
                teacher_id=teacher_id,
                position=0 if last is None else last + 1,
            )
        )
        return 1, None
    if entry.teacher_id == teacher_id:
        return 0, None
    displaced = entry.teacher_id
    entry.teacher_id = teacher_id
    return 1, displaced


async def _ensure_active_link(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    ay: AcademicYear,
) -> int:
    """Leave exactly one active link for (teacher, subject, class), preferring the active year's newest."""
    base = (
        TeacherSubjectLink.teacher_id == teacher_id,
        TeacherSubjectLink.class_id == class_id,
        TeacherSubjectLink.subject_id == subject_id,
    )
    active_rows = await db.execute(
        select(TeacherSubjectLink)
        .where(*base, TeacherSubjectLink.status == AssignmentStatus.active.value)
        .order_by(TeacherSubjectLink.created_at.desc(), TeacherSubjectLink.id)
    )
    active = list(active_rows.scalars().all())
    if active:
        current_year = [link for link in active if link.academic_year_id == ay.id]
        keep = current_year[0] if current_year else active[0]
        duplicates = [link for link in active if link is not keep]
        for link in duplicates:
            link.status = AssignmentStatus.inactive.value
        if duplicates:
            logger.info(
                "Deactivated %d duplicate links for teacher %s, subject %s in class %s",
                len(duplicates), teacher_id, subject_id, class_id,
            )
            return 1
        return 0
    inactive = await db.execute(
        select(TeacherSubjectLink)
        .where(
            *base,
            TeacherSubjectLink.academic_year_id == ay.id,
            TeacherSubjectLink.status == AssignmentStatus.inactive.value,
        )
        .order_by(TeacherSubjectLink.created_at.desc())
        .limit(1)
    )
    link = inactive.scalar_one_or_none()
    if link is not None:
        link.status = AssignmentStatus.active.value
        return 1
    db.add(
        TeacherSubjectLink(
            teacher_id=teacher_id,
            subject_id=subject_id,
            class_id=class_id,
            academic_year_id=ay.id,
            status=AssignmentStatus.active.value,
        )
    )
    return 1


async def _ensure_valid_dated_assignment(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    ay: AcademicYear,
    now: datetime,
) -> int:
    result = await db.execute(
        select(TeacherAssignment).where(
            TeacherAssignment.teacher_id == teacher_id,
            TeacherAssignment.class_id == class_id,
            TeacherAssignment.subject_id == subject_id,
            TeacherAssignment.academic_year_id == ay.id,
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        db.add(
            TeacherAssignment(
                teacher_id=teacher_id,
                subject_id=subject_id,
                class_id=class_id,
                academic_year_id=ay.id,
                start_date=now,
                end_date=add_years(now, settings.dated_assignment_term_years),
                status=AssignmentStatus.active.value,
            )
        )
        return 1
    in_window = assignment.start_date <= now <= assignment.end_date
    if assignment.status == AssignmentStatus.active.value and in_window:
        return 0
    # One row per (teacher, subject, class, year): re-activate it instead of adding another
    assignment.status = AssignmentStatus.active.value
    if not in_window:
        assignment.start_date = now
        assignment.end_date = add_years(now, settings.dated_assignment_term_years)
    return 1


async def _reconcile_subject(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    ay: AcademicYear,
    now: datetime,
) -> Tuple[StoreMutationCounts, Optional[UUID]]:
    class_model, displaced = await _ensure_class_entry(db, teacher_id, class_id, subject_id)
    await db.flush()
    link = await _ensure_active_link(db, teacher_id, class_id, subject_id, ay)
    await db.flush()
    dated = await _ensure_valid_dated_assignment(db, teacher_id, class_id, subject_id, ay, now)
    await db.flush()
    return StoreMutationCounts(class_model=class_model, link=link, dated=dated), displaced


def _invalidate(cache: ResolutionCache, teacher_ids: Iterable[Optional[UUID]]) -> None:
    for teacher_id in {t for t in teacher_ids if t is not None}:
        cache.invalidate(teacher_id)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(CONFLICT_MESSAGE, status.HTTP_409_CONFLICT)


async def assign_subject(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    now: Optional[datetime] = None,
) -> StoreMutationCounts:
    now = now or utcnow()
    teacher = await get_teacher_or_404(db, teacher_id)
    await get_class_or_404(db, class_id)
    subject = await db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError(f"Subject with ID {subject_id} not found")
    ay = await require_active_academic_year(db)

    try:
        counts, displaced = await _reconcile_subject(db, teacher_id, class_id, subject_id, ay, now)
        _add_teacher_subjects(teacher, [subject_id])
    except IntegrityError:
        await db.rollback()
        raise ServiceError(CONFLICT_MESSAGE, status.HTTP_409_CONFLICT)
    await _commit(db)
    _invalidate(cache, [teacher_id, displaced])

    if counts.total:
        logger.info(
            "Assigned teacher %s to subject %s in class %s (%s)",
            teacher_id, subject_id, class_id, counts.model_dump(),
        )
    else:
        logger.debug("Teacher %s already consistent for subject %s in class %s", teacher_id, subject_id, class_id)
    return counts


async def assign_all_subjects_in_class(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    now: Optional[datetime] = None,
) -> AssignAllResult:
    """Assign the teacher to every subject in the class. All-or-nothing within the session."""
    now = now or utcnow()
    teacher = await get_teacher_or_404(db, teacher_id)
    await get_class_or_404(db, class_id)
    entries = await load_class_entries(db, class_id)
    if not entries:
        raise EmptyClassError()
    ay = await require_active_academic_year(db)

    subject_rows = await db.execute(
        select(Subject.id).where(Subject.id.in_([e.subject_id for e in entries]))
    )
    existing_subjects: Set[UUID] = set(subject_rows.scalars().all())
    subject_ids = [e.subject_id for e in entries if e.subject_id in existing_subjects]
    for entry in entries:
        if entry.subject_id not in existing_subjects:
            logger.warning("Class %s lists missing subject %s; not assigned", class_id, entry.subject_id)

    per_subject: List[SubjectMutation] = []
    displaced: List[Optional[UUID]] = []
    totals = StoreMutationCounts()
    try:
        for subject_id in subject_ids:
            counts, previous = await _reconcile_subject(db, teacher_id, class_id, subject_id, ay, now)
            per_subject.append(SubjectMutation(subject_id=subject_id, counts=counts))
            displaced.append(previous)
            totals = totals + counts
        _add_teacher_subjects(teacher, subject_ids)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(CONFLICT_MESSAGE, status.HTTP_409_CONFLICT)
    await _commit(db)
    _invalidate(cache, [teacher_id, *displaced])

    logger.info(
        "Assigned teacher %s to %d subjects in class %s (%s)",
        teacher_id, len(subject_ids), class_id, totals.model_dump(),
    )
    return AssignAllResult(teacher_id=teacher_id, class_id=class_id, per_subject=per_subject, totals=totals)


async def unassign_subject(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    now: Optional[datetime] = None,
) -> StoreMutationCounts:
    """Withdraw the teacher from a subject in a class. Rows are flipped to inactive, never deleted."""
    now = now or utcnow()
    teacher = await get_teacher_or_404(db, teacher_id)
    await get_class_or_404(db, class_id)

    counts = StoreMutationCounts()
    entry_result = await db.execute(
        select(ClassSubjectEntry).where(
            ClassSubjectEntry.class_id == class_id,
            ClassSubjectEntry.subject_id == subject_id,
            ClassSubjectEntry.teacher_id == teacher_id,
        )
    )
    entry = entry_result.scalar_one_or_none()
    if entry is not None:
        entry.teacher_id = None
        counts.class_model = 1

    links = await db.execute(
        select(TeacherSubjectLink).where(
            TeacherSubjectLink.teacher_id == teacher_id,
            TeacherSubjectLink.class_id == class_id,
            TeacherSubjectLink.subject_id == subject_id,
            TeacherSubjectLink.status == AssignmentStatus.active.value,
        )
    )
    for link in links.scalars().all():
        link.status = AssignmentStatus.inactive.value
        counts.link = 1

    dated = await db.execute(
        select(TeacherAssignment).where(
            TeacherAssignment.teacher_id == teacher_id,
            TeacherAssignment.class_id == class_id,
            TeacherAssignment.subject_id == subject_id,
            TeacherAssignment.status == AssignmentStatus.active.value,
        )
    )
    for assignment in dated.scalars().all():
        assignment.status = AssignmentStatus.inactive.value
        counts.dated = 1

    await db.flush()
    still_taught = await teacher_subject_ids_anywhere(db, teacher_id, now)
    if subject_id not in still_taught and str(subject_id) in [str(s) for s in (teacher.subject_ids or [])]:
        teacher.subject_ids = [s for s in teacher.subject_ids if str(s) != str(subject_id)]

    await _commit(db)
    cache.invalidate(teacher_id)
    logger.info(
        "Unassigned teacher %s from subject %s in class %s (%s)",
        teacher_id, subject_id, class_id, counts.model_dump(),
    )
    return counts


async def diagnose_and_fix(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    now: Optional[datetime] = None,
) -> DiagnoseResult:
    """Audit the pair; only when issues exist, reconcile every subject in the class."""
    now = now or utcnow()
    audit = await audit_assignments(db, teacher_id, class_id, now=now)
    if not audit.issues:
        return DiagnoseResult(audit=audit, issues=[], fixed=False)

    logger.info(
        "Fixing %d assignment issues for teacher %s in class %s", len(audit.issues), teacher_id, class_id
    )
    fix_result = await assign_all_subjects_in_class(db, cache, teacher_id, class_id, now=now)
    return DiagnoseResult(audit=audit, issues=audit.issues, fixed=True, fix_result=fix_result)
