"""Read the three assignment stores and resolve a teacher's subjects in a class."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import AssignmentStatus, SourceKind
from app.core.models import (
    ClassSubjectEntry,
    SchoolClass,
    Subject,
    Teacher,
    TeacherAssignment,
    TeacherSubjectLink,
)
from app.db.session import utcnow

from .cache import ResolutionCache
from .eligibility import load_approved_selections, load_class_roster, subjects_taken_by
from .merger import AssignmentSources, merge_assignment_sources, to_resolved_subject
from .schemas import ResolvedSubject

logger = logging.getLogger(__name__)


def valid_dated_assignment_clauses(now: datetime):
    """WHERE clauses for a dated assignment that is in force at `now`."""
    return (
        TeacherAssignment.status == AssignmentStatus.active.value,
        TeacherAssignment.start_date <= now,
        TeacherAssignment.end_date >= now,
    )


async def _load_subjects(db: AsyncSession, subject_ids) -> Dict[UUID, Subject]:
    ids = list(set(subject_ids))
    if not ids:
        return {}
    result = await db.execute(select(Subject).where(Subject.id.in_(ids)))
    return {s.id: s for s in result.scalars().all()}


async def load_assignment_sources(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    now: Optional[datetime] = None,
) -> AssignmentSources:
    now = now or utcnow()
    embedded = await db.execute(
        select(ClassSubjectEntry.subject_id)
        .where(
            ClassSubjectEntry.class_id == class_id,
            ClassSubjectEntry.teacher_id == teacher_id,
        )
        .order_by(ClassSubjectEntry.position, ClassSubjectEntry.created_at, ClassSubjectEntry.id)
    )
    links = await db.execute(
        select(TeacherSubjectLink.subject_id)
        .where(
            TeacherSubjectLink.teacher_id == teacher_id,
            TeacherSubjectLink.class_id == class_id,
            TeacherSubjectLink.status == AssignmentStatus.active.value,
        )
        .order_by(TeacherSubjectLink.created_at, TeacherSubjectLink.id)
    )
    dated = await db.execute(
        select(TeacherAssignment.subject_id)
        .where(
            TeacherAssignment.teacher_id == teacher_id,
            TeacherAssignment.class_id == class_id,
            *valid_dated_assignment_clauses(now),
        )
        .order_by(TeacherAssignment.created_at, TeacherAssignment.id)
    )
    sources = AssignmentSources(
        embedded=tuple(embedded.scalars().all()),
        links=tuple(links.scalars().all()),
        dated=tuple(dated.scalars().all()),
    )
    subjects = await _load_subjects(db, sources.referenced_subject_ids())
    return AssignmentSources(
        embedded=sources.embedded,
        links=sources.links,
        dated=sources.dated,
        subjects=subjects,
    )


async def teacher_subject_ids_anywhere(
    db: AsyncSession,
    teacher_id: UUID,
    now: Optional[datetime] = None,
) -> Set[UUID]:
    """Subjects the teacher is assigned to in any class, by any store."""
    now = now or utcnow()
    embedded = await db.execute(
        select(ClassSubjectEntry.subject_id).where(ClassSubjectEntry.teacher_id == teacher_id)
    )
    links = await db.execute(
        select(TeacherSubjectLink.subject_id).where(
            TeacherSubjectLink.teacher_id == teacher_id,
            TeacherSubjectLink.status == AssignmentStatus.active.value,
        )
    )
    dated = await db.execute(
        select(TeacherAssignment.subject_id).where(
            TeacherAssignment.teacher_id == teacher_id,
            *valid_dated_assignment_clauses(now),
        )
    )
    return set(embedded.scalars().all()) | set(links.scalars().all()) | set(dated.scalars().all())


async def _derived_subjects(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    exclude: Set[UUID],
    now: datetime,
) -> List[ResolvedSubject]:
    taught = await teacher_subject_ids_anywhere(db, teacher_id, now)
    if not taught:
        return []
    roster = await load_class_roster(db, class_id)
    selections = await load_approved_selections(db, [s.id for s in roster])
    taken = subjects_taken_by(roster, selections)
    candidates = [sid for sid in taught if str(sid) in taken and sid not in exclude]
    subjects = await _load_subjects(db, candidates)
    ordered = sorted(subjects.values(), key=lambda s: (s.name, str(s.id)))
    return [to_resolved_subject(s, SourceKind.derived) for s in ordered]


async def resolve_fresh(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    include_derived: bool = False,
    now: Optional[datetime] = None,
) -> List[ResolvedSubject]:
    """Merge the stores without touching the cache."""
    now = now or utcnow()
    cl = await db.get(SchoolClass, class_id)
    if cl is None:
        logger.info("Class %s not found; teacher %s resolves to no subjects", class_id, teacher_id)
        return []
    sources = await load_assignment_sources(db, teacher_id, class_id, now)
    subjects = merge_assignment_sources(sources)
    if include_derived:
        subjects.extend(
            await _derived_subjects(db, teacher_id, class_id, {s.subject_id for s in subjects}, now)
        )
    logger.debug("Resolved %d subjects for teacher %s in class %s", len(subjects), teacher_id, class_id)
    return subjects


async def resolve(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    include_derived: bool = False,
    use_cache: bool = True,
    now: Optional[datetime] = None,
) -> List[ResolvedSubject]:
    if use_cache:
        cached = cache.get(teacher_id, class_id, include_derived)
        if cached is not None:
            logger.debug("Cache hit for teacher %s in class %s", teacher_id, class_id)
            return list(cached)
    subjects = await resolve_fresh(db, teacher_id, class_id, include_derived=include_derived, now=now)
    return list(cache.store(teacher_id, class_id, subjects, include_derived))


async def get_teacher_classes(
    db: AsyncSession,
    teacher_id: UUID,
    now: Optional[datetime] = None,
) -> List[SchoolClass]:
    """Classes where the teacher appears in any store."""
    now = now or utcnow()
    embedded = select(ClassSubjectEntry.class_id).where(ClassSubjectEntry.teacher_id == teacher_id)
    links = select(TeacherSubjectLink.class_id).where(
        TeacherSubjectLink.teacher_id == teacher_id,
        TeacherSubjectLink.status == AssignmentStatus.active.value,
    )
    dated = select(TeacherAssignment.class_id).where(
        TeacherAssignment.teacher_id == teacher_id,
        *valid_dated_assignment_clauses(now),
    )
    result = await db.execute(
        select(SchoolClass)
        .where(
            or_(
                SchoolClass.id.in_(embedded),
                SchoolClass.id.in_(links),
                SchoolClass.id.in_(dated),
            )
        )
        .order_by(SchoolClass.name)
    )
    return list(result.scalars().all())


async def get_class_teachers(db: AsyncSession, class_id: UUID) -> List[Teacher]:
    """Distinct teachers named in the class subject list."""
    result = await db.execute(
        select(Teacher)
        .where(
            Teacher.id.in_(
                select(ClassSubjectEntry.teacher_id).where(
                    ClassSubjectEntry.class_id == class_id,
                    ClassSubjectEntry.teacher_id.is_not(None),
                )
            )
        )
        .order_by(Teacher.last_name, Teacher.first_name)
    )
    return list(result.scalars().all())


async def get_all_teacher_subjects(db: AsyncSession, teacher_id: UUID) -> List[Subject]:
    """Every subject the teacher teaches in any class, ordered by name."""
    subject_ids = await teacher_subject_ids_anywhere(db, teacher_id)
    subjects = await _load_subjects(db, subject_ids)
    return sorted(subjects.values(), key=lambda s: (s.name, str(s.id)))
