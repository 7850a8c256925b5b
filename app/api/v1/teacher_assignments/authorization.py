"""
Authorization checks built on resolved assignments.

Boolean checks never raise. The require_/authorize_ helpers raise UnauthorizedError, which
routers turn into 403 responses. Derived subjects are never consulted here.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnauthorizedError
from app.core.models import Student, Subject

from .cache import ResolutionCache
from .eligibility import (
    get_students_for_subject,
    load_approved_selections,
    load_class_roster,
    student_takes_subject,
)
from .resolver import resolve
from .schemas import ResolvedSubject

logger = logging.getLogger(__name__)


async def is_assigned_to_class(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
) -> bool:
    subjects = await resolve(db, cache, teacher_id, class_id)
    return len(subjects) > 0


async def is_assigned_to_subject(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
) -> bool:
    subjects = await resolve(db, cache, teacher_id, class_id)
    return any(s.subject_id == subject_id for s in subjects)


async def require_subject_assignment(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
) -> None:
    if not await is_assigned_to_subject(db, cache, teacher_id, class_id, subject_id):
        logger.warning("Teacher %s is NOT assigned to subject %s in class %s", teacher_id, subject_id, class_id)
        raise UnauthorizedError("You are not assigned to teach this subject. Please contact an administrator.")


async def eligible_students_for(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
) -> List[Student]:
    """Students the teacher may grade for this subject; empty unless the teacher is assigned."""
    if not await is_assigned_to_subject(db, cache, teacher_id, class_id, subject_id):
        logger.info("Teacher %s is not assigned to subject %s in class %s", teacher_id, subject_id, class_id)
        return []
    return await get_students_for_subject(db, class_id, subject_id)


async def authorize_mark_entry(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    student_id: UUID,
) -> None:
    """Grade-entry gate: teacher assigned to the subject and the student actually takes it."""
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student with ID {student_id} not found")
    await require_subject_assignment(db, cache, teacher_id, class_id, subject_id)
    if student.class_id != class_id:
        raise UnauthorizedError("Student is not enrolled in this class")
    subject = await db.get(Subject, subject_id)
    selections = await load_approved_selections(db, [student.id])
    if not student_takes_subject(subject, student, selections.get(student.id)):
        logger.warning(
            "Rejected marks for student %s: not taking subject %s in class %s", student_id, subject_id, class_id
        )
        raise UnauthorizedError("Student does not take this subject")


async def get_teacher_subjects_for_student(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
    student_id: UUID,
) -> List[ResolvedSubject]:
    """Subjects the teacher teaches in the class that this student takes."""
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student with ID {student_id} not found")
    if student.class_id != class_id:
        return []
    subjects = await resolve(db, cache, teacher_id, class_id)
    selections = await load_approved_selections(db, [student.id])
    selection = selections.get(student.id)
    taken = []
    for resolved in subjects:
        subject = await db.get(Subject, resolved.subject_id)
        if student_takes_subject(subject, student, selection):
            taken.append(resolved)
    return taken


async def get_teacher_students(
    db: AsyncSession,
    cache: ResolutionCache,
    teacher_id: UUID,
    class_id: UUID,
) -> List[Student]:
    """Students of the class taking at least one subject the teacher teaches there, in roster order."""
    resolved = await resolve(db, cache, teacher_id, class_id)
    if not resolved:
        logger.info("Teacher %s is not assigned to class %s", teacher_id, class_id)
        return []
    subject_rows = [await db.get(Subject, r.subject_id) for r in resolved]
    subjects = [s for s in subject_rows if s is not None]
    roster = await load_class_roster(db, class_id)
    selections = await load_approved_selections(db, [s.id for s in roster])
    return [
        student
        for student in roster
        if any(student_takes_subject(subject, student, selections.get(student.id)) for subject in subjects)
    ]
