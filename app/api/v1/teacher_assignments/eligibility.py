"""
Which students of a class take a subject.

CORE subjects are taken by the whole roster. OPTIONAL subjects are taken by a student when
either the legacy Student.selected_subject_ids contains the subject or the student's APPROVED
selection for the active academic year lists it (core or optional). The two representations
are OR'd. An unknown subject yields no students.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import get_active_academic_year
from app.core.enums import SelectionStatus, SubjectType
from app.core.models import Student, StudentSubjectSelection, Subject

logger = logging.getLogger(__name__)


def _id_set(values: Optional[Iterable]) -> Set[str]:
    return {str(v) for v in (values or [])}


def selection_subject_ids(selection: Optional[StudentSubjectSelection]) -> Set[str]:
    """core ∪ optional of an APPROVED selection; empty for anything else."""
    if selection is None or selection.status != SelectionStatus.APPROVED.value:
        return set()
    return _id_set(selection.core_subject_ids) | _id_set(selection.optional_subject_ids)


def student_takes_subject(
    subject: Optional[Subject],
    student: Student,
    selection: Optional[StudentSubjectSelection] = None,
) -> bool:
    if subject is None:
        return False
    if subject.type == SubjectType.CORE.value:
        return True
    subject_key = str(subject.id)
    return subject_key in _id_set(student.selected_subject_ids) or subject_key in selection_subject_ids(selection)


def filter_eligible_students(
    subject: Optional[Subject],
    roster: Sequence[Student],
    selections: Mapping[UUID, StudentSubjectSelection],
) -> List[Student]:
    if subject is None:
        return []
    if subject.type == SubjectType.CORE.value:
        return list(roster)
    eligible: List[Student] = []
    seen: Set[UUID] = set()
    for student in roster:
        if student.id in seen:
            continue
        if student_takes_subject(subject, student, selections.get(student.id)):
            seen.add(student.id)
            eligible.append(student)
    return eligible


def subjects_taken_by(
    roster: Sequence[Student],
    selections: Mapping[UUID, StudentSubjectSelection],
) -> Set[str]:
    """Every subject id (str) chosen by at least one student, via either representation."""
    taken: Set[str] = set()
    for student in roster:
        taken |= _id_set(student.selected_subject_ids)
        taken |= selection_subject_ids(selections.get(student.id))
    return taken


async def load_class_roster(db: AsyncSession, class_id: UUID) -> List[Student]:
    result = await db.execute(
        select(Student)
        .where(Student.class_id == class_id)
        .order_by(Student.first_name, Student.last_name, Student.id)
    )
    return list(result.scalars().all())


async def load_approved_selections(
    db: AsyncSession,
    student_ids: Sequence[UUID],
) -> Dict[UUID, StudentSubjectSelection]:
    """APPROVED selections for the active academic year, keyed by student id."""
    if not student_ids:
        return {}
    ay = await get_active_academic_year(db)
    if ay is None:
        return {}
    result = await db.execute(
        select(StudentSubjectSelection).where(
            StudentSubjectSelection.student_id.in_(list(student_ids)),
            StudentSubjectSelection.academic_year_id == ay.id,
            StudentSubjectSelection.status == SelectionStatus.APPROVED.value,
        )
    )
    return {s.student_id: s for s in result.scalars().all()}


async def get_students_for_subject(db: AsyncSession, class_id: UUID, subject_id: UUID) -> List[Student]:
    subject = await db.get(Subject, subject_id)
    if subject is None:
        logger.warning("Subject %s not found; no students are eligible", subject_id)
        return []
    roster = await load_class_roster(db, class_id)
    if subject.type == SubjectType.CORE.value:
        return roster
    selections = await load_approved_selections(db, [s.id for s in roster])
    students = filter_eligible_students(subject, roster, selections)
    logger.debug(
        "%d of %d students in class %s take optional subject %s",
        len(students), len(roster), class_id, subject_id,
    )
    return students
