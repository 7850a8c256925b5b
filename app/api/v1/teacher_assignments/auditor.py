"""Read-only comparison of the three assignment stores for a (teacher, class) pair.

The class subject list is the system of record for which subjects exist in a class. For
each of them the teacher is expected to be named in the class list, to have exactly one active link,
and to have a dated assignment in force for the active academic year. Divergence is
reported as data, never raised.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import get_active_academic_year
from app.core.enums import AssignmentStatus, ConsistencyState, IssueType
from app.core.exceptions import NotFoundError
from app.core.models import ClassSubjectEntry, SchoolClass, Subject, Teacher, TeacherAssignment, TeacherSubjectLink
from app.db.session import utcnow

from .resolver import valid_dated_assignment_clauses
from .schemas import AssignmentIssue, AuditReport, ClassSummary, StoreCounts, TeacherSummary

logger = logging.getLogger(__name__)

_ISSUE_MESSAGES = {
    IssueType.class_model: "Teacher not assigned in class subject list",
    IssueType.link: "Missing active teacher-subject link",
    IssueType.dated: "Missing dated assignment for the active academic year",
}


async def get_teacher_or_404(db: AsyncSession, teacher_id: UUID) -> Teacher:
    teacher = await db.get(Teacher, teacher_id)
    if teacher is None:
        raise NotFoundError(f"Teacher with ID {teacher_id} not found")
    return teacher


async def get_class_or_404(db: AsyncSession, class_id: UUID) -> SchoolClass:
    cl = await db.get(SchoolClass, class_id)
    if cl is None:
        raise NotFoundError(f"Class with ID {class_id} not found")
    return cl


async def load_class_entries(db: AsyncSession, class_id: UUID) -> List[ClassSubjectEntry]:
    result = await db.execute(
        select(ClassSubjectEntry)
        .where(ClassSubjectEntry.class_id == class_id)
        .order_by(ClassSubjectEntry.position, ClassSubjectEntry.created_at, ClassSubjectEntry.id)
    )
    return list(result.scalars().all())


async def audit_assignments(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    now: Optional[datetime] = None,
) -> AuditReport:
    now = now or utcnow()
    teacher = await get_teacher_or_404(db, teacher_id)
    cl = await get_class_or_404(db, class_id)
    entries = await load_class_entries(db, class_id)

    subjects: Dict[UUID, Subject] = {}
    if entries:
        subject_rows = await db.execute(
            select(Subject).where(Subject.id.in_([e.subject_id for e in entries]))
        )
        subjects = {s.id: s for s in subject_rows.scalars().all()}

    links = await db.execute(
        select(TeacherSubjectLink.subject_id).where(
            TeacherSubjectLink.teacher_id == teacher_id,
            TeacherSubjectLink.class_id == class_id,
            TeacherSubjectLink.status == AssignmentStatus.active.value,
        )
    )
    link_counts: Dict[UUID, int] = {}
    for subject_id in links.scalars().all():
        link_counts[subject_id] = link_counts.get(subject_id, 0) + 1

    dated: Set[UUID] = set()
    ay = await get_active_academic_year(db)
    if ay is not None:
        dated_rows = await db.execute(
            select(TeacherAssignment.subject_id).where(
                TeacherAssignment.teacher_id == teacher_id,
                TeacherAssignment.class_id == class_id,
                TeacherAssignment.academic_year_id == ay.id,
                *valid_dated_assignment_clauses(now),
            )
        )
        dated = set(dated_rows.scalars().all())

    counts = StoreCounts(
        class_model=sum(1 for e in entries if e.teacher_id == teacher_id),
        link=len(link_counts),
        dated=len(dated),
    )

    issues: List[AssignmentIssue] = []
    for entry in entries:
        subject = subjects.get(entry.subject_id)
        if subject is None:
            logger.warning("Class %s lists missing subject %s; skipped by audit", class_id, entry.subject_id)
            continue
        missing = []
        if entry.teacher_id != teacher_id:
            missing.append(IssueType.class_model)
        if entry.subject_id not in link_counts:
            missing.append(IssueType.link)
        if entry.subject_id not in dated:
            missing.append(IssueType.dated)
        for issue_type in missing:
            issues.append(
                AssignmentIssue(
                    type=issue_type,
                    subject_id=subject.id,
                    subject_name=subject.name,
                    message=_ISSUE_MESSAGES[issue_type],
                )
            )
        if link_counts.get(entry.subject_id, 0) > 1:
            issues.append(
                AssignmentIssue(
                    type=IssueType.link,
                    subject_id=subject.id,
                    subject_name=subject.name,
                    message=f"{link_counts[entry.subject_id]} active teacher-subject links, expected one",
                )
            )

    report = AuditReport(
        teacher=TeacherSummary(id=teacher.id, name=teacher.full_name),
        school_class=ClassSummary(
            id=cl.id,
            name=cl.name,
            education_level=cl.education_level,
            subject_count=len(entries),
        ),
        counts=counts,
        issues=issues,
        state=ConsistencyState.INCONSISTENT if issues else ConsistencyState.CONSISTENT,
    )
    if issues:
        logger.warning(
            "Found %d assignment issues for teacher %s in class %s", len(issues), teacher_id, class_id
        )
    return report
