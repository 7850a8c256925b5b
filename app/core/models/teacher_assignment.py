"""Dated teacher assignment (year-specific). Valid while status='active' and start_date <= now <= end_date."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from app.core.enums import AssignmentStatus
from app.db.session import Base, utcnow


class TeacherAssignment(Base):
    __tablename__ = "teacher_assignments"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id", "subject_id", "class_id", "academic_year_id",
            name="uq_teacher_assignment",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    academic_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=AssignmentStatus.active.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
