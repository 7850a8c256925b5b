"""Teacher–subject–class link. Historical rows are kept; only status='active' counts."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from app.core.enums import AssignmentStatus
from app.db.session import Base, utcnow


class TeacherSubjectLink(Base):
    __tablename__ = "teacher_subject_links"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    academic_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id"), nullable=False)
    status = Column(String(20), nullable=False, default=AssignmentStatus.active.value)  # active | inactive
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
