"""Class subject list entry: which subjects a class has, in order, and who teaches each one."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid

from app.db.session import Base, utcnow


class ClassSubjectEntry(Base):
    __tablename__ = "class_subject_entries"
    __table_args__ = (
        UniqueConstraint("class_id", "subject_id", name="uq_class_subject_entry"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id"), nullable=False)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)  # NULL = unassigned
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
