import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from app.core.enums import SelectionStatus
from app.db.session import Base, utcnow


class StudentSubjectSelection(Base):
    """
    A student's subject choice for one academic year. One record per (student, academic_year).
    PENDING -> APPROVED | REJECTED; never re-created. Only APPROVED selections grant eligibility.
    """

    __tablename__ = "student_subject_selections"
    __table_args__ = (
        UniqueConstraint("student_id", "academic_year_id", name="uq_student_selection_year"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id"), nullable=False)
    core_subject_ids = Column(JSON, nullable=False, default=list)
    optional_subject_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=SelectionStatus.PENDING.value)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
