import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, String, Uuid

from app.db.session import Base, utcnow


class AcademicYear(Base):
    """
    Dated validity window for assignments and subject selections.
    At most one row is_active = true; new dated assignments are anchored to it.
    """

    __tablename__ = "academic_years"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)  # e.g. "2025-2026"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
