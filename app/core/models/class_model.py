"""Classes (e.g. Form 1A, Form 5 PCM). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from app.core.enums import EducationLevel
from app.db.session import Base, utcnow


class SchoolClass(Base):
    """Class master. The ordered subject list lives in class_subject_entries."""

    __tablename__ = "classes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    education_level = Column(String(20), nullable=False, default=EducationLevel.O_LEVEL.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
