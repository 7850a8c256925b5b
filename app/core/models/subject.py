"""Subject master. Metadata is always read from here, never copied into assignment rows."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid

from app.core.enums import EducationLevel
from app.db.session import Base, utcnow


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    type = Column(String(20), nullable=False)  # CORE | OPTIONAL
    education_level = Column(String(20), nullable=False, default=EducationLevel.O_LEVEL.value)
    # A-Level only: counts toward best-three-points
    is_principal = Column(Boolean, nullable=False, default=False)
    is_compulsory = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
