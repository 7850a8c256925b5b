import uuid

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from app.db.session import Base, utcnow


class Teacher(Base):
    """Teacher profile. user_id links to the identity issued by the auth provider."""

    __tablename__ = "teachers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=True, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    # Denormalised list of subject ids (str) taught anywhere. Written only by reconciliation; never authoritative.
    subject_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
