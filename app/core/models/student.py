import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid

from app.db.session import Base, utcnow


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    roll_number = Column(String(50), nullable=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    # Legacy representation of chosen subjects (list of subject id strings)
    selected_subject_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
