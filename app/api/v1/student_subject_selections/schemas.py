from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import SelectionStatus


class SelectionCreate(BaseModel):
    student_id: UUID
    academic_year_id: Optional[UUID] = Field(None, description="Defaults to the active academic year")
    core_subject_ids: List[UUID] = Field(default_factory=list)
    optional_subject_ids: List[UUID] = Field(default_factory=list)


class SelectionResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year_id: UUID
    core_subject_ids: List[UUID]
    optional_subject_ids: List[UUID]
    status: SelectionStatus
    reviewed_at: Optional[datetime] = None
    created_at: datetime
