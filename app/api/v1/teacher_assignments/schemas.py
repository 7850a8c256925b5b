from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import ConsistencyState, IssueType, SourceKind


class ResolvedSubject(BaseModel):
    """One subject a teacher may act on in a class, with the store that vouched for it."""

    subject_id: UUID
    name: str
    code: str
    type: str
    education_level: str
    is_principal: bool = False
    is_compulsory: bool = False
    source_kind: SourceKind

    class Config:
        frozen = True


class StoreMutationCounts(BaseModel):
    """Rows written per store by one reconciliation step (0 = already consistent)."""

    class_model: int = 0
    link: int = 0
    dated: int = 0

    @property
    def total(self) -> int:
        return self.class_model + self.link + self.dated

    def __add__(self, other: "StoreMutationCounts") -> "StoreMutationCounts":
        return StoreMutationCounts(
            class_model=self.class_model + other.class_model,
            link=self.link + other.link,
            dated=self.dated + other.dated,
        )


class SubjectMutation(BaseModel):
    subject_id: UUID
    counts: StoreMutationCounts


class AssignAllResult(BaseModel):
    teacher_id: UUID
    class_id: UUID
    per_subject: List[SubjectMutation]
    totals: StoreMutationCounts


class TeacherSummary(BaseModel):
    id: UUID
    name: str


class ClassSummary(BaseModel):
    id: UUID
    name: str
    education_level: str
    subject_count: int


class StoreCounts(BaseModel):
    """Rows found per store for the (teacher, class) pair."""

    class_model: int = 0
    link: int = 0
    dated: int = 0


class AssignmentIssue(BaseModel):
    type: IssueType
    subject_id: UUID
    subject_name: str
    message: str


class AuditReport(BaseModel):
    teacher: TeacherSummary
    school_class: ClassSummary
    counts: StoreCounts
    issues: List[AssignmentIssue] = Field(default_factory=list)
    state: ConsistencyState = ConsistencyState.CONSISTENT


class DiagnoseResult(BaseModel):
    audit: AuditReport
    issues: List[AssignmentIssue]
    fixed: bool
    fix_result: Optional[AssignAllResult] = None


# Request payloads


class AssignSubjectRequest(BaseModel):
    teacher_id: UUID
    class_id: UUID
    subject_id: UUID


class AssignAllRequest(BaseModel):
    teacher_id: UUID
    class_id: UUID


class MarkEntryAuthorizationRequest(BaseModel):
    teacher_id: UUID
    class_id: UUID
    subject_id: UUID
    student_id: UUID


class CacheInvalidateRequest(BaseModel):
    teacher_id: Optional[UUID] = Field(None, description="Omit to clear the whole cache")


# Response payloads


class StudentRef(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    roll_number: Optional[str] = None

    class Config:
        from_attributes = True


class SubjectRef(BaseModel):
    id: UUID
    name: str
    code: str
    type: str
    education_level: str

    class Config:
        from_attributes = True


class TeacherRef(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None


class ClassRef(BaseModel):
    id: UUID
    name: str
    education_level: str


class CacheInvalidateResponse(BaseModel):
    invalidated: str  # teacher id or "all"
    at: datetime
