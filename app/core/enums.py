from enum import Enum


class SubjectType(str, Enum):
    CORE = "CORE"
    OPTIONAL = "OPTIONAL"


class EducationLevel(str, Enum):
    O_LEVEL = "O_LEVEL"
    A_LEVEL = "A_LEVEL"
    BOTH = "BOTH"


class AssignmentStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class SelectionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SourceKind(str, Enum):
    """Which store contributed a resolved subject."""

    direct = "direct"  # embedded class subject list
    link = "link"  # teacher_subject_links
    dated = "dated"  # teacher_assignments
    derived = "derived"  # taken by students of the class, taught by the teacher elsewhere


class IssueType(str, Enum):
    class_model = "class_model"
    link = "link"
    dated = "dated"


class ConsistencyState(str, Enum):
    CONSISTENT = "CONSISTENT"
    INCONSISTENT = "INCONSISTENT"
