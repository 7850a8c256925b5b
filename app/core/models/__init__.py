from app.core.models.academic_year import AcademicYear
from app.core.models.class_model import SchoolClass
from app.core.models.class_subject import ClassSubjectEntry
from app.core.models.student import Student
from app.core.models.student_subject_selection import StudentSubjectSelection
from app.core.models.subject import Subject
from app.core.models.teacher import Teacher
from app.core.models.teacher_assignment import TeacherAssignment
from app.core.models.teacher_subject_link import TeacherSubjectLink

__all__ = [
    "AcademicYear",
    "ClassSubjectEntry",
    "SchoolClass",
    "Student",
    "StudentSubjectSelection",
    "Subject",
    "Teacher",
    "TeacherAssignment",
    "TeacherSubjectLink",
]
