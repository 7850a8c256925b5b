"""Which students of a class take a subject."""

from uuid import uuid4

import pytest

from app.api.v1.teacher_assignments.eligibility import (
    filter_eligible_students,
    get_students_for_subject,
    selection_subject_ids,
    student_takes_subject,
    subjects_taken_by,
)
from app.core.enums import SelectionStatus, SubjectType
from app.core.models import Student, StudentSubjectSelection, Subject


def _subject(code: str, type: SubjectType) -> Subject:
    return Subject(id=uuid4(), name=code.title(), code=code, type=type.value, education_level="O_LEVEL")


def _student(name: str, selected=()) -> Student:
    return Student(
        id=uuid4(),
        first_name=name,
        last_name="Student",
        class_id=uuid4(),
        selected_subject_ids=[str(s.id) for s in selected],
    )


def _selection(student: Student, optional=(), core=(), status=SelectionStatus.APPROVED) -> StudentSubjectSelection:
    return StudentSubjectSelection(
        id=uuid4(),
        student_id=student.id,
        academic_year_id=uuid4(),
        core_subject_ids=[str(s.id) for s in core],
        optional_subject_ids=[str(s.id) for s in optional],
        status=status.value,
    )


def test_core_subject_is_taken_by_whole_roster() -> None:
    math = _subject("MATH", SubjectType.CORE)
    roster = [_student("Alice"), _student("Bob")]
    assert filter_eligible_students(math, roster, {}) == roster


def test_optional_subject_via_legacy_selection() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    alice = _student("Alice", selected=[physics])
    bob = _student("Bob")
    assert filter_eligible_students(physics, [alice, bob], {}) == [alice]


def test_optional_subject_via_approved_selection() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    alice = _student("Alice")
    bob = _student("Bob")
    selections = {bob.id: _selection(bob, optional=[physics])}
    assert filter_eligible_students(physics, [alice, bob], selections) == [bob]


def test_pending_or_rejected_selection_grants_nothing() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    alice = _student("Alice")
    for status in (SelectionStatus.PENDING, SelectionStatus.REJECTED):
        selection = _selection(alice, optional=[physics], status=status)
        assert selection_subject_ids(selection) == set()
        assert student_takes_subject(physics, alice, selection) is False


def test_core_list_of_selection_counts_for_optional_subject() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    alice = _student("Alice")
    assert student_takes_subject(physics, alice, _selection(alice, core=[physics])) is True


def test_unknown_subject_has_no_students() -> None:
    assert filter_eligible_students(None, [_student("Alice")], {}) == []
    assert student_takes_subject(None, _student("Alice")) is False


def test_student_listed_twice_is_returned_once() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    alice = _student("Alice", selected=[physics])
    assert filter_eligible_students(physics, [alice, alice], {}) == [alice]


def test_subjects_taken_by_unions_both_representations() -> None:
    physics = _subject("PHY", SubjectType.OPTIONAL)
    chemistry = _subject("CHEM", SubjectType.OPTIONAL)
    alice = _student("Alice", selected=[physics])
    bob = _student("Bob")
    selections = {bob.id: _selection(bob, optional=[chemistry])}
    assert subjects_taken_by([alice, bob], selections) == {str(physics.id), str(chemistry.id)}


@pytest.mark.asyncio
async def test_get_students_for_subject(seed, school) -> None:
    db = seed.db
    physics_students = await get_students_for_subject(db, school["class"].id, school["physics"].id)
    assert [s.first_name for s in physics_students] == ["Alice", "Bob"]

    math_students = await get_students_for_subject(db, school["class"].id, school["math"].id)
    assert [s.first_name for s in math_students] == ["Alice", "Bob", "Carol"]

    assert await get_students_for_subject(db, school["class"].id, uuid4()) == []


@pytest.mark.asyncio
async def test_selection_outside_active_year_is_ignored(seed, school) -> None:
    old_year = await seed.academic_year(name="2025", is_active=False)
    dan = await seed.student(school["class"], "Dan")
    await seed.selection(dan, old_year, optional=[school["physics"]])

    students = await get_students_for_subject(seed.db, school["class"].id, school["physics"].id)
    assert "Dan" not in [s.first_name for s in students]
