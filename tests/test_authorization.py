from uuid import uuid4

import pytest

from app.api.v1.teacher_assignments import authorization, service
from app.core.enums import SubjectType
from app.core.exceptions import NotFoundError, UnauthorizedError


@pytest.mark.asyncio
async def test_unassigned_teacher_sees_no_students(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]

    for subject in (school["math"], school["physics"]):
        assert await authorization.eligible_students_for(db, cache, teacher.id, cl.id, subject.id) == []
    assert await authorization.is_assigned_to_class(db, cache, teacher.id, cl.id) is False


@pytest.mark.asyncio
async def test_assigned_teacher_sees_eligible_students(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]
    await service.assign_all_subjects_in_class(db, cache, teacher.id, cl.id)

    math_students = await authorization.eligible_students_for(db, cache, teacher.id, cl.id, school["math"].id)
    assert [s.first_name for s in math_students] == ["Alice", "Bob", "Carol"]

    physics_students = await authorization.eligible_students_for(db, cache, teacher.id, cl.id, school["physics"].id)
    assert [s.first_name for s in physics_students] == ["Alice", "Bob"]

    assert await authorization.is_assigned_to_class(db, cache, teacher.id, cl.id) is True
    assert await authorization.is_assigned_to_subject(db, cache, teacher.id, cl.id, school["physics"].id) is True


@pytest.mark.asyncio
async def test_require_subject_assignment(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]
    await seed.link(teacher, school["math"], cl, school["ay"])

    await authorization.require_subject_assignment(db, cache, teacher.id, cl.id, school["math"].id)
    with pytest.raises(UnauthorizedError) as exc:
        await authorization.require_subject_assignment(db, cache, teacher.id, cl.id, school["physics"].id)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_mark_entry_gate(seed, school, cache) -> None:
    db = seed.db
    teacher, cl, physics = school["teacher"], school["class"], school["physics"]
    await service.assign_subject(db, cache, teacher.id, cl.id, physics.id)

    await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, physics.id, school["alice"].id)
    await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, physics.id, school["bob"].id)

    with pytest.raises(UnauthorizedError):
        await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, physics.id, school["carol"].id)

    with pytest.raises(UnauthorizedError):
        await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, school["math"].id, school["carol"].id)

    with pytest.raises(NotFoundError):
        await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, physics.id, uuid4())


@pytest.mark.asyncio
async def test_mark_entry_for_student_of_another_class(seed, school, cache) -> None:
    db = seed.db
    teacher, cl, math = school["teacher"], school["class"], school["math"]
    await service.assign_subject(db, cache, teacher.id, cl.id, math.id)
    s5 = await seed.school_class("S5")
    outsider = await seed.student(s5, "Eve")

    with pytest.raises(UnauthorizedError) as exc:
        await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, math.id, outsider.id)
    assert "not enrolled" in exc.value.message


@pytest.mark.asyncio
async def test_derived_subject_never_authorizes(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]
    chemistry = await seed.subject("Chemistry", "CHEM", SubjectType.OPTIONAL)
    s5 = await seed.school_class("S5")
    await seed.class_subject(s5, chemistry, teacher=teacher)
    dan = await seed.student(cl, "Dan", selected=[chemistry])

    assert await authorization.is_assigned_to_subject(db, cache, teacher.id, cl.id, chemistry.id) is False
    assert await authorization.eligible_students_for(db, cache, teacher.id, cl.id, chemistry.id) == []
    with pytest.raises(UnauthorizedError):
        await authorization.authorize_mark_entry(db, cache, teacher.id, cl.id, chemistry.id, dan.id)


@pytest.mark.asyncio
async def test_teacher_subjects_for_student(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]
    await service.assign_all_subjects_in_class(db, cache, teacher.id, cl.id)

    alice = await authorization.get_teacher_subjects_for_student(db, cache, teacher.id, cl.id, school["alice"].id)
    carol = await authorization.get_teacher_subjects_for_student(db, cache, teacher.id, cl.id, school["carol"].id)

    assert [s.code for s in alice] == ["MATH", "PHY"]
    assert [s.code for s in carol] == ["MATH"]

    s5 = await seed.school_class("S5")
    assert await authorization.get_teacher_subjects_for_student(db, cache, teacher.id, s5.id, school["alice"].id) == []


@pytest.mark.asyncio
async def test_teacher_students_union_of_taught_subjects(seed, school, cache) -> None:
    db = seed.db
    teacher, cl = school["teacher"], school["class"]
    await service.assign_subject(db, cache, teacher.id, cl.id, school["physics"].id)

    students = await authorization.get_teacher_students(db, cache, teacher.id, cl.id)
    assert [s.first_name for s in students] == ["Alice", "Bob"]

    await service.assign_subject(db, cache, teacher.id, cl.id, school["math"].id)
    students = await authorization.get_teacher_students(db, cache, teacher.id, cl.id)
    assert [s.first_name for s in students] == ["Alice", "Bob", "Carol"]


@pytest.mark.asyncio
async def test_unassigned_teacher_has_no_students(seed, school, cache) -> None:
    students = await authorization.get_teacher_students(seed.db, cache, school["teacher"].id, school["class"].id)
    assert students == []
