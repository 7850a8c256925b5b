import os
from datetime import date, datetime, timedelta
from typing import AsyncGenerator, Iterable, Optional
from uuid import UUID, uuid4

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.teacher_assignments.cache import ResolutionCache
from app.auth.security import create_access_token
from app.core.enums import AssignmentStatus, SelectionStatus, SubjectType
from app.core.models import (
    AcademicYear,
    ClassSubjectEntry,
    SchoolClass,
    Student,
    StudentSubjectSelection,
    Subject,
    Teacher,
    TeacherAssignment,
    TeacherSubjectLink,
)
from app.db.session import Base, get_db, utcnow
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class Seed:
    """Insert rows straight into the stores, bypassing the services under test."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def academic_year(self, name: str = "2026", is_active: bool = True) -> AcademicYear:
        return await self._add(
            AcademicYear(
                name=name,
                start_date=date(2026, 1, 1),
                end_date=date(2026, 12, 31),
                is_active=is_active,
            )
        )

    async def school_class(self, name: str = "S4", education_level: str = "O_LEVEL") -> SchoolClass:
        return await self._add(SchoolClass(name=name, education_level=education_level))

    async def subject(self, name: str, code: str, type: SubjectType = SubjectType.CORE) -> Subject:
        return await self._add(
            Subject(
                name=name,
                code=code,
                type=type.value,
                education_level="O_LEVEL",
                is_compulsory=type == SubjectType.CORE,
            )
        )

    async def teacher(
        self,
        first_name: str = "Amina",
        last_name: str = "Okello",
        user_id: Optional[UUID] = None,
    ) -> Teacher:
        return await self._add(
            Teacher(
                first_name=first_name,
                last_name=last_name,
                email=f"{first_name.lower()}@school.test",
                user_id=user_id,
                subject_ids=[],
            )
        )

    async def class_subject(
        self,
        cl: SchoolClass,
        subject: Subject,
        teacher: Optional[Teacher] = None,
        position: int = 0,
    ) -> ClassSubjectEntry:
        return await self._add(
            ClassSubjectEntry(
                class_id=cl.id,
                subject_id=subject.id,
                teacher_id=teacher.id if teacher else None,
                position=position,
            )
        )

    async def link(
        self,
        teacher: Teacher,
        subject: Subject,
        cl: SchoolClass,
        ay: AcademicYear,
        status: AssignmentStatus = AssignmentStatus.active,
    ) -> TeacherSubjectLink:
        return await self._add(
            TeacherSubjectLink(
                teacher_id=teacher.id,
                subject_id=subject.id,
                class_id=cl.id,
                academic_year_id=ay.id,
                status=status.value,
            )
        )

    async def dated(
        self,
        teacher: Teacher,
        subject: Subject,
        cl: SchoolClass,
        ay: AcademicYear,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: AssignmentStatus = AssignmentStatus.active,
    ) -> TeacherAssignment:
        now = utcnow()
        return await self._add(
            TeacherAssignment(
                teacher_id=teacher.id,
                subject_id=subject.id,
                class_id=cl.id,
                academic_year_id=ay.id,
                start_date=start or now - timedelta(days=30),
                end_date=end or now + timedelta(days=300),
                status=status.value,
            )
        )

    async def student(
        self,
        cl: SchoolClass,
        first_name: str,
        last_name: str = "Student",
        selected: Iterable[Subject] = (),
    ) -> Student:
        return await self._add(
            Student(
                first_name=first_name,
                last_name=last_name,
                class_id=cl.id,
                selected_subject_ids=[str(s.id) for s in selected],
            )
        )

    async def selection(
        self,
        student: Student,
        ay: AcademicYear,
        core: Iterable[Subject] = (),
        optional: Iterable[Subject] = (),
        status: SelectionStatus = SelectionStatus.APPROVED,
    ) -> StudentSubjectSelection:
        return await self._add(
            StudentSubjectSelection(
                student_id=student.id,
                academic_year_id=ay.id,
                core_subject_ids=[str(s.id) for s in core],
                optional_subject_ids=[str(s.id) for s in optional],
                status=status.value,
            )
        )


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, future=True, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
def cache() -> ResolutionCache:
    return ResolutionCache(ttl_seconds=60)


@pytest.fixture()
def seed(db_session: AsyncSession) -> Seed:
    return Seed(db_session)


@pytest.fixture()
async def client(db_session: AsyncSession, cache: ResolutionCache) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, sharing the test's session and cache."""
    app.state.resolution_cache = cache
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def _auth_headers(role: str, user_id: Optional[UUID] = None) -> dict:
    token = create_access_token(subject={"user_id": str(user_id or uuid4()), "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers() -> dict:
    return _auth_headers("ADMIN")


@pytest.fixture()
def auth_headers():
    """Build bearer headers for any role and user id."""
    return _auth_headers


@pytest.fixture()
async def school(seed: Seed):
    """
    Active year, class S4 listing Mathematics (CORE) and Physics (OPTIONAL) with no teacher,
    and three students: Alice picked Physics the legacy way, Bob through an approved
    selection, Carol did not pick it.
    """
    ay = await seed.academic_year()
    cl = await seed.school_class("S4")
    math = await seed.subject("Mathematics", "MATH", SubjectType.CORE)
    physics = await seed.subject("Physics", "PHY", SubjectType.OPTIONAL)
    await seed.class_subject(cl, math, position=0)
    await seed.class_subject(cl, physics, position=1)
    alice = await seed.student(cl, "Alice", selected=[physics])
    bob = await seed.student(cl, "Bob")
    await seed.selection(bob, ay, core=[math], optional=[physics])
    carol = await seed.student(cl, "Carol")
    teacher = await seed.teacher(user_id=uuid4())
    return {
        "ay": ay,
        "class": cl,
        "math": math,
        "physics": physics,
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "teacher": teacher,
    }
