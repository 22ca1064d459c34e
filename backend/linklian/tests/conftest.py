# backend/linklian/tests/conftest.py

import os

os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import date
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from linklian.main import app
from linklian.api.deps import db_session as db_session_dependency, session_factory
from linklian.models import (
    Base,
    Building,
    Enrollment,
    Institution,
    LearningArea,
    PostContent,
    PostInClass,
    Program,
    RoomLocation,
    Section,
    Semester,
    Subject,
    UserSys,
)
from linklian.services.imports import ValidationTokenService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_TOKEN_SECRET = "linklian-test-secret"


@pytest_asyncio.fixture
async def test_engine():
    """A fresh in-memory database per test, shared over a single connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = async_sessionmaker(
        test_engine, expire_on_commit=False, class_=AsyncSession
    )
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def token_service() -> ValidationTokenService:
    return ValidationTokenService(secret_key=TEST_TOKEN_SECRET)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test session injected."""

    async def override_db_session():
        yield db_session

    app.dependency_overrides[db_session_dependency] = override_db_session
    # Reference-data reads run sequentially on the injected session
    app.dependency_overrides[session_factory] = lambda: None

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seed_data(db_session: AsyncSession) -> Dict[str, Any]:
    """
    A school (with subjects, sections, students, teachers, a building and a
    class post), a university with one faculty branch, and an unrelated
    school used for cross-institution checks.
    """
    data: Dict[str, Any] = {}

    data["school"] = Institution(inst_name_th="โรงเรียนทดสอบ", inst_type="school")
    data["university"] = Institution(inst_name_th="มหาวิทยาลัยทดสอบ", inst_type="university")
    data["other_school"] = Institution(inst_name_th="โรงเรียนอื่น", inst_type="school")
    db_session.add_all([data["school"], data["university"], data["other_school"]])
    await db_session.flush()
    school_id = data["school"].inst_id

    data["learning_area"] = LearningArea(inst_id=school_id, learning_area_name="คณิตศาสตร์")
    data["semester"] = Semester(
        inst_id=school_id,
        semester="1/2567",
        start_date=date(2024, 5, 16),
        end_date=date(2024, 10, 10),
    )
    data["other_semester"] = Semester(
        inst_id=data["other_school"].inst_id, semester="1/2567"
    )
    db_session.add_all([data["learning_area"], data["semester"], data["other_semester"]])
    await db_session.flush()

    data["subject_a"] = Subject(
        learning_area_id=data["learning_area"].learning_area_id,
        subject_code="A101",
        name_th="คณิตศาสตร์พื้นฐาน",
    )
    data["subject_b"] = Subject(
        learning_area_id=data["learning_area"].learning_area_id,
        subject_code="B202",
        name_th="คณิตศาสตร์เพิ่มเติม",
    )
    db_session.add_all([data["subject_a"], data["subject_b"]])
    await db_session.flush()

    semester_id = data["semester"].semester_id
    data["section_a1"] = Section(
        subject_id=data["subject_a"].subject_id, semester_id=semester_id, section_name="S1"
    )
    data["section_b2"] = Section(
        subject_id=data["subject_b"].subject_id, semester_id=semester_id, section_name="S2"
    )
    db_session.add_all([data["section_a1"], data["section_b2"]])

    def user(code: str, role_id: int, first: str, last: str) -> UserSys:
        return UserSys(
            inst_id=school_id,
            code=code,
            role_id=role_id,
            first_name=first,
            last_name=last,
            profile_pic=f"https://cdn.example.com/{code}.png",
        )

    data["student_1001"] = user("1001", 2, "Somchai", "Jaidee")
    data["student_1002"] = user("1002", 2, "Somsri", "Rakrian")
    data["student_1003"] = user("1003", 3, "Mana", "Manee")
    data["teacher_t01"] = user("T01", 4, "Kru", "Somporn")
    data["teacher_t02"] = user("T02", 4, "Kru", "Wipa")
    db_session.add_all(
        [
            data["student_1001"],
            data["student_1002"],
            data["student_1003"],
            data["teacher_t01"],
            data["teacher_t02"],
        ]
    )

    data["building"] = Building(inst_id=school_id, building_no="1", building_name="อาคาร 1")
    db_session.add(data["building"])
    await db_session.flush()

    data["room"] = RoomLocation(
        building_id=data["building"].building_id, room_number="101", floor="1"
    )
    data["enrollment"] = Enrollment(
        section_id=data["section_b2"].section_id,
        student_id=data["student_1003"].user_sys_id,
    )
    data["faculty"] = Program(
        inst_id=data["university"].inst_id,
        program_name="Engineering",
        program_type="faculty",
        tree_type="root",
    )
    data["post_content"] = PostContent(
        user_sys_id=data["teacher_t01"].user_sys_id, title="Homework 1", content="Chapter 1"
    )
    db_session.add_all([data["room"], data["enrollment"], data["faculty"], data["post_content"]])
    await db_session.flush()

    data["department"] = Program(
        inst_id=data["university"].inst_id,
        program_name="Computer",
        program_type="department",
        tree_type="twig",
        parent_id=data["faculty"].program_id,
    )
    data["post"] = PostInClass(
        post_content_id=data["post_content"].post_content_id,
        section_id=data["section_a1"].section_id,
    )
    db_session.add_all([data["department"], data["post"]])
    await db_session.flush()

    data["major"] = Program(
        inst_id=data["university"].inst_id,
        program_name="AI",
        program_type="major",
        tree_type="leaf",
        parent_id=data["department"].program_id,
    )
    db_session.add(data["major"])

    await db_session.commit()
    return data
