# backend/linklian/tests/integration/test_student_import.py

import pytest
import pytest_asyncio
from sqlalchemy import select

from linklian.core.exceptions import ValidationTokenScopeError
from linklian.models import EduLevel, InstitutionType, Program, UserSys, UserSysProgram
from linklian.services.imports import StudentImporter

SCHOOL = InstitutionType.school
UNIVERSITY = InstitutionType.university


def school_row(code, email, **overrides):
    row = {
        "รหัสนักเรียน": code,
        "ชื่อจริง": "จีมิน",
        "นามสกุล": "พัค",
        "อีเมล": email,
        "เบอร์โทร": "0812345678",
        "ระดับชั้น/ชั้นปี": "ม.4",
        "สถานะผู้ใช้": "ใช้งาน",
        "ห้องเรียน": "ม.4/1",
        "แผนการเรียน": "วิทย์-คณิต",
    }
    row.update(overrides)
    return row


def uni_row(code, email, major="AI"):
    return {
        "รหัสนักศึกษา": code,
        "ชื่อจริง": "Mali",
        "นามสกุล": "Srisuk",
        "อีเมล": email,
        "ระดับชั้น/ชั้นปี": "ปี 1",
        "สถานะผู้ใช้": "active",
        "คณะ": "Engineering",
        "ภาค": "Computer",
        "สาขา": major,
    }


@pytest_asyncio.fixture
async def classroom(db_session, seed_data):
    """Edu levels plus a วิทย์-คณิต study plan holding class ม.4/1."""
    db_session.add_all([EduLevel(level_name="ม.4"), EduLevel(level_name="ปี 1")])
    plan = Program(
        inst_id=seed_data["school"].inst_id,
        program_name="วิทย์-คณิต",
        program_type="study_plan",
        tree_type="root",
    )
    db_session.add(plan)
    await db_session.flush()
    room = Program(
        inst_id=seed_data["school"].inst_id,
        program_name="ม.4/1",
        program_type="class",
        tree_type="leaf",
        parent_id=plan.program_id,
    )
    db_session.add(room)
    seed_data["student_1001"].email = "somchai@school.ac.th"
    await db_session.commit()
    return room


@pytest.fixture
def importer(db_session, token_service):
    return StudentImporter(db_session, token_service=token_service)


async def test_school_students_are_created_in_their_class(importer, db_session, seed_data, classroom):
    inst_id = seed_data["school"].inst_id
    rows = [
        school_row("2001", "jimin@school.ac.th"),
        school_row("2002", "taehyung@school.ac.th", **{"สถานะผู้ใช้": "ลาออก", "เบอร์โทร": ""}),
    ]

    validation = await importer.validate(inst_id, rows, inst_type=SCHOOL)
    assert validation.data.summary.valid_count == 2
    assert validation.validation_token is not None

    result = await importer.save(inst_id, rows, validation.validation_token, inst_type=SCHOOL)
    assert result.count == 2
    assert result.skipped_count == 0

    created = (
        await db_session.execute(
            select(UserSys).where(UserSys.code.in_(["2001", "2002"])).order_by(UserSys.code)
        )
    ).scalars().all()
    assert [u.role_id for u in created] == [2, 2]
    assert [u.user_status for u in created] == ["Active", "Resigned"]
    assert created[1].phone is None
    assert created[0].password.startswith("$pbkdf2-sha256$")

    links = (
        await db_session.execute(
            select(UserSysProgram.program_id).where(
                UserSysProgram.user_sys_id.in_([u.user_sys_id for u in created])
            )
        )
    ).scalars().all()
    assert links == [classroom.program_id, classroom.program_id]


async def test_existing_email_or_code_is_a_skipped_duplicate(importer, seed_data, classroom):
    inst_id = seed_data["school"].inst_id
    rows = [
        school_row("2001", "SOMCHAI@school.ac.th"),
        school_row("1002", "new@school.ac.th"),
        school_row("2003", "fresh@school.ac.th"),
    ]

    validation = await importer.validate(inst_id, rows, inst_type=SCHOOL)
    by_email, by_code, fresh = validation.data.validated_data
    assert by_email.is_valid and by_email.is_duplicate
    assert "already exists (will be skipped)" in by_email.warnings[0]
    assert by_code.is_duplicate
    assert by_code.warnings == ["Student code 1002 already exists (will be skipped)"]
    assert not fresh.is_duplicate
    assert validation.data.summary.will_save_count == 1

    result = await importer.save(inst_id, rows, validation.validation_token, inst_type=SCHOOL)
    assert result.count == 1
    assert result.skipped_count == 2


async def test_repeated_email_or_code_in_file_is_an_error(importer, seed_data, classroom):
    rows = [
        school_row("2001", "a@school.ac.th"),
        school_row("2002", "A@school.ac.th"),
        school_row("2001", "b@school.ac.th"),
    ]
    validation = await importer.validate(seed_data["school"].inst_id, rows, inst_type=SCHOOL)

    first, same_email, same_code = validation.data.validated_data
    assert first.is_valid
    assert same_email.errors == ["Email A@school.ac.th is repeated in this file"]
    assert same_code.errors == ["Student code 2001 is repeated in this file"]
    assert validation.validation_token is None


async def test_unknown_level_and_classroom_are_errors(importer, seed_data, classroom):
    rows = [
        school_row("2001", "a@school.ac.th", **{"ระดับชั้น/ชั้นปี": "ม.9"}),
        school_row("2002", "b@school.ac.th", **{"ห้องเรียน": "ม.6/9"}),
        school_row("2003", "c@school.ac.th", **{"แผนการเรียน": "ศิลป์-ภาษา"}),
    ]
    validation = await importer.validate(seed_data["school"].inst_id, rows, inst_type=SCHOOL)

    level, unknown_room, wrong_plan = validation.data.validated_data
    assert level.errors == ["Unknown education level: ม.9"]
    assert unknown_room.errors == ["Classroom ม.6/9 does not exist"]
    assert wrong_plan.errors == [
        'Classroom "ม.4/1" does not belong to study plan "ศิลป์-ภาษา"'
    ]


async def test_malformed_cells_are_reported(importer, seed_data, classroom):
    rows = [school_row("2001", "not-an-email", **{"เบอร์โทร": "0812"})]
    validation = await importer.validate(seed_data["school"].inst_id, rows, inst_type=SCHOOL)

    errors = validation.data.validated_data[0].errors
    assert any(e.startswith("Email:") for e in errors)
    assert any(e.startswith("Phone:") for e in errors)


async def test_university_student_joins_the_major(importer, db_session, seed_data, classroom):
    inst_id = seed_data["university"].inst_id
    rows = [uni_row("65001", "mali@uni.ac.th"), uni_row("65002", "nok@uni.ac.th", major="Robotics")]

    validation = await importer.validate(inst_id, rows, inst_type=UNIVERSITY)
    ok, missing = validation.data.validated_data
    assert ok.is_valid
    assert missing.errors == ['Major "Robotics" does not exist in "Engineering / Computer"']

    rows = rows[:1]
    token = (await importer.validate(inst_id, rows, inst_type=UNIVERSITY)).validation_token
    result = await importer.save(inst_id, rows, token, inst_type=UNIVERSITY)
    assert result.count == 1

    student = (
        await db_session.execute(select(UserSys).where(UserSys.code == "65001"))
    ).scalar_one()
    assert student.role_id == 3
    link = (
        await db_session.execute(
            select(UserSysProgram.program_id).where(UserSysProgram.user_sys_id == student.user_sys_id)
        )
    ).scalar_one()
    assert link == seed_data["major"].program_id


async def test_token_is_bound_to_the_institution_type(importer, seed_data, classroom):
    inst_id = seed_data["school"].inst_id
    rows = [school_row("2001", "a@school.ac.th")]
    token = (await importer.validate(inst_id, rows, inst_type=SCHOOL)).validation_token

    with pytest.raises(ValidationTokenScopeError):
        await importer.save(inst_id, rows, token, inst_type=UNIVERSITY)
