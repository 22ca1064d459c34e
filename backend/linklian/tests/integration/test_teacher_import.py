# backend/linklian/tests/integration/test_teacher_import.py

import pytest
from sqlalchemy import select

from linklian.core.exceptions import ValidationTokenRequiredError
from linklian.models import InstitutionType, UserSys, UserSysLearningArea
from linklian.services.imports import TeacherImporter

SCHOOL = InstitutionType.school


def teacher_row(code, email, area="คณิตศาสตร์"):
    return {
        "รหัสบุคลากร": code,
        "ชื่อจริง": "สมศรี",
        "นามสกุล": "ใจดี",
        "อีเมล": email,
        "เบอร์โทร": "",
        "กลุ่มการเรียนรู้": area,
        "สถานะผู้ใช้": "",
    }


@pytest.fixture
def importer(db_session, token_service):
    return TeacherImporter(db_session, token_service=token_service)


async def test_teachers_are_attached_to_their_learning_area(importer, db_session, seed_data):
    inst_id = seed_data["school"].inst_id
    rows = [teacher_row("T10", "somsri@school.ac.th"), teacher_row("t01", "other@school.ac.th")]

    validation = await importer.validate(inst_id, rows, inst_type=SCHOOL)
    fresh, existing = validation.data.validated_data
    assert fresh.is_valid and not fresh.is_duplicate
    assert existing.warnings == ["Staff code t01 already exists (will be skipped)"]

    result = await importer.save(inst_id, rows, validation.validation_token, inst_type=SCHOOL)
    assert (result.count, result.skipped_count) == (1, 1)

    teacher = (await db_session.execute(select(UserSys).where(UserSys.code == "T10"))).scalar_one()
    assert teacher.role_id == 4
    assert teacher.user_status == "Active"
    area_id = (
        await db_session.execute(
            select(UserSysLearningArea.learning_area_id).where(
                UserSysLearningArea.user_sys_id == teacher.user_sys_id
            )
        )
    ).scalar_one()
    assert area_id == seed_data["learning_area"].learning_area_id


async def test_unknown_learning_area_is_an_error(importer, seed_data):
    validation = await importer.validate(
        seed_data["school"].inst_id,
        [teacher_row("T10", "somsri@school.ac.th", area="ดนตรี")],
        inst_type=SCHOOL,
    )

    row = validation.data.validated_data[0]
    assert row.errors == ['Learning area "ดนตรี" does not exist']
    assert validation.validation_token is None


async def test_save_requires_a_token(importer, seed_data):
    with pytest.raises(ValidationTokenRequiredError):
        await importer.save(
            seed_data["school"].inst_id, [teacher_row("T10", "a@school.ac.th")], None, inst_type=SCHOOL
        )
