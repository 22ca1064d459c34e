# backend/linklian/tests/integration/test_program_import.py

import pytest
from sqlalchemy import select

from linklian.core.exceptions import (
    BadRequestError,
    ValidationTokenScopeError,
    ValidationTokenTypeError,
)
from linklian.models import InstitutionType, Program
from linklian.services.imports import EnrollmentImporter, ProgramImporter, parse_inst_type

SCHOOL = InstitutionType.school
UNIVERSITY = InstitutionType.university


def uni_row(faculty, department, major):
    return {"คณะ": faculty, "ภาค": department, "สาขา": major}


@pytest.fixture
def importer(db_session, token_service):
    return ProgramImporter(db_session, token_service=token_service)


async def programs(db_session, inst_id, program_type):
    result = await db_session.execute(
        select(Program).where(
            Program.inst_id == inst_id,
            Program.program_type == program_type,
            Program.flag_valid.is_(True),
        )
    )
    return result.scalars().all()


@pytest.mark.parametrize(
    "value, expected",
    [("school", SCHOOL), ("University", UNIVERSITY), (" uni ", UNIVERSITY)],
)
def test_parse_inst_type(value, expected):
    assert parse_inst_type(value) == expected


@pytest.mark.parametrize("value", [None, "", "college"])
def test_parse_inst_type_rejects_unknown(value):
    with pytest.raises(BadRequestError):
        parse_inst_type(value)


async def test_school_plans_are_created_once_and_reused(importer, db_session, seed_data):
    inst_id = seed_data["school"].inst_id
    rows = [
        {"แผนการเรียน": "วิทย์-คณิต", "ห้องเรียน": "ม.4/1"},
        {"แผนการเรียน": "วิทย์-คณิต", "ห้องเรียน": "ม.4/2"},
        {"แผนการเรียน": "ศิลป์-ภาษา", "ห้องเรียน": "ม.4/3"},
    ]

    validated = await importer.validate(inst_id, rows, inst_type=SCHOOL)
    assert validated.data.summary.will_save_count == 3
    assert 'does not exist yet' in validated.data.validated_data[0].warnings[0]

    saved = await importer.save(inst_id, rows, validated.validation_token, inst_type=SCHOOL)
    assert saved.count == 3
    assert saved.created_parents == 2

    plans = await programs(db_session, inst_id, "study_plan")
    classes = await programs(db_session, inst_id, "class")
    assert sorted(p.program_name for p in plans) == ["วิทย์-คณิต", "ศิลป์-ภาษา"]
    assert all(p.parent_id is None and p.tree_type == "root" for p in plans)
    plan_ids = {p.program_name: p.program_id for p in plans}
    assert {c.program_name: c.parent_id for c in classes} == {
        "ม.4/1": plan_ids["วิทย์-คณิต"],
        "ม.4/2": plan_ids["วิทย์-คณิต"],
        "ม.4/3": plan_ids["ศิลป์-ภาษา"],
    }

    again = await importer.save(inst_id, rows, validated.validation_token, inst_type=SCHOOL)
    assert (again.count, again.skipped_count, again.created_parents) == (0, 3, 0)


async def test_university_reuses_existing_faculty_and_department(importer, db_session, seed_data):
    inst_id = seed_data["university"].inst_id
    rows = [
        uni_row("Engineering", "Computer", "AI"),
        uni_row("Engineering", "Computer", "Data Science"),
        uni_row("Engineering", "Electrical", "Power"),
        uni_row("Science", "Mathematics", "Statistics"),
    ]

    validated = await importer.validate(inst_id, rows, inst_type=UNIVERSITY)
    summary = validated.data.summary
    assert (summary.valid_count, summary.duplicate_count, summary.will_save_count) == (4, 1, 3)
    assert validated.data.validated_data[0].is_duplicate
    assert validated.data.validated_data[1].warnings == []

    saved = await importer.save(inst_id, rows, validated.validation_token, inst_type=UNIVERSITY)
    assert saved.count == 3
    assert saved.skipped_count == 1
    assert saved.created_parents == 3

    faculties = await programs(db_session, inst_id, "faculty")
    departments = await programs(db_session, inst_id, "department")
    majors = await programs(db_session, inst_id, "major")
    assert sorted(f.program_name for f in faculties) == ["Engineering", "Science"]
    assert sorted(d.program_name for d in departments) == ["Computer", "Electrical", "Mathematics"]
    assert len(majors) == 4

    computer = next(d for d in departments if d.program_name == "Computer")
    assert computer.program_id == seed_data["department"].program_id
    data_science = next(m for m in majors if m.program_name == "Data Science")
    assert data_science.parent_id == computer.program_id


async def test_in_file_repeat_is_an_error(importer, seed_data):
    rows = [uni_row("Arts", "History", "Thai"), uni_row("arts", "history", "thai")]
    result = await importer.validate(seed_data["university"].inst_id, rows, inst_type=UNIVERSITY)

    first, repeat = result.data.validated_data
    assert first.is_valid
    assert not repeat.is_valid
    assert result.validation_token is None


async def test_school_headers_do_not_satisfy_university_rows(importer, seed_data):
    rows = [{"แผนการเรียน": "วิทย์-คณิต", "ห้องเรียน": "ม.4/1"}]
    result = await importer.validate(seed_data["university"].inst_id, rows, inst_type=UNIVERSITY)

    row = result.data.validated_data[0]
    assert not row.is_valid
    assert "Faculty is required" in row.errors


async def test_program_token_cannot_save_enrollments(importer, db_session, token_service, seed_data):
    inst_id = seed_data["school"].inst_id
    rows = [{"แผนการเรียน": "วิทย์-คณิต", "ห้องเรียน": "ม.4/1"}]
    token = (await importer.validate(inst_id, rows, inst_type=SCHOOL)).validation_token

    enrollments = EnrollmentImporter(db_session, token_service=token_service)
    with pytest.raises(ValidationTokenTypeError):
        await enrollments.save(inst_id, rows, token)


async def test_school_token_cannot_save_as_university(importer, db_session, seed_data):
    inst_id = seed_data["school"].inst_id
    rows = [{"แผนการเรียน": "วิทย์-คณิต", "ห้องเรียน": "ม.4/1"}]
    token = (await importer.validate(inst_id, rows, inst_type=SCHOOL)).validation_token
    assert token is not None

    with pytest.raises(ValidationTokenScopeError):
        await importer.save(inst_id, rows, token, inst_type=UNIVERSITY)
    assert await programs(db_session, inst_id, "study_plan") == []
