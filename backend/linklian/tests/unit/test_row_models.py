# backend/linklian/tests/unit/test_row_models.py

import pytest

from linklian.schemas.imports import (
    EnrollmentRow,
    SchoolProgramRow,
    SectionScheduleRow,
    UniversityProgramRow,
    ValidatedRow,
    ValidationSummary,
)

SCHEDULE_ROW = {
    "รหัสวิชา": "A101",
    "กลุ่มเรียน": "S1",
    "วัน": "จันทร์",
    "เวลาเริ่มเรียน": "8:00",
    "เวลาสิ้นสุด": "09:30",
    "ตึก": "อาคาร 1",
    "หมายเลขตึก": "1",
    "ห้องเรียน": "101",
    "รหัสผู้สอนหลัก": "T01",
    "รหัสผู้สอนรอง": "",
    "รหัสผู้ช่วยสอน": "",
}


def test_enrollment_row_accepts_thai_and_english_headers():
    thai, errors = EnrollmentRow.parse_row({"รหัสนักเรียน": " 1001 "})
    english, _ = EnrollmentRow.parse_row({"student_code": "1001", "subject_code": "A101"})

    assert errors == []
    assert thai.student_code == "1001"
    assert not thai.has_section
    assert english.subject_code == "A101"
    assert english.has_section


def test_enrollment_row_blank_optional_cells_become_none():
    row, _ = EnrollmentRow.parse_row({"รหัสนักเรียน": "1001", "รหัสวิชา": "  ", "กลุ่มเรียน": ""})
    assert row.subject_code is None
    assert row.section_name is None


@pytest.mark.parametrize("raw", [{}, {"รหัสนักเรียน": ""}, {"รหัสนักเรียน": "   "}])
def test_enrollment_row_requires_student_code(raw):
    row, errors = EnrollmentRow.parse_row(raw)
    assert row is None
    assert errors == ["Student code is required"]


def test_numeric_cells_are_read_as_text():
    row, _ = EnrollmentRow.parse_row({"รหัสนักเรียน": 1001.0})
    assert row.student_code == "1001"


def test_program_rows_report_every_missing_column():
    _, errors = SchoolProgramRow.parse_row({"แผนการเรียน": "วิทย์-คณิต"})
    assert errors == ["Class is required"]

    _, errors = UniversityProgramRow.parse_row({"คณะ": "Engineering"})
    assert errors == ["Department is required", "Major is required"]


def test_schedule_row_normalises_times():
    row, errors = SectionScheduleRow.parse_row({**SCHEDULE_ROW, "เวลาสิ้นสุด": "09:30:00"})
    assert errors == []
    assert row.start_time == "08:00"
    assert row.end_time == "09:30"
    assert row.co_teacher_code is None


@pytest.mark.parametrize("value", ["24:00", "8.30", "0930", "9:5"])
def test_schedule_row_rejects_bad_times(value):
    row, errors = SectionScheduleRow.parse_row({**SCHEDULE_ROW, "เวลาเริ่มเรียน": value})
    assert row is None
    assert len(errors) == 1
    assert errors[0].startswith("Start time:")
    assert "HH:MM" in errors[0]


def test_validated_row_serializes_camel_case():
    row = ValidatedRow(row=2, data={"a": "b"}, is_valid=True, is_duplicate=True)
    dumped = row.model_dump(by_alias=True)
    assert dumped["isValid"] is True
    assert dumped["isDuplicate"] is True


def test_summary_excludes_duplicates_from_will_save():
    rows = [
        ValidatedRow(row=2, data={}, is_valid=True),
        ValidatedRow(row=3, data={}, is_valid=True, is_duplicate=True, warnings=["dup"]),
        ValidatedRow(row=4, data={}, is_valid=False, errors=["bad"]),
    ]
    summary = ValidationSummary.from_rows(rows)

    assert summary.total == 3
    assert summary.valid_count == 2
    assert summary.error_count == 1
    assert summary.duplicate_count == 1
    assert summary.warning_count == 1
    assert summary.will_save_count == 1
