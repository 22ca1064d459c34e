# backend/linklian/schemas/imports.py
"""Pydantic v2 schemas for the spreadsheet import pipeline.

Row models parse one spreadsheet record. Headers are accepted either in Thai
(the column names of the published templates) or in English snake_case.
Response models serialize to camelCase for the frontend.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

ROW_MODEL_CONFIG = ConfigDict(str_strip_whitespace=True, extra="ignore")
CAMEL_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel, populate_by_name=True, from_attributes=True
)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _column(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class ImportRow(BaseModel):
    """Base for spreadsheet row models."""

    model_config = ROW_MODEL_CONFIG

    @field_validator("*", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        # Excel cells may still arrive as numbers
        if v is None:
            return v
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if not isinstance(v, str):
            return str(v)
        return v

    @classmethod
    def parse_row(cls, raw: Dict[str, Any]):
        """Return ``(model, errors)``; ``model`` is None when the row does not parse."""
        try:
            return cls.model_validate(raw), []
        except ValidationError as exc:
            return None, describe_errors(cls, exc)


def _field_titles(model: type[BaseModel]) -> Dict[str, str]:
    # Error locations use whichever header alias matched, map them all back
    titles: Dict[str, str] = {}
    for name, info in model.model_fields.items():
        title = info.title or name
        titles[name] = title
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    titles[choice] = title
    return titles


def describe_errors(model: type[BaseModel], exc: ValidationError) -> List[str]:
    titles = _field_titles(model)
    messages: List[str] = []
    for err in exc.errors():
        field = err["loc"][0] if err["loc"] else ""
        label = titles.get(str(field), str(field)) or "row"
        if err["type"] in ("missing", "string_too_short") or err.get("input") == "":
            messages.append(f"{label} is required")
        else:
            msg = err["msg"]
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            messages.append(f"{label}: {msg}")
    return messages


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


OptionalCell = Annotated[Optional[str], AfterValidator(_blank_to_none)]


# --- Row models ---------------------------------------------------------------


class EnrollmentRow(ImportRow):
    student_code: str = Field(
        min_length=1,
        title="Student code",
        validation_alias=_column("รหัสนักเรียน", "student_code", "studentCode"),
    )
    subject_code: OptionalCell = Field(
        default=None,
        title="Subject code",
        validation_alias=_column("รหัสวิชา", "subject_code", "subjectCode"),
    )
    section_name: OptionalCell = Field(
        default=None,
        title="Section",
        validation_alias=_column("กลุ่มเรียน", "section_name", "sectionName"),
    )

    @property
    def has_section(self) -> bool:
        return bool(self.subject_code or self.section_name)


class SchoolProgramRow(ImportRow):
    program_name: str = Field(
        min_length=1,
        title="Study plan",
        validation_alias=_column("แผนการเรียน", "program_name", "programName"),
    )
    class_name: str = Field(
        min_length=1,
        title="Class",
        validation_alias=_column("ห้องเรียน", "class_name", "className"),
    )


class UniversityProgramRow(ImportRow):
    faculty: str = Field(
        min_length=1, title="Faculty", validation_alias=_column("คณะ", "faculty")
    )
    department: str = Field(
        min_length=1,
        title="Department",
        validation_alias=_column("ภาค", "department"),
    )
    major: str = Field(
        min_length=1, title="Major", validation_alias=_column("สาขา", "major")
    )


class SectionScheduleRow(ImportRow):
    subject_code: str = Field(
        min_length=1,
        title="Subject code",
        validation_alias=_column("รหัสวิชา", "subject_code", "subjectCode"),
    )
    section_name: str = Field(
        min_length=1,
        title="Section",
        validation_alias=_column("กลุ่มเรียน", "section_name", "sectionName"),
    )
    day: str = Field(
        min_length=1, title="Day", validation_alias=_column("วัน", "day")
    )
    start_time: str = Field(
        min_length=1,
        title="Start time",
        validation_alias=_column("เวลาเริ่มเรียน", "start_time", "startTime"),
    )
    end_time: str = Field(
        min_length=1,
        title="End time",
        validation_alias=_column("เวลาสิ้นสุด", "end_time", "endTime"),
    )
    building: str = Field(
        min_length=1, title="Building", validation_alias=_column("ตึก", "building")
    )
    building_no: str = Field(
        min_length=1,
        title="Building no.",
        validation_alias=_column("หมายเลขตึก", "building_no", "buildingNo"),
    )
    classroom: str = Field(
        min_length=1,
        title="Classroom",
        validation_alias=_column("ห้องเรียน", "classroom"),
    )
    main_teacher_code: str = Field(
        min_length=1,
        title="Main teacher code",
        validation_alias=_column("รหัสผู้สอนหลัก", "main_teacher_code", "mainTeacherCode"),
    )
    co_teacher_code: OptionalCell = Field(
        default=None,
        title="Co-teacher code",
        validation_alias=_column("รหัสผู้สอนรอง", "co_teacher_code", "coTeacherCode"),
    )
    ta_code: OptionalCell = Field(
        default=None,
        title="TA code",
        validation_alias=_column("รหัสผู้ช่วยสอน", "ta_code", "taCode"),
    )

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def _military_time(cls, v: str) -> str:
        if len(v) == 4 and ":" in v:
            v = f"0{v}"
        # Excel time cells come through as HH:MM:SS
        if len(v) == 8 and v.endswith(":00"):
            v = v[:5]
        if not _TIME_RE.match(v):
            raise ValueError(f'"{v}" is not a valid HH:MM time')
        return v


class AccountRow(ImportRow):
    """Columns shared by the student and teacher templates."""

    first_name: str = Field(
        min_length=1,
        title="First name",
        validation_alias=_column("ชื่อจริง", "first_name", "firstName"),
    )
    last_name: str = Field(
        min_length=1,
        title="Last name",
        validation_alias=_column("นามสกุล", "last_name", "lastName"),
    )
    email: EmailStr = Field(
        title="Email", validation_alias=_column("อีเมล", "email")
    )
    phone: OptionalCell = Field(
        default=None,
        title="Phone",
        validation_alias=_column("เบอร์โทร", "phone"),
    )
    status: OptionalCell = Field(
        default=None,
        title="User status",
        validation_alias=_column("สถานะผู้ใช้", "status", "userStatus"),
    )

    @field_validator("phone", mode="after")
    @classmethod
    def _ten_digit_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) != 10:
            raise ValueError("must be exactly 10 characters long")
        return v


class StudentRow(AccountRow):
    edu_level: str = Field(
        min_length=1,
        title="Education level",
        validation_alias=_column("ระดับชั้น/ชั้นปี", "edu_level", "eduLevel"),
    )


class SchoolStudentRow(StudentRow):
    student_code: str = Field(
        min_length=1,
        title="Student code",
        validation_alias=_column("รหัสนักเรียน", "student_code", "studentCode"),
    )
    classroom: str = Field(
        min_length=1,
        title="Classroom",
        validation_alias=_column("ห้องเรียน", "classroom"),
    )
    study_plan: str = Field(
        min_length=1,
        title="Study plan",
        validation_alias=_column("แผนการเรียน", "study_plan", "studyPlan"),
    )


class UniversityStudentRow(StudentRow):
    student_code: str = Field(
        min_length=1,
        title="Student code",
        validation_alias=_column("รหัสนักศึกษา", "student_code", "studentCode"),
    )
    faculty: str = Field(
        min_length=1, title="Faculty", validation_alias=_column("คณะ", "faculty")
    )
    department: str = Field(
        min_length=1,
        title="Department",
        validation_alias=_column("ภาค", "department"),
    )
    major: str = Field(
        min_length=1, title="Major", validation_alias=_column("สาขา", "major")
    )


class TeacherRow(AccountRow):
    teacher_code: str = Field(
        min_length=1,
        title="Staff code",
        validation_alias=_column("รหัสบุคลากร", "teacher_code", "teacherCode"),
    )
    learning_area: str = Field(
        min_length=1,
        title="Learning area",
        validation_alias=_column("กลุ่มการเรียนรู้", "learning_area", "learningArea"),
    )


class SubjectRow(ImportRow):
    learning_area: str = Field(
        min_length=1,
        title="Learning area",
        validation_alias=_column("กลุ่มการเรียนรู้", "learning_area", "learningArea"),
    )
    subject_code: str = Field(
        min_length=1,
        title="Subject code",
        validation_alias=_column("รหัสวิชา", "subject_code", "subjectCode"),
    )
    name_th: str = Field(
        min_length=1,
        title="Thai name",
        validation_alias=_column("ชื่อวิชา (ภาษาไทย)", "name_th", "nameTh"),
    )
    name_en: OptionalCell = Field(
        default=None,
        title="English name",
        validation_alias=_column("ชื่อวิชา (ภาษาอังกฤษ)", "name_en", "nameEn"),
    )
    credit: float = Field(
        ge=0, title="Credit", validation_alias=_column("หน่วยกิต", "credit")
    )
    hour_per_week: int = Field(
        ge=0,
        title="Hours per week",
        validation_alias=_column("ชั่วโมงต่อสัปดาห์", "hour_per_week", "hourPerWeek"),
    )


# --- Results --------------------------------------------------------------------


class ValidatedRow(BaseModel):
    """Verdict for one spreadsheet row; ``row`` is the 1-based sheet line."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    row: int
    data: Dict[str, Any]
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    is_duplicate: bool = False


class ValidationSummary(BaseModel):
    model_config = CAMEL_MODEL_CONFIG

    total: int = 0
    valid_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    warning_count: int = 0
    will_save_count: int = 0

    @classmethod
    def from_rows(cls, rows: List[ValidatedRow]) -> "ValidationSummary":
        valid = sum(1 for r in rows if r.is_valid)
        duplicates = sum(1 for r in rows if r.is_duplicate)
        return cls(
            total=len(rows),
            valid_count=valid,
            error_count=len(rows) - valid,
            duplicate_count=duplicates,
            warning_count=sum(1 for r in rows if r.warnings),
            will_save_count=sum(1 for r in rows if r.is_valid and not r.is_duplicate),
        )


class ImportValidationData(BaseModel):
    model_config = CAMEL_MODEL_CONFIG

    summary: ValidationSummary
    validated_data: List[ValidatedRow] = Field(default_factory=list)


class ImportValidationResponse(BaseModel):
    model_config = CAMEL_MODEL_CONFIG

    success: bool = True
    data: ImportValidationData
    validation_token: Optional[str] = None


class ImportSaveResult(BaseModel):
    model_config = CAMEL_MODEL_CONFIG

    count: int = 0
    skipped_count: int = 0
    skipped_reason: Optional[str] = None


class ProgramSaveResult(ImportSaveResult):
    # parent nodes (study plans, faculties, departments) created along the way
    created_parents: int = 0


class SectionScheduleSaveResult(ImportSaveResult):
    new_buildings: Optional[List[str]] = None
    new_rooms: Optional[List[str]] = None


class ImportSaveResponse(BaseModel):
    model_config = CAMEL_MODEL_CONFIG

    success: bool = True
    message: str
    data: ImportSaveResult


class ProgramSaveResponse(ImportSaveResponse):
    data: ProgramSaveResult


class SectionScheduleSaveResponse(ImportSaveResponse):
    data: SectionScheduleSaveResult


class SubjectSaveResult(ImportSaveResult):
    new_learning_areas: Optional[List[str]] = None


class SubjectSaveResponse(ImportSaveResponse):
    data: SubjectSaveResult
