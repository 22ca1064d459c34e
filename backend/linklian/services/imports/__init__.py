# backend/linklian/services/imports/__init__.py
"""Bulk spreadsheet imports: validate a file, then commit it with a token."""

from .base import BaseImporter
from .constants import ImportType
from .enrollment import EnrollmentImporter
from .program import ProgramImporter, parse_inst_type
from .section_schedule import SectionScheduleImporter, map_day_of_week
from .student import StudentImporter
from .subject import SubjectImporter
from .teacher import TeacherImporter
from .spreadsheet import parse_spreadsheet
from .validation_token import (
    ImportValidationPayload,
    ValidationTokenService,
    calculate_data_hash,
)

__all__ = [
    "BaseImporter",
    "ImportType",
    "EnrollmentImporter",
    "ProgramImporter",
    "SectionScheduleImporter",
    "StudentImporter",
    "SubjectImporter",
    "TeacherImporter",
    "parse_inst_type",
    "map_day_of_week",
    "parse_spreadsheet",
    "ImportValidationPayload",
    "ValidationTokenService",
    "calculate_data_hash",
]
