# backend/linklian/schemas/__init__.py
"""Expose schema modules and primary Pydantic models for convenient imports."""

from . import imports, comments

from .imports import (
    EnrollmentRow,
    SchoolProgramRow,
    UniversityProgramRow,
    SectionScheduleRow,
    SchoolStudentRow,
    UniversityStudentRow,
    SubjectRow,
    TeacherRow,
    ValidatedRow,
    ValidationSummary,
    ImportValidationResponse,
    ImportSaveResult,
    ImportSaveResponse,
)
from .comments import (
    CommentNode,
    PostCommentCreate,
    PostCommentUpdate,
    PostCommentDelete,
    PostCommentTreeResponse,
)

__all__ = [
    "imports",
    "comments",
    "EnrollmentRow",
    "SchoolProgramRow",
    "UniversityProgramRow",
    "SectionScheduleRow",
    "SchoolStudentRow",
    "UniversityStudentRow",
    "SubjectRow",
    "TeacherRow",
    "ValidatedRow",
    "ValidationSummary",
    "ImportValidationResponse",
    "ImportSaveResult",
    "ImportSaveResponse",
    "CommentNode",
    "PostCommentCreate",
    "PostCommentUpdate",
    "PostCommentDelete",
    "PostCommentTreeResponse",
]
