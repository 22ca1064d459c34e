# backend/linklian/__init__.py

"""LinkLian backend: bulk spreadsheet imports and class post comments."""

# Core
from .core import AppError, BadRequestError, ForbiddenError, NotFoundError

# Services
from .services import (
    CommentTreeService,
    EnrollmentImporter,
    ProgramImporter,
    SectionScheduleImporter,
    StudentImporter,
    SubjectImporter,
    TeacherImporter,
    ValidationTokenService,
    generate_anonymous_name,
)

__all__ = [
    # Core
    "AppError",
    "BadRequestError",
    "ForbiddenError",
    "NotFoundError",
    # Services
    "EnrollmentImporter",
    "ProgramImporter",
    "SectionScheduleImporter",
    "StudentImporter",
    "SubjectImporter",
    "TeacherImporter",
    "ValidationTokenService",
    "CommentTreeService",
    "generate_anonymous_name",
]
