# backend/linklian/services/__init__.py
"""
Services package for the application.

This package contains the business logic that sits between the API routes
and the database layer.
"""

from .imports import (
    EnrollmentImporter,
    ProgramImporter,
    SectionScheduleImporter,
    StudentImporter,
    SubjectImporter,
    TeacherImporter,
    ValidationTokenService,
)
from .social import CommentTreeService, generate_anonymous_name

__all__ = [
    # Imports
    "EnrollmentImporter",
    "ProgramImporter",
    "SectionScheduleImporter",
    "StudentImporter",
    "SubjectImporter",
    "TeacherImporter",
    "ValidationTokenService",
    # Social
    "CommentTreeService",
    "generate_anonymous_name",
]
