# backend/linklian/models/__init__.py

from .base import Base
from .academic import (
    InstitutionType,
    ProgramType,
    TreeType,
    DayOfWeek,
    EducatorPosition,
    Institution,
    EduLevel,
    LearningArea,
    Subject,
    Semester,
    Program,
    Section,
    Enrollment,
    SectionSchedule,
    SectionEducator,
)
from .infrastructure import Building, RoomLocation
from .users import (
    UserSys,
    UserSysProgram,
    UserSysLearningArea,
    STUDENT_ROLE_IDS,
    SCHOOL_STUDENT_ROLE,
    UNIVERSITY_STUDENT_ROLE,
    SCHOOL_TEACHER_ROLE,
    UNIVERSITY_TEACHER_ROLE,
)
from .social import PostContent, PostInClass, PostComment, PostCommentPath


__all__ = [
    "Base",
    "InstitutionType",
    "ProgramType",
    "TreeType",
    "DayOfWeek",
    "EducatorPosition",
    "Institution",
    "EduLevel",
    "LearningArea",
    "Subject",
    "Semester",
    "Program",
    "Section",
    "Enrollment",
    "SectionSchedule",
    "SectionEducator",
    "Building",
    "RoomLocation",
    "UserSys",
    "UserSysProgram",
    "UserSysLearningArea",
    "STUDENT_ROLE_IDS",
    "SCHOOL_STUDENT_ROLE",
    "UNIVERSITY_STUDENT_ROLE",
    "SCHOOL_TEACHER_ROLE",
    "UNIVERSITY_TEACHER_ROLE",
    "PostContent",
    "PostInClass",
    "PostComment",
    "PostCommentPath",
]
