# backend/linklian/models/academic.py

import enum

from datetime import date, datetime, time
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    String,
    Integer,
    Numeric,
    ForeignKey,
    Index,
    SmallInteger,
    Text,
    Time,
    func,
    text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from .infrastructure import RoomLocation


class InstitutionType(str, enum.Enum):
    school = "school"
    university = "university"


class ProgramType(str, enum.Enum):
    department = "department"
    faculty = "faculty"
    major = "major"
    study_plan = "study_plan"
    # "class" is a keyword
    class_ = "class"


class TreeType(str, enum.Enum):
    root = "root"
    twig = "twig"
    leaf = "leaf"


class DayOfWeek(enum.IntEnum):
    OTHER = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class EducatorPosition(str, enum.Enum):
    main_teacher = "main_teacher"
    co_teacher = "co_teacher"
    ta = "TA"


class Institution(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "institution"

    inst_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inst_name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    inst_name_en: Mapped[Optional[str]] = mapped_column(String(255))
    inst_abbr_th: Mapped[Optional[str]] = mapped_column(String(50))
    inst_abbr_en: Mapped[Optional[str]] = mapped_column(String(50))
    inst_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InstitutionType.school.value
    )

    learning_areas: Mapped[List["LearningArea"]] = relationship(
        back_populates="institution"
    )
    semesters: Mapped[List["Semester"]] = relationship(back_populates="institution")


class EduLevel(Base, SoftDeleteMixin):
    """Grade level or year of study, e.g. ``ม.3`` or ``ปี 2``."""

    __tablename__ = "edu_level"

    edu_lev_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    level_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class LearningArea(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "learning_area"

    learning_area_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inst_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("institution.inst_id"), nullable=False
    )
    learning_area_name: Mapped[str] = mapped_column(String(255), nullable=False)

    institution: Mapped["Institution"] = relationship(back_populates="learning_areas")
    subjects: Mapped[List["Subject"]] = relationship(back_populates="learning_area")


class Subject(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "subject"

    subject_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    learning_area_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("learning_area.learning_area_id"), nullable=False
    )
    subject_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    name_en: Mapped[Optional[str]] = mapped_column(String(255))
    credit: Mapped[Optional[float]] = mapped_column(Numeric(4, 1))
    hour_per_week: Mapped[Optional[int]] = mapped_column(Integer)

    learning_area: Mapped["LearningArea"] = relationship(back_populates="subjects")
    sections: Mapped[List["Section"]] = relationship(back_populates="subject")


class Semester(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "semester"

    semester_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inst_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("institution.inst_id"), nullable=False
    )
    semester: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[Optional[str]] = mapped_column(String(20))

    institution: Mapped["Institution"] = relationship(back_populates="semesters")
    sections: Mapped[List["Section"]] = relationship(back_populates="semester")


class Program(Base, TimestampMixin, SoftDeleteMixin):
    """Self-referencing curriculum tree.

    School institutions store ``study_plan`` (root) -> ``class`` (leaf);
    universities store ``faculty`` (root) -> ``department`` (twig) ->
    ``major`` (leaf). A node name is unique per (institution, type, parent)
    among valid rows; roots get their own partial index because NULL parents
    never collide in a plain unique index.
    """

    __tablename__ = "program"

    program_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inst_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("institution.inst_id"), nullable=False
    )
    program_name: Mapped[str] = mapped_column(String(255), nullable=False)
    program_type: Mapped[str] = mapped_column(String(20), nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("program.program_id")
    )
    tree_type: Mapped[str] = mapped_column(String(10), nullable=False)
    remark: Mapped[Optional[str]] = mapped_column(Text)

    parent: Mapped[Optional["Program"]] = relationship(
        remote_side=[program_id], back_populates="children"
    )
    children: Mapped[List["Program"]] = relationship(back_populates="parent")

    __table_args__ = (
        Index(
            "uq_program",
            "inst_id",
            "program_name",
            "program_type",
            "parent_id",
            unique=True,
            postgresql_where=text("flag_valid"),
            sqlite_where=text("flag_valid"),
        ),
        Index(
            "uq_program_root",
            "inst_id",
            "program_name",
            "program_type",
            unique=True,
            postgresql_where=text("parent_id IS NULL AND flag_valid"),
            sqlite_where=text("parent_id IS NULL AND flag_valid"),
        ),
    )


class Section(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "section"

    section_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subject_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subject.subject_id"), nullable=False
    )
    semester_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("semester.semester_id"), nullable=False
    )
    section_name: Mapped[str] = mapped_column(String(100), nullable=False)

    subject: Mapped["Subject"] = relationship(back_populates="sections")
    semester: Mapped["Semester"] = relationship(back_populates="sections")
    schedules: Mapped[List["SectionSchedule"]] = relationship(
        back_populates="section"
    )

    __table_args__ = (
        Index("ix_section_semester_subject", "semester_id", "subject_id"),
    )


class Enrollment(Base, SoftDeleteMixin):
    __tablename__ = "enrollment"

    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("section.section_id"), primary_key=True
    )
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), primary_key=True
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class SectionSchedule(Base, SoftDeleteMixin):
    __tablename__ = "section_schedule"

    schedule_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("section.section_id"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    room_location_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("room_location.room_location_id")
    )

    section: Mapped["Section"] = relationship(back_populates="schedules")
    room_location: Mapped[Optional["RoomLocation"]] = relationship()


class SectionEducator(Base, SoftDeleteMixin):
    __tablename__ = "section_educator"

    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("section.section_id"), primary_key=True
    )
    educator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), primary_key=True
    )
    position: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint("section_id", "educator_id", name="uq_section_educator"),
    )
