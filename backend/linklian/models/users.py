# backend/linklian/models/users.py

from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from .academic import Institution

# role_id 2 and 3 are school and university students, 4 and 5 are educators
SCHOOL_STUDENT_ROLE = 2
UNIVERSITY_STUDENT_ROLE = 3
SCHOOL_TEACHER_ROLE = 4
UNIVERSITY_TEACHER_ROLE = 5
STUDENT_ROLE_IDS = (SCHOOL_STUDENT_ROLE, UNIVERSITY_STUDENT_ROLE)


class UserSys(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "user_sys"

    user_sys_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    password: Mapped[Optional[str]] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    role_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # Institution-scoped student / staff code
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    inst_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("institution.inst_id"), nullable=False
    )
    edu_lev_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("edu_level.edu_lev_id")
    )
    user_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Active", server_default="Active"
    )
    profile_pic: Mapped[Optional[str]] = mapped_column(String(500))

    institution: Mapped["Institution"] = relationship()

    __table_args__ = (Index("ix_user_sys_inst_code", "inst_id", "code"),)


class UserSysProgram(Base, SoftDeleteMixin):
    """Student membership of a class (school) or major (university)."""

    __tablename__ = "user_sys_program_normalize"

    user_sys_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), primary_key=True
    )
    program_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("program.program_id"), primary_key=True
    )


class UserSysLearningArea(Base, SoftDeleteMixin):
    __tablename__ = "user_sys_learning_area_normalize"

    user_sys_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), primary_key=True
    )
    learning_area_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("learning_area.learning_area_id"), primary_key=True
    )
