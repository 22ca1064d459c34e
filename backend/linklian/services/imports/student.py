# backend/linklian/services/imports/student.py
"""
Student import.

School students are placed in a class of a study plan, university students
in a major (faculty / department / major). Both need a known education level.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from sqlalchemy import insert, select
from sqlalchemy.orm import aliased

from ...core.exceptions import ImportSaveError
from ...models import (
    SCHOOL_STUDENT_ROLE,
    UNIVERSITY_STUDENT_ROLE,
    EduLevel,
    InstitutionType,
    Program,
    ProgramType,
    UserSysProgram,
)
from ...schemas.imports import SchoolStudentRow, StudentRow, UniversityStudentRow, ValidatedRow
from .accounts import AccountImporter, AccountReferences
from .base import ParsedRow, SaveOutcome, norm
from .constants import ImportType

logger = logging.getLogger(__name__)


@dataclass
class StudentReferences(AccountReferences):
    edu_levels: Dict[str, int] = field(default_factory=dict)
    # "plan|class" or "faculty|department|major" -> program_id of the leaf
    placements: Dict[str, int] = field(default_factory=dict)
    # class names known in any plan, to tell "unknown" from "wrong plan"
    class_names: Set[str] = field(default_factory=set)


def _placement(row: StudentRow) -> str:
    if isinstance(row, SchoolStudentRow):
        return f"{norm(row.study_plan)}|{norm(row.classroom)}"
    return f"{norm(row.faculty)}|{norm(row.department)}|{norm(row.major)}"


class StudentImporter(AccountImporter):
    import_type = ImportType.STUDENT
    code_label = "Student code"

    def parse(self, raw: Dict[str, Any], inst_type: InstitutionType = InstitutionType.school, **_: Any):
        model = SchoolStudentRow if inst_type == InstitutionType.school else UniversityStudentRow
        return model.parse_row(raw)

    def account_code(self, row: StudentRow) -> str:
        return row.student_code

    async def prefetch(
        self, inst_id: int, parallel: bool, inst_type: InstitutionType = InstitutionType.school, **_: Any
    ) -> StudentReferences:
        queries = self.account_queries(inst_id)
        queries["edu_levels"] = select(EduLevel.level_name, EduLevel.edu_lev_id).where(
            EduLevel.flag_valid.is_(True)
        )
        if inst_type == InstitutionType.school:
            plan, cls = aliased(Program), aliased(Program)
            queries["placements"] = (
                select(plan.program_name, cls.program_name, cls.program_id)
                .join(plan, cls.parent_id == plan.program_id)
                .where(
                    cls.inst_id == inst_id,
                    cls.program_type == ProgramType.class_.value,
                    plan.program_type == ProgramType.study_plan.value,
                    cls.flag_valid.is_(True),
                    plan.flag_valid.is_(True),
                )
            )
        else:
            fac, dept, major = aliased(Program), aliased(Program), aliased(Program)
            queries["placements"] = (
                select(fac.program_name, dept.program_name, major.program_name, major.program_id)
                .join(dept, major.parent_id == dept.program_id)
                .join(fac, dept.parent_id == fac.program_id)
                .where(
                    major.inst_id == inst_id,
                    major.program_type == ProgramType.major.value,
                    major.flag_valid.is_(True),
                    dept.flag_valid.is_(True),
                    fac.flag_valid.is_(True),
                )
            )

        results = await self._run_queries(queries, parallel)
        refs = StudentReferences(
            edu_levels={norm(name): lid for name, lid in results["edu_levels"]},
        )
        self.load_accounts(refs, results)
        for *names, program_id in results["placements"]:
            refs.placements["|".join(norm(n) for n in names)] = program_id
            refs.class_names.add(norm(names[-1]))
        logger.debug(
            f"Prefetched {len(refs.placements)} placements and {len(refs.codes)} accounts "
            f"for inst {inst_id}"
        )
        return refs

    def _placement_error(self, row: StudentRow, refs: StudentReferences) -> Optional[str]:
        if _placement(row) in refs.placements:
            return None
        if isinstance(row, SchoolStudentRow):
            if norm(row.classroom) not in refs.class_names:
                return f"Classroom {row.classroom} does not exist"
            return f'Classroom "{row.classroom}" does not belong to study plan "{row.study_plan}"'
        return f'Major "{row.major}" does not exist in "{row.faculty} / {row.department}"'

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: StudentReferences,
        first_seen: Dict[str, int],
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings = []
        is_duplicate = False
        row = parsed.model

        if row is not None:
            if norm(row.edu_level) not in prefetched.edu_levels:
                errors.append(f"Unknown education level: {row.edu_level}")
            placement_error = self._placement_error(row, prefetched)
            if placement_error:
                errors.append(placement_error)
            is_duplicate = self.check_account(parsed, prefetched, first_seen, errors, warnings)

        return ValidatedRow(
            row=parsed.row_number,
            data=parsed.raw,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            is_duplicate=is_duplicate,
        )

    async def save_row(
        self,
        parsed: ParsedRow,
        prefetched: StudentReferences,
        outcome: SaveOutcome,
        inst_id: int,
        inst_type: InstitutionType = InstitutionType.school,
        **_: Any,
    ) -> None:
        row = parsed.model
        if self.is_taken(row, prefetched):
            logger.debug(f"Skipping existing student {row.student_code}")
            outcome.skipped_count += 1
            return

        edu_lev_id = prefetched.edu_levels.get(norm(row.edu_level))
        if edu_lev_id is None:
            raise ImportSaveError(
                f"Education level {row.edu_level} not found", row=parsed.row_number
            )
        program_id = prefetched.placements.get(_placement(row))
        if program_id is None:
            raise ImportSaveError(self._placement_error(row, prefetched), row=parsed.row_number)

        role_id = SCHOOL_STUDENT_ROLE if inst_type == InstitutionType.school else UNIVERSITY_STUDENT_ROLE
        user_id = await self.create_account(row, prefetched, inst_id, role_id, edu_lev_id=edu_lev_id)
        await self.session.execute(
            insert(UserSysProgram).values(
                user_sys_id=user_id, program_id=program_id, flag_valid=True
            )
        )
        outcome.count += 1
