# backend/linklian/services/imports/teacher.py
"""Teacher import: educator accounts, each attached to one learning area."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from sqlalchemy import insert, select

from ...core.exceptions import ImportSaveError
from ...models import (
    SCHOOL_TEACHER_ROLE,
    UNIVERSITY_TEACHER_ROLE,
    InstitutionType,
    LearningArea,
    UserSysLearningArea,
)
from ...schemas.imports import TeacherRow, ValidatedRow
from .accounts import AccountImporter, AccountReferences
from .base import ParsedRow, SaveOutcome, norm
from .constants import ImportType

logger = logging.getLogger(__name__)


@dataclass
class TeacherReferences(AccountReferences):
    learning_areas: Dict[str, int] = field(default_factory=dict)


class TeacherImporter(AccountImporter):
    import_type = ImportType.TEACHER
    row_model = TeacherRow
    code_label = "Staff code"

    def account_code(self, row: TeacherRow) -> str:
        return row.teacher_code

    async def prefetch(self, inst_id: int, parallel: bool, **_: Any) -> TeacherReferences:
        queries = self.account_queries(inst_id)
        queries["learning_areas"] = select(
            LearningArea.learning_area_name, LearningArea.learning_area_id
        ).where(LearningArea.inst_id == inst_id, LearningArea.flag_valid.is_(True))

        results = await self._run_queries(queries, parallel)
        refs = TeacherReferences(
            learning_areas={norm(name): la_id for name, la_id in results["learning_areas"]},
        )
        self.load_accounts(refs, results)
        return refs

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: TeacherReferences,
        first_seen: Dict[str, int],
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings = []
        is_duplicate = False
        row = parsed.model

        if row is not None:
            if norm(row.learning_area) not in prefetched.learning_areas:
                errors.append(f'Learning area "{row.learning_area}" does not exist')
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
        prefetched: TeacherReferences,
        outcome: SaveOutcome,
        inst_id: int,
        inst_type: InstitutionType = InstitutionType.school,
        **_: Any,
    ) -> None:
        row = parsed.model
        if self.is_taken(row, prefetched):
            logger.debug(f"Skipping existing teacher {row.teacher_code}")
            outcome.skipped_count += 1
            return

        learning_area_id = prefetched.learning_areas.get(norm(row.learning_area))
        if learning_area_id is None:
            raise ImportSaveError(
                f'Learning area "{row.learning_area}" not found', row=parsed.row_number
            )

        role_id = SCHOOL_TEACHER_ROLE if inst_type == InstitutionType.school else UNIVERSITY_TEACHER_ROLE
        user_id = await self.create_account(row, prefetched, inst_id, role_id)
        await self.session.execute(
            insert(UserSysLearningArea).values(
                user_sys_id=user_id, learning_area_id=learning_area_id, flag_valid=True
            )
        )
        outcome.count += 1
