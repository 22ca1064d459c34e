# backend/linklian/services/imports/subject.py
"""
Subject catalogue import. Subject codes are unique per institution; learning
areas named in the file that do not exist yet are created during save.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from sqlalchemy import insert, select

from ...models import LearningArea, Subject
from ...schemas.imports import SubjectRow, SubjectSaveResult, ValidatedRow
from .base import BaseImporter, ParsedRow, SaveOutcome, norm
from .constants import DUPLICATE_SKIPPED_REASON, ImportType

logger = logging.getLogger(__name__)


@dataclass
class SubjectReferences:
    learning_areas: Dict[str, int] = field(default_factory=dict)
    codes: Set[str] = field(default_factory=set)


class SubjectImporter(BaseImporter):
    import_type = ImportType.SUBJECT
    row_model = SubjectRow

    async def prefetch(self, inst_id: int, parallel: bool, **_: Any) -> SubjectReferences:
        queries = {
            "learning_areas": select(
                LearningArea.learning_area_name, LearningArea.learning_area_id
            ).where(LearningArea.inst_id == inst_id, LearningArea.flag_valid.is_(True)),
            "codes": select(Subject.subject_code)
            .join(LearningArea, Subject.learning_area_id == LearningArea.learning_area_id)
            .where(LearningArea.inst_id == inst_id, Subject.flag_valid.is_(True)),
        }
        results = await self._run_queries(queries, parallel)
        return SubjectReferences(
            learning_areas={norm(name): la_id for name, la_id in results["learning_areas"]},
            codes={norm(code) for (code,) in results["codes"]},
        )

    def occurrence_key(self, parsed: ParsedRow, **_: Any) -> Optional[str]:
        if parsed.model is None:
            return None
        return norm(parsed.model.subject_code)

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: SubjectReferences,
        first_seen: Dict[str, int],
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings = []
        is_duplicate = False
        row = parsed.model

        if row is not None:
            key = self.occurrence_key(parsed)
            if key in prefetched.codes:
                warnings.append(f'Subject code "{row.subject_code}" already exists (will be skipped)')
                is_duplicate = True
            elif first_seen.get(key) != parsed.index:
                errors.append(f'Subject code "{row.subject_code}" is repeated in this file')
            elif norm(row.learning_area) not in prefetched.learning_areas:
                warnings.append(f'Learning area "{row.learning_area}" does not exist yet (will be created)')

        return ValidatedRow(
            row=parsed.row_number,
            data=parsed.raw,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            is_duplicate=is_duplicate,
        )

    async def _learning_area_id(
        self, row: SubjectRow, prefetched: SubjectReferences, outcome: SaveOutcome, inst_id: int
    ) -> int:
        key = norm(row.learning_area)
        la_id = prefetched.learning_areas.get(key)
        if la_id is None:
            la_id = (
                await self.session.execute(
                    insert(LearningArea)
                    .values(inst_id=inst_id, learning_area_name=row.learning_area, flag_valid=True)
                    .returning(LearningArea.learning_area_id)
                )
            ).scalar_one()
            prefetched.learning_areas[key] = la_id
            outcome.extra.setdefault("new_learning_areas", []).append(row.learning_area)
            logger.info(f"Created learning area {row.learning_area!r} for inst {inst_id}")
        return la_id

    async def save_row(
        self,
        parsed: ParsedRow,
        prefetched: SubjectReferences,
        outcome: SaveOutcome,
        inst_id: int,
        **_: Any,
    ) -> None:
        row = parsed.model
        key = self.occurrence_key(parsed)
        if key in prefetched.codes:
            logger.debug(f"Skipping existing subject {row.subject_code}")
            outcome.skipped_count += 1
            return

        learning_area_id = await self._learning_area_id(row, prefetched, outcome, inst_id)
        await self.session.execute(
            insert(Subject).values(
                learning_area_id=learning_area_id,
                subject_code=row.subject_code,
                name_th=row.name_th,
                name_en=row.name_en,
                credit=row.credit,
                hour_per_week=row.hour_per_week,
                flag_valid=True,
            )
        )
        prefetched.codes.add(key)
        outcome.count += 1

    def build_result(self, outcome: SaveOutcome) -> SubjectSaveResult:
        return SubjectSaveResult(
            count=outcome.count,
            skipped_count=outcome.skipped_count,
            skipped_reason=DUPLICATE_SKIPPED_REASON if outcome.skipped_count else None,
            new_learning_areas=outcome.extra.get("new_learning_areas"),
        )
