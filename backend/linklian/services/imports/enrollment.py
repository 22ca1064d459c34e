# backend/linklian/services/imports/enrollment.py
"""
Enrollment import: puts students into sections.

A row names the student by code and, optionally, the section by subject code
and section name. Rows without section columns go into the section chosen in
the request (``section_id``).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from sqlalchemy import func, select

from ...core.exceptions import ImportSaveError, NotFoundError
from ...models import (
    STUDENT_ROLE_IDS,
    Enrollment,
    LearningArea,
    Section,
    Subject,
    UserSys,
)
from ...schemas.imports import EnrollmentRow, ValidatedRow
from .base import BaseImporter, ParsedRow, SaveOutcome, norm
from .constants import ImportType

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentReferences:
    students: Dict[str, int] = field(default_factory=dict)
    # "subject_code|section_name" -> section_id
    sections: Dict[str, int] = field(default_factory=dict)
    # "section_id|student_id"
    existing: Set[str] = field(default_factory=set)


def _section_key(subject_code: Optional[str], section_name: Optional[str]) -> str:
    return f"{norm(subject_code)}|{norm(section_name)}"


def _section_scope(inst_id: int):
    return (
        select(Section.section_id)
        .join(Subject, Section.subject_id == Subject.subject_id)
        .join(LearningArea, Subject.learning_area_id == LearningArea.learning_area_id)
        .where(LearningArea.inst_id == inst_id, Section.flag_valid.is_(True))
    )


class EnrollmentImporter(BaseImporter):
    import_type = ImportType.ENROLLMENT
    row_model = EnrollmentRow

    def token_scope(self, section_id: Optional[int] = None, **_: Any) -> Dict[str, Any]:
        return {"section_id": section_id}

    async def check_scope(self, inst_id: int, section_id: Optional[int] = None, **_: Any) -> None:
        if section_id is None:
            return
        found = (
            await self.session.execute(
                _section_scope(inst_id).where(Section.section_id == section_id)
            )
        ).scalar_one_or_none()
        if found is None:
            raise NotFoundError(
                "Section",
                section_id,
                message=f"Section {section_id} not found in institution {inst_id}",
            )

    async def prefetch(self, inst_id: int, parallel: bool, **_: Any) -> EnrollmentReferences:
        sections_in_inst = _section_scope(inst_id)
        queries = {
            "students": select(UserSys.code, UserSys.user_sys_id).where(
                UserSys.inst_id == inst_id,
                UserSys.flag_valid.is_(True),
                UserSys.role_id.in_(STUDENT_ROLE_IDS),
            ),
            "sections": select(
                Subject.subject_code, Section.section_name, Section.section_id
            )
            .join(Subject, Section.subject_id == Subject.subject_id)
            .join(LearningArea, Subject.learning_area_id == LearningArea.learning_area_id)
            .where(
                LearningArea.inst_id == inst_id,
                Section.flag_valid.is_(True),
                Subject.flag_valid.is_(True),
            )
            .order_by(Section.section_id),
            "existing": select(Enrollment.section_id, Enrollment.student_id).where(
                Enrollment.flag_valid.is_(True),
                Enrollment.section_id.in_(sections_in_inst),
            ),
        }
        results = await self._run_queries(queries, parallel)

        refs = EnrollmentReferences(
            students={norm(code): uid for code, uid in results["students"] if code},
            # the most recent section wins when a name repeats across semesters
            sections={
                _section_key(code, name): sid for code, name, sid in results["sections"]
            },
            existing={f"{sid}|{uid}" for sid, uid in results["existing"]},
        )
        logger.debug(
            f"Prefetched {len(refs.students)} students, {len(refs.sections)} sections, "
            f"{len(refs.existing)} enrollments for inst {inst_id}"
        )
        return refs

    def occurrence_key(self, parsed: ParsedRow, section_id: Optional[int] = None, **_: Any) -> Optional[str]:
        row = parsed.model
        if row is None:
            return None
        if row.has_section:
            section = _section_key(row.subject_code, row.section_name)
        else:
            section = f"#{section_id}"
        return f"{section}|{norm(row.student_code)}"

    def _resolve_section(
        self, row: EnrollmentRow, refs: EnrollmentReferences, section_id: Optional[int]
    ):
        """Return ``(section_id, error)``."""
        if row.has_section:
            if not row.subject_code or not row.section_name:
                return None, "Subject code and section must be given together"
            found = refs.sections.get(_section_key(row.subject_code, row.section_name))
            if found is None:
                return None, (
                    f'Section "{row.section_name}" of subject "{row.subject_code}" '
                    "does not exist"
                )
            return found, None
        if section_id is None:
            return None, "No section given in the row or the request"
        return section_id, None

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: EnrollmentReferences,
        first_seen: Dict[str, int],
        section_id: Optional[int] = None,
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings = []
        is_duplicate = False
        row = parsed.model

        if row is not None:
            student_id = prefetched.students.get(norm(row.student_code))
            if student_id is None:
                errors.append(f'Student code "{row.student_code}" does not exist')

            target_section, section_error = self._resolve_section(row, prefetched, section_id)
            if section_error:
                errors.append(section_error)

            if student_id is not None and target_section is not None and (
                f"{target_section}|{student_id}" in prefetched.existing
            ):
                warnings.append(
                    f'Student "{row.student_code}" is already enrolled in this section '
                    "(will be skipped)"
                )
                is_duplicate = True
            elif first_seen.get(self.occurrence_key(parsed, section_id=section_id)) != parsed.index:
                errors.append("Duplicate of an earlier row in this file")

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
        prefetched: EnrollmentReferences,
        outcome: SaveOutcome,
        inst_id: int,
        section_id: Optional[int] = None,
        **_: Any,
    ) -> None:
        row = parsed.model
        student_id = prefetched.students.get(norm(row.student_code))
        if student_id is None:
            raise ImportSaveError(
                f'Student code "{row.student_code}" not found', row=parsed.row_number
            )
        target_section, section_error = self._resolve_section(row, prefetched, section_id)
        if section_error:
            raise ImportSaveError(section_error, row=parsed.row_number)

        key = f"{target_section}|{student_id}"
        if key in prefetched.existing:
            logger.debug(f"Skipping existing enrollment {key}")
            outcome.skipped_count += 1
            return

        # a soft-deleted enrollment for the same pair is re-activated
        stmt = (
            self.dialect_insert(Enrollment)
            .values(section_id=target_section, student_id=student_id, flag_valid=True)
            .on_conflict_do_update(
                index_elements=["section_id", "student_id"],
                set_={"flag_valid": True, "enrolled_at": func.now()},
            )
        )
        await self.session.execute(stmt)
        prefetched.existing.add(key)
        outcome.count += 1

