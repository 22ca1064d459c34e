# backend/linklian/services/imports/program.py
"""
Program import: builds the curriculum tree of an institution.

Schools import ``study plan -> class`` pairs, universities import
``faculty -> department -> major`` triples. Parent nodes are created on
first use and reused afterwards; a full combination that already exists is
skipped as a duplicate.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.orm import aliased

from ...core.exceptions import BadRequestError
from ...models import InstitutionType, Program, ProgramType, TreeType
from ...schemas.imports import (
    ImportRow,
    ProgramSaveResult,
    SchoolProgramRow,
    UniversityProgramRow,
    ValidatedRow,
)
from .base import BaseImporter, ParsedRow, SaveOutcome, norm
from .constants import DUPLICATE_SKIPPED_REASON, ImportType

logger = logging.getLogger(__name__)

INST_TYPE_ALIASES = {
    "school": InstitutionType.school,
    "university": InstitutionType.university,
    "uni": InstitutionType.university,
}


def parse_inst_type(value: Optional[str]) -> InstitutionType:
    inst_type = INST_TYPE_ALIASES.get(norm(value))
    if inst_type is None:
        raise BadRequestError(
            f"instType must be one of: school, university (got {value!r})"
        )
    return inst_type


@dataclass
class ProgramReferences:
    # root name -> program_id (study plans or faculties)
    roots: Dict[str, int] = field(default_factory=dict)
    # "faculty|department" -> program_id
    twigs: Dict[str, int] = field(default_factory=dict)
    # "plan|class" or "faculty|department|major"
    existing: Set[str] = field(default_factory=set)


def _valid_nodes(inst_id: int, program_type: ProgramType, node=Program):
    return (
        node.inst_id == inst_id,
        node.program_type == program_type.value,
        node.flag_valid.is_(True),
    )


class ProgramImporter(BaseImporter):
    import_type = ImportType.PROGRAM

    def token_scope(self, inst_type: InstitutionType = InstitutionType.school, **_: Any) -> Dict[str, Any]:
        return {"inst_type": inst_type.value}

    def parse(self, raw: Dict[str, Any], inst_type: InstitutionType = InstitutionType.school, **_: Any):
        model = SchoolProgramRow if inst_type == InstitutionType.school else UniversityProgramRow
        return model.parse_row(raw)

    @staticmethod
    def _path(row: ImportRow) -> Tuple[str, ...]:
        if isinstance(row, SchoolProgramRow):
            return (row.program_name, row.class_name)
        return (row.faculty, row.department, row.major)

    def occurrence_key(self, parsed: ParsedRow, **_: Any) -> Optional[str]:
        if parsed.model is None:
            return None
        return "|".join(norm(part) for part in self._path(parsed.model))

    async def prefetch(
        self, inst_id: int, parallel: bool, inst_type: InstitutionType = InstitutionType.school, **_: Any
    ) -> ProgramReferences:
        if inst_type == InstitutionType.school:
            plan, cls = aliased(Program), aliased(Program)
            queries = {
                "roots": select(Program.program_name, Program.program_id).where(
                    *_valid_nodes(inst_id, ProgramType.study_plan),
                    Program.parent_id.is_(None),
                ),
                "existing": select(plan.program_name, cls.program_name)
                .join(plan, cls.parent_id == plan.program_id)
                .where(
                    *_valid_nodes(inst_id, ProgramType.class_, cls),
                    plan.flag_valid.is_(True),
                ),
            }
        else:
            fac, dept, major = aliased(Program), aliased(Program), aliased(Program)
            queries = {
                "roots": select(Program.program_name, Program.program_id).where(
                    *_valid_nodes(inst_id, ProgramType.faculty),
                    Program.parent_id.is_(None),
                ),
                "twigs": select(fac.program_name, dept.program_name, dept.program_id)
                .join(fac, dept.parent_id == fac.program_id)
                .where(
                    *_valid_nodes(inst_id, ProgramType.department, dept),
                    fac.flag_valid.is_(True),
                ),
                "existing": select(
                    fac.program_name, dept.program_name, major.program_name
                )
                .join(dept, major.parent_id == dept.program_id)
                .join(fac, dept.parent_id == fac.program_id)
                .where(
                    *_valid_nodes(inst_id, ProgramType.major, major),
                    dept.flag_valid.is_(True),
                    fac.flag_valid.is_(True),
                ),
            }

        results = await self._run_queries(queries, parallel)
        return ProgramReferences(
            roots={norm(name): pid for name, pid in results["roots"]},
            twigs={
                f"{norm(f)}|{norm(d)}": pid for f, d, pid in results.get("twigs", [])
            },
            existing={"|".join(norm(part) for part in names) for names in results["existing"]},
        )

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: ProgramReferences,
        first_seen: Dict[str, int],
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings: List[str] = []
        is_duplicate = False

        if parsed.model is not None:
            path = self._path(parsed.model)
            key = self.occurrence_key(parsed)
            if key in prefetched.existing:
                warnings.append(f'"{" / ".join(path)}" already exists (will be skipped)')
                is_duplicate = True
            elif first_seen.get(key) != parsed.index:
                errors.append("Duplicate of an earlier row in this file")
            else:
                if norm(path[0]) not in prefetched.roots:
                    warnings.append(f'"{path[0]}" does not exist yet (will be created)')
                if len(path) == 3 and f"{norm(path[0])}|{norm(path[1])}" not in prefetched.twigs:
                    warnings.append(
                        f'Department "{path[1]}" of "{path[0]}" does not exist yet '
                        "(will be created)"
                    )

        return ValidatedRow(
            row=parsed.row_number,
            data=parsed.raw,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            is_duplicate=is_duplicate,
        )

    async def _node(
        self,
        inst_id: int,
        name: str,
        program_type: ProgramType,
        tree_type: TreeType,
        parent_id: Optional[int],
        row: int,
    ) -> Tuple[int, bool]:
        parent_filter = (
            Program.parent_id.is_(None) if parent_id is None else Program.parent_id == parent_id
        )
        return await self.insert_or_get_id(
            Program,
            Program.program_id,
            {
                "inst_id": inst_id,
                "program_name": name,
                "program_type": program_type.value,
                "tree_type": tree_type.value,
                "parent_id": parent_id,
                "flag_valid": True,
            },
            lookup=(
                *_valid_nodes(inst_id, program_type),
                Program.program_name == name,
                parent_filter,
            ),
            row=row,
        )

    async def save_row(
        self,
        parsed: ParsedRow,
        prefetched: ProgramReferences,
        outcome: SaveOutcome,
        inst_id: int,
        inst_type: InstitutionType = InstitutionType.school,
        **_: Any,
    ) -> None:
        path = self._path(parsed.model)
        key = self.occurrence_key(parsed)
        if key in prefetched.existing:
            logger.debug(f"Skipping existing program combination {key}")
            outcome.skipped_count += 1
            return

        row_no = parsed.row_number
        created_parents = outcome.extra.setdefault("created_parents", 0)

        root_type = ProgramType.study_plan if inst_type == InstitutionType.school else ProgramType.faculty
        root_key = norm(path[0])
        parent_id = prefetched.roots.get(root_key)
        if parent_id is None:
            parent_id, created = await self._node(inst_id, path[0], root_type, TreeType.root, None, row_no)
            prefetched.roots[root_key] = parent_id
            created_parents += created

        if inst_type == InstitutionType.university:
            twig_key = f"{root_key}|{norm(path[1])}"
            dept_id = prefetched.twigs.get(twig_key)
            if dept_id is None:
                dept_id, created = await self._node(
                    inst_id, path[1], ProgramType.department, TreeType.twig, parent_id, row_no
                )
                prefetched.twigs[twig_key] = dept_id
                created_parents += created
            parent_id = dept_id
            leaf_type = ProgramType.major
        else:
            leaf_type = ProgramType.class_

        outcome.extra["created_parents"] = created_parents

        leaf = (
            self.dialect_insert(Program)
            .values(
                inst_id=inst_id,
                program_name=path[-1],
                program_type=leaf_type.value,
                tree_type=TreeType.leaf.value,
                parent_id=parent_id,
                flag_valid=True,
            )
            .on_conflict_do_nothing()
            .returning(Program.__table__.c.program_id)
        )
        leaf_id = (await self.session.execute(leaf)).scalar_one_or_none()
        prefetched.existing.add(key)
        if leaf_id is None:
            # another import created the same leaf meanwhile
            logger.debug(f"Program leaf {key} already present, skipped")
            outcome.skipped_count += 1
            return
        outcome.count += 1

    def build_result(self, outcome: SaveOutcome) -> ProgramSaveResult:
        return ProgramSaveResult(
            count=outcome.count,
            skipped_count=outcome.skipped_count,
            skipped_reason=DUPLICATE_SKIPPED_REASON if outcome.skipped_count else None,
            created_parents=outcome.extra.get("created_parents", 0),
        )
