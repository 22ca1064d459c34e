# backend/linklian/services/imports/section_schedule.py
"""
Section-schedule import for one semester.

Each row describes one weekly meeting of a section: subject, section name,
day, start/end time, building and room, and the educators. Sections that
already exist in the semester are skipped. Buildings and rooms that do not
exist yet are created. Several rows may describe meetings of the same new
section; the section is created once and every row adds a schedule.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import insert, select

from ...core.exceptions import ImportSaveError, NotFoundError
from ...models import (
    Building,
    DayOfWeek,
    EducatorPosition,
    LearningArea,
    RoomLocation,
    Section,
    SectionEducator,
    SectionSchedule,
    Semester,
    Subject,
    UserSys,
)
from ...schemas.imports import (
    SectionScheduleRow,
    SectionScheduleSaveResult,
    ValidatedRow,
)
from .base import BaseImporter, ParsedRow, SaveOutcome, norm
from .constants import DUPLICATE_SKIPPED_REASON, ImportType

logger = logging.getLogger(__name__)

DAY_OF_WEEK_MAP: Dict[str, DayOfWeek] = {
    "จันทร์": DayOfWeek.MONDAY,
    "อังคาร": DayOfWeek.TUESDAY,
    "พุธ": DayOfWeek.WEDNESDAY,
    "พฤหัสบดี": DayOfWeek.THURSDAY,
    "พฤหัส": DayOfWeek.THURSDAY,
    "ศุกร์": DayOfWeek.FRIDAY,
    "เสาร์": DayOfWeek.SATURDAY,
    "อาทิตย์": DayOfWeek.SUNDAY,
}
for _day in list(DayOfWeek)[1:]:
    DAY_OF_WEEK_MAP[_day.name.lower()] = _day
    DAY_OF_WEEK_MAP[_day.name.lower()[:3]] = _day


def map_day_of_week(day: Optional[str]) -> Optional[DayOfWeek]:
    return DAY_OF_WEEK_MAP.get(norm(day))


@dataclass
class BuildingRef:
    id: int
    building_no: str


@dataclass
class ScheduleReferences:
    subjects: Dict[str, int] = field(default_factory=dict)
    buildings: Dict[str, BuildingRef] = field(default_factory=dict)
    # "building_name|room_number" -> room_location_id
    rooms: Dict[str, int] = field(default_factory=dict)
    users: Dict[str, int] = field(default_factory=dict)
    # "subject_code|section_name" already in the semester
    existing_sections: Set[str] = field(default_factory=set)
    # sections created by the running save
    created_sections: Dict[str, int] = field(default_factory=dict)


def _section_key(row: SectionScheduleRow) -> str:
    return f"{norm(row.subject_code)}|{norm(row.section_name)}"


def _room_key(building: str, room: str) -> str:
    return f"{norm(building)}|{norm(room)}"


class SectionScheduleImporter(BaseImporter):
    import_type = ImportType.SECTION_SCHEDULE
    row_model = SectionScheduleRow

    def token_scope(self, semester_id: Optional[int] = None, **_: Any) -> Dict[str, Any]:
        return {"semester_id": semester_id}

    async def check_scope(self, inst_id: int, semester_id: Optional[int] = None, **_: Any) -> None:
        semester = (
            await self.session.execute(
                select(Semester.semester_id).where(
                    Semester.semester_id == semester_id,
                    Semester.inst_id == inst_id,
                    Semester.flag_valid.is_(True),
                )
            )
        ).scalar_one_or_none()
        if semester is None:
            raise NotFoundError(
                "Semester",
                semester_id,
                message=f"Semester {semester_id} not found in institution {inst_id}",
            )

    async def prefetch(
        self, inst_id: int, parallel: bool, semester_id: Optional[int] = None, **_: Any
    ) -> ScheduleReferences:
        queries = {
            "subjects": select(Subject.subject_code, Subject.subject_id)
            .join(LearningArea, Subject.learning_area_id == LearningArea.learning_area_id)
            .where(LearningArea.inst_id == inst_id, Subject.flag_valid.is_(True)),
            "buildings": select(
                Building.building_name, Building.building_id, Building.building_no
            ).where(Building.inst_id == inst_id, Building.flag_valid.is_(True)),
            "rooms": select(
                Building.building_name,
                RoomLocation.room_number,
                RoomLocation.room_location_id,
            )
            .join(Building, RoomLocation.building_id == Building.building_id)
            .where(
                Building.inst_id == inst_id,
                Building.flag_valid.is_(True),
                RoomLocation.flag_valid.is_(True),
            ),
            "users": select(UserSys.code, UserSys.user_sys_id).where(
                UserSys.inst_id == inst_id, UserSys.flag_valid.is_(True)
            ),
            "sections": select(Subject.subject_code, Section.section_name)
            .join(Subject, Section.subject_id == Subject.subject_id)
            .join(LearningArea, Subject.learning_area_id == LearningArea.learning_area_id)
            .where(
                LearningArea.inst_id == inst_id,
                Section.semester_id == semester_id,
                Section.flag_valid.is_(True),
            ),
        }
        results = await self._run_queries(queries, parallel)

        return ScheduleReferences(
            subjects={norm(code): sid for code, sid in results["subjects"]},
            buildings={
                norm(name): BuildingRef(bid, no or "")
                for name, bid, no in results["buildings"]
            },
            rooms={
                _room_key(b, r): rid for b, r, rid in results["rooms"]
            },
            users={norm(code): uid for code, uid in results["users"] if code},
            existing_sections={
                f"{norm(code)}|{norm(name)}" for code, name in results["sections"]
            },
        )

    def occurrence_key(self, parsed: ParsedRow, **_: Any) -> Optional[str]:
        # a row only duplicates another when every cell matches
        return json.dumps(parsed.raw, ensure_ascii=False, sort_keys=True, default=str)

    @staticmethod
    def _educators(row: SectionScheduleRow) -> List[Tuple[str, Optional[str], EducatorPosition]]:
        return [
            ("Main teacher", row.main_teacher_code, EducatorPosition.main_teacher),
            ("Co-teacher", row.co_teacher_code, EducatorPosition.co_teacher),
            ("TA", row.ta_code, EducatorPosition.ta),
        ]

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: ScheduleReferences,
        first_seen: Dict[str, int],
        **_: Any,
    ) -> ValidatedRow:
        errors = list(parsed.errors)
        warnings: List[str] = []
        is_duplicate = False
        row: Optional[SectionScheduleRow] = parsed.model

        if row is not None:
            if norm(row.subject_code) not in prefetched.subjects:
                errors.append(f'Subject code "{row.subject_code}" does not exist')

            building = prefetched.buildings.get(norm(row.building))
            if building is None:
                warnings.append(
                    f'Building "{row.building_no} - {row.building}" does not exist yet '
                    "(will be created)"
                )
            elif building.building_no and building.building_no != row.building_no:
                errors.append(
                    f'Building "{row.building}" already exists with number '
                    f'"{building.building_no}" but the file says "{row.building_no}"'
                )

            if _room_key(row.building, row.classroom) not in prefetched.rooms:
                warnings.append(
                    f'Room "{row.classroom}" in building "{row.building}" does not exist '
                    "yet (will be created)"
                )

            for label, code, _position in self._educators(row):
                if code and norm(code) not in prefetched.users:
                    errors.append(f'{label} code "{code}" does not exist')

            if map_day_of_week(row.day) is None:
                errors.append(f'Day "{row.day}" is not valid')

            if row.start_time >= row.end_time:
                errors.append("End time must be after start time")

            if _section_key(row) in prefetched.existing_sections:
                warnings.append(
                    f'Section "{row.section_name}" of subject "{row.subject_code}" already '
                    "exists in this semester (will be skipped)"
                )
                is_duplicate = True
            elif first_seen.get(self.occurrence_key(parsed)) != parsed.index:
                errors.append("This row is identical to an earlier row in this file")

        return ValidatedRow(
            row=parsed.row_number,
            data=parsed.raw,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            is_duplicate=is_duplicate,
        )

    async def _building_id(self, row: SectionScheduleRow, refs: ScheduleReferences, outcome: SaveOutcome, inst_id: int, row_no: int) -> int:
        key = norm(row.building)
        existing = refs.buildings.get(key)
        if existing is not None:
            return existing.id

        building_id, created = await self.insert_or_get_id(
            Building,
            Building.building_id,
            {
                "inst_id": inst_id,
                "building_name": row.building,
                "building_no": row.building_no,
                "flag_valid": True,
            },
            lookup=(
                Building.inst_id == inst_id,
                Building.building_name == row.building,
                Building.flag_valid.is_(True),
            ),
            row=row_no,
        )
        refs.buildings[key] = BuildingRef(building_id, row.building_no)
        if created:
            outcome.extra.setdefault("new_buildings", []).append(row.building)
        return building_id

    async def _room_id(self, row: SectionScheduleRow, building_id: int, refs: ScheduleReferences, outcome: SaveOutcome, row_no: int) -> int:
        key = _room_key(row.building, row.classroom)
        room_id = refs.rooms.get(key)
        if room_id is not None:
            return room_id

        room_id, created = await self.insert_or_get_id(
            RoomLocation,
            RoomLocation.room_location_id,
            {
                "building_id": building_id,
                "room_number": row.classroom,
                "floor": "0",
                "flag_valid": True,
            },
            lookup=(
                RoomLocation.building_id == building_id,
                RoomLocation.room_number == row.classroom,
                RoomLocation.flag_valid.is_(True),
            ),
            row=row_no,
        )
        refs.rooms[key] = room_id
        if created:
            outcome.extra.setdefault("new_rooms", []).append(f"{row.building} {row.classroom}")
        return room_id

    async def save_row(
        self,
        parsed: ParsedRow,
        prefetched: ScheduleReferences,
        outcome: SaveOutcome,
        inst_id: int,
        semester_id: Optional[int] = None,
        **_: Any,
    ) -> None:
        row: SectionScheduleRow = parsed.model
        row_no = parsed.row_number
        section_key = _section_key(row)
        if section_key in prefetched.existing_sections:
            logger.debug(f"Skipping existing section {section_key}")
            outcome.skipped_count += 1
            return

        subject_id = prefetched.subjects.get(norm(row.subject_code))
        if subject_id is None:
            raise ImportSaveError(f'Subject code "{row.subject_code}" not found', row=row_no)
        day = map_day_of_week(row.day)
        if day is None:
            raise ImportSaveError(f'Day "{row.day}" is not valid', row=row_no)

        building_id = await self._building_id(row, prefetched, outcome, inst_id, row_no)
        room_id = await self._room_id(row, building_id, prefetched, outcome, row_no)

        section_id = prefetched.created_sections.get(section_key)
        if section_id is None:
            section_id = (
                await self.session.execute(
                    insert(Section)
                    .values(
                        subject_id=subject_id,
                        semester_id=semester_id,
                        section_name=row.section_name,
                        flag_valid=True,
                    )
                    .returning(Section.section_id)
                )
            ).scalar_one()
            prefetched.created_sections[section_key] = section_id

        await self.session.execute(
            insert(SectionSchedule).values(
                section_id=section_id,
                day_of_week=int(day),
                start_time=time.fromisoformat(row.start_time),
                end_time=time.fromisoformat(row.end_time),
                room_location_id=room_id,
                flag_valid=True,
            )
        )

        for label, code, position in self._educators(row):
            if not code:
                continue
            educator_id = prefetched.users.get(norm(code))
            if educator_id is None:
                raise ImportSaveError(f'{label} code "{code}" not found', row=row_no)
            await self.session.execute(
                self.dialect_insert(SectionEducator)
                .values(
                    section_id=section_id,
                    educator_id=educator_id,
                    position=position.value,
                    flag_valid=True,
                )
                .on_conflict_do_nothing()
            )

        outcome.count += 1

    def build_result(self, outcome: SaveOutcome) -> SectionScheduleSaveResult:
        new_buildings = list(dict.fromkeys(outcome.extra.get("new_buildings", [])))
        new_rooms = list(dict.fromkeys(outcome.extra.get("new_rooms", [])))
        return SectionScheduleSaveResult(
            count=outcome.count,
            skipped_count=outcome.skipped_count,
            skipped_reason=DUPLICATE_SKIPPED_REASON if outcome.skipped_count else None,
            new_buildings=new_buildings or None,
            new_rooms=new_rooms or None,
        )
