# backend/linklian/services/imports/base.py
"""
Shared two-phase import flow: validate a parsed file, then commit it.

Subclasses provide the reference data prefetch, the per-row verdict and the
per-row write. ``validate`` never raises for row problems; they are returned
as data. ``save`` runs in a single transaction and rolls everything back on
the first fatal error.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...core.exceptions import (
    AppError,
    ImportSaveError,
    NotFoundError,
    ValidationTokenRequiredError,
)
from ...models import Institution
from ...schemas.imports import (
    ImportRow,
    ImportSaveResult,
    ImportValidationData,
    ImportValidationResponse,
    ValidatedRow,
    ValidationSummary,
)
from .batching import chunk, process_batches_parallel
from .constants import (
    DUPLICATE_SKIPPED_REASON,
    IMPORT_BATCH_SIZE,
    IMPORT_MAX_CONCURRENT_BATCHES,
    ImportType,
)
from .validation_token import ImportValidationPayload, ValidationTokenService

logger = logging.getLogger(__name__)


@dataclass
class ParsedRow:
    index: int
    raw: Dict[str, Any]
    model: Optional[ImportRow]
    errors: List[str] = field(default_factory=list)

    @property
    def row_number(self) -> int:
        # 1-based, plus the header line
        return self.index + 2


@dataclass
class SaveOutcome:
    count: int = 0
    skipped_count: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


def first_occurrences(keys: Sequence[Sequence[Optional[str]]]) -> Dict[str, int]:
    """Map each key to the index of the first row carrying it.

    ``keys[i]`` holds every key of row ``i``; a row may carry several
    (account imports key on both email and code).
    """
    first: Dict[str, int] = {}
    for index, row_keys in enumerate(keys):
        for key in row_keys:
            if key is not None and key not in first:
                first[key] = index
    return first


def norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class BaseImporter:
    """Template for an import kind.

    ``session`` is used for scope checks and the whole commit. When a
    ``session_factory`` is given, validate-time prefetch queries run
    concurrently, each in a session of its own.
    """

    import_type: ImportType
    row_model: type

    def __init__(
        self,
        session: AsyncSession,
        session_factory: Optional[async_sessionmaker] = None,
        token_service: Optional[ValidationTokenService] = None,
    ):
        self.session = session
        self.session_factory = session_factory
        self.tokens = token_service or ValidationTokenService()

    # --- hooks ------------------------------------------------------------

    async def check_scope(self, inst_id: int, **scope: Any) -> None:
        """Raise NotFoundError when a scope id does not belong to the institution."""

    async def prefetch(self, inst_id: int, parallel: bool, **scope: Any) -> Any:
        raise NotImplementedError

    def parse(self, raw: Dict[str, Any], **scope: Any) -> Tuple[Optional[ImportRow], List[str]]:
        return self.row_model.parse_row(raw)

    def occurrence_key(self, parsed: ParsedRow, **scope: Any) -> Optional[str]:
        """Composite key used to spot repeated rows inside one file."""
        raise NotImplementedError

    def occurrence_keys(self, parsed: ParsedRow, **scope: Any) -> Tuple[Optional[str], ...]:
        return (self.occurrence_key(parsed, **scope),)

    def validate_row(
        self,
        parsed: ParsedRow,
        prefetched: Any,
        first_seen: Dict[str, int],
        **scope: Any,
    ) -> ValidatedRow:
        raise NotImplementedError

    async def save_row(
        self,
        parsed: ParsedRow,
        prefetched: Any,
        outcome: SaveOutcome,
        inst_id: int,
        **scope: Any,
    ) -> None:
        raise NotImplementedError

    def build_result(self, outcome: SaveOutcome) -> ImportSaveResult:
        return ImportSaveResult(
            count=outcome.count,
            skipped_count=outcome.skipped_count,
            skipped_reason=DUPLICATE_SKIPPED_REASON if outcome.skipped_count else None,
        )

    def token_scope(self, **scope: Any) -> Dict[str, Any]:
        """Scope ids bound into the validation token."""
        return {}

    # --- shared flow --------------------------------------------------------

    def _parse_all(self, rows: List[Dict[str, Any]], **scope: Any) -> List[ParsedRow]:
        parsed = []
        for index, raw in enumerate(rows):
            model, errors = self.parse(raw, **scope)
            parsed.append(ParsedRow(index=index, raw=raw, model=model, errors=errors))
        return parsed

    async def _run_queries(self, queries: Dict[str, Any], parallel: bool) -> Dict[str, list]:
        """Execute ``{name: select}``; concurrently on fresh sessions when allowed."""
        if parallel and self.session_factory is not None:

            async def run(stmt):
                async with self.session_factory() as session:
                    return (await session.execute(stmt)).all()

            results = await asyncio.gather(*(run(stmt) for stmt in queries.values()))
            return dict(zip(queries.keys(), results))

        return {name: (await self.session.execute(stmt)).all() for name, stmt in queries.items()}

    async def validate(
        self, inst_id: int, rows: List[Dict[str, Any]], **scope: Any
    ) -> ImportValidationResponse:
        await self.check_scope(inst_id, **scope)
        prefetched = await self.prefetch(inst_id, parallel=True, **scope)

        parsed = self._parse_all(rows, **scope)
        first_seen = first_occurrences([self.occurrence_keys(p, **scope) for p in parsed])

        async def validate_batch(batch: List[ParsedRow]) -> List[ValidatedRow]:
            return [self.validate_row(p, prefetched, first_seen, **scope) for p in batch]

        validated = await process_batches_parallel(
            chunk(parsed, IMPORT_BATCH_SIZE),
            validate_batch,
            IMPORT_MAX_CONCURRENT_BATCHES,
        )
        validated.sort(key=lambda v: v.row)

        summary = ValidationSummary.from_rows(validated)
        token = None
        if summary.error_count == 0 and summary.valid_count > 0:
            token = self.tokens.issue(
                ImportValidationPayload(
                    inst_id=inst_id,
                    type=self.import_type,
                    valid_count=summary.valid_count,
                    duplicate_count=summary.duplicate_count,
                    **self.token_scope(**scope),
                ),
                rows,
            )

        logger.info(
            f"Validated {self.import_type.value} import for inst {inst_id}: "
            f"{summary.total} rows, {summary.valid_count} valid, "
            f"{summary.error_count} errors, {summary.duplicate_count} duplicates"
        )
        return ImportValidationResponse(
            data=ImportValidationData(summary=summary, validated_data=validated),
            validation_token=token,
        )

    async def save(
        self,
        inst_id: int,
        rows: List[Dict[str, Any]],
        validation_token: Optional[str],
        **scope: Any,
    ) -> ImportSaveResult:
        if not validation_token:
            raise ValidationTokenRequiredError()

        self.tokens.verify(
            validation_token, self.import_type, inst_id, rows, **self.token_scope(**scope)
        )

        outcome = SaveOutcome()
        try:
            institution = await self.session.get(Institution, inst_id)
            if institution is None or not institution.flag_valid:
                raise NotFoundError("Institution", inst_id)
            await self.check_scope(inst_id, **scope)

            prefetched = await self.prefetch(inst_id, parallel=False, **scope)
            parsed = self._parse_all(rows, **scope)
            logger.debug(f"Saving {len(parsed)} {self.import_type.value} rows")

            for row in parsed:
                if row.model is None:
                    raise ImportSaveError(
                        f"Row {row.row_number} is not valid: {'; '.join(row.errors)}",
                        row=row.row_number,
                    )
                await self.save_row(row, prefetched, outcome, inst_id, **scope)

            await self.session.commit()
        except AppError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Saving {self.import_type.value} import for inst {inst_id} failed: {e}",
                exc_info=True,
            )
            raise ImportSaveError(cause=e).with_context(import_type=self.import_type.value) from e

        logger.info(
            f"Saved {self.import_type.value} import for inst {inst_id}: "
            f"{outcome.count} written, {outcome.skipped_count} skipped"
        )
        return self.build_result(outcome)

    # --- write helpers ------------------------------------------------------

    def dialect_insert(self, model):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model.__table__)
        if dialect == "sqlite":
            return sqlite.insert(model.__table__)
        raise ImportSaveError(f"Unsupported database dialect '{dialect}'")

    async def insert_or_get_id(
        self,
        model,
        id_column,
        values: Dict[str, Any],
        lookup: Sequence[Any],
        row: Optional[int] = None,
    ) -> Tuple[int, bool]:
        """
        Insert ``values`` unless a unique index already holds them, then
        re-select. Returns ``(id, created)``.
        """
        stmt = (
            self.dialect_insert(model)
            .values(**values)
            .on_conflict_do_nothing()
            .returning(model.__table__.c[id_column.key])
        )
        new_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if new_id is not None:
            return new_id, True

        existing = (
            await self.session.execute(select(id_column).where(*lookup).limit(1))
        ).scalar_one_or_none()
        if existing is None:
            raise ImportSaveError(
                f"Failed to create or find {model.__tablename__} {values}", row=row
            )
        return existing, False
