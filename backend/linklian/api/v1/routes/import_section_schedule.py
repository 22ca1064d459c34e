# backend/linklian/api/v1/routes/import_section_schedule.py
"""Bulk section and weekly schedule import for a semester."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....api.deps import db_session, session_factory, token_service, uploaded_rows
from ....schemas.imports import ImportValidationResponse, SectionScheduleSaveResponse
from ....services.imports import SectionScheduleImporter, ValidationTokenService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/validate", response_model=ImportValidationResponse)
async def validate_section_schedule(
    inst_id: int = Form(..., alias="instId"),
    semester_id: int = Form(..., alias="semesterId"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    factory: Optional[async_sessionmaker] = Depends(session_factory),
    tokens: ValidationTokenService = Depends(token_service),
):
    importer = SectionScheduleImporter(db, factory, tokens)
    return await importer.validate(inst_id, rows, semester_id=semester_id)


@router.post("/save", response_model=SectionScheduleSaveResponse)
async def save_section_schedule(
    inst_id: int = Form(..., alias="instId"),
    semester_id: int = Form(..., alias="semesterId"),
    validation_token: Optional[str] = Form(None, alias="validationToken"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    tokens: ValidationTokenService = Depends(token_service),
):
    """Create the sections, schedules and educators of a validated file."""
    importer = SectionScheduleImporter(db, token_service=tokens)
    result = await importer.save(inst_id, rows, validation_token, semester_id=semester_id)
    return SectionScheduleSaveResponse(
        message=f"Imported {result.count} section schedules",
        data=result,
    )
