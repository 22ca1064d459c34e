# backend/linklian/api/v1/routes/import_enrollment.py
"""Bulk enrollment import: validate a spreadsheet, then save it with the token."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....api.deps import db_session, session_factory, token_service, uploaded_rows
from ....schemas.imports import ImportSaveResponse, ImportValidationResponse
from ....services.imports import EnrollmentImporter, ValidationTokenService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/validate", response_model=ImportValidationResponse)
async def validate_enrollment(
    inst_id: int = Form(..., alias="instId"),
    section_id: Optional[int] = Form(None, alias="sectionId"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    factory: Optional[async_sessionmaker] = Depends(session_factory),
    tokens: ValidationTokenService = Depends(token_service),
):
    """Check every row and return a token when the whole file is saveable."""
    importer = EnrollmentImporter(db, factory, tokens)
    return await importer.validate(inst_id, rows, section_id=section_id)


@router.post("/save", response_model=ImportSaveResponse)
async def save_enrollment(
    inst_id: int = Form(..., alias="instId"),
    section_id: Optional[int] = Form(None, alias="sectionId"),
    validation_token: Optional[str] = Form(None, alias="validationToken"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    tokens: ValidationTokenService = Depends(token_service),
):
    importer = EnrollmentImporter(db, token_service=tokens)
    result = await importer.save(inst_id, rows, validation_token, section_id=section_id)
    return ImportSaveResponse(
        message=f"Imported {result.count} enrollments",
        data=result,
    )
