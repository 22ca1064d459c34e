# backend/linklian/api/v1/routes/import_teacher.py
"""Bulk teacher account import."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....api.deps import db_session, session_factory, token_service, uploaded_rows
from ....schemas.imports import ImportSaveResponse, ImportValidationResponse
from ....services.imports import TeacherImporter, ValidationTokenService, parse_inst_type

router = APIRouter()


@router.post("/validate", response_model=ImportValidationResponse)
async def validate_teachers(
    inst_id: int = Form(..., alias="instId"),
    inst_type: Optional[str] = Form(None, alias="instType"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    factory: Optional[async_sessionmaker] = Depends(session_factory),
    tokens: ValidationTokenService = Depends(token_service),
):
    importer = TeacherImporter(db, factory, tokens)
    return await importer.validate(inst_id, rows, inst_type=parse_inst_type(inst_type))


@router.post("/save", response_model=ImportSaveResponse)
async def save_teachers(
    inst_id: int = Form(..., alias="instId"),
    inst_type: Optional[str] = Form(None, alias="instType"),
    validation_token: Optional[str] = Form(None, alias="validationToken"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    tokens: ValidationTokenService = Depends(token_service),
):
    importer = TeacherImporter(db, token_service=tokens)
    result = await importer.save(
        inst_id, rows, validation_token, inst_type=parse_inst_type(inst_type)
    )
    return ImportSaveResponse(message=f"Imported {result.count} teachers", data=result)
