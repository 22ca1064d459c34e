# backend/linklian/api/v1/routes/import_subject.py
"""Bulk subject catalogue import."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....api.deps import db_session, session_factory, token_service, uploaded_rows
from ....schemas.imports import ImportValidationResponse, SubjectSaveResponse
from ....services.imports import SubjectImporter, ValidationTokenService

router = APIRouter()


@router.post("/validate", response_model=ImportValidationResponse)
async def validate_subjects(
    inst_id: int = Form(..., alias="instId"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    factory: Optional[async_sessionmaker] = Depends(session_factory),
    tokens: ValidationTokenService = Depends(token_service),
):
    return await SubjectImporter(db, factory, tokens).validate(inst_id, rows)


@router.post("/save", response_model=SubjectSaveResponse)
async def save_subjects(
    inst_id: int = Form(..., alias="instId"),
    validation_token: Optional[str] = Form(None, alias="validationToken"),
    rows: List[Dict[str, Any]] = Depends(uploaded_rows),
    db: AsyncSession = Depends(db_session),
    tokens: ValidationTokenService = Depends(token_service),
):
    result = await SubjectImporter(db, token_service=tokens).save(inst_id, rows, validation_token)
    message = f"Imported {result.count} subjects"
    if result.new_learning_areas:
        message += f" ({len(result.new_learning_areas)} learning areas created)"
    return SubjectSaveResponse(message=message, data=result)
