# backend/linklian/api/deps.py
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import Depends, File, Header, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..core.exceptions import SpreadsheetError, UnauthorizedError
from ..database import get_db, get_session_factory
from ..services.imports import ValidationTokenService, parse_spreadsheet

# Configure logging
logger = logging.getLogger(__name__)


async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get a database session."""
    async for session in get_db():
        yield session


def session_factory() -> Optional[async_sessionmaker]:
    """Session factory for concurrent reference-data reads during validation."""
    return get_session_factory()


def token_service(settings: Settings = Depends(get_settings)) -> ValidationTokenService:
    return ValidationTokenService(secret_key=settings.import_token_secret)


async def current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """
    Caller identity taken from the ``x-user-id`` header.

    Temporary until comment routes move behind session authentication.
    """
    try:
        user_id = int(x_user_id) if x_user_id else 0
    except ValueError:
        user_id = 0
    if user_id <= 0:
        logger.warning(f"Rejected request with x-user-id={x_user_id!r}")
        raise UnauthorizedError("Missing or invalid x-user-id header")
    return user_id


async def uploaded_rows(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    """Read the multipart ``file`` field into row dictionaries."""
    if file is None:
        raise SpreadsheetError("No file uploaded")
    try:
        content = await file.read()
    finally:
        await file.close()

    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise SpreadsheetError(
            f"File exceeds the maximum size of {settings.MAX_UPLOAD_SIZE} bytes"
        )
    return parse_spreadsheet(content, file.filename, settings.ALLOWED_EXTENSIONS)
