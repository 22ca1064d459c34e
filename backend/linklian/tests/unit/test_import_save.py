# backend/linklian/tests/unit/test_import_save.py
"""
Unit tests for the commit flow of BaseImporter with a mocked session.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import OperationalError

from linklian.core.exceptions import (
    ImportSaveError,
    NotFoundError,
    ValidationTokenExpiredError,
    ValidationTokenRequiredError,
)
from linklian.services.imports import EnrollmentImporter, ImportType

ROWS = [{"student_code": "1001"}]


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.get = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    return mock_session


@pytest.fixture
def tokens():
    return MagicMock()


@pytest.fixture
def importer(session, tokens):
    return EnrollmentImporter(session, token_service=tokens)


@pytest.mark.asyncio
async def test_save_without_token_touches_nothing(importer, session, tokens):
    with pytest.raises(ValidationTokenRequiredError):
        await importer.save(1, ROWS, None, section_id=5)

    tokens.verify.assert_not_called()
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_rejected_token_stops_before_any_query(importer, session, tokens):
    tokens.verify.side_effect = ValidationTokenExpiredError()

    with pytest.raises(ValidationTokenExpiredError):
        await importer.save(1, ROWS, "expired-token", section_id=5)

    session.get.assert_not_called()
    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_token_checked_against_type_institution_and_section(importer, session, tokens):
    session.get.return_value = None

    with pytest.raises(NotFoundError):
        await importer.save(7, ROWS, "token", section_id=5)

    tokens.verify.assert_called_once_with(
        "token", ImportType.ENROLLMENT, 7, ROWS, section_id=5
    )


@pytest.mark.asyncio
async def test_unknown_institution_rolls_back(importer, session):
    session.get.return_value = None

    with pytest.raises(NotFoundError):
        await importer.save(99, ROWS, "token", section_id=5)

    session.rollback.assert_awaited_once()
    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_database_failure_becomes_import_save_error(importer, session):
    session.get.side_effect = OperationalError("SELECT 1", {}, Exception("connection lost"))

    with pytest.raises(ImportSaveError) as exc_info:
        await importer.save(1, ROWS, "token", section_id=5)

    error = exc_info.value
    assert error.status_code == 500
    assert error.message == "Save failed"
    assert error.context["import_type"] == ImportType.ENROLLMENT.value
    assert isinstance(error.cause, OperationalError)
    session.rollback.assert_awaited_once()
