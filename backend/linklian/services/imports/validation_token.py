# backend/linklian/services/imports/validation_token.py
"""
Stateless validation tokens binding a validated file to its commit.

A token is a signed JWT carrying the import kind, the institution (and
section, semester or institution type scope) and a SHA-256 hash of the parsed rows. ``save``
refuses any token whose claims or hash do not match the request. Tokens are
never marked as used; re-submitting unchanged data just skips everything as
already present.
"""

import hashlib
import json
import logging
import time
from typing import Any, Dict, List, Optional

import jwt
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ...core.exceptions import (
    ImportDataChangedError,
    ValidationTokenExpiredError,
    ValidationTokenInstitutionError,
    ValidationTokenInvalidError,
    ValidationTokenScopeError,
    ValidationTokenTypeError,
)
from ...core.security import create_signed_token, decode_signed_token
from .constants import ImportType, VALIDATION_TOKEN_EXPIRY

logger = logging.getLogger(__name__)


class ImportValidationPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    inst_id: int
    semester_id: Optional[int] = None
    section_id: Optional[int] = None
    inst_type: Optional[str] = None
    data_hash: str = ""
    valid_count: int = 0
    duplicate_count: int = 0
    type: ImportType
    timestamp: int = 0


def calculate_data_hash(rows: List[Dict[str, Any]]) -> str:
    """SHA-256 hex digest of the rows serialized as compact JSON, key order kept."""
    data = json.dumps(rows, ensure_ascii=False, separators=(",", ":"), default=str)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class ValidationTokenService:
    def __init__(self, secret_key: Optional[str] = None, expires_delta=VALIDATION_TOKEN_EXPIRY):
        self.secret_key = secret_key
        self.expires_delta = expires_delta

    def issue(self, payload: ImportValidationPayload, rows: List[Dict[str, Any]]) -> str:
        claims = payload.model_copy(
            update={
                "data_hash": calculate_data_hash(rows),
                "timestamp": int(time.time() * 1000),
            }
        )
        return create_signed_token(
            claims.model_dump(mode="json", by_alias=True, exclude_none=True),
            self.expires_delta,
            secret_key=self.secret_key,
        )

    def verify(
        self,
        token: str,
        expected_type: ImportType,
        inst_id: int,
        rows: List[Dict[str, Any]],
        *,
        section_id: Optional[int] = None,
        semester_id: Optional[int] = None,
        inst_type: Optional[str] = None,
    ) -> ImportValidationPayload:
        """
        Decode ``token`` and check, in order: import type, institution,
        section / semester / institution type scope, then the hash of ``rows``.
        """
        try:
            claims = decode_signed_token(token, secret_key=self.secret_key)
            payload = ImportValidationPayload.model_validate(claims)
        except jwt.ExpiredSignatureError as e:
            raise ValidationTokenExpiredError(cause=e) from e
        except (jwt.PyJWTError, ValidationError) as e:
            logger.warning(f"Rejected malformed validation token: {e}")
            raise ValidationTokenInvalidError(cause=e) from e

        if payload.type != expected_type:
            raise ValidationTokenTypeError(expected_type.value, payload.type.value)

        if payload.inst_id != inst_id:
            raise ValidationTokenInstitutionError().with_context(inst_id=inst_id)

        if payload.section_id != section_id:
            raise ValidationTokenScopeError("section")
        if payload.semester_id != semester_id:
            raise ValidationTokenScopeError("semester")
        if payload.inst_type != inst_type:
            raise ValidationTokenScopeError("institution type")

        if payload.data_hash != calculate_data_hash(rows):
            raise ImportDataChangedError().with_context(import_type=expected_type.value)

        return payload
