# backend/linklian/core/exceptions.py
"""Application-level exceptions used across services.

Every exception carries a machine friendly ``code`` and the HTTP
``status_code`` the API layer answers with. ``main.py`` registers a handler
that renders ``AppError.to_dict()`` for any subclass, so services raise these
directly instead of ``HTTPException``.

Row-level import problems are never raised; they are collected on
``ValidatedRow`` objects. Only request-level failures live here.
"""
from __future__ import annotations

from typing import Optional, Any, Dict
from datetime import datetime, timezone


class AppError(Exception):
    """Base application exception with structured metadata.

    Attributes
    ----------
    message
        Human readable message.
    code
        Machine friendly error code (snake_case).
    status_code
        HTTP status code used for API responses.
    details
        Arbitrary extra data useful for debugging or UX.
    timestamp
        UTC ISO timestamp when the exception was created.
    cause
        Optional underlying exception instance.
    context
        Optional lightweight context dict (ids, import type, counts).
    """

    code: str = "app_error"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An application error occurred",
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}({self.code}): {self.message}"
        if self.context:
            base += f" | context={self.context}"
        if self.cause is not None:
            base += f" | cause={self.cause!r}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Return a serializable representation suitable for API responses.

        The cause is deliberately left out; it is only logged.
        """
        return {
            "success": False,
            "error": {
                "type": self.__class__.__name__,
                "code": self.code,
                "message": self.message,
                "status_code": self.status_code,
                "details": self.details,
                "context": self.context,
                "timestamp": self.timestamp,
            },
        }

    def with_context(self, **ctx: Any) -> "AppError":
        """Return self after extending the context dict.

        Example:
        raise err.with_context(inst_id=inst_id)
        """
        self.context.update({k: v for k, v in ctx.items() if v is not None})
        return self

    @classmethod
    def from_exception(
        cls, exc: BaseException, message: Optional[str] = None
    ) -> "AppError":
        """Wrap a generic exception into an AppError preserving the cause."""
        return cls(message or str(exc), cause=exc)


class BadRequestError(AppError):
    code = "bad_request"
    status_code = 400


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(AppError):
    code = "forbidden"
    status_code = 403


class NotFoundError(AppError):
    """Raised when a referenced record does not exist (or is soft-deleted).

    ``entity`` and ``entity_id`` end up in the context so the client can tell
    which lookup failed.
    """

    code = "not_found"
    status_code = 404

    def __init__(
        self,
        entity: str,
        entity_id: Optional[Any] = None,
        message: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        msg = message or (
            f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        )
        super().__init__(msg, **kwargs)
        self.context.setdefault("entity", entity)
        if entity_id is not None:
            self.context.setdefault("entity_id", entity_id)


# --- Spreadsheet upload -----------------------------------------------------


class SpreadsheetError(BadRequestError):
    """The uploaded file is missing, of an unsupported type, or unreadable."""

    code = "invalid_spreadsheet"


# --- Validation tokens -------------------------------------------------------


class ValidationTokenRequiredError(BadRequestError):
    code = "validation_token_required"

    def __init__(self, message: str = "Validation token is required, validate the file first", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ValidationTokenError(UnauthorizedError):
    """Base class for a validation token that cannot be honoured.

    The client must re-validate the file to obtain a fresh token.
    """

    code = "validation_token_error"


class ValidationTokenExpiredError(ValidationTokenError):
    code = "validation_token_expired"

    def __init__(self, message: str = "Validation token has expired, please validate the file again", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ValidationTokenInvalidError(ValidationTokenError):
    code = "validation_token_invalid"

    def __init__(self, message: str = "Validation token is invalid", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ValidationTokenTypeError(ValidationTokenError):
    code = "validation_token_wrong_type"

    def __init__(self, expected: str, actual: Any, **kwargs: Any) -> None:
        super().__init__(
            f"Validation token was issued for a '{actual}' import, not '{expected}'",
            **kwargs,
        )
        self.context.setdefault("expected_type", expected)


class ValidationTokenInstitutionError(ValidationTokenError):
    code = "validation_token_institution_mismatch"

    def __init__(self, message: str = "Validation token does not belong to this institution", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ValidationTokenScopeError(ValidationTokenError):
    code = "validation_token_scope_mismatch"

    def __init__(self, field: str, **kwargs: Any) -> None:
        super().__init__(f"Validation token was issued for a different {field}", **kwargs)
        self.context.setdefault("field", field)


class ImportDataChangedError(BadRequestError):
    code = "import_data_changed"

    def __init__(self, message: str = "Data has changed since validation, please validate the file again", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


# --- Commit ------------------------------------------------------------------


class ImportSaveError(AppError):
    """Fatal failure while committing an import; the transaction was rolled back."""

    code = "import_save_failed"
    status_code = 500

    def __init__(self, message: str = "Save failed", *, row: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if row is not None:
            self.context.setdefault("row", row)


__all__ = [
    "AppError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "SpreadsheetError",
    "ValidationTokenRequiredError",
    "ValidationTokenError",
    "ValidationTokenExpiredError",
    "ValidationTokenInvalidError",
    "ValidationTokenTypeError",
    "ValidationTokenInstitutionError",
    "ValidationTokenScopeError",
    "ImportDataChangedError",
    "ImportSaveError",
]
