# backend/linklian/core/__init__.py

from ..config import get_settings
from .security import (
    create_signed_token,
    decode_signed_token,
    generate_initial_password,
    hash_password,
    verify_password,
)
from .exceptions import (
    AppError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ImportSaveError,
)


__all__ = [
    "get_settings",
    "create_signed_token",
    "decode_signed_token",
    "hash_password",
    "verify_password",
    "generate_initial_password",
    "AppError",
    "BadRequestError",
    "ForbiddenError",
    "NotFoundError",
    "ImportSaveError",
]
