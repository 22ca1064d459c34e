# backend/linklian/api/__init__.py
from .deps import current_user_id, db_session
from .v1.api import api_router

__all__ = ["api_router", "db_session", "current_user_id"]
