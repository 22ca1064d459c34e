# backend/linklian/models/base.py
from datetime import datetime
from sqlalchemy import Boolean, DateTime, func, true
from sqlalchemy.orm import Mapped, mapped_column, declarative_base

# Tables live in the schema selected by the connection's search_path
# (DATABASE_SCHEMA), so the metadata itself stays schema-less.
Base = declarative_base()


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SoftDeleteMixin:
    """Rows are never removed; ``flag_valid = false`` marks them deleted."""

    flag_valid: Mapped[bool] = mapped_column(
        Boolean, server_default=true(), default=True, nullable=False
    )
