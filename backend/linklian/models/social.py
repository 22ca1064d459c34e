# backend/linklian/models/social.py

from typing import Optional

from sqlalchemy import (
    Boolean,
    Integer,
    ForeignKey,
    Index,
    String,
    Text,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, TimestampMixin, SoftDeleteMixin


class PostContent(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "post_content"

    post_content_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # author of the post
    user_sys_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(255))
    content: Mapped[Optional[str]] = mapped_column(Text)
    post_type: Mapped[Optional[str]] = mapped_column(String(20))
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), default=False, nullable=False
    )


class PostInClass(Base, TimestampMixin, SoftDeleteMixin):
    """A post content published into a section; ``post_id`` is what comments hang off."""

    __tablename__ = "post_in_class"

    post_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    post_content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post_content.post_content_id"), nullable=False
    )
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("section.section_id"), nullable=False
    )


class PostComment(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "post_comment"

    comment_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post_in_class.post_id"), nullable=False
    )
    user_sys_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_sys.user_sys_id"), nullable=False
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), default=False, nullable=False
    )
    comment_text: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("ix_post_comment_post", "post_id"),)


class PostCommentPath(Base, SoftDeleteMixin):
    """Closure table: one row per (ancestor, descendant) pair, self included."""

    __tablename__ = "post_comment_path"

    path_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ancestor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post_comment.comment_id"), nullable=False
    )
    descendant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post_comment.comment_id"), nullable=False
    )
    path_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_post_comment_path_ancestor", "ancestor_id", "path_length"),
        Index("ix_post_comment_path_descendant", "descendant_id", "path_length"),
    )
