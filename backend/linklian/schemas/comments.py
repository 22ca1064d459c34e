# backend/linklian/schemas/comments.py
"""Pydantic v2 schemas for post comments."""

from __future__ import annotations
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

MODEL_CONFIG = ConfigDict(from_attributes=True)


class PostCommentCreate(BaseModel):
    post_id: int
    comment_text: str = Field(min_length=1)
    is_anonymous: bool = False
    parent_id: Optional[int] = None


class PostCommentUpdate(BaseModel):
    comment_id: int
    comment_text: Optional[str] = None
    flag_valid: Optional[bool] = None


class PostCommentDelete(BaseModel):
    comment_id: int


class CommentNode(BaseModel):
    model_config = MODEL_CONFIG

    comment_id: int
    post_id: int
    user_sys_id: int
    is_anonymous: bool
    comment_text: str
    created_at: datetime
    updated_at: datetime
    flag_valid: bool
    parent_id: Optional[int] = None
    children_count: int = 0
    display_name: Optional[str] = None
    profile_pic: Optional[str] = None
    children: List["CommentNode"] = Field(default_factory=list)


class PostCommentTreeResponse(BaseModel):
    success: bool = True
    data: List[CommentNode] = Field(default_factory=list)
    total: int = 0
    has_more: bool = Field(default=False, serialization_alias="hasMore")


class PostCommentRead(BaseModel):
    model_config = MODEL_CONFIG

    comment_id: int
    post_id: int
    user_sys_id: int
    is_anonymous: bool
    comment_text: str
    flag_valid: bool
    created_at: datetime
    updated_at: datetime


class CommentCreated(BaseModel):
    comment_id: int


class CommentsDeleted(BaseModel):
    deleted_count: int
    deleted_comment_ids: List[int] = Field(default_factory=list)


class CommentCreateResponse(BaseModel):
    success: bool = True
    message: str = "Comment created successfully"
    data: CommentCreated


class CommentUpdateResponse(BaseModel):
    success: bool = True
    message: str = "Comment updated successfully"
    data: PostCommentRead


class CommentDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Comment and its replies deleted successfully"
    data: CommentsDeleted
