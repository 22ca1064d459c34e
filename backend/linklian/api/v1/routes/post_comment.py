# backend/linklian/api/v1/routes/post_comment.py
"""Nested comments on class posts."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....api.deps import current_user_id, db_session
from ....schemas.comments import (
    CommentCreated,
    CommentCreateResponse,
    CommentDeleteResponse,
    CommentsDeleted,
    CommentUpdateResponse,
    PostCommentCreate,
    PostCommentDelete,
    PostCommentTreeResponse,
    PostCommentUpdate,
)
from ....services.social import CommentTreeService

router = APIRouter()


@router.get("", response_model=PostCommentTreeResponse)
async def get_post_comments(
    post_id: Optional[int] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(db_session),
):
    """Root comments of a post, newest first, each with its nested replies."""
    service = CommentTreeService(db)
    result = await service.get_post_comments(post_id, limit=limit, offset=offset)
    return PostCommentTreeResponse(**result)


@router.post("", response_model=CommentCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_post_comment(
    comment_in: PostCommentCreate,
    db: AsyncSession = Depends(db_session),
    user_id: int = Depends(current_user_id),
):
    service = CommentTreeService(db)
    created = await service.create_post_comment(user_id, comment_in)
    return CommentCreateResponse(data=CommentCreated(**created))


@router.put("", response_model=CommentUpdateResponse)
async def update_post_comment(
    comment_in: PostCommentUpdate,
    db: AsyncSession = Depends(db_session),
    user_id: int = Depends(current_user_id),
):
    service = CommentTreeService(db)
    comment = await service.update_post_comment(user_id, comment_in)
    return CommentUpdateResponse(data=comment)


@router.delete("", response_model=CommentDeleteResponse)
async def delete_post_comment(
    comment_in: PostCommentDelete,
    db: AsyncSession = Depends(db_session),
    user_id: int = Depends(current_user_id),
):
    """Soft-delete a comment together with all of its replies."""
    service = CommentTreeService(db)
    deleted = await service.delete_post_comment(user_id, comment_in.comment_id)
    return CommentDeleteResponse(data=CommentsDeleted(**deleted))
