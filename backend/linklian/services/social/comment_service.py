# backend/linklian/services/social/comment_service.py
"""
Nested post comments stored as a closure table.

``post_comment_path`` holds one row per (ancestor, descendant) pair,
including the self pair at length 0. Replies copy their parent's ancestor
rows with ``path_length + 1``, so a whole subtree is a single lookup by
``ancestor_id`` and deleting it needs no recursion.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, insert, literal, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ...core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
)
from ...models import PostComment, PostCommentPath, PostContent, PostInClass, UserSys
from ...schemas.comments import (
    CommentNode,
    PostCommentCreate,
    PostCommentRead,
    PostCommentUpdate,
)
from .anonymous import generate_anonymous_name

logger = logging.getLogger(__name__)


def _children_count():
    path = aliased(PostCommentPath)
    return (
        select(func.count(path.path_id))
        .where(
            path.ancestor_id == PostComment.comment_id,
            path.path_length == 1,
            path.flag_valid.is_(True),
        )
        .correlate(PostComment)
        .scalar_subquery()
        .label("children_count")
    )


def _comment_columns():
    return (
        PostComment,
        _children_count(),
        UserSys.first_name,
        UserSys.last_name,
        UserSys.profile_pic,
    )


class CommentTreeService:
    """Read and maintain the comment tree of class posts."""

    def __init__(self, session: AsyncSession):
        self.session = session
        logger.debug("CommentTreeService initialized with session")

    # --- reads ----------------------------------------------------------------

    async def _post_section(self, post_id: int) -> Optional[int]:
        return (
            await self.session.execute(
                select(PostInClass.section_id).where(PostInClass.post_id == post_id).limit(1)
            )
        ).scalar_one_or_none()

    @staticmethod
    def _node(row: Any, parent_id: Optional[int], section_id: Optional[int]) -> CommentNode:
        comment: PostComment = row.PostComment
        if comment.is_anonymous:
            display_name = (
                generate_anonymous_name(comment.user_sys_id, section_id)
                if section_id
                else None
            )
            profile_pic = None
        else:
            names = [n for n in (row.first_name, row.last_name) if n]
            display_name = " ".join(names) or None
            profile_pic = row.profile_pic

        return CommentNode(
            comment_id=comment.comment_id,
            post_id=comment.post_id,
            user_sys_id=comment.user_sys_id,
            is_anonymous=comment.is_anonymous,
            comment_text=comment.comment_text,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            flag_valid=comment.flag_valid,
            parent_id=parent_id,
            children_count=row.children_count or 0,
            display_name=display_name,
            profile_pic=profile_pic,
        )

    async def get_post_comments(
        self, post_id: Optional[int], limit: int = 10, offset: int = 0
    ) -> Dict[str, Any]:
        """
        Root comments of a post (newest first, paginated), each with its full
        reply tree (oldest first). Replies are loaded one tree level per query.

        Returns ``{"data": [...], "total": n, "has_more": bool}`` where
        ``total`` counts root comments only.
        """
        if not post_id:
            raise BadRequestError("post_id is required")

        parent_path = aliased(PostCommentPath)
        is_root = ~(
            select(parent_path.path_id)
            .where(
                parent_path.descendant_id == PostComment.comment_id,
                parent_path.path_length == 1,
                parent_path.flag_valid.is_(True),
            )
            .exists()
        )
        root_filter = (
            PostComment.post_id == post_id,
            PostComment.flag_valid.is_(True),
            is_root,
        )

        total = (
            await self.session.execute(
                select(func.count(PostComment.comment_id)).where(*root_filter)
            )
        ).scalar_one()

        roots = (
            await self.session.execute(
                select(*_comment_columns())
                .outerjoin(UserSys, PostComment.user_sys_id == UserSys.user_sys_id)
                .where(*root_filter)
                .order_by(PostComment.created_at.desc(), PostComment.comment_id.desc())
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
        ).all()

        section_id = await self._post_section(post_id)
        data = [self._node(row, None, section_id) for row in roots]

        level = {node.comment_id: node for node in data}
        depth = 0
        while level:
            children = (
                await self.session.execute(
                    select(*_comment_columns(), PostCommentPath.ancestor_id)
                    .join(
                        PostCommentPath,
                        PostCommentPath.descendant_id == PostComment.comment_id,
                    )
                    .outerjoin(UserSys, PostComment.user_sys_id == UserSys.user_sys_id)
                    .where(
                        PostCommentPath.ancestor_id.in_(list(level)),
                        PostCommentPath.path_length == 1,
                        PostCommentPath.flag_valid.is_(True),
                        PostComment.flag_valid.is_(True),
                    )
                    .order_by(PostComment.created_at.asc(), PostComment.comment_id.asc())
                    .execution_options(populate_existing=True)
                )
            ).all()

            next_level = {}
            for row in children:
                node = self._node(row, row.ancestor_id, section_id)
                level[row.ancestor_id].children.append(node)
                next_level[node.comment_id] = node
            level = next_level
            depth += 1

        logger.debug(
            f"Loaded {len(data)} of {total} root comments for post {post_id} "
            f"({depth} levels)"
        )
        return {
            "data": data,
            "total": total,
            "has_more": offset + limit < total,
        }

    # --- writes -----------------------------------------------------------------

    async def create_post_comment(self, user_id: int, dto: PostCommentCreate) -> Dict[str, int]:
        post = (
            await self.session.execute(
                select(PostInClass.post_id).where(
                    PostInClass.post_id == dto.post_id, PostInClass.flag_valid.is_(True)
                )
            )
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post", dto.post_id)

        if dto.parent_id is not None:
            parent = await self.session.get(PostComment, dto.parent_id, populate_existing=True)
            if parent is None or not parent.flag_valid:
                raise NotFoundError(
                    "Comment", dto.parent_id, message=f"Parent comment {dto.parent_id} not found"
                )
            if parent.post_id != dto.post_id:
                raise BadRequestError("Parent comment belongs to another post")

        try:
            comment = PostComment(
                post_id=dto.post_id,
                user_sys_id=user_id,
                is_anonymous=dto.is_anonymous,
                comment_text=dto.comment_text,
                flag_valid=True,
            )
            self.session.add(comment)
            await self.session.flush()
            comment_id = comment.comment_id

            self.session.add(
                PostCommentPath(
                    ancestor_id=comment_id,
                    descendant_id=comment_id,
                    path_length=0,
                    flag_valid=True,
                )
            )

            if dto.parent_id is not None:
                await self.session.execute(
                    insert(PostCommentPath).from_select(
                        ["ancestor_id", "descendant_id", "path_length", "flag_valid"],
                        select(
                            PostCommentPath.ancestor_id,
                            literal(comment_id),
                            PostCommentPath.path_length + 1,
                            true(),
                        ).where(
                            PostCommentPath.descendant_id == dto.parent_id,
                            PostCommentPath.flag_valid.is_(True),
                        ),
                    )
                )

            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(f"Failed to create comment on post {dto.post_id}")
            raise

        logger.info(f"User {user_id} commented {comment_id} on post {dto.post_id}")
        return {"comment_id": comment_id}

    async def update_post_comment(self, user_id: int, dto: PostCommentUpdate) -> PostCommentRead:
        if not dto.comment_text and dto.flag_valid is None:
            raise BadRequestError("No fields to update")

        comment = await self.session.get(PostComment, dto.comment_id, populate_existing=True)
        if comment is None or comment.user_sys_id != user_id:
            raise NotFoundError(
                "Comment", dto.comment_id, message="Comment not found or unauthorized"
            )

        try:
            if dto.comment_text:
                comment.comment_text = dto.comment_text
            if dto.flag_valid is not None:
                comment.flag_valid = dto.flag_valid
            await self.session.commit()
            await self.session.refresh(comment)
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(f"Failed to update comment {dto.comment_id}")
            raise

        return PostCommentRead.model_validate(comment)

    async def delete_post_comment(self, user_id: int, comment_id: int) -> Dict[str, Any]:
        """
        Soft-delete a comment and every reply beneath it, together with
        their path rows. Allowed for the comment's author and the post's
        author.
        """
        comment = await self.session.get(PostComment, comment_id, populate_existing=True)
        if comment is None:
            raise NotFoundError("Comment", comment_id)

        post_author = (
            await self.session.execute(
                select(PostContent.user_sys_id)
                .join(PostInClass, PostInClass.post_content_id == PostContent.post_content_id)
                .where(PostInClass.post_id == comment.post_id)
            )
        ).scalar_one_or_none()
        if user_id not in (comment.user_sys_id, post_author):
            raise ForbiddenError("Only the comment author or the post author can delete it")

        if not comment.flag_valid:
            raise BadRequestError("This comment is already deleted")

        subtree = select(PostCommentPath.descendant_id).where(
            PostCommentPath.ancestor_id == comment_id,
            PostCommentPath.flag_valid.is_(True),
        )
        try:
            deleted_ids = (
                await self.session.execute(
                    update(PostComment)
                    .where(PostComment.comment_id.in_(subtree))
                    .values(flag_valid=False)
                    .returning(PostComment.comment_id)
                    .execution_options(synchronize_session=False)
                )
            ).scalars().all()

            if deleted_ids:
                await self.session.execute(
                    update(PostCommentPath)
                    .where(PostCommentPath.descendant_id.in_(deleted_ids))
                    .values(flag_valid=False)
                    .execution_options(synchronize_session=False)
                )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(f"Failed to delete comment {comment_id}")
            raise

        deleted_ids = sorted(deleted_ids)
        logger.info(
            f"User {user_id} deleted comment {comment_id} with "
            f"{len(deleted_ids) - 1} replies"
        )
        return {"deleted_count": len(deleted_ids), "deleted_comment_ids": deleted_ids}
