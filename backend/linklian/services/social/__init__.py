# backend/linklian/services/social/__init__.py
"""Post comment tree and anonymous identities."""

from .anonymous import generate_anonymous_name
from .comment_service import CommentTreeService

__all__ = ["CommentTreeService", "generate_anonymous_name"]
