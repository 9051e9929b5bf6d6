from .comment import Comment, CommentStatus
from .meta import MetaEntryRow
from .post import Post, PostStatus
from .term import Term
from .user import Role, User

__all__ = [
    "Comment",
    "CommentStatus",
    "MetaEntryRow",
    "Post",
    "PostStatus",
    "Role",
    "Term",
    "User",
]
