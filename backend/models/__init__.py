"""SQLModel models package."""

from .notification import NOTIFICATION_KINDS, Notification
from .post import POST_VISIBILITIES, Post
from .user import User

__all__ = [
    "User",
    "Post",
    "Notification",
    "POST_VISIBILITIES",
    "NOTIFICATION_KINDS",
]
