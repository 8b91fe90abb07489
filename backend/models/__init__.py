"""SQLAlchemy models for the local account store."""

from .base import Base
from .user import User
from .user_token import UserToken

__all__ = [
    "Base",
    "User",
    "UserToken",
]
