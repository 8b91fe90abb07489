"""Repository layer for the local account store (pure DB access, no commits)."""

from .base import BaseRepository
from .user_repo import UserRepository
from .user_token_repo import UserTokenRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "UserTokenRepository",
]
