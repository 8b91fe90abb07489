from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from models.user_token import UserToken
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for local user accounts."""

    model = User

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def upsert_by_discord_id(
        self, discord_id: str, username: str, avatar_url: str
    ) -> User:
        """Insert or update the user for ``discord_id`` (latest login wins)."""
        stmt = select(User).where(User.discord_id == discord_id)
        result = await self.session.execute(stmt)
        existing = result.scalar_one_or_none()
        if existing is not None:
            existing.username = username
            existing.avatar_url = avatar_url
            self.session.add(existing)
            await self.session.flush()
            return existing
        return await self.add(
            User(discord_id=discord_id, username=username, avatar_url=avatar_url)
        )

    async def get_by_token(self, token: str, now: datetime) -> Optional[User]:
        """Return the owner of ``token`` if the token exists and has not expired at ``now``."""
        stmt = (
            select(User)
            .join(UserToken, User.id == UserToken.user_id)
            .where(UserToken.token == token)
            .where(or_(UserToken.expires_at.is_(None), UserToken.expires_at > now))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
