from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user_token import UserToken
from .base import BaseRepository


class UserTokenRepository(BaseRepository[UserToken]):
    """Repository for API tokens."""

    model = UserToken

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def create(
        self,
        user_id: int,
        name: str,
        created_at: datetime,
        expires_at: Optional[datetime] = None,
    ) -> UserToken:
        """Issue a new random token for ``user_id``."""
        token = UserToken(
            user_id=user_id,
            name=name,
            token=str(uuid.uuid4()),
            created_at=created_at,
            expires_at=expires_at,
        )
        return await self.add(token)

    async def list_by_user(self, user_id: int) -> List[UserToken]:
        stmt = select(UserToken).where(UserToken.user_id == user_id).order_by(UserToken.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_id_and_user(self, token_id: int, user_id: int) -> int:
        """Delete the token only if it belongs to ``user_id``; return the number of rows removed."""
        stmt = delete(UserToken).where(UserToken.id == token_id, UserToken.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
