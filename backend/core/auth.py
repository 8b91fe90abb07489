"""
Request authentication: a valid session cookie first, then the ``x-auth-token`` header.

The session (a signed cookie managed by Starlette's SessionMiddleware) holds
the identity under ``auth``; API clients may instead send a token issued on
the /user_tokens page.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import UnauthorizedError
from models.user import User
from repositories.user_repo import UserRepository
from utils.formatting import utcnow

logger = logging.getLogger(__name__)

SESSION_KEY = "auth"
TOKEN_HEADER = "x-auth-token"


class ApiUser(BaseModel):
    """The authenticated caller."""

    id: int
    discord_id: str
    username: str
    avatar: str

    @classmethod
    def from_user(cls, user: User) -> "ApiUser":
        return cls(
            id=user.id,
            discord_id=user.discord_id,
            username=user.username,
            avatar=user.avatar_url,
        )


def login_session(request: Request, user: ApiUser) -> None:
    request.session[SESSION_KEY] = user.model_dump()


def logout_session(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)


async def authenticate(request: Request, session: AsyncSession) -> ApiUser:
    """Resolve the caller or raise UnauthorizedError (``missing`` or ``malformed``)."""
    raw = request.session.get(SESSION_KEY)
    malformed = False
    if raw is not None:
        try:
            return ApiUser.model_validate(raw)
        except ValidationError:
            logger.warning("Malformed auth session on %s", request.url.path)
            malformed = True

    token = request.headers.get(TOKEN_HEADER)
    if token:
        user = await UserRepository(session).get_by_token(token, utcnow())
        if user is not None:
            return ApiUser.from_user(user)
        logger.info("Rejected unknown or expired API token on %s", request.url.path)
        raise UnauthorizedError(UnauthorizedError.MISSING, "Invalid or expired token")

    if malformed:
        raise UnauthorizedError(UnauthorizedError.MALFORMED)
    raise UnauthorizedError(UnauthorizedError.MISSING)


async def authenticate_optional(request: Request, session: AsyncSession) -> Optional[ApiUser]:
    try:
        return await authenticate(request, session)
    except UnauthorizedError:
        return None
