"""POST /api/user_token and DELETE /api/user_token/{token_id}."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import ApiUser
from core.dependencies import get_current_user, get_db_session
from core.errors import BadRequestError, InternalError
from models.user_token import UserToken
from repositories.user_token_repo import UserTokenRepository
from utils.formatting import as_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user_token", tags=["tokens"])


class CreateUserToken(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {"name": "ci", "expires_at": 1767225600}})

    name: str = Field(..., min_length=1, max_length=255, description="Label shown on the tokens page")
    expires_at: Optional[int] = Field(None, description="Expiry as epoch seconds; omit for no expiry")


class UserTokenResponse(BaseModel):
    id: int
    name: str
    user_id: int
    token: str
    created_at: datetime
    expires_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: UserToken) -> "UserTokenResponse":
        return cls(
            id=row.id,
            name=row.name,
            user_id=row.user_id,
            token=row.token,
            created_at=as_utc(row.created_at),
            expires_at=as_utc(row.expires_at) if row.expires_at is not None else None,
        )


def parse_expiry(ts: Optional[int]) -> Optional[datetime]:
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        logger.error("Invalid timestamp for expires_at: %s", ts)
        raise BadRequestError("Invalid timestamp for expires_at") from e


@router.post("", response_model=UserTokenResponse, summary="Create an API token")
async def api_create_user_token(
    body: CreateUserToken,
    user: ApiUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> UserTokenResponse:
    expires_at = parse_expiry(body.expires_at)
    try:
        row = await UserTokenRepository(session).create(
            user_id=user.id, name=body.name, created_at=utcnow(), expires_at=expires_at
        )
    except SQLAlchemyError as e:
        logger.error("Failed to create user token: %s", e)
        raise InternalError("Failed to create user token") from e
    return UserTokenResponse.from_row(row)


@router.delete(
    "/{token_id}",
    status_code=204,
    response_class=Response,
    summary="Delete one of the caller's API tokens",
)
async def api_delete_user_token(
    token_id: int,
    user: ApiUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    try:
        deleted = await UserTokenRepository(session).delete_by_id_and_user(token_id, user.id)
    except SQLAlchemyError as e:
        logger.error("Failed to delete user token: %s", e)
        raise InternalError("Failed to delete user token") from e
    if not deleted:
        logger.info("Token %s not deleted: not owned by user %s", token_id, user.id)
    return Response(status_code=204)
