"""SSO login flow: /login -> SSO -> /login_callback[/next] -> back to the page."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import ApiUser, login_session, logout_session
from core.dependencies import get_aggregation, get_db_session
from core.errors import BadRequestError, InternalError
from repositories.user_repo import UserRepository
from services.aggregation import AggregationService

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)


def safe_next(next_path: Optional[str]) -> str:
    """Only local absolute paths are followed after login."""
    if not next_path:
        return "/"
    if not next_path.startswith("/"):
        next_path = "/" + next_path
    if next_path.startswith("//") or "\\" in next_path:
        return "/"
    return next_path


@router.get("/login")
async def login(
    next: Optional[str] = None,
    aggregation: AggregationService = Depends(get_aggregation),
) -> RedirectResponse:
    return RedirectResponse(aggregation.sso.login_redirect_url(safe_next(next)), status_code=302)


async def _complete_login(
    request: Request,
    code: str,
    next_path: Optional[str],
    session: AsyncSession,
    aggregation: AggregationService,
) -> RedirectResponse:
    profile = await aggregation.sso.exchange_code(code)
    if profile is None:
        raise BadRequestError("Invalid OAuth code")

    try:
        user = await UserRepository(session).upsert_by_discord_id(
            profile.id, profile.username, profile.avatar or ""
        )
    except SQLAlchemyError as e:
        logger.error("Failed to upsert user: %s", e)
        raise InternalError("Failed to upsert user") from e

    aggregation.identities.put(profile.id, profile)
    login_session(request, ApiUser.from_user(user))
    logger.info("User %s (%s) logged in", user.username, user.discord_id)
    return RedirectResponse(safe_next(next_path), status_code=302)


@router.get("/login_callback")
async def login_callback(
    request: Request,
    code: str = Query(...),
    session: AsyncSession = Depends(get_db_session),
    aggregation: AggregationService = Depends(get_aggregation),
) -> RedirectResponse:
    return await _complete_login(request, code, None, session, aggregation)


@router.get("/login_callback/{next_path:path}")
async def login_callback_next(
    request: Request,
    next_path: str,
    code: str = Query(...),
    session: AsyncSession = Depends(get_db_session),
    aggregation: AggregationService = Depends(get_aggregation),
) -> RedirectResponse:
    return await _complete_login(request, code, next_path, session, aggregation)


@router.get("/logout")
async def logout(request: Request) -> RedirectResponse:
    logout_session(request)
    return RedirectResponse("/", status_code=302)
