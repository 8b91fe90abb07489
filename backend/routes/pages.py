"""Server-rendered pages and the partials they load."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import ApiUser
from core.config import Settings
from core.dependencies import (
    get_aggregation,
    get_app_settings,
    get_current_user,
    get_db_session,
    get_optional_user,
    get_templates,
)
from core.errors import InternalError, NotFoundError
from repositories.user_repo import UserRepository
from repositories.user_token_repo import UserTokenRepository
from services.aggregation import AggregationService
from utils.formatting import as_utc, discord_avatar_url, format_date_time

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False, default_response_class=HTMLResponse)


def _viewer_id(user: Optional[ApiUser]) -> Optional[str]:
    return user.discord_id if user is not None else None


@router.get("/")
async def index_page(
    request: Request,
    user: Optional[ApiUser] = Depends(get_optional_user),
    templates: Jinja2Templates = Depends(get_templates),
):
    return templates.TemplateResponse(request, "index.html", {"user": user})


@router.get("/partials/home/pilots")
async def partial_home_pilots(
    request: Request,
    user: Optional[ApiUser] = Depends(get_optional_user),
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    pilots = await aggregation.home_pilots(_viewer_id(user))
    return templates.TemplateResponse(request, "partials/home_pilots.html", {"pilots": pilots})


@router.get("/partials/home/matches")
async def partial_home_matches(
    request: Request,
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    matches = await aggregation.home_matches()
    return templates.TemplateResponse(request, "partials/home_matches.html", {"matches": matches})


@router.get("/user_tokens")
async def user_tokens_page(
    request: Request,
    user: ApiUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    templates: Jinja2Templates = Depends(get_templates),
):
    try:
        tokens = await UserTokenRepository(session).list_by_user(user.id)
        account = await UserRepository(session).get_by_id(user.id)
    except SQLAlchemyError as e:
        logger.error("Failed to fetch user tokens: %s", e)
        raise InternalError("Failed to fetch user tokens") from e

    token_rows = [
        {
            "id": t.id,
            "name": t.name,
            "token": t.token,
            "created_at": format_date_time(t.created_at),
            "created_at_raw": as_utc(t.created_at),
            "expires_at": format_date_time(t.expires_at) if t.expires_at is not None else None,
        }
        for t in tokens
    ]
    account_ctx = None
    if account is not None:
        account_ctx = {
            "id": account.id,
            "username": account.username,
            "avatar_url": discord_avatar_url(account.discord_id, account.avatar_url),
        }
    return templates.TemplateResponse(
        request,
        "user_tokens.html",
        {"tokens": token_rows, "account": account_ctx, "user": user},
    )


@router.get("/upload")
async def upload_page(
    request: Request,
    name: Optional[str] = None,
    user: ApiUser = Depends(get_current_user),
    aggregation: AggregationService = Depends(get_aggregation),
    settings: Settings = Depends(get_app_settings),
    templates: Jinja2Templates = Depends(get_templates),
):
    names = await aggregation.upload_names(user.discord_id)
    return templates.TemplateResponse(
        request,
        "upload.html",
        {
            "my_names": names.my_names,
            "other_names": names.other_names,
            "preset_name": name,
            "max_bytes": settings.upload_max_bytes,
            "user": user,
        },
    )


@router.get("/match/create")
async def match_create_page(
    request: Request,
    user: ApiUser = Depends(get_current_user),
    templates: Jinja2Templates = Depends(get_templates),
):
    return templates.TemplateResponse(request, "match_create.html", {"user": user})


@router.get("/pilot/{pilot_name}")
async def pilot_stats_page(
    request: Request,
    pilot_name: str,
    user: Optional[ApiUser] = Depends(get_optional_user),
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    view = await aggregation.pilot_stats_by_name(pilot_name, viewer_id=_viewer_id(user))
    if view is None:
        raise NotFoundError("Pilot not found")
    all_matches = [m.model_dump(mode="json") for m in view.matches]
    return templates.TemplateResponse(
        request,
        "pilot_stats.html",
        {"view": view, "all_matches": all_matches, "user": user},
    )


@router.get("/pilot/{pilot_name}/version/{version}")
async def partial_pilot_version_stats(
    request: Request,
    pilot_name: str,
    version: int,
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    view = await aggregation.version_stats(pilot_name, version)
    if view is None:
        raise NotFoundError("Pilot not found")
    return templates.TemplateResponse(request, "partials/version_stats.html", {"view": view})


@router.get("/users")
async def users_page(
    request: Request,
    user: Optional[ApiUser] = Depends(get_optional_user),
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    users = await aggregation.users_overview()
    return templates.TemplateResponse(request, "users.html", {"users": users, "user": user})


@router.get("/user/{owner_id}")
async def user_page(
    request: Request,
    owner_id: str,
    user: Optional[ApiUser] = Depends(get_optional_user),
    aggregation: AggregationService = Depends(get_aggregation),
    templates: Jinja2Templates = Depends(get_templates),
):
    view = await aggregation.user_stats(owner_id)
    if view is None:
        raise NotFoundError("User not found or has no pilots")
    return templates.TemplateResponse(request, "user.html", {"view": view, "user": user})
