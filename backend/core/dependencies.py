from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from services.aggregation import AggregationService

from .auth import ApiUser, authenticate, authenticate_optional
from .config import Settings
from .database import get_database_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding an AsyncSession from the DatabaseManager."""
    manager = get_database_manager()
    async with manager.session() as session:
        yield session


def get_aggregation(request: Request) -> AggregationService:
    return request.app.state.aggregation


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


async def get_current_user(
    request: Request, session: AsyncSession = Depends(get_db_session)
) -> ApiUser:
    """Authenticated caller; raises UnauthorizedError otherwise."""
    return await authenticate(request, session)


async def get_optional_user(
    request: Request, session: AsyncSession = Depends(get_db_session)
) -> Optional[ApiUser]:
    return await authenticate_optional(request, session)
