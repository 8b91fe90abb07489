import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from clients.api_client import CompetitionApiClient
from clients.sso_client import SSOClient
from core.config import Settings, get_settings
from core.database import dispose_database, init_database
from core.errors import register_error_handlers
from core.logging import setup_logging
from routes.api import api_router
from routes.api.health import api_health_check
from routes.auth import router as auth_router
from routes.pages import router as pages_router
from services.aggregation import AggregationService
from utils.formatting import format_bytes, format_date_relative, format_rate
from version import build_info

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger(__name__)


def build_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    templates.env.globals["build_info"] = build_info()
    templates.env.filters["rate"] = format_rate
    templates.env.filters["relative"] = format_date_relative
    templates.env.filters["bytes"] = format_bytes
    return templates


def create_app(
    settings: Optional[Settings] = None,
    *,
    api_client: Optional[CompetitionApiClient] = None,
    sso_client: Optional[SSOClient] = None,
    timer: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Build the application. Remote clients and the cache clock can be injected for tests."""
    settings = settings or get_settings()
    setup_logging(settings)

    api_client = api_client or CompetitionApiClient(
        settings.api_base_url,
        api_key=settings.api_key,
        timeout=settings.remote_timeout_seconds,
    )
    sso_client = sso_client or SSOClient(
        settings.sso_base_url,
        own_base_url=settings.base_url,
        timeout=settings.remote_timeout_seconds,
    )
    aggregation = AggregationService(
        api_client,
        sso_client,
        pilot_name_cache_size=settings.pilot_name_cache_size,
        identity_cache_size=settings.identity_cache_size,
        identity_ttl_seconds=settings.identity_cache_ttl_seconds,
        timer=timer,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_database(settings.database_url)
        prewarm: Optional[asyncio.Task] = None
        if settings.prewarm_on_startup:
            prewarm = asyncio.create_task(aggregation.prewarm())
        logger.info("Application startup complete (api=%s)", settings.api_base_url)
        try:
            yield
        finally:
            if prewarm is not None and not prewarm.done():
                prewarm.cancel()
            await aggregation.aclose()
            await dispose_database()
            logger.info("Application shutdown complete")

    app = FastAPI(title=settings.app_name, version=build_info().version, lifespan=lifespan)
    app.state.settings = settings
    app.state.aggregation = aggregation
    app.state.templates = build_templates()

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="aip_session",
        same_site="lax",
        https_only=settings.base_url.startswith("https://"),
    )
    register_error_handlers(app)

    app.include_router(api_router)
    app.include_router(auth_router)
    app.include_router(pages_router)
    app.add_api_route(
        "/healthz",
        api_health_check,
        methods=["GET"],
        response_class=PlainTextResponse,
        include_in_schema=False,
    )
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    return app


app = create_app()
