"""GET /api/healthz: liveness probe."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["meta"])


@router.get("/healthz", response_class=PlainTextResponse, summary="Health check")
async def api_health_check() -> str:
    return "OK"
