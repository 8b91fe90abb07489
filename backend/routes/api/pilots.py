"""GET /api/aipilot and POST /api/aipilot/upload."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from clients.api_client import RemoteError
from clients.schema import Pilot
from core.auth import ApiUser
from core.config import Settings
from core.dependencies import get_aggregation, get_app_settings, get_current_user
from core.errors import BadRequestError, InternalError, NotFoundError
from services.aggregation import AggregationService
from utils.formatting import format_bytes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/aipilot", tags=["pilots"])

NAME_PATTERN = re.compile(r"\w{3,32}")


def is_valid_pilot_name(name: str) -> bool:
    return NAME_PATTERN.fullmatch(name) is not None


class GetAiPilotResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pilots: List[Pilot]


class PostAiPilotResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    upload_id: str
    version: int


@router.get(
    "",
    response_model=GetAiPilotResponse,
    summary="List pilots",
    description="All pilots, or exactly the pilot called `name` (404 if there is none).",
)
async def api_get_ai_pilots(
    name: Optional[str] = Query(None),
    _user: ApiUser = Depends(get_current_user),
    aggregation: AggregationService = Depends(get_aggregation),
) -> GetAiPilotResponse:
    if name is not None:
        pilot = await aggregation.get_pilot_by_name(name)
        if pilot is None:
            raise NotFoundError("Pilot not found")
        pilots = [pilot]
    else:
        pilots = await aggregation.list_pilots()
    return GetAiPilotResponse(pilots=pilots)


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """Read the raw request body, rejecting anything larger than ``max_bytes``."""
    too_large = BadRequestError(f"Upload exceeds the {format_bytes(max_bytes)} limit")

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise too_large

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise too_large
        chunks.append(chunk)
    return b"".join(chunks)


@router.post(
    "/upload",
    response_model=PostAiPilotResponse,
    summary="Upload a pilot",
    description="Raw binary body. Creates the pilot or a new version of it for the caller.",
)
async def api_upload_ai_pilot(
    request: Request,
    name: str = Query(...),
    user: ApiUser = Depends(get_current_user),
    aggregation: AggregationService = Depends(get_aggregation),
    settings: Settings = Depends(get_app_settings),
) -> PostAiPilotResponse:
    if not is_valid_pilot_name(name):
        raise BadRequestError("Invalid name format")

    data = await read_limited_body(request, settings.upload_max_bytes)

    try:
        result = await aggregation.upload_pilot(name, user.discord_id, data)
    except RemoteError as e:
        logger.error("Failed to upload pilot %s: %s", name, e)
        raise InternalError(str(e)) from e

    return PostAiPilotResponse(upload_id=result.upload_id, version=result.version)
