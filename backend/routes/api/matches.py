"""GET /api/matches."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from clients.schema import Match
from core.auth import ApiUser
from core.dependencies import get_aggregation, get_current_user
from services.aggregation import AggregationService

router = APIRouter(tags=["matches"])


class GetMatchResponse(BaseModel):
    matches: List[Match]


@router.get("/matches", response_model=GetMatchResponse, summary="List all matches")
async def api_get_matches(
    _user: ApiUser = Depends(get_current_user),
    aggregation: AggregationService = Depends(get_aggregation),
) -> GetMatchResponse:
    matches = await aggregation.list_matches()
    return GetMatchResponse(matches=matches)
