"""
Async client for the external competition API (pilots, matches, uploads).

Every call raises ``RemoteError`` on transport failure, timeout, non-2xx
status or an unparseable payload. Callers on read paths downgrade that to an
empty result; upload surfaces it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .schema import Match, Pilot, UploadResult

logger = logging.getLogger(__name__)

USER_AGENT = "aip-front/1.0"

_PILOT_LIST = TypeAdapter(List[Pilot])
_MATCH_LIST = TypeAdapter(List[Match])


class RemoteError(Exception):
    """Raised when a remote service call fails or returns an unusable payload."""


class CompetitionApiClient:
    """Client for the competition API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        content: Optional[bytes] = None,
    ) -> Any:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._client.request(method, path, params=query, content=content)
        except httpx.TimeoutException as e:
            raise RemoteError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise RemoteError(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON") from e

    async def list_pilots(
        self, name: Optional[str] = None, pilot_id: Optional[str] = None
    ) -> List[Pilot]:
        """GET /aipilot, optionally filtered by exact name or id."""
        data = await self._request("GET", "/aipilot", params={"name": name, "id": pilot_id})
        try:
            return _PILOT_LIST.validate_python(data)
        except ValidationError as e:
            raise RemoteError(f"Unexpected pilot payload: {e.error_count()} errors") from e

    async def list_matches(
        self,
        pilot_id: Optional[str] = None,
        pilot_version: Optional[int] = None,
        match_id: Optional[str] = None,
    ) -> List[Match]:
        """GET /match_result, optionally filtered by pilot, pilot version or match id."""
        params = {
            "pilot_id": pilot_id,
            "pilot_version": str(pilot_version) if pilot_version is not None else None,
            "match_id": match_id,
        }
        data = await self._request("GET", "/match_result", params=params)
        try:
            return _MATCH_LIST.validate_python(data)
        except ValidationError as e:
            raise RemoteError(f"Unexpected match payload: {e.error_count()} errors") from e

    async def upload_pilot(self, name: str, owner_id: str, data: bytes) -> UploadResult:
        """POST the pilot binary; returns the upload id and the new version number."""
        payload = await self._request(
            "POST",
            "/aipilot/upload",
            params={"name": name, "owner": owner_id},
            content=data,
        )
        try:
            return UploadResult.model_validate(payload)
        except ValidationError as e:
            raise RemoteError(f"Unexpected upload payload: {e.error_count()} errors") from e

    def replay_url(self, replay_id: str) -> str:
        return f"{self.base_url}/replay?replayId={replay_id}"
