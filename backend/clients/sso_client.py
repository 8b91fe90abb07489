"""
Client for the SSO service that fronts Discord identities.

Lookups never raise: failures are logged and reported as ``None`` so callers
can fall back to the raw id.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .schema import IdentityProfile

logger = logging.getLogger(__name__)


class SSOClient:
    def __init__(
        self,
        base_url: str,
        own_base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.own_base_url = own_base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    def login_redirect_url(self, next_path: Optional[str] = None) -> str:
        """URL of the SSO login page; the SSO sends the user back to /login_callback[/next]."""
        service = f"{self.own_base_url}/login_callback"
        if next_path and next_path != "/":
            service = f"{service}/{next_path.lstrip('/')}"
        return f"{self.base_url}/login?service={quote(service, safe=':/')}"

    async def _get_profile(self, path: str, what: str) -> Optional[IdentityProfile]:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            return IdentityProfile.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error("Failed to get %s: %s", what, e)
        except (ValueError, ValidationError) as e:
            logger.error("Failed to parse %s: %s", what, e)
        return None

    async def fetch_user(self, user_id: str) -> Optional[IdentityProfile]:
        """Resolve a Discord id to its profile."""
        return await self._get_profile(f"/uinfo/{quote(user_id, safe='')}", f"user info for {user_id}")

    async def exchange_code(self, code: str) -> Optional[IdentityProfile]:
        """Exchange the OAuth code handed to /login_callback for the user's profile."""
        return await self._get_profile(f"/getuser/{quote(code, safe='')}", "user data")
