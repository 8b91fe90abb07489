"""Clients for the two remote data sources: the competition API and the SSO service."""

from .api_client import CompetitionApiClient, RemoteError
from .schema import IdentityProfile, Match, Pilot, PilotVersion, TeamSlot, UploadResult, Winner
from .sso_client import SSOClient

__all__ = [
    "CompetitionApiClient",
    "RemoteError",
    "SSOClient",
    "IdentityProfile",
    "Match",
    "Pilot",
    "PilotVersion",
    "TeamSlot",
    "UploadResult",
    "Winner",
]
