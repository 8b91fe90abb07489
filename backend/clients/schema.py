"""
Wire models for the competition API and the SSO service.

Both snake_case and camelCase keys are accepted on input; output uses field names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Winner(str, Enum):
    TEAM_A = "TeamA"
    TEAM_B = "TeamB"
    UNKNOWN = "Unknown"


class PilotVersion(_WireModel):
    version: int = Field(..., ge=0, description="Version number of the current upload")


class Pilot(_WireModel):
    """An uploaded AI pilot as returned by the competition API."""

    id: str = Field(..., description="Opaque pilot id (UUID)")
    name: str = Field(..., description="Unique pilot name")
    owner_id: str = Field(..., description="External (Discord) id of the owner")
    current: PilotVersion

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return value if value is None else str(value)


class TeamSlot(_WireModel):
    aip_id: str = Field(..., description="Pilot id that played in this slot")
    version: int = Field(..., description="Pilot version that played")

    @field_validator("aip_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return value if value is None else str(value)


class Match(_WireModel):
    """A finished match between two pilot versions."""

    id: str
    team_a: TeamSlot
    team_b: TeamSlot
    winner: Winner = Winner.UNKNOWN
    created_at: int = Field(..., description="Creation time, epoch milliseconds")
    manual_run: bool = False
    replay_id: Optional[str] = None

    @field_validator("id", "replay_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator("winner", mode="before")
    @classmethod
    def _unknown_winner(cls, value: Any) -> Any:
        if value in (Winner.TEAM_A.value, Winner.TEAM_B.value):
            return value
        return Winner.UNKNOWN.value

    def side_of(self, pilot_id: str) -> Optional[str]:
        """Return ``"a"`` or ``"b"`` for the slot ``pilot_id`` played in, else None."""
        if self.team_a.aip_id == pilot_id:
            return "a"
        if self.team_b.aip_id == pilot_id:
            return "b"
        return None


class UploadResult(_WireModel):
    upload_id: str
    version: int

    @field_validator("upload_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return str(value)


class IdentityProfile(BaseModel):
    """Discord profile data resolved through the SSO service."""

    id: str
    username: str
    avatar: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return value if value is None else str(value)
