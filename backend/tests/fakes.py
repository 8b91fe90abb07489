"""In-process stand-ins for the competition API and the SSO service."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional

from clients.api_client import RemoteError
from clients.schema import IdentityProfile, Match, Pilot, UploadResult

OWNER = "100"
RIVAL = "200"


def make_pilot(pilot_id: str, name: str, owner_id: str = OWNER, version: int = 1) -> Pilot:
    return Pilot.model_validate(
        {"id": pilot_id, "name": name, "ownerId": owner_id, "current": {"version": version}}
    )


def make_match(
    match_id: str,
    team_a: str,
    team_a_version: int,
    team_b: str,
    team_b_version: int,
    winner: str = "TeamA",
    created_at: int = 1_700_000_000_000,
    manual_run: bool = False,
    replay_id: Optional[str] = None,
) -> Match:
    return Match.model_validate(
        {
            "id": match_id,
            "teamA": {"aipId": team_a, "version": team_a_version},
            "teamB": {"aipId": team_b, "version": team_b_version},
            "winner": winner,
            "createdAt": created_at,
            "manualRun": manual_run,
            "replayId": replay_id,
        }
    )


class FakeClock:
    """Monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeApiClient:
    def __init__(
        self, pilots: Iterable[Pilot] = (), matches: Iterable[Match] = ()
    ) -> None:
        self.pilots: List[Pilot] = list(pilots)
        self.matches: List[Match] = list(matches)
        self.fail = False
        self.calls: Counter = Counter()
        self.uploads: List[tuple] = []
        self.closed = False

    def _check(self, what: str) -> None:
        self.calls[what] += 1
        if self.fail:
            raise RemoteError(f"{what} unavailable")

    async def list_pilots(
        self, name: Optional[str] = None, pilot_id: Optional[str] = None
    ) -> List[Pilot]:
        self._check("list_pilots")
        return [
            p
            for p in self.pilots
            if (name is None or p.name == name) and (pilot_id is None or p.id == pilot_id)
        ]

    async def list_matches(
        self,
        pilot_id: Optional[str] = None,
        pilot_version: Optional[int] = None,
        match_id: Optional[str] = None,
    ) -> List[Match]:
        self._check("list_matches")
        result = []
        for m in self.matches:
            if match_id is not None and m.id != match_id:
                continue
            if pilot_id is not None:
                side = m.side_of(pilot_id)
                if side is None:
                    continue
                slot = m.team_a if side == "a" else m.team_b
                if pilot_version is not None and slot.version != pilot_version:
                    continue
            result.append(m)
        return result

    async def upload_pilot(self, name: str, owner_id: str, data: bytes) -> UploadResult:
        self._check("upload_pilot")
        self.uploads.append((name, owner_id, data))
        return UploadResult(upload_id=f"up-{len(self.uploads)}", version=len(self.uploads))

    def replay_url(self, replay_id: str) -> str:
        return f"http://competition.test/replay?replayId={replay_id}"

    async def aclose(self) -> None:
        self.closed = True


class FakeSSOClient:
    def __init__(
        self,
        profiles: Optional[Dict[str, IdentityProfile]] = None,
        codes: Optional[Dict[str, IdentityProfile]] = None,
    ) -> None:
        self.profiles = dict(profiles or {})
        self.codes = dict(codes or {})
        self.calls: Counter = Counter()
        self.closed = False

    def login_redirect_url(self, next_path: Optional[str] = None) -> str:
        service = "http://testserver/login_callback"
        if next_path and next_path != "/":
            service = f"{service}/{next_path.lstrip('/')}"
        return f"http://sso.test/login?service={service}"

    async def fetch_user(self, user_id: str) -> Optional[IdentityProfile]:
        self.calls["fetch_user"] += 1
        return self.profiles.get(user_id)

    async def exchange_code(self, code: str) -> Optional[IdentityProfile]:
        self.calls["exchange_code"] += 1
        return self.codes.get(code)

    async def aclose(self) -> None:
        self.closed = True


async def login(client, sso: FakeSSOClient, discord_id: str = OWNER) -> None:
    """Complete the SSO callback so ``client`` carries a session cookie."""
    sso.codes[f"code-{discord_id}"] = sso.profiles[discord_id]
    response = await client.get("/login_callback", params={"code": f"code-{discord_id}"})
    assert response.status_code == 302
