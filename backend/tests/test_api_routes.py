"""JSON API: auth, pilots, matches, uploads and user tokens."""

from __future__ import annotations

import json
from base64 import b64encode

import pytest
from itsdangerous import TimestampSigner

from fakes import OWNER, RIVAL, login
from models.user_token import UserToken


@pytest.mark.asyncio
async def test_healthz(client):
    for path in ("/healthz", "/api/healthz"):
        r = await client.get(path)
        assert r.status_code == 200
        assert r.text == "OK"


@pytest.mark.asyncio
async def test_api_requires_auth(client):
    r = await client.get("/api/aipilot")
    assert r.status_code == 401
    assert r.json() == {"message": "Auth cookie missing"}


@pytest.mark.asyncio
async def test_unknown_token_rejected(client):
    r = await client.get("/api/matches", headers={"x-auth-token": "nope"})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid or expired token"}


@pytest.mark.asyncio
async def test_list_pilots_camel_case(client, sso):
    await login(client, sso)
    r = await client.get("/api/aipilot")
    assert r.status_code == 200
    pilots = r.json()["pilots"]
    assert [p["name"] for p in pilots] == ["alpha", "beta", "gamma"]
    assert pilots[0]["ownerId"] == OWNER
    assert pilots[0]["current"] == {"version": 2}


@pytest.mark.asyncio
async def test_get_pilot_by_name(client, sso):
    await login(client, sso)
    r = await client.get("/api/aipilot", params={"name": "gamma"})
    assert [p["id"] for p in r.json()["pilots"]] == ["3"]

    r = await client.get("/api/aipilot", params={"name": "nobody"})
    assert r.status_code == 404
    assert r.json() == {"message": "Pilot not found"}


@pytest.mark.asyncio
async def test_list_matches(client, sso):
    await login(client, sso)
    r = await client.get("/api/matches")
    assert r.status_code == 200
    matches = r.json()["matches"]
    assert [m["id"] for m in matches] == ["m1", "m2"]
    assert matches[0]["teamA"] == {"aipId": "1", "version": 1}


@pytest.mark.asyncio
async def test_upload_rejects_bad_name(client, sso, api):
    await login(client, sso)
    r = await client.post("/api/aipilot/upload", params={"name": "ab"}, content=b"bin")
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid name format"}
    assert api.uploads == []


@pytest.mark.asyncio
async def test_upload_valid_name(client, sso, api):
    await login(client, sso)
    r = await client.post("/api/aipilot/upload", params={"name": "valid_name"}, content=b"bin")
    assert r.status_code == 200
    assert r.json() == {"uploadId": "up-1", "version": 1}
    assert api.uploads == [("valid_name", OWNER, b"bin")]


@pytest.mark.asyncio
async def test_upload_too_large(client, sso, settings, api):
    settings.upload_max_bytes = 4
    await login(client, sso)
    r = await client.post("/api/aipilot/upload", params={"name": "valid_name"}, content=b"12345")
    assert r.status_code == 400
    assert api.uploads == []


@pytest.mark.asyncio
async def test_upload_remote_failure_is_500(client, sso, api):
    await login(client, sso)
    api.fail = True
    r = await client.post("/api/aipilot/upload", params={"name": "valid_name"}, content=b"bin")
    assert r.status_code == 500
    assert r.json() == {"message": "upload_pilot unavailable"}


@pytest.mark.asyncio
async def test_create_token_and_use_it(client, sso):
    await login(client, sso)
    r = await client.post("/api/user_token", json={"name": "ci"})
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "ci"
    assert body["expires_at"] is None

    await client.get("/logout")
    client.cookies.clear()
    r = await client.get("/api/matches", headers={"x-auth-token": body["token"]})
    assert r.status_code == 200


def forged_session_cookie(session: dict, secret: str = "test-secret") -> str:
    data = b64encode(json.dumps(session).encode("utf-8"))
    return TimestampSigner(secret).sign(data).decode("utf-8")


@pytest.mark.asyncio
async def test_malformed_session_rejected_without_token(client):
    client.cookies.set("aip_session", forged_session_cookie({"auth": {"id": "not-a-user"}}))
    r = await client.get("/api/matches")
    assert r.status_code == 401
    assert r.json() == {"message": "Malformed auth cookie"}


@pytest.mark.asyncio
async def test_token_accepted_alongside_malformed_session(client, sso):
    await login(client, sso)
    token = (await client.post("/api/user_token", json={"name": "ci"})).json()["token"]

    client.cookies.clear()
    client.cookies.set("aip_session", forged_session_cookie({"auth": {"id": "not-a-user"}}))
    r = await client.get("/api/matches", headers={"x-auth-token": token})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_expired_token_rejected(client, sso):
    await login(client, sso)
    r = await client.post("/api/user_token", json={"name": "old", "expires_at": 1_000_000})
    assert r.status_code == 200
    token = r.json()["token"]

    client.cookies.clear()
    r = await client.get("/api/matches", headers={"x-auth-token": token})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_token_invalid_expiry(client, sso):
    await login(client, sso)
    r = await client.post("/api/user_token", json={"name": "ci", "expires_at": 10**20})
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid timestamp for expires_at"}

    r = await client.post("/api/user_token", json={"name": "ci", "expires_at": "soon"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_delete_other_users_token_keeps_row(client, sso, db):
    await login(client, sso, OWNER)
    token = (await client.post("/api/user_token", json={"name": "ci"})).json()

    client.cookies.clear()
    await login(client, sso, RIVAL)
    r = await client.delete(f"/api/user_token/{token['id']}")
    assert r.status_code == 204

    async with db.session() as session:
        assert await session.get(UserToken, token["id"]) is not None


@pytest.mark.asyncio
async def test_delete_own_token(client, sso, db):
    await login(client, sso)
    token = (await client.post("/api/user_token", json={"name": "ci"})).json()

    r = await client.delete(f"/api/user_token/{token['id']}")
    assert r.status_code == 204

    async with db.session() as session:
        assert await session.get(UserToken, token["id"]) is None
