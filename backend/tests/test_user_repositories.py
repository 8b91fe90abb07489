"""User and token repositories on a temporary SQLite file."""

from __future__ import annotations

from datetime import timedelta

import pytest

from repositories.user_repo import UserRepository
from repositories.user_token_repo import UserTokenRepository
from utils.formatting import utcnow


@pytest.mark.asyncio
async def test_upsert_inserts_then_updates(db):
    async with db.session() as session:
        user = await UserRepository(session).upsert_by_discord_id("100", "owner", "abc")
        first_id = user.id
        assert user.created_at is not None

    async with db.session() as session:
        repo = UserRepository(session)
        user = await repo.upsert_by_discord_id("100", "renamed", "def")
        assert user.id == first_id
        stored = await repo.get_by_id(first_id)

    assert (stored.discord_id, stored.username, stored.avatar_url) == ("100", "renamed", "def")


@pytest.mark.asyncio
async def test_token_lookup_respects_expiry(db):
    now = utcnow()
    async with db.session() as session:
        user = await UserRepository(session).upsert_by_discord_id("100", "owner", "abc")
        tokens = UserTokenRepository(session)
        forever = await tokens.create(user.id, "ci", created_at=now)
        expired = await tokens.create(user.id, "old", created_at=now, expires_at=now - timedelta(hours=1))
        later = await tokens.create(user.id, "soon", created_at=now, expires_at=now + timedelta(hours=1))

    async with db.session() as session:
        repo = UserRepository(session)
        assert (await repo.get_by_token(forever.token, now)).discord_id == "100"
        assert (await repo.get_by_token(later.token, now)).discord_id == "100"
        assert await repo.get_by_token(expired.token, now) is None
        assert await repo.get_by_token("no-such-token", now) is None
        assert await repo.get_by_token(later.token, now + timedelta(hours=2)) is None


@pytest.mark.asyncio
async def test_tokens_are_unique_and_listed_per_user(db):
    now = utcnow()
    async with db.session() as session:
        users = UserRepository(session)
        owner = await users.upsert_by_discord_id("100", "owner", "")
        rival = await users.upsert_by_discord_id("200", "rival", "")
        tokens = UserTokenRepository(session)
        a = await tokens.create(owner.id, "a", created_at=now)
        b = await tokens.create(owner.id, "b", created_at=now)
        await tokens.create(rival.id, "c", created_at=now)

    assert a.token != b.token
    async with db.session() as session:
        listed = await UserTokenRepository(session).list_by_user(owner.id)
    assert [t.name for t in listed] == ["a", "b"]


@pytest.mark.asyncio
async def test_delete_only_removes_own_token(db):
    now = utcnow()
    async with db.session() as session:
        users = UserRepository(session)
        owner = await users.upsert_by_discord_id("100", "owner", "")
        rival = await users.upsert_by_discord_id("200", "rival", "")
        token = await UserTokenRepository(session).create(owner.id, "ci", created_at=now)

    async with db.session() as session:
        tokens = UserTokenRepository(session)
        assert await tokens.delete_by_id_and_user(token.id, rival.id) == 0
        assert [t.id for t in await tokens.list_by_user(owner.id)] == [token.id]
        assert await tokens.delete_by_id_and_user(token.id, owner.id) == 1
        assert await tokens.list_by_user(owner.id) == []
