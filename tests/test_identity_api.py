"""
tests.test_identity_api

Identity-provider emulation: accounts, sessions, and role RPCs.
"""

from __future__ import annotations

import asyncio
import uuid

import httpx
import pytest

from regdesk.db.models import AppRole
from regdesk.db.repositories.roles import RoleRepo


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _sign_up(client: httpx.AsyncClient, email: str, password: str) -> dict:
    r = await client.post(
        "/auth/v1/signup",
        json={"email": email, "password": password, "data": {"username": email.split("@")[0]}},
    )
    assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_sign_up_issues_session_and_rejects_duplicates(client: httpx.AsyncClient) -> None:
    body = await _sign_up(client, "Nadia@Example.com", "pass123")
    assert body["user"]["email"] == "nadia@example.com"
    assert body["user"]["user_metadata"] == {"username": "Nadia"}
    assert body["session"]["access_token"]
    assert body["session"]["token_type"] == "bearer"

    r = await client.post("/auth/v1/signup", json={"email": "nadia@example.com", "password": "x"})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "user_already_exists"
    assert "already registered" in r.json()["detail"]["message"]


@pytest.mark.asyncio
async def test_password_grant(client: httpx.AsyncClient) -> None:
    await _sign_up(client, "nadia@example.com", "pass123")

    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": "nadia@example.com", "password": "pass123"},
    )
    assert r.status_code == 200
    assert r.json()["user"]["last_sign_in_at"] is not None

    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": "nadia@example.com", "password": "wrong"},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "invalid_credentials"

    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": "ghost@example.com", "password": "pass123"},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_refresh_grant_and_token_types(client: httpx.AsyncClient) -> None:
    session = (await _sign_up(client, "nadia@example.com", "pass123"))["session"]

    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "refresh_token"},
        json={"refresh_token": session["refresh_token"]},
    )
    assert r.status_code == 200
    assert r.json()["session"]["access_token"]

    # An access token is not a refresh token, and vice versa.
    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "refresh_token"},
        json={"refresh_token": session["access_token"]},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "invalid_grant"

    r = await client.get("/auth/v1/user", headers=_bearer(session["refresh_token"]))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_current_user_and_logout(client: httpx.AsyncClient) -> None:
    body = await _sign_up(client, "nadia@example.com", "pass123")
    token = body["session"]["access_token"]

    r = await client.get("/auth/v1/user", headers=_bearer(token))
    assert r.status_code == 200
    assert r.json()["id"] == body["user"]["id"]

    assert (await client.get("/auth/v1/user")).status_code == 401
    assert (await client.post("/auth/v1/logout", headers=_bearer(token))).status_code == 204
    assert (await client.post("/auth/v1/logout")).status_code == 401


@pytest.mark.asyncio
async def test_assign_role_is_idempotent_for_provisioned_admin(
    app, client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass123")
    body = await _sign_up(client, "ops@regdesk.admin", "pass123")
    user_id = body["user"]["id"]
    headers = _bearer(body["session"]["access_token"])

    r = await client.post("/rest/v1/rpc/has_role", headers=headers, json={"user_id": user_id, "role": "admin"})
    assert r.json() == {"has_role": False}

    payload = {"user_id": user_id, "role": "admin", "username": "ops"}
    for _ in range(2):
        r = await client.post("/rest/v1/rpc/assign_role", headers=headers, json=payload)
        assert r.status_code == 200
        assert r.json() == {"user_id": user_id, "role": "admin"}

    r = await client.post("/rest/v1/rpc/has_role", headers=headers, json={"user_id": user_id, "role": "admin"})
    assert r.json() == {"has_role": True}

    async with app.state.sessionmaker() as session:
        grants = await RoleRepo(session).list_for_user(uuid.UUID(user_id))
    assert [g.role for g in grants] == [AppRole.admin]


@pytest.mark.asyncio
async def test_assign_role_refused_for_non_admin_identities(
    client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass123")

    # Identity whose email does not belong to the claimed admin username.
    body = await _sign_up(client, "mallory@example.com", "pw")
    r = await client.post(
        "/rest/v1/rpc/assign_role",
        headers=_bearer(body["session"]["access_token"]),
        json={"user_id": body["user"]["id"], "role": "admin", "username": "ops"},
    )
    assert r.status_code == 403

    # A non-admin identity cannot borrow another admin's username either.
    body = await _sign_up(client, "ops@example.com", "pass123")
    r = await client.post(
        "/rest/v1/rpc/assign_role",
        headers=_bearer(body["session"]["access_token"]),
        json={"user_id": body["user"]["id"], "role": "admin", "username": "ops"},
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_role_rpcs_only_answer_for_the_caller(client: httpx.AsyncClient) -> None:
    alice = await _sign_up(client, "alice@example.com", "pw")
    bob = await _sign_up(client, "bob@example.com", "pw")

    r = await client.post(
        "/rest/v1/rpc/has_role",
        headers=_bearer(alice["session"]["access_token"]),
        json={"user_id": bob["user"]["id"], "role": "admin"},
    )
    assert r.status_code == 403

    r = await client.post("/rest/v1/rpc/has_role", json={"user_id": bob["user"]["id"], "role": "admin"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_identity_sign_up_requires_admin_credentials(
    client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass123")

    for payload in (
        {"email": "ops@regdesk.admin", "password": "guess", "data": {"username": "ops"}},
        {"email": "ops@regdesk.admin", "password": "pass123"},
        {"email": "ghost@regdesk.admin", "password": "pass123", "data": {"username": "ghost"}},
        {"email": "ops@regdesk.admin", "password": "pass123", "data": {"username": "other"}},
    ):
        r = await client.post("/auth/v1/signup", json=payload)
        assert r.status_code == 403, payload
        assert r.json()["detail"]["code"] == "admin_credentials_required"

    await _sign_up(client, "ops@regdesk.admin", " pass123 ")


@pytest.mark.asyncio
async def test_admin_identity_accepts_whitespace_variants(
    client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass123")
    await _sign_up(client, "ops@regdesk.admin", "pass 123")

    for password in ("pass123", " pass123 ", "pass 123"):
        r = await client.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": "ops@regdesk.admin", "password": password},
        )
        assert r.status_code == 200, password

    # Non-admin identities compare passwords exactly.
    await _sign_up(client, "nadia@example.com", "pass 123")
    r = await client.post(
        "/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": "nadia@example.com", "password": "pass123"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_admin_identity_grant_requires_verifier_acceptance(
    client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass 123")
    await _sign_up(client, "ops@regdesk.admin", "pass 123")

    for password, status in (("pass 123", 200), (" pass 123 ", 200), ("pass123", 400), ("pa ss12 3", 400)):
        r = await client.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": "ops@regdesk.admin", "password": password},
        )
        assert r.status_code == status, password

    r = await client.post("/verify-admin-login", json={"username": "ops", "password": "pass123"})
    assert r.json() == {"valid": False}


@pytest.mark.asyncio
async def test_concurrent_assign_role_keeps_a_single_grant(
    app, client: httpx.AsyncClient, provision_admin
) -> None:
    await provision_admin("ops", "pass123")
    body = await _sign_up(client, "ops@regdesk.admin", "pass123")
    user_id = body["user"]["id"]
    headers = _bearer(body["session"]["access_token"])
    payload = {"user_id": user_id, "role": "admin", "username": "ops"}

    responses = await asyncio.gather(
        *(client.post("/rest/v1/rpc/assign_role", headers=headers, json=payload) for _ in range(8))
    )
    assert [r.status_code for r in responses] == [200] * 8

    async with app.state.sessionmaker() as session:
        grants = await RoleRepo(session).list_for_user(uuid.UUID(user_id))
    assert [g.role for g in grants] == [AppRole.admin]


@pytest.mark.asyncio
async def test_role_assignment_losing_the_race_returns_the_winner(
    app, client: httpx.AsyncClient, monkeypatch
) -> None:
    user_id = uuid.UUID((await _sign_up(client, "nadia@example.com", "pw"))["user"]["id"])
    async with app.state.sessionmaker() as session:
        winner = await RoleRepo(session).assign(user_id=user_id, role=AppRole.admin)
        winner_id = winner.id

    # The first existence check misses, as if the winner committed right after it.
    original_get = RoleRepo._get
    misses = [None]

    async def racing_get(self, *, user_id, role):
        if misses:
            return misses.pop()
        return await original_get(self, user_id=user_id, role=role)

    monkeypatch.setattr(RoleRepo, "_get", racing_get)
    async with app.state.sessionmaker() as session:
        grant = await RoleRepo(session).assign(user_id=user_id, role=AppRole.admin)
        assert grant.id == winner_id
        assert len(await RoleRepo(session).list_for_user(user_id)) == 1
