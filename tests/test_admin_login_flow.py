"""
tests.test_admin_login_flow

Admin login end to end: the HTTP-backed provider talking to the in-process API.
"""

from __future__ import annotations

import uuid

import httpx
import pytest

from regdesk.auth.passwords import hash_password
from regdesk.db.repositories.admin_users import AdminUserRepo
from regdesk.db.repositories.roles import RoleRepo
from regdesk.services.admin_auth import AuthPhase, build_auth_provider, create_backend_client


@pytest.mark.asyncio
async def test_first_and_repeat_admin_login(app, client: httpx.AsyncClient, settings, provision_admin) -> None:
    await provision_admin("ops", "pass123")

    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    assert provider.state.phase == AuthPhase.unauthenticated

    result = await provider.admin_login("ops", "pass123")
    assert result.success is True, result
    await provider.wait_until_settled()
    assert provider.state.is_admin is True
    assert provider.state.phase == AuthPhase.authenticated_admin
    assert provider.state.user is not None
    assert provider.state.user.email == "ops@regdesk.admin"
    user_id = provider.state.user.id

    await provider.logout()
    assert provider.state.phase == AuthPhase.unauthenticated
    await provider.close()

    again = build_auth_provider(settings=settings, http=client)
    await again.start()
    result = await again.admin_login("ops", "pass123")
    assert result.success is True, result
    await again.wait_until_settled()
    assert again.state.user is not None
    assert again.state.user.id == user_id
    await again.close()

    async with app.state.sessionmaker() as session:
        grants = await RoleRepo(session).list_for_user(uuid.UUID(user_id))
    assert len(grants) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(("username", "password"), [("ops", "wrong"), ("ghost", "pass123")])
async def test_rejected_credentials_leave_state_unchanged(
    client: httpx.AsyncClient, settings, provision_admin, username: str, password: str
) -> None:
    await provision_admin("ops", "pass123")

    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    before = provider.state

    result = await provider.admin_login(username, password)
    assert result.success is False
    assert result.error == "Invalid username or password"
    assert provider.state == before
    await provider.close()


@pytest.mark.asyncio
async def test_whitespace_in_password_is_tolerated(client: httpx.AsyncClient, settings, provision_admin) -> None:
    await provision_admin("ops", "pass123")

    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    result = await provider.admin_login("ops", " pass123 ")
    assert result.success is True, result
    await provider.logout()

    # A later login with the exact password reaches the same identity account.
    result = await provider.admin_login("ops", "pass123")
    assert result.success is True, result
    await provider.close()


@pytest.mark.asyncio
async def test_desynced_identity_account(
    app, client: httpx.AsyncClient, settings, provision_admin
) -> None:
    await provision_admin("ops", "old-pass")
    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    assert (await provider.admin_login("ops", "old-pass")).success is True
    await provider.logout()

    # Admin password rotated without resetting the identity account.
    async with app.state.sessionmaker() as session:
        admin = await AdminUserRepo(session).get_by_username("ops")
        assert admin is not None
        admin.password_hash = hash_password("pass123", rounds=4)
        await session.commit()

    result = await provider.admin_login("ops", "pass123")
    assert result.success is False
    assert result.code == "account_desynced"
    assert provider.state.is_admin is False
    await provider.close()


@pytest.mark.asyncio
async def test_logout_twice_is_safe(client: httpx.AsyncClient, settings, provision_admin) -> None:
    await provision_admin("ops", "pass123")

    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    assert (await provider.admin_login("ops", "pass123")).success is True

    await provider.logout()
    await provider.logout()
    assert provider.state.session is None
    assert provider.state.is_admin is False
    assert await provider.ensure_admin() is False
    await provider.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(("username", "password"), [("ops", "   "), ("  ", "pass123")])
async def test_blank_credentials_are_invalid(
    client: httpx.AsyncClient, settings, provision_admin, username: str, password: str
) -> None:
    await provision_admin("ops", "pass123")

    provider = build_auth_provider(settings=settings, http=client)
    await provider.start()
    result = await provider.admin_login(username, password)
    assert result.success is False
    assert result.code == "invalid_credentials"
    await provider.close()


@pytest.mark.asyncio
async def test_unreachable_backend_reports_verification_unavailable(settings) -> None:
    seen: list[httpx.URL] = []

    def refuse(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        raise httpx.ConnectError("connection refused", request=request)

    settings = settings.model_copy(update={"backend_base_url": "http://backend.invalid:9000"})
    async with create_backend_client(settings, transport=httpx.MockTransport(refuse)) as http:
        assert http.timeout.connect == settings.request_timeout_seconds
        provider = build_auth_provider(settings=settings, http=http)
        await provider.start()
        result = await provider.admin_login("ops", "pass123")

    assert result.success is False
    assert result.code == "verification_unavailable"
    assert [str(url) for url in seen] == ["http://backend.invalid:9000/verify-admin-login"]
