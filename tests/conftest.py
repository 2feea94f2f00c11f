"""
tests.conftest

Shared fixtures: isolated settings, an in-process app with its lifespan running, and an
httpx client bound to it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from regdesk.api.app import create_app
from regdesk.auth.passwords import hash_password
from regdesk.db.repositories.admin_users import AdminUserRepo
from regdesk.settings import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'regdesk.db'}",
        bcrypt_rounds=4,
        jwt_secret="test-signing-key-0123456789abcdef0123",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run the lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def provision_admin(app: FastAPI) -> Callable[[str, str], Awaitable[None]]:
    """
    Out-of-band admin provisioning (writes `admin_users` directly).
    """

    async def _provision(username: str, password: str) -> None:
        async with app.state.sessionmaker() as session:
            await AdminUserRepo(session).create(
                username=username, password_hash=hash_password(password, rounds=4)
            )
            await session.commit()

    return _provision
