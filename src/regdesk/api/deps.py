"""
regdesk.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the per-app settings and a request-scoped DB session.
- Build request-scoped services (credential verifier) from those two.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from regdesk.services.credential_verifier import CredentialVerifier
from regdesk.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Per-app, not `get_settings()`: tests build apps with their own settings.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Only present while the lifespan is running.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Uncommitted work is rolled back when the request ends; routers/repositories commit.
    async with session_factory() as session:
        yield session


def credential_verifier(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> CredentialVerifier:
    return CredentialVerifier(session, bcrypt_rounds=settings.bcrypt_rounds)
