"""
regdesk.db.repositories.identities

Repository for `IdentityAccount` entities (identity-provider principals).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from regdesk.db.models import IdentityAccount


class IdentityRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, account_id: uuid.UUID) -> IdentityAccount | None:
        return await self._session.get(IdentityAccount, account_id)

    async def get_by_email(self, email: str) -> IdentityAccount | None:
        stmt = select(IdentityAccount).where(IdentityAccount.email == email)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        user_metadata: dict[str, Any] | None = None,
    ) -> IdentityAccount:
        account = IdentityAccount(
            email=email,
            password_hash=password_hash,
            user_metadata=dict(user_metadata or {}),
        )
        self._session.add(account)
        await self._session.flush()
        return account

    async def touch_sign_in(self, account: IdentityAccount) -> None:
        account.last_sign_in_at = datetime.now(tz=UTC).replace(tzinfo=None)
        await self._session.flush()
