"""
regdesk.db.repositories.admin_users

Repository for `AdminUser` entities.

Responsibilities:
- Look up provisioned admin credentials for verification.
- Create admin rows (provisioning scripts and tests only; the login flow never writes here).
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from regdesk.db.models import AdminUser


class AdminUserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_username(self, username: str) -> AdminUser | None:
        # Exact match on the stored value; case policy is owned by the unique index.
        stmt = select(AdminUser).where(AdminUser.username == username)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(self, *, username: str, password_hash: str) -> AdminUser:
        admin = AdminUser(username=username, password_hash=password_hash)
        self._session.add(admin)
        await self._session.flush()
        return admin
