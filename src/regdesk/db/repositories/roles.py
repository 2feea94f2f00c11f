"""
regdesk.db.repositories.roles

Repository for `UserRole` grants.

Responsibilities:
- Answer "does this user hold this role" (the authoritative admin check).
- Assign grants idempotently, including under concurrent assignment.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from regdesk.db.models import AppRole, UserRole


class RoleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get(self, *, user_id: uuid.UUID, role: AppRole) -> UserRole | None:
        stmt = select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def has_role(self, *, user_id: uuid.UUID, role: AppRole) -> bool:
        return await self._get(user_id=user_id, role=role) is not None

    async def assign(self, *, user_id: uuid.UUID, role: AppRole) -> UserRole:
        """
        Create-if-absent and commit.

        A concurrent assignment that wins the race surfaces here as an IntegrityError on the
        (user_id, role) unique constraint; the losing transaction is rolled back and the
        winner's row is returned instead.
        """

        existing = await self._get(user_id=user_id, role=role)
        if existing is not None:
            return existing

        grant = UserRole(user_id=user_id, role=role)
        self._session.add(grant)
        try:
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            existing = await self._get(user_id=user_id, role=role)
            if existing is None:
                raise
            return existing
        return grant

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserRole]:
        stmt = select(UserRole).where(UserRole.user_id == user_id)
        return list((await self._session.execute(stmt)).scalars().all())
