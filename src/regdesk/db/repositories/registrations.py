"""
regdesk.db.repositories.registrations

Repository for `Registration` entities.

Responsibilities:
- Persist public registrations.
- Filtered listing, summary counts and deletion for the admin surface.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from regdesk.db.models import Registration


@dataclass(frozen=True, slots=True)
class RegistrationStats:
    total: int
    fee_paid: int
    fee_not_paid: int
    by_section: list[tuple[str, int]]


class RegistrationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        full_name: str,
        student_id: str,
        roll_number: str,
        section: str,
        blood_group: str,
        phone_number: str,
        present_address: str,
        permanent_address: str,
        fee_paid: bool,
    ) -> Registration:
        reg = Registration(
            full_name=full_name,
            student_id=student_id,
            roll_number=roll_number,
            section=section,
            blood_group=blood_group,
            phone_number=phone_number,
            present_address=present_address,
            permanent_address=permanent_address,
            fee_paid=fee_paid,
        )
        self._session.add(reg)
        await self._session.flush()
        return reg

    async def get(self, registration_id: uuid.UUID) -> Registration | None:
        return await self._session.get(Registration, registration_id)

    async def list_filtered(
        self,
        *,
        search: str | None = None,
        section: str | None = None,
        fee_paid: bool | None = None,
        order: Literal["asc", "desc"] = "desc",
    ) -> list[Registration]:
        stmt = select(Registration)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Registration.full_name).like(pattern),
                    func.lower(Registration.student_id).like(pattern),
                    func.lower(Registration.roll_number).like(pattern),
                )
            )
        if section:
            stmt = stmt.where(func.upper(Registration.section) == section.upper())
        if fee_paid is not None:
            stmt = stmt.where(Registration.fee_paid == fee_paid)

        direction = desc if order == "desc" else asc
        stmt = stmt.order_by(direction(Registration.created_at))
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, registration_id: uuid.UUID) -> bool:
        reg = await self._session.get(Registration, registration_id)
        if reg is None:
            return False
        await self._session.delete(reg)
        await self._session.flush()
        return True

    async def stats(self) -> RegistrationStats:
        fee_stmt = select(Registration.fee_paid, func.count()).group_by(Registration.fee_paid)
        fee_counts = {bool(paid): int(n) for paid, n in (await self._session.execute(fee_stmt))}

        section_key = func.upper(Registration.section)
        section_stmt = (
            select(section_key, func.count()).group_by(section_key).order_by(section_key)
        )
        by_section = [(str(s), int(n)) for s, n in (await self._session.execute(section_stmt))]

        paid = fee_counts.get(True, 0)
        not_paid = fee_counts.get(False, 0)
        return RegistrationStats(
            total=paid + not_paid,
            fee_paid=paid,
            fee_not_paid=not_paid,
            by_section=by_section,
        )


# --- Module Notes -----------------------------------------------------------
# Search uses LIKE over lowercased columns; `%`/`_` in the search term act as wildcards.
