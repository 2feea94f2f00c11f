"""
regdesk.api.routers.registrations

Event registrations.

Responsibilities:
- Public submission endpoint for the registration form.
- Admin-only listing (search/section/fee filters), detail, summary stats and deletion.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT, HTTP_404_NOT_FOUND

from regdesk.api.deps import db_session
from regdesk.auth.deps import require_admin
from regdesk.auth.models import Principal
from regdesk.db.models import Registration
from regdesk.db.repositories.registrations import RegistrationRepo
from regdesk.observability.logging import get_logger

router = APIRouter(prefix="/v1/registrations", tags=["registrations"])
log = get_logger(__name__)

FullName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=100, pattern=r"^[a-zA-Z\s.'-]+$"),
]
ShortCode = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]
Section = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\+8801[0-9]{9}$")]
Address = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
BloodGroup = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


class RegistrationCreate(BaseModel):
    full_name: FullName
    student_id: ShortCode
    roll_number: ShortCode
    section: Section
    blood_group: BloodGroup
    phone_number: Phone
    present_address: Address
    permanent_address: Address
    fee_paid: bool


class RegistrationOut(BaseModel):
    id: uuid.UUID
    full_name: str
    student_id: str
    roll_number: str
    section: str
    blood_group: str
    phone_number: str
    present_address: str
    permanent_address: str
    fee_paid: bool
    created_at: datetime


class SectionCount(BaseModel):
    section: str
    count: int


class RegistrationStatsOut(BaseModel):
    total: int
    fee_paid: int
    fee_not_paid: int
    by_section: list[SectionCount]


def _out(reg: Registration) -> RegistrationOut:
    return RegistrationOut(
        id=reg.id,
        full_name=reg.full_name,
        student_id=reg.student_id,
        roll_number=reg.roll_number,
        section=reg.section,
        blood_group=reg.blood_group,
        phone_number=reg.phone_number,
        present_address=reg.present_address,
        permanent_address=reg.permanent_address,
        fee_paid=reg.fee_paid,
        created_at=reg.created_at,
    )


@router.post("", response_model=RegistrationOut, status_code=HTTP_201_CREATED)
async def submit_registration(
    body: RegistrationCreate,
    session: AsyncSession = Depends(db_session),
) -> RegistrationOut:
    # Public: no auth. Field rules mirror the registration form.
    reg = await RegistrationRepo(session).create(**body.model_dump())
    await session.commit()
    log.info("registration_submitted", registration_id=str(reg.id), section=reg.section)
    return _out(reg)


@router.get("", response_model=list[RegistrationOut])
async def list_registrations(
    search: str | None = Query(default=None, max_length=100),
    section: str | None = Query(default=None, max_length=10),
    fee_paid: bool | None = None,
    order: Literal["asc", "desc"] = "desc",
    _: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> list[RegistrationOut]:
    regs = await RegistrationRepo(session).list_filtered(
        search=search.strip() if search else None,
        section=section.strip() if section else None,
        fee_paid=fee_paid,
        order=order,
    )
    return [_out(r) for r in regs]


@router.get("/stats", response_model=RegistrationStatsOut)
async def registration_stats(
    _: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> RegistrationStatsOut:
    stats = await RegistrationRepo(session).stats()
    return RegistrationStatsOut(
        total=stats.total,
        fee_paid=stats.fee_paid,
        fee_not_paid=stats.fee_not_paid,
        by_section=[SectionCount(section=s, count=n) for s, n in stats.by_section],
    )


@router.get("/{registration_id}", response_model=RegistrationOut)
async def get_registration(
    registration_id: uuid.UUID,
    _: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> RegistrationOut:
    reg = await RegistrationRepo(session).get(registration_id)
    if reg is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Registration not found")
    return _out(reg)


@router.delete("/{registration_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_registration(
    registration_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> Response:
    if not await RegistrationRepo(session).delete(registration_id):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Registration not found")
    await session.commit()
    log.info("registration_deleted", registration_id=str(registration_id), actor=principal.subject)
    return Response(status_code=HTTP_204_NO_CONTENT)


# --- Module Notes -----------------------------------------------------------
# `/stats` is declared before `/{registration_id}` so it is not captured by the path parameter.
