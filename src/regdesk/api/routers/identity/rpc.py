"""
regdesk.api.routers.identity.rpc

Role-store RPCs.

Responsibilities:
- `has_role`: does the caller hold a role (callers may only ask about themselves).
- `assign_role`: idempotently grant the admin role to the caller's identity, but only when the
  identity belongs to a provisioned admin username.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_403_FORBIDDEN

from regdesk.api.deps import db_session, settings_dep
from regdesk.auth.deps import get_principal
from regdesk.auth.emails import admin_email_for_username
from regdesk.auth.models import Principal
from regdesk.db.models import AppRole
from regdesk.db.repositories.admin_users import AdminUserRepo
from regdesk.db.repositories.identities import IdentityRepo
from regdesk.db.repositories.roles import RoleRepo
from regdesk.observability.logging import get_logger
from regdesk.settings import Settings

router = APIRouter()
log = get_logger(__name__)


class HasRoleRequest(BaseModel):
    user_id: uuid.UUID
    role: AppRole


class AssignRoleRequest(HasRoleRequest):
    username: str = Field(min_length=1, max_length=64)


def _require_self(principal: Principal, user_id: uuid.UUID) -> None:
    if principal.user_id != user_id:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Cannot access another user's roles")


@router.post("/has_role")
async def has_role(
    body: HasRoleRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    _require_self(principal, body.user_id)
    return {"has_role": await RoleRepo(session).has_role(user_id=body.user_id, role=body.role)}


@router.post("/assign_role")
async def assign_role(
    body: AssignRoleRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, str]:
    _require_self(principal, body.user_id)

    username = body.username.strip()
    admin = await AdminUserRepo(session).get_by_username(username)
    account = await IdentityRepo(session).get(body.user_id)
    expected_email = admin_email_for_username(username, domain=settings.admin_email_domain)
    if admin is None or account is None or account.email != expected_email:
        log.warning("role_assignment_refused", user_id=str(body.user_id), username=username)
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Not a provisioned admin identity")

    grant = await RoleRepo(session).assign(user_id=body.user_id, role=body.role)
    log.info("role_assigned", user_id=str(grant.user_id), role=grant.role.value)
    return {"user_id": str(grant.user_id), "role": grant.role.value}


# --- Module Notes -----------------------------------------------------------
# The admin check that matters for data access is `auth.deps.require_admin`, which reads the
# same `user_roles` table on every request.
