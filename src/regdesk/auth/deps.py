"""
regdesk.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer access token into a typed `Principal`.
- Gate admin endpoints on a fresh role-grant lookup (never on token contents).
"""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from regdesk.api.deps import db_session, settings_dep
from regdesk.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from regdesk.auth.models import Principal
from regdesk.db.models import AppRole
from regdesk.db.repositories.roles import RoleRepo
from regdesk.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(cfg=jwt_config(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    try:
        uuid.UUID(subject)
    except ValueError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from e

    roles_raw = payload.get("roles", [])
    if not isinstance(roles_raw, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")

    return Principal(
        subject=subject,
        email=str(payload.get("email", "")),
        roles=frozenset(str(r) for r in roles_raw),
    )


async def require_admin(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> Principal:
    # Authz is re-derived from `user_roles` on every privileged request.
    if not await RoleRepo(session).has_role(user_id=principal.user_id, role=AppRole.admin):
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Admin role required")
    return principal


# --- Module Notes -----------------------------------------------------------
# `get_principal` guards the identity-provider endpoints (`/auth/v1/*`, `/rest/v1/rpc/*`);
# `require_admin` guards the registrations admin surface.
