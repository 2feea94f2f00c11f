"""
regdesk.api.routers.identity.auth

Identity accounts and sessions.

Responsibilities:
- Password sign-up (`/signup`) and sign-in / refresh (`/token`).
- Admin identities (emails in the admin domain): sign-up and every password grant require
  the credential verifier to accept the password for the account's username. The stored
  hash is whitespace-free so every variant the verifier accepts opens the same account,
  and it still detects an identity left behind by an admin password rotation.
- Session introspection (`/user`) and sign-out (`/logout`).
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
)

from regdesk.api.deps import credential_verifier, db_session, settings_dep
from regdesk.auth.deps import get_principal, jwt_config
from regdesk.auth.emails import admin_email_for_username
from regdesk.auth.jwt import JwtValidationError, decode_and_validate, issue_token
from regdesk.auth.models import Principal
from regdesk.auth.passwords import check_password, hash_password, without_whitespace
from regdesk.db.models import IdentityAccount
from regdesk.db.repositories.identities import IdentityRepo
from regdesk.observability.logging import get_logger
from regdesk.services.credential_verifier import CredentialVerifier
from regdesk.settings import Settings

router = APIRouter()
log = get_logger(__name__)

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class SignUpRequest(BaseModel):
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    data: dict[str, Any] = Field(default_factory=dict)


class TokenRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    refresh_token: str | None = None


class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    user_metadata: dict[str, Any]
    created_at: datetime
    last_sign_in_at: datetime | None


class SessionOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: int


class AuthResponse(BaseModel):
    user: UserOut
    session: SessionOut | None


def _auth_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_admin_identity(email: str, settings: Settings) -> bool:
    return email.rpartition("@")[2] == settings.admin_email_domain.lower()


def _identity_secret(email: str, password: str, settings: Settings) -> str:
    if _is_admin_identity(email, settings):
        return without_whitespace(password)
    return password


def _user_out(account: IdentityAccount) -> UserOut:
    return UserOut(
        id=account.id,
        email=account.email,
        user_metadata=account.user_metadata or {},
        created_at=account.created_at,
        last_sign_in_at=account.last_sign_in_at,
    )


def _issue_session(settings: Settings, account: IdentityAccount) -> SessionOut:
    cfg = jwt_config(settings)
    access_token, expires_at = issue_token(
        cfg=cfg,
        subject=str(account.id),
        token_type="access",
        roles=["authenticated"],
        claims={"email": account.email},
        ttl=timedelta(minutes=settings.access_token_ttl_minutes),
    )
    refresh_token, _ = issue_token(
        cfg=cfg,
        subject=str(account.id),
        token_type="refresh",
        ttl=timedelta(days=settings.refresh_token_ttl_days),
    )
    return SessionOut(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_ttl_minutes * 60,
        expires_at=int(expires_at.timestamp()),
    )


@router.post("/signup", response_model=AuthResponse)
async def sign_up(
    body: SignUpRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    verifier: CredentialVerifier = Depends(credential_verifier),
) -> AuthResponse:
    email = _normalize_email(body.email)
    if _is_admin_identity(email, settings):
        await _check_admin_sign_up(verifier, settings, email=email, body=body)

    identities = IdentityRepo(session)
    if await identities.get_by_email(email) is not None:
        raise _auth_error(422, "user_already_exists", "User already registered")

    secret = _identity_secret(email, body.password, settings)
    password_hash = await asyncio.to_thread(hash_password, secret, rounds=settings.bcrypt_rounds)
    account = await identities.create(email=email, password_hash=password_hash, user_metadata=body.data)
    await identities.touch_sign_in(account)
    try:
        await session.commit()
    except IntegrityError as e:
        # Lost a race against a concurrent sign-up for the same email.
        await session.rollback()
        raise _auth_error(422, "user_already_exists", "User already registered") from e

    log.info("identity_signed_up", user_id=str(account.id))
    return AuthResponse(user=_user_out(account), session=_issue_session(settings, account))


async def _check_admin_sign_up(
    verifier: CredentialVerifier, settings: Settings, *, email: str, body: SignUpRequest
) -> None:
    username = str(body.data.get("username") or "").strip()
    allowed = bool(username) and (
        admin_email_for_username(username, domain=settings.admin_email_domain) == email
    )
    if allowed:
        allowed = await verifier.verify(username=username, password=body.password)
    if not allowed:
        log.warning("admin_identity_sign_up_refused", email=email)
        raise _auth_error(
            HTTP_403_FORBIDDEN,
            "admin_credentials_required",
            "Admin identities require valid admin credentials",
        )


@router.post("/token", response_model=AuthResponse)
async def token(
    body: TokenRequest,
    grant_type: Literal["password", "refresh_token"] = Query(...),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    verifier: CredentialVerifier = Depends(credential_verifier),
) -> AuthResponse:
    identities = IdentityRepo(session)
    if grant_type == "password":
        account = await _password_grant(identities, verifier, body, settings)
        await identities.touch_sign_in(account)
        await session.commit()
    else:
        account = await _refresh_grant(identities, body, settings)

    log.info("identity_session_issued", user_id=str(account.id), grant_type=grant_type)
    return AuthResponse(user=_user_out(account), session=_issue_session(settings, account))


async def _password_grant(
    identities: IdentityRepo, verifier: CredentialVerifier, body: TokenRequest, settings: Settings
) -> IdentityAccount:
    if not body.email or not body.password:
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_request", "Email and password are required")

    email = _normalize_email(body.email)
    account = await identities.get_by_email(email)
    if account is None or not await asyncio.to_thread(
        check_password, _identity_secret(email, body.password, settings), account.password_hash
    ):
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_credentials", "Invalid login credentials")
    if _is_admin_identity(email, settings) and not await _admin_password_accepted(
        verifier, account, body.password
    ):
        log.warning("admin_identity_grant_refused", user_id=str(account.id))
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_credentials", "Invalid login credentials")
    return account


async def _admin_password_accepted(
    verifier: CredentialVerifier, account: IdentityAccount, password: str
) -> bool:
    # The whitespace-free hash matches more strings than the admin credential does.
    username = str((account.user_metadata or {}).get("username") or "").strip()
    if not username:
        return False
    return await verifier.verify(username=username, password=password)


async def _refresh_grant(
    identities: IdentityRepo, body: TokenRequest, settings: Settings
) -> IdentityAccount:
    if not body.refresh_token:
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_request", "refresh_token is required")
    try:
        payload = decode_and_validate(
            cfg=jwt_config(settings), token=body.refresh_token, token_type="refresh"
        )
        account = await identities.get(uuid.UUID(str(payload["sub"])))
    except (JwtValidationError, ValueError) as e:
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_grant", "Invalid refresh token") from e
    if account is None:
        raise _auth_error(HTTP_400_BAD_REQUEST, "invalid_grant", "Invalid refresh token")
    return account


@router.get("/user", response_model=UserOut)
async def current_user(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserOut:
    account = await IdentityRepo(session).get(principal.user_id)
    if account is None:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="User not found")
    return _user_out(account)


@router.post("/logout", status_code=HTTP_204_NO_CONTENT)
async def logout(principal: Principal = Depends(get_principal)) -> Response:
    # Tokens are stateless: the client drops its session; this only records the event.
    log.info("identity_signed_out", user_id=principal.subject)
    return Response(status_code=HTTP_204_NO_CONTENT)
