"""
regdesk.auth.jwt

JWT issuing and validation helpers for identity-provider sessions.

Responsibilities:
- Issue access and refresh tokens (HS256) for identity accounts.
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub/typ).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import jwt
from jwt import InvalidTokenError

TokenType = Literal["access", "refresh"]


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    token_type: TokenType = "access",
    roles: list[str] | None = None,
    claims: dict[str, Any] | None = None,
    ttl: timedelta = timedelta(hours=1),
) -> tuple[str, datetime]:
    """
    Returns the encoded token and its expiry.
    Registered claims always win over `claims` so callers cannot forge iss/aud/exp.
    """

    now = datetime.now(tz=UTC)
    expires_at = now + ttl
    payload: dict[str, Any] = dict(claims or {})
    payload.update(
        {
            "iss": cfg.issuer,
            "aud": cfg.audience,
            "sub": subject,
            "typ": token_type,
            "roles": list(roles or []),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
    )
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg), expires_at


def decode_and_validate(
    *, cfg: JwtConfig, token: str, token_type: TokenType = "access"
) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub", "typ"],
            },
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e

    # A refresh token must never be accepted as a bearer credential (and vice versa).
    if payload.get("typ") != token_type:
        raise JwtValidationError(f"Expected a {token_type} token")
    return payload


# --- Module Notes -----------------------------------------------------------
# Tokens are issued by `api/routers/identity/auth.py` and validated by `auth/deps.py`.
