"""
regdesk.clients.identity

Identity-provider client boundary.

Responsibilities:
- Define the session/user types and the `IdentityProvider` capability interface.
- Implement it over HTTP against the `/auth/v1` endpoints.
- Hold the current session and notify subscribers when it changes.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from regdesk.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class IdentityUser:
    id: str
    email: str
    user_metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> IdentityUser:
        return cls(
            id=str(payload["id"]),
            email=str(payload["email"]),
            user_metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass(frozen=True, slots=True)
class Session:
    access_token: str
    refresh_token: str
    expires_at: datetime
    user: IdentityUser

    @property
    def expired(self) -> bool:
        return datetime.now(tz=UTC) >= self.expires_at

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, user: IdentityUser) -> Session:
        return cls(
            access_token=str(payload["access_token"]),
            refresh_token=str(payload["refresh_token"]),
            expires_at=datetime.fromtimestamp(int(payload["expires_at"]), tz=UTC),
            user=user,
        )


class AuthChangeEvent(enum.StrEnum):
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"


# Listeners run synchronously inside the emitting call and must not await network I/O.
AuthStateListener = Callable[[AuthChangeEvent, Session | None], None]


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe

    def unsubscribe(self) -> None:
        self._unsubscribe()


class IdentityError(Exception):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    @property
    def already_registered(self) -> bool:
        return self.code == "user_already_exists" or "already" in str(self).lower()


class IdentityProvider(Protocol):
    async def get_session(self) -> Session | None: ...

    def on_auth_state_change(self, listener: AuthStateListener) -> Subscription: ...

    async def sign_in_with_password(self, *, email: str, password: str) -> Session: ...

    async def sign_up(
        self, *, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> Session | None: ...

    async def sign_out(self) -> None: ...


class HttpIdentityProvider:
    """
    Keeps the session in memory for the lifetime of the client process.
    """

    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http
        self._session: Session | None = None
        self._listeners: list[AuthStateListener] = []

    def access_token(self) -> str | None:
        return self._session.access_token if self._session is not None else None

    async def get_session(self) -> Session | None:
        session = self._session
        if session is not None and session.expired:
            try:
                return await self.refresh_session()
            except IdentityError as e:
                log.warning("identity_refresh_failed", error=str(e), code=e.code)
                self._set_session(None, AuthChangeEvent.signed_out)
                return None
        return session

    def on_auth_state_change(self, listener: AuthStateListener) -> Subscription:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_remove)

    async def sign_in_with_password(self, *, email: str, password: str) -> Session:
        payload = await self._post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = _session_from(payload)
        if session is None:
            raise IdentityError("Sign-in returned no session", code="session_missing")
        self._set_session(session, AuthChangeEvent.signed_in)
        return session

    async def sign_up(
        self, *, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> Session | None:
        payload = await self._post(
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": dict(metadata or {})},
        )
        # A provider that requires email confirmation returns the user without a session.
        session = _session_from(payload)
        if session is not None:
            self._set_session(session, AuthChangeEvent.signed_in)
        return session

    async def refresh_session(self) -> Session:
        if self._session is None:
            raise IdentityError("No session to refresh", code="session_missing")
        payload = await self._post(
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        session = _session_from(payload)
        if session is None:
            raise IdentityError("Refresh returned no session", code="session_missing")
        self._set_session(session, AuthChangeEvent.token_refreshed)
        return session

    async def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        try:
            r = await self._http.post(
                "/auth/v1/logout",
                headers={"Authorization": f"Bearer {session.access_token}"},
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            # Tokens are stateless; dropping the local session is what ends it for this client.
            log.warning("identity_sign_out_failed", error=str(e))
        finally:
            self._set_session(None, AuthChangeEvent.signed_out)

    def _set_session(self, session: Session | None, event: AuthChangeEvent) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(event, session)

    async def _post(
        self,
        path: str,
        *,
        json: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            r = await self._http.post(path, params=params, json=json)
        except httpx.HTTPError as e:
            raise IdentityError(f"Identity provider unreachable: {e}", code="unavailable") from e
        if r.is_error:
            raise _error_from_response(r)
        return r.json()


def _session_from(payload: dict[str, Any]) -> Session | None:
    raw_session = payload.get("session")
    raw_user = payload.get("user")
    if not raw_session or not raw_user:
        return None
    return Session.from_payload(raw_session, user=IdentityUser.from_payload(raw_user))


def _error_from_response(r: httpx.Response) -> IdentityError:
    message = f"Identity provider responded with HTTP {r.status_code}"
    code: str | None = None
    try:
        detail = r.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if isinstance(detail, dict):
        message = str(detail.get("message") or message)
        code = detail.get("code")
    elif isinstance(detail, str):
        message = detail
    return IdentityError(message, code=code, status_code=r.status_code)


# --- Module Notes -----------------------------------------------------------
# The emulated provider lives in `api/routers/identity`; a hosted provider exposing the same
# operations can be swapped in by implementing `IdentityProvider`.
