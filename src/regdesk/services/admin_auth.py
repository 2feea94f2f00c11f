"""
regdesk.services.admin_auth

Session/Role Provider for admin clients.

Responsibilities:
- Own the process-wide auth state (user, session, admin flag, loading flag).
- Run the admin login sequence: verify credentials, establish an identity session
  (sign-in, else sign-up on demand), grant the admin role, refresh the admin flag.
- React to identity-provider session changes without doing network I/O inside the
  provider's callback.

State model:
- UNAUTHENTICATED      no session
- AUTHENTICATING_ROLE  session present, role lookup in flight (`is_loading`)
- AUTHENTICATED        session present, no admin grant
- AUTHENTICATED_ADMIN  session present, admin grant confirmed by the role store

`is_admin` is only meaningful once `is_loading` is false. It is always the result of a
role-store lookup; email addresses are never used to infer it.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, replace

import httpx

from regdesk.auth.emails import admin_email_for_username
from regdesk.clients.identity import (
    AuthChangeEvent,
    HttpIdentityProvider,
    IdentityError,
    IdentityProvider,
    IdentityUser,
    Session,
    Subscription,
)
from regdesk.clients.roles import HttpRoleStore, RoleStore, RoleStoreError
from regdesk.clients.verifier import AdminLoginVerifier, HttpAdminLoginVerifier, VerifierError
from regdesk.observability.logging import get_logger
from regdesk.services.errors import (
    AccountDesynced,
    AdminLoginError,
    GrantAssignmentFailed,
    InvalidCredentials,
    LoginTimedOut,
    SessionUnavailable,
    Unexpected,
    VerificationUnavailable,
)
from regdesk.settings import Settings

log = get_logger(__name__)

ADMIN_ROLE = "admin"


class AuthPhase(enum.StrEnum):
    unauthenticated = "UNAUTHENTICATED"
    authenticating_role = "AUTHENTICATING_ROLE"
    authenticated = "AUTHENTICATED"
    authenticated_admin = "AUTHENTICATED_ADMIN"


@dataclass(frozen=True, slots=True)
class AuthState:
    user: IdentityUser | None = None
    session: Session | None = None
    is_admin: bool = False
    is_loading: bool = True

    @property
    def phase(self) -> AuthPhase:
        if self.session is None:
            return AuthPhase.unauthenticated
        if self.is_loading:
            return AuthPhase.authenticating_role
        if self.is_admin:
            return AuthPhase.authenticated_admin
        return AuthPhase.authenticated


@dataclass(frozen=True, slots=True)
class LoginResult:
    success: bool
    error: str | None = None
    code: str | None = None


@dataclass(slots=True)
class _LoginAttempt:
    session: Session | None = None


class AuthProvider:
    """
    Single owner of the client's auth state.

    Consumers read `state` (an immutable snapshot); only this class replaces it. Role
    lookups may overlap: the last one to *complete* wins, and `is_loading` stays true until
    none is in flight. A lookup for a principal that is no longer current is dropped.
    """

    def __init__(
        self,
        *,
        identity: IdentityProvider,
        roles: RoleStore,
        verifier: AdminLoginVerifier,
        admin_email_domain: str,
        timeout_seconds: float | None = None,
    ) -> None:
        self._identity = identity
        self._roles = roles
        self._verifier = verifier
        self._email_domain = admin_email_domain
        self._timeout = timeout_seconds

        self._state = AuthState()
        self._role_tasks: set[asyncio.Task[None]] = set()
        self._subscription: Subscription | None = None

    @property
    def state(self) -> AuthState:
        return self._state

    def _set(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)

    # --- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._identity.on_auth_state_change(self._on_auth_state_change)

        try:
            session = await self._identity.get_session()
        except IdentityError as e:
            log.warning("auth_session_check_failed", error=str(e))
            session = None
        self._apply_session(session)

    async def wait_until_settled(self) -> None:
        # Cancelling a waiter never cancels the lookups themselves.
        while self._role_tasks:
            await asyncio.wait(list(self._role_tasks))

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        pending = list(self._role_tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # --- session change handling ----------------------------------------------

    def _on_auth_state_change(self, event: AuthChangeEvent, session: Session | None) -> None:
        # Called synchronously by the identity provider; must not await anything.
        log.info(
            "auth_state_changed",
            auth_event=str(event),
            user_id=session.user.id if session is not None else None,
        )
        self._apply_session(session)

    def _apply_session(self, session: Session | None) -> None:
        if session is None:
            self._set(user=None, session=None, is_admin=False, is_loading=False)
            return

        current = self._state.user
        same_user = current is not None and current.id == session.user.id
        self._set(
            user=session.user,
            session=session,
            is_admin=self._state.is_admin if same_user else False,
            is_loading=True,
        )
        self._schedule_role_refresh(session.user)

    def _schedule_role_refresh(self, user: IdentityUser) -> None:
        # create_task only starts the coroutine on a later loop iteration, after the caller
        # (possibly the provider's notification callback) has returned.
        task = asyncio.get_running_loop().create_task(self._refresh_role(user))
        self._role_tasks.add(task)
        task.add_done_callback(self._role_tasks.discard)

    async def _refresh_role(self, user: IdentityUser) -> None:
        is_admin = await self._lookup_role(user)
        current = asyncio.current_task()
        if current is not None:
            self._role_tasks.discard(current)
        self._apply_role(user, is_admin)

    async def _lookup_role(self, user: IdentityUser) -> bool:
        try:
            return await self._roles.query_grant(user_id=user.id, role=ADMIN_ROLE)
        except RoleStoreError as e:
            log.warning("admin_role_lookup_failed", user_id=user.id, error=str(e))
        except Exception:
            log.exception("admin_role_lookup_crashed", user_id=user.id)
        return False

    def _apply_role(self, user: IdentityUser, is_admin: bool) -> None:
        current = self._state.user
        if current is None or current.id != user.id:
            log.debug("stale_role_lookup_dropped", user_id=user.id)
            return
        self._set(is_admin=is_admin, is_loading=bool(self._role_tasks))

    # --- operations -----------------------------------------------------------

    async def ensure_admin(self) -> bool:
        """
        Fresh role lookup for the current principal; call before privileged operations
        instead of trusting the cached flag.
        """

        user = self._state.user
        if user is None:
            return False
        is_admin = await self._lookup_role(user)
        self._apply_role(user, is_admin)
        current = self._state.user
        return is_admin and current is not None and current.id == user.id

    async def admin_login(self, username: str, password: str) -> LoginResult:
        prior = self._state
        attempt = _LoginAttempt()
        try:
            async with asyncio.timeout(self._timeout):
                await self._login(attempt, username, password)
        except TimeoutError:
            error: AdminLoginError = LoginTimedOut()
        except AdminLoginError as e:
            error = e
        except Exception:
            log.exception("admin_login_unexpected_error", username=username)
            error = Unexpected()
        else:
            log.info("admin_login_succeeded", username=username)
            return LoginResult(success=True)

        if attempt.session is not None:
            await self._discard_attempt(prior, attempt.session)
        return self._failed(username, error)

    async def _discard_attempt(self, prior: AuthState, session: Session) -> None:
        if prior.user is not None and prior.user.id == session.user.id:
            # Re-login by the signed-in principal: keep it signed in with its prior admin flag
            # until a fresh lookup answers.
            log.info("admin_login_prior_session_kept", user_id=session.user.id)
            self._set(user=session.user, session=session, is_admin=prior.is_admin, is_loading=True)
            self._schedule_role_refresh(session.user)
            return
        # Do not leave a half-established session behind a failed login.
        log.info("admin_login_session_discarded", user_id=session.user.id)
        await self.logout()

    async def logout(self) -> None:
        try:
            await self._identity.sign_out()
        except IdentityError as e:
            log.warning("identity_sign_out_failed", error=str(e))
        finally:
            self._set(user=None, session=None, is_admin=False, is_loading=False)

    # --- login steps ----------------------------------------------------------

    async def _login(self, attempt: _LoginAttempt, username: str, password: str) -> None:
        try:
            valid = await self._verifier.verify(username=username, password=password)
        except VerifierError as e:
            raise VerificationUnavailable() from e
        if not valid:
            raise InvalidCredentials()

        email = admin_email_for_username(username, domain=self._email_domain)
        session = await self._establish_session(email=email, password=password, username=username)
        attempt.session = session
        user = session.user
        if self._state.session is not session:
            # Providers that do not notify on sign-in still leave us with a current principal.
            self._set(user=user, session=session)

        try:
            await self._roles.assign_grant(user_id=user.id, role=ADMIN_ROLE, username=username)
        except RoleStoreError as e:
            raise GrantAssignmentFailed() from e

        # Lookups scheduled by the sign-in notification may have read before the grant existed;
        # let them land first so the lookup below is the last completed write.
        await self.wait_until_settled()
        try:
            is_admin = await self._roles.query_grant(user_id=user.id, role=ADMIN_ROLE)
        except RoleStoreError as e:
            raise GrantAssignmentFailed("Could not confirm the admin role") from e
        self._apply_role(user, is_admin)
        if not is_admin:
            raise GrantAssignmentFailed("The admin role was not granted")

    async def _establish_session(self, *, email: str, password: str, username: str) -> Session:
        try:
            return await self._identity.sign_in_with_password(email=email, password=password)
        except IdentityError as e:
            # First login for this admin (no identity account yet) lands here too.
            log.info("admin_sign_in_failed", email=email, error=str(e), code=e.code)

        try:
            session = await self._identity.sign_up(
                email=email, password=password, metadata={"username": username}
            )
        except IdentityError as e:
            if e.already_registered:
                raise AccountDesynced() from e
            raise SessionUnavailable(str(e)) from e

        if session is None:
            raise SessionUnavailable()
        log.info("admin_identity_created", email=email, user_id=session.user.id)
        return session

    def _failed(self, username: str, error: AdminLoginError) -> LoginResult:
        log.info("admin_login_failed", username=username, code=error.code)
        return LoginResult(success=False, error=error.message, code=error.code)


def build_auth_provider(*, settings: Settings, http: httpx.AsyncClient) -> AuthProvider:
    """
    Wire an `AuthProvider` to the HTTP backend behind `http` (base_url + timeouts are the
    caller's choice; `create_backend_client` gives the configured defaults).
    """

    identity = HttpIdentityProvider(http=http)
    return AuthProvider(
        identity=identity,
        roles=HttpRoleStore(http=http, access_token=identity.access_token),
        verifier=HttpAdminLoginVerifier(http=http),
        admin_email_domain=settings.admin_email_domain,
        timeout_seconds=settings.auth_timeout_seconds,
    )


def create_backend_client(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.backend_base_url,
        timeout=settings.request_timeout_seconds,
        transport=transport,
    )


# --- Module Notes -----------------------------------------------------------
# Server-side endpoints never trust this state: `auth.deps.require_admin` repeats the grant
# lookup on every privileged request.
