"""
regdesk.services.errors

Admin login failure taxonomy.

Responsibilities:
- Give every login failure a stable machine code and a user-facing message.
- Keep "wrong password" and "account out of sync" distinguishable for callers.

All of these are caught at the `AuthProvider.admin_login` boundary and converted into a
`LoginResult`; none escapes to callers.
"""

from __future__ import annotations


class AdminLoginError(Exception):
    code = "unexpected"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class InvalidCredentials(AdminLoginError):
    # One message for unknown user and wrong password alike.
    code = "invalid_credentials"
    default_message = "Invalid username or password"


class VerificationUnavailable(AdminLoginError):
    code = "verification_unavailable"
    default_message = "Could not verify credentials right now. Please try again."


class AccountDesynced(AdminLoginError):
    """
    The credential verifier accepted the password, but the identity provider already has an
    account for this admin that the password does not open.
    """

    code = "account_desynced"
    default_message = (
        "This admin account is out of sync with the identity provider. "
        "Ask an administrator to reset the admin identity account."
    )


class SessionUnavailable(AdminLoginError):
    code = "session_unavailable"
    default_message = "Could not start admin session"


class GrantAssignmentFailed(AdminLoginError):
    code = "grant_assignment_failed"
    default_message = "Could not assign the admin role"


class LoginTimedOut(AdminLoginError):
    code = "timeout"
    default_message = "Login timed out. Please try again."


class Unexpected(AdminLoginError):
    pass
