"""
regdesk.services.credential_verifier

Server-side admin credential verification.

Responsibilities:
- Check a username/password pair against the stored bcrypt hash in `admin_users`.
- Answer unknown usernames and wrong passwords identically (same verdict, comparable cost).

Whitespace leniency:
- The trimmed password is checked first. If it fails and removing *all* whitespace yields a
  different string, that form is checked too, so a stored credential without spaces still
  matches a submission like "pass 123". This widens the accepted set for any password that
  contains whitespace; it is kept on purpose for admins who type or paste credentials with
  stray spaces. Removing it is a one-line change in `password_candidates`.
"""

from __future__ import annotations

import asyncio
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from regdesk.auth.passwords import check_password, hash_password, without_whitespace
from regdesk.db.repositories.admin_users import AdminUserRepo

_TIMING_PARITY_PASSWORD = "regdesk-timing-parity"


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password(_TIMING_PARITY_PASSWORD, rounds=rounds)


def password_candidates(password: str) -> list[str]:
    trimmed = password.strip()
    collapsed = without_whitespace(password)
    if collapsed != trimmed:
        return [trimmed, collapsed]
    return [trimmed]


class CredentialVerifier:
    def __init__(self, session: AsyncSession, *, bcrypt_rounds: int = 12) -> None:
        self._admins = AdminUserRepo(session)
        self._bcrypt_rounds = bcrypt_rounds

    async def verify(self, *, username: str, password: str) -> bool:
        admin = await self._admins.get_by_username(username)
        if admin is None:
            # Spend a bcrypt check anyway so response time does not reveal unknown usernames.
            await asyncio.to_thread(check_password, password, _dummy_hash(self._bcrypt_rounds))
            return False

        # bcrypt is CPU-bound; keep it off the event loop.
        for candidate in password_candidates(password):
            if await asyncio.to_thread(check_password, candidate, admin.password_hash):
                return True
        return False
