"""
regdesk.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Caller identity decoded from an identity-provider access token.

    Token roles never carry `admin`: admin status is always read from the role
    store (see `auth.deps.require_admin`).
    """

    subject: str
    email: str
    roles: frozenset[str]

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.subject)
