"""
regdesk.clients.verifier

Client for the `/verify-admin-login` endpoint.
"""

from __future__ import annotations

from typing import Protocol

import httpx


class VerifierError(Exception):
    """
    The verifier could not produce a verdict; callers must treat the login as failed.
    """


class AdminLoginVerifier(Protocol):
    async def verify(self, *, username: str, password: str) -> bool: ...


class HttpAdminLoginVerifier:
    def __init__(self, *, http: httpx.AsyncClient, path: str = "/verify-admin-login") -> None:
        self._http = http
        self._path = path

    async def verify(self, *, username: str, password: str) -> bool:
        try:
            r = await self._http.post(self._path, json={"username": username, "password": password})
        except httpx.HTTPError as e:
            raise VerifierError(f"Verifier unreachable: {e}") from e
        if r.status_code == 400:
            # Blank username or password: the verifier refuses to judge it, so it is not valid.
            return False
        if r.status_code != 200:
            raise VerifierError(f"Verifier responded with HTTP {r.status_code}")

        try:
            valid = r.json().get("valid")
        except (ValueError, AttributeError) as e:
            raise VerifierError("Malformed verifier response") from e
        if not isinstance(valid, bool):
            raise VerifierError("Malformed verifier response")
        return valid
