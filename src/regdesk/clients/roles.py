"""
regdesk.clients.roles

Role-store client boundary.

Responsibilities:
- Define the `RoleStore` capability interface (query grant, assign grant).
- Implement it over the `/rest/v1/rpc` endpoints, authenticated as the signed-in user.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

import httpx


class RoleStoreError(Exception):
    pass


class RoleStore(Protocol):
    async def query_grant(self, *, user_id: str, role: str) -> bool: ...

    async def assign_grant(self, *, user_id: str, role: str, username: str) -> None: ...


class HttpRoleStore:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        access_token: Callable[[], str | None],
    ) -> None:
        self._http = http
        self._access_token = access_token

    def _authz(self) -> dict[str, str]:
        token = self._access_token()
        if not token:
            raise RoleStoreError("No signed-in session")
        return {"Authorization": f"Bearer {token}"}

    async def query_grant(self, *, user_id: str, role: str) -> bool:
        body = await self._rpc("has_role", {"user_id": user_id, "role": role})
        return bool(body.get("has_role"))

    async def assign_grant(self, *, user_id: str, role: str, username: str) -> None:
        # The server side is create-if-absent; repeated calls are safe.
        await self._rpc("assign_role", {"user_id": user_id, "role": role, "username": username})

    async def _rpc(self, name: str, payload: dict[str, str]) -> dict[str, Any]:
        try:
            r = await self._http.post(f"/rest/v1/rpc/{name}", headers=self._authz(), json=payload)
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RoleStoreError(f"{name} failed: {e}") from e
