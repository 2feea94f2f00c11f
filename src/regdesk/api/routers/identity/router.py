"""
regdesk.api.routers.identity.router

Identity router aggregator.

Responsibilities:
- Mount the account/session and role RPC routers under their hosted-provider style prefixes.
"""

from __future__ import annotations

from fastapi import APIRouter

from regdesk.api.routers.identity import auth, rpc

router = APIRouter(tags=["identity"])

router.include_router(auth.router, prefix="/auth/v1")
router.include_router(rpc.router, prefix="/rest/v1/rpc")


# --- Module Notes -----------------------------------------------------------
# These endpoints stand in for a hosted identity provider so the repo is self-contained;
# `clients.identity` and `clients.roles` are the only callers.
