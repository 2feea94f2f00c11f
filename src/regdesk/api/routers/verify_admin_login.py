"""
regdesk.api.routers.verify_admin_login

Admin credential verification endpoint.

Responsibilities:
- Answer `{valid: bool}` for a username/password pair (200 for known and unknown users alike).
- Serve CORS preflight for browser callers on any origin.
- Never let an error escape: every path returns a JSON body with CORS headers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from regdesk.api.deps import credential_verifier
from regdesk.observability.logging import get_logger
from regdesk.services.credential_verifier import CredentialVerifier

router = APIRouter(tags=["verify-admin-login"])
log = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json(body: dict[str, Any], status_code: int) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=CORS_HEADERS)


@router.options("/verify-admin-login")
async def verify_admin_login_preflight() -> Response:
    return Response(status_code=HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/verify-admin-login")
async def verify_admin_login(
    request: Request,
    verifier: CredentialVerifier = Depends(credential_verifier),
) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    username = str(body.get("username") or "").strip()
    password = str(body.get("password") or "")
    if not username or not password.strip():
        return _json({"error": "Missing username or password"}, HTTP_400_BAD_REQUEST)

    try:
        valid = await verifier.verify(username=username, password=password)
    except Exception:
        # Username only: the password must never reach the logs.
        log.exception("verify_admin_login_failed", username=username)
        return _json({"error": "Unexpected error"}, HTTP_500_INTERNAL_SERVER_ERROR)

    log.info("verify_admin_login_checked", username=username, valid=valid)
    return _json({"valid": valid}, HTTP_200_OK)


# --- Module Notes -----------------------------------------------------------
# Consumed by `clients.verifier.HttpAdminLoginVerifier`. The response shape is identical for
# unknown usernames and wrong passwords.
