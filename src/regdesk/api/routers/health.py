"""
regdesk.api.routers.health

Liveness (`/healthz`) and readiness (`/readyz`) probes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from regdesk import __version__
from regdesk.api.deps import db_session, settings_dep
from regdesk.db.models import AdminUser
from regdesk.observability.logging import get_logger
from regdesk.settings import Settings

router = APIRouter()
log = get_logger(__name__)


@router.get("/healthz")
async def healthz(settings: Settings = Depends(settings_dep)) -> dict[str, str]:
    return {"status": "ok", "service": settings.service_name, "version": __version__}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> JSONResponse:
    # Touches a real table so a reachable database with a missing schema is not "ready".
    try:
        await session.execute(select(AdminUser.id).limit(1))
    except SQLAlchemyError as e:
        log.warning("readiness_check_failed", error=str(e))
        return JSONResponse({"status": "unavailable"}, status_code=HTTP_503_SERVICE_UNAVAILABLE)
    return JSONResponse({"status": "ready"}, status_code=HTTP_200_OK)
