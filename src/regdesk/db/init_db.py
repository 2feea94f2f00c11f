"""
regdesk.db.init_db

Schema bootstrap for dev/test (prod runs Alembic migrations instead).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from regdesk.db import models  # noqa: F401  # registers tables on Base.metadata
from regdesk.db.base import Base
from regdesk.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    # create_all skips tables that already exist; it never alters them.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("db_schema_ready", tables=sorted(Base.metadata.tables))
