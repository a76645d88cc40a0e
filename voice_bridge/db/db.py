# voice_bridge/db/db.py
"""
Database wiring for the call activity log.

`metadata` holds the call_activities table (voice_bridge.models.db_models).
connect_db() creates it on first start and opens the shared async connection
that CallActivityStore uses; disconnect_db() closes it on shutdown.

DB_URL is written once in its sync form (sqlite:///./data/voice_bridge.db); the
async driver variant is derived from it.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

import sqlalchemy
from databases import Database

from voice_bridge.config import get_settings

logger = logging.getLogger("voice-bridge.db")

SQLITE_PREFIX = "sqlite:///"
AIOSQLITE_PREFIX = "sqlite+aiosqlite:///"

metadata = sqlalchemy.MetaData()

_database: Optional[Database] = None


def split_db_url(url: str) -> Tuple[str, str]:
    """Return (async_url, sync_url). Only sqlite needs a different driver per side."""
    if url.startswith(AIOSQLITE_PREFIX):
        return url, SQLITE_PREFIX + url[len(AIOSQLITE_PREFIX):]
    if url.startswith(SQLITE_PREFIX):
        return AIOSQLITE_PREFIX + url[len(SQLITE_PREFIX):], url
    return url, url


def _create_call_activity_schema(sync_url: str) -> None:
    import voice_bridge.models.db_models  # noqa: F401  registers call_activities on metadata

    connect_args = {}
    if sync_url.startswith(SQLITE_PREFIX):
        connect_args = {"check_same_thread": False}
        path = sync_url[len(SQLITE_PREFIX):]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    engine = sqlalchemy.create_engine(sync_url, connect_args=connect_args)
    try:
        metadata.create_all(engine)
    finally:
        engine.dispose()


async def connect_db(db_url: Optional[str] = None) -> Database:
    global _database
    if _database is not None and _database.is_connected:
        return _database

    async_url, sync_url = split_db_url(db_url or get_settings().DB_URL)
    _create_call_activity_schema(sync_url)
    logger.info("Call activity schema ready (%s)", sync_url)

    _database = Database(async_url)
    await _database.connect()
    logger.info("Connected to %s", async_url)
    return _database


async def disconnect_db() -> None:
    global _database
    if _database is not None and _database.is_connected:
        await _database.disconnect()
        logger.info("Database disconnected")
    _database = None


def get_database() -> Database:
    """Shared Database instance; created unconnected if startup has not run yet."""
    global _database
    if _database is None:
        _database = Database(split_db_url(get_settings().DB_URL)[0])
    return _database
