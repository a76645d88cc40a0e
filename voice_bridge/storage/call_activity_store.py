# voice_bridge/storage/call_activity_store.py
"""
Call activity store backed by the database.

Exposes CallActivityStore with:
 - find_by_session(session_id)
 - find_by_notes(notes)
 - create_if_absent(values)  -> (row, created)
 - create(values)
 - update(row_id, values)
 - list_recent(user_id=None, limit=50)

Rows are returned as plain dicts.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from databases import Database
from sqlalchemy.dialects import mysql, postgresql, sqlite

from voice_bridge.db.db import get_database
from voice_bridge.models.db_models import call_activities

logger = logging.getLogger("voice-bridge.storage.call_activities")


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def session_note(session_id: str) -> str:
    return f"session:{session_id}"


def _as_dict(row) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {c.name: row[c.name] for c in call_activities.columns}


class CallActivityStore:
    def __init__(self, database: Optional[Database] = None):
        self.db = database or get_database()

    async def find_by_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        q = call_activities.select().where(call_activities.c.session_id == session_id)
        return _as_dict(await self.db.fetch_one(q))

    async def find_by_notes(self, notes: str) -> Optional[Dict[str, Any]]:
        q = call_activities.select().where(call_activities.c.notes == notes).order_by(call_activities.c.id).limit(1)
        return _as_dict(await self.db.fetch_one(q))

    async def get(self, row_id: int) -> Optional[Dict[str, Any]]:
        q = call_activities.select().where(call_activities.c.id == row_id)
        return _as_dict(await self.db.fetch_one(q))

    def _insert_ignoring_duplicates(self, values: Dict[str, Any]):
        dialect = self.db.url.dialect
        if dialect == "sqlite":
            return sqlite.insert(call_activities).values(**values).on_conflict_do_nothing(index_elements=["session_id"])
        if dialect == "postgresql":
            return postgresql.insert(call_activities).values(**values).on_conflict_do_nothing(index_elements=["session_id"])
        if dialect == "mysql":
            return mysql.insert(call_activities).values(**values).prefix_with("IGNORE")
        # other backends: the unique constraint rejects the duplicate instead
        return call_activities.insert().values(**values)

    async def create_if_absent(self, values: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Insert a row keyed by values["session_id"] unless one already exists.
        Returns (row, created). The conditional insert is a single statement, so two
        deliveries racing for the same session still produce one row.
        """
        session_id = values["session_id"]
        now = utcnow_iso()
        token = uuid.uuid4().hex
        values = {"created_at": now, "updated_at": now, **values, "insert_token": token}
        existing = await self.find_by_session(session_id)
        if existing is not None:
            return existing, False

        await self.db.execute(self._insert_ignoring_duplicates(values))
        row = await self.find_by_session(session_id)
        created = row is not None and row.get("insert_token") == token
        logger.debug("create_if_absent session=%s created=%s", session_id, created)
        return row, created

    async def create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow_iso()
        values = {"created_at": now, "updated_at": now, **values}
        row_id = await self.db.execute(call_activities.insert().values(**values))
        return await self.get(row_id)

    async def update(self, row_id: int, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        values = {**values, "updated_at": utcnow_iso()}
        q = call_activities.update().where(call_activities.c.id == row_id).values(**values)
        await self.db.execute(q)
        return await self.get(row_id)

    async def list_recent(self, user_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        q = call_activities.select()
        if user_id:
            q = q.where(call_activities.c.user_id == user_id)
        q = q.order_by(call_activities.c.id.desc()).limit(limit)
        rows = await self.db.fetch_all(q)
        return [_as_dict(r) for r in rows]


def get_call_activity_store() -> CallActivityStore:
    """FastAPI dependency returning a store bound to the shared database."""
    return CallActivityStore(get_database())
