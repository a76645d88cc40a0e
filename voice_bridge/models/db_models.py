# voice_bridge/models/db_models.py
"""
SQLAlchemy table definitions.
Tables register on the shared `metadata` from voice_bridge.db.db so `connect_db()` can create them.
"""
import sqlalchemy as sa
from voice_bridge.db.db import metadata


# One row per real-world call placed through the dialer / WebRTC client.
# Timestamps are ISO-8601 strings.
call_activities = sa.Table(
    "call_activities",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(length=128), index=True, nullable=True),
    sa.Column("phone_number", sa.String(length=64), nullable=True),
    sa.Column("lead_name", sa.String(length=256), nullable=True),
    sa.Column("call_type", sa.String(length=32), nullable=False, server_default="outbound"),
    sa.Column("status", sa.String(length=32), nullable=False),
    sa.Column("start_time", sa.String(length=64), nullable=True),
    sa.Column("end_time", sa.String(length=64), nullable=True),
    sa.Column("duration_seconds", sa.Integer, nullable=False, server_default="0"),
    sa.Column("notes", sa.Text, nullable=True),
    # provider session correlation key; NULL for calls queued before the provider answered
    sa.Column("session_id", sa.String(length=128), nullable=True, unique=True),
    # random per-insert marker; tells the inserting caller whether its conditional insert won
    sa.Column("insert_token", sa.String(length=32), nullable=True),
    sa.Column("created_at", sa.String(length=64), nullable=True),
    sa.Column("updated_at", sa.String(length=64), nullable=True),
)
