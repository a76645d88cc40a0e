"""Shared test infrastructure for the voice bridge test suite.

Provides:
- settings: Settings instance isolated from the environment / .env
- database: fresh sqlite database (file under tmp_path) with tables created
- store: CallActivityStore bound to that database
- provider_mock: mock VoiceProviderClient with async methods
- client: httpx AsyncClient wired to the app with the fixtures above injected
- voice_event: factory for provider voice callback payloads
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from voice_bridge.config import Settings, get_settings
from voice_bridge.core.call_flows import build_default_flows, get_call_flows
from voice_bridge.core.provider_client import get_provider_client
from voice_bridge.db.db import connect_db, disconnect_db
from voice_bridge.main import app
from voice_bridge.storage.call_activity_store import CallActivityStore, get_call_activity_store


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        PUBLIC_BASE_URL="https://voice.example.com",
        AT_USERNAME="sandbox",
        AT_API_KEY="test-api-key",
        AT_PHONE_NUMBER="256323200928",
    )


@pytest.fixture
def markers(settings):
    return settings.webrtc_markers


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def database(tmp_path):
    db = await connect_db(f"sqlite:///{tmp_path / 'voice_bridge_test.db'}")
    yield db
    await disconnect_db()


@pytest.fixture
def store(database):
    return CallActivityStore(database)


# ---------------------------------------------------------------------------
# Provider client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def provider_mock():
    mock = MagicMock()
    mock.place_call = AsyncMock(return_value={"entries": [{"status": "Queued"}], "errorMessage": "None"})
    mock.request_capability_token = AsyncMock(
        return_value={"token": "ATCAPtkn_abc123", "clientName": "agent_7", "lifeTimeSec": "86400"}
    )
    return mock


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def call_flows(settings):
    return build_default_flows(settings)


@pytest.fixture
async def client(settings, store, provider_mock, call_flows):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_call_flows] = lambda: call_flows
    app.dependency_overrides[get_call_activity_store] = lambda: store
    app.dependency_overrides[get_provider_client] = lambda: provider_mock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Voice callback payload factory
# ---------------------------------------------------------------------------

@pytest.fixture
def voice_event():
    """Factory for WebRTC-originated voice callback payloads.

    Usage:
        event = voice_event("Ringing", session_id="sess-1")
        event = voice_event("Completed", is_active="0", status="Success", dialDurationInSeconds="42")
    """
    def _factory(
        state: str,
        session_id: str = "sess-123",
        is_active: str = "1",
        caller: str = "agent_7.betsure.sip.example.com",
        dialed: str = "+256712345678",
        **extra: str,
    ) -> dict:
        payload = {
            "sessionId": session_id,
            "isActive": is_active,
            "callSessionState": state,
            "callerNumber": caller,
            "clientDialedNumber": dialed,
        }
        payload.update(extra)
        return payload

    return _factory
