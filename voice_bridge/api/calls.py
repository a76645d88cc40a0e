# voice_bridge/api/calls.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from voice_bridge.config import Settings, get_settings
from voice_bridge.core.provider_client import ProviderError, VoiceProviderClient, format_phone_number, get_provider_client
from voice_bridge.storage.call_activity_store import CallActivityStore, get_call_activity_store, utcnow_iso
from voice_bridge.utils.logging import mask_number

logger = logging.getLogger("voice-bridge.api.calls")
router = APIRouter()


class MakeCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber", min_length=1)
    lead_name: Optional[str] = Field(None, alias="leadName")
    agent_id: Optional[str] = Field(None, alias="agentId")


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_id: str = Field(..., alias="agentId", pattern=r"^[A-Za-z0-9-]+$")


def _provider_failure(exc: ProviderError) -> JSONResponse:
    return JSONResponse({"success": False, "error": str(exc)}, status_code=502)


@router.post("/calls", summary="Place an outbound call through the provider")
async def make_call(
    payload: MakeCallRequest,
    settings: Settings = Depends(get_settings),
    provider: VoiceProviderClient = Depends(get_provider_client),
    store: CallActivityStore = Depends(get_call_activity_store),
):
    """
    Ask the provider to call `phoneNumber`; the provider then fetches call
    instructions from the voice webhook. When `agentId` is given a queued
    outbound call activity is recorded for that agent.
    """
    phone = format_phone_number(payload.phone_number)
    if len(phone) < 2:
        raise HTTPException(status_code=422, detail="Phone number is required")
    try:
        result = await provider.place_call(phone, settings.voice_callback_url)
    except ProviderError as exc:
        logger.error("Provider refused call to %s: %s", mask_number(phone), exc)
        return _provider_failure(exc)

    if payload.agent_id:
        await store.create(
            {
                "user_id": payload.agent_id,
                "phone_number": phone,
                "lead_name": payload.lead_name,
                "call_type": "outbound",
                "status": "queued",
                "start_time": utcnow_iso(),
                "duration_seconds": 0,
            }
        )

    return {"success": True, "message": "Call initiated successfully", "data": result}


@router.get("/calls", summary="Recent call activities")
async def list_calls(
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    store: CallActivityStore = Depends(get_call_activity_store),
):
    return {"calls": await store.list_recent(user_id=user_id, limit=limit)}


@router.post("/webrtc/token", summary="WebRTC capability token for an agent softphone")
async def webrtc_token(
    payload: TokenRequest,
    provider: VoiceProviderClient = Depends(get_provider_client),
):
    """
    The client name `agent_<agentId>` becomes the caller identity on calls the
    softphone places, which is how the voice webhook attributes them to the agent.
    """
    client_name = f"agent_{payload.agent_id}"
    try:
        data = await provider.request_capability_token(client_name)
    except ProviderError as exc:
        logger.error("Capability token request failed for %s: %s", client_name, exc)
        return _provider_failure(exc)

    return {
        "success": True,
        "token": data.get("token"),
        "clientName": data.get("clientName", client_name),
        "lifeTimeSec": data.get("lifeTimeSec"),
    }
