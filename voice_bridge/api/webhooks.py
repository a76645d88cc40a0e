# voice_bridge/api/webhooks.py
import logging
from typing import Mapping
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from voice_bridge.config import Settings, get_settings
from voice_bridge.core.call_flows import CallFlow, get_call_flows, lookup_flow
from voice_bridge.core.markup import FALLBACK_RESPONSE, render_actions
from voice_bridge.core.normalizer import normalize_body
from voice_bridge.core.reconciler import reconcile
from voice_bridge.core.selector import is_webrtc_client, select_flow
from voice_bridge.core.session import CallSession
from voice_bridge.storage.call_activity_store import CallActivityStore, get_call_activity_store
from voice_bridge.utils.logging import mask_number

logger = logging.getLogger("voice-bridge.api.webhooks")
router = APIRouter()

XML_MEDIA_TYPE = "application/xml"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@router.options("/voice")
async def voice_callback_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/voice")
async def voice_callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    flows: Mapping[str, CallFlow] = Depends(get_call_flows),
    store: CallActivityStore = Depends(get_call_activity_store),
):
    """
    Provider voice callback. Always answers 200 with XML the switch can execute:
      - normalize the body (JSON or form, whatever the header says)
      - reconcile the call activity row (failures are logged, never returned)
      - select a call flow and render its actions
    Any failure while routing yields the fixed apology + hangup document.
    """
    markers = settings.webrtc_markers
    try:
        body = await request.body()
        fields = normalize_body(body, request.headers.get("content-type"))
        session = CallSession.from_fields(fields)
        logger.info(
            "Voice callback session=%s state=%s active=%s caller=%s",
            session.session_id,
            session.call_session_state,
            session.is_active_raw,
            mask_number(session.caller_number),
        )
        logger.debug("Voice callback fields: %s", fields)

        try:
            outcome = await reconcile(session, store, markers)
            logger.debug("Reconcile outcome for session %s: %s", session.session_id, outcome.value)
        except Exception:
            logger.exception("Call activity reconciliation failed for session %s", session.session_id)

        flow_type = select_flow(fields, markers)
        flow = lookup_flow(flows, flow_type)
        params = session.render_params(webrtc_caller=is_webrtc_client(session.caller_number, markers))
        content = render_actions(flow.actions, params).encode("utf-8")
        logger.info("Responding with %s flow for session %s", flow_type.value, session.session_id)
    except Exception:
        logger.exception("Voice callback failed; returning fallback markup")
        content = FALLBACK_RESPONSE.encode("utf-8")

    return Response(content=content, media_type=XML_MEDIA_TYPE)
