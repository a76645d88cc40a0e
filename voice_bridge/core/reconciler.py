# voice_bridge/core/reconciler.py
"""
Call activity reconciler.

Maps one provider webhook delivery onto the call_activities row for its session:

    Ringing,   isActive=1, no row      -> insert status=ringing
    Answered,  row still ringing       -> status=connected
    Completed, isActive=0, row open    -> end_time, duration, connected|failed
    anything else                      -> no-op

Only WebRTC-originated calls whose caller identity carries an `agent_<id>` token are
logged. A row with end_time set is terminal and is never touched again, so late or
duplicated deliveries cannot move a finished call backwards.
"""
import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from voice_bridge.core.selector import is_webrtc_client
from voice_bridge.core.session import CallSession, CallState
from voice_bridge.storage.call_activity_store import CallActivityStore, session_note, utcnow_iso
from voice_bridge.utils.logging import mask_number

logger = logging.getLogger("voice-bridge.core.reconciler")

AGENT_TOKEN = re.compile(r"agent_([A-Za-z0-9-]+)")

# statuses an Answered event may promote to connected
OPEN_STATUSES = ("queued", "ringing")


class ReconcileOutcome(str, Enum):
    SKIPPED = "skipped"  # not a call this subsystem logs
    CREATED = "created"
    UPDATED = "updated"
    NOOP = "noop"  # nothing actionable, or already applied


def extract_agent_id(caller: Optional[str]) -> Optional[str]:
    if not caller:
        return None
    match = AGENT_TOKEN.search(caller)
    return match.group(1) if match else None


def _parse_duration(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return max(0, int(float(value)))
    except (ValueError, OverflowError):
        logger.warning("Ignoring non-numeric dialDurationInSeconds=%r", value)
        return None


def _is_terminal(row: Dict[str, Any]) -> bool:
    return bool(row.get("end_time"))


async def reconcile(session: CallSession, store: CallActivityStore, markers: Iterable[str]) -> ReconcileOutcome:
    if not is_webrtc_client(session.caller_number, markers):
        return ReconcileOutcome.SKIPPED

    user_id = extract_agent_id(session.caller_number)
    if not user_id:
        logger.info("WebRTC caller %s carries no agent token; not logging", mask_number(session.caller_number))
        return ReconcileOutcome.SKIPPED

    if not session.session_id:
        logger.info("Delivery for agent %s has no sessionId; not logging", user_id)
        return ReconcileOutcome.SKIPPED

    state = session.state
    if state is CallState.UNKNOWN:
        logger.warning(
            "Unrecognised callSessionState=%r for session %s", session.call_session_state, session.session_id
        )
        return ReconcileOutcome.NOOP

    if state is CallState.RINGING and session.is_active:
        _, created = await store.create_if_absent(
            {
                "user_id": user_id,
                "phone_number": session.dialed_number,
                "call_type": "outbound",
                "status": "ringing",
                "start_time": session.call_start_time or utcnow_iso(),
                "duration_seconds": 0,
                "notes": session_note(session.session_id),
                "session_id": session.session_id,
            }
        )
        if created:
            logger.info("Logged ringing call %s for agent %s", session.session_id, user_id)
            return ReconcileOutcome.CREATED
        return ReconcileOutcome.NOOP

    if state not in (CallState.ANSWERED, CallState.COMPLETED):
        return ReconcileOutcome.NOOP

    row = await store.find_by_session(session.session_id)
    if row is None:
        logger.debug("No call activity for session %s (state=%s)", session.session_id, state.value)
        return ReconcileOutcome.NOOP
    if _is_terminal(row):
        logger.debug("Session %s already completed; ignoring %s", session.session_id, state.value)
        return ReconcileOutcome.NOOP

    if state is CallState.ANSWERED:
        if row.get("status") not in OPEN_STATUSES:
            return ReconcileOutcome.NOOP
        await store.update(row["id"], {"status": "connected"})
        logger.info("Call %s connected", session.session_id)
        return ReconcileOutcome.UPDATED

    if session.is_active is not False:
        return ReconcileOutcome.NOOP

    patch: Dict[str, Any] = {
        "end_time": utcnow_iso(),
        "status": "connected" if session.status == "Success" else "failed",
    }
    duration = _parse_duration(session.dial_duration_in_seconds)
    if duration is not None:
        patch["duration_seconds"] = duration
    await store.update(row["id"], patch)
    logger.info("Call %s completed status=%s duration=%s", session.session_id, patch["status"], duration)
    return ReconcileOutcome.UPDATED
