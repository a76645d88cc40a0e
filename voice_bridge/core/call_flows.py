# voice_bridge/core/call_flows.py
"""
Call flow table.

A call flow is a named, immutable list of actions the telephony switch executes
in order. The table is built once at startup, either from the defaults below or
from a JSON file (`CALL_FLOWS_PATH`) shaped like:

{
  "outbound": {"type": "outbound", "actions": [{"type": "dial", "phoneNumbers": "destinationNumber"}]},
  "ivr": {
    "type": "ivr",
    "actions": [
      {"type": "say", "text": "Press 1 for sales", "voice": "woman"},
      {"type": "getDigits", "finishOnKey": "#", "callbackUrl": "https://.../webhook/voice"}
    ]
  }
}

Requests only ever read from the table.
"""
import json
import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from voice_bridge.config import get_settings

logger = logging.getLogger("voice-bridge.core.call_flows")

# dial target resolved from request parameters at render time
DESTINATION_PLACEHOLDER = "destinationNumber"


class FlowType(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    IVR = "ivr"
    VOICEMAIL = "voicemail"


class ActionKind(str, Enum):
    DIAL = "dial"
    SAY = "say"
    PLAY = "play"
    GET_DIGITS = "getDigits"
    RECORD = "record"
    REDIRECT = "redirect"
    HANGUP = "hangup"


class CallFlowAction(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ActionKind = Field(..., alias="type")
    target: Optional[str] = Field(None, alias="phoneNumbers")
    text: Optional[str] = None
    voice: Optional[str] = Field(None, pattern="^(man|woman)$")
    url: Optional[str] = None
    finish_on_key: Optional[str] = Field(None, alias="finishOnKey")
    callback_url: Optional[str] = Field(None, alias="callbackUrl")
    play_beep: Optional[bool] = Field(None, alias="playBeep")


class CallFlow(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: FlowType
    actions: Tuple[CallFlowAction, ...] = ()


class UnknownCallFlowError(LookupError):
    """Raised when the selector names a flow the table does not define."""


def build_default_flows(settings) -> Dict[str, CallFlow]:
    return {
        FlowType.OUTBOUND.value: CallFlow(
            type=FlowType.OUTBOUND,
            actions=(CallFlowAction(kind=ActionKind.DIAL, target=DESTINATION_PLACEHOLDER),),
        ),
        FlowType.INBOUND.value: CallFlow(
            type=FlowType.INBOUND,
            actions=(CallFlowAction(kind=ActionKind.DIAL, target=settings.INBOUND_DIAL_TARGET),),
        ),
        FlowType.IVR.value: CallFlow(
            type=FlowType.IVR,
            actions=(
                CallFlowAction(
                    kind=ActionKind.SAY,
                    text="Welcome to BetSure. Press 1 for sales, press 2 for support.",
                    voice="woman",
                ),
                CallFlowAction(
                    kind=ActionKind.GET_DIGITS,
                    finish_on_key="#",
                    callback_url=settings.voice_callback_url,
                ),
            ),
        ),
        FlowType.VOICEMAIL.value: CallFlow(
            type=FlowType.VOICEMAIL,
            actions=(
                CallFlowAction(kind=ActionKind.SAY, text="Please leave a message after the beep.", voice="woman"),
                CallFlowAction(kind=ActionKind.RECORD, play_beep=True, finish_on_key="#"),
            ),
        ),
    }


def parse_call_flows(raw: Dict) -> Dict[str, CallFlow]:
    """Validate a decoded JSON flow table. Raises pydantic.ValidationError / ValueError on bad input."""
    if not isinstance(raw, dict):
        raise ValueError("call flow config must be a JSON object keyed by flow name")
    return {name: CallFlow.model_validate(flow) for name, flow in raw.items()}


def load_call_flows(settings) -> Mapping[str, CallFlow]:
    """
    Build the read-only flow table. A configured CALL_FLOWS_PATH replaces the defaults
    entirely; a missing or invalid file is a startup error.
    """
    path = settings.CALL_FLOWS_PATH
    if path:
        flows = parse_call_flows(json.loads(Path(path).read_text(encoding="utf-8")))
        logger.info("Loaded %d call flows from %s", len(flows), path)
    else:
        flows = build_default_flows(settings)
        logger.debug("Using built-in call flows: %s", sorted(flows))
    return MappingProxyType(flows)


def lookup_flow(table: Mapping[str, CallFlow], name) -> CallFlow:
    key = name.value if isinstance(name, FlowType) else str(name)
    try:
        return table[key]
    except KeyError:
        raise UnknownCallFlowError(f"no call flow configured for '{key}'") from None


# Singleton flow table (read-only once built)
_call_flows: Optional[Mapping[str, CallFlow]] = None


def get_call_flows() -> Mapping[str, CallFlow]:
    """Return the process-wide flow table, building it from settings on first use."""
    global _call_flows
    if _call_flows is None:
        _call_flows = load_call_flows(get_settings())
    return _call_flows


def set_call_flows(table: Mapping[str, CallFlow]) -> None:
    global _call_flows
    _call_flows = table
