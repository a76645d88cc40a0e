# voice_bridge/core/selector.py
"""
Call flow selector.

First match wins:
  1. WebRTC client caller with a clientDialedNumber   -> outbound
  2. direction == "outbound", or a destinationNumber
     from a non-WebRTC caller                          -> outbound
  3. DTMF digits present                               -> ivr
  4. otherwise                                         -> inbound
"""
from typing import Iterable, Mapping, Optional

from voice_bridge.core.call_flows import FlowType


def is_webrtc_client(caller: Optional[str], markers: Iterable[str]) -> bool:
    if not caller:
        return False
    return any(marker in caller for marker in markers)


def select_flow(fields: Mapping[str, str], markers: Iterable[str]) -> FlowType:
    markers = tuple(markers)
    caller = fields.get("callerNumber") or ""
    webrtc = is_webrtc_client(caller, markers)

    if webrtc and fields.get("clientDialedNumber"):
        return FlowType.OUTBOUND
    if fields.get("direction") == "outbound" or (fields.get("destinationNumber") and not webrtc):
        return FlowType.OUTBOUND
    if fields.get("dtmfDigits"):
        return FlowType.IVR
    return FlowType.INBOUND
