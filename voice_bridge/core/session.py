# voice_bridge/core/session.py
"""
Per-delivery view of the provider's call session.

Nothing here is persisted: a CallSession is rebuilt from every webhook delivery and
continuity between deliveries lives in the call_activities table.
"""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CallState(str, Enum):
    RINGING = "Ringing"
    ANSWERED = "Answered"
    COMPLETED = "Completed"
    UNKNOWN = "unknown"  # non-empty value outside the known vocabulary
    NONE = "none"  # field absent

    @classmethod
    def parse(cls, value: Optional[str]) -> "CallState":
        if not value:
            return cls.NONE
        for state in (cls.RINGING, cls.ANSWERED, cls.COMPLETED):
            if value == state.value:
                return state
        return cls.UNKNOWN


class CallSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    session_id: Optional[str] = Field(None, alias="sessionId")
    is_active_raw: Optional[str] = Field(None, alias="isActive")
    call_session_state: Optional[str] = Field(None, alias="callSessionState")
    caller_number: Optional[str] = Field(None, alias="callerNumber")
    destination_number: Optional[str] = Field(None, alias="destinationNumber")
    client_dialed_number: Optional[str] = Field(None, alias="clientDialedNumber")
    direction: Optional[str] = None
    dtmf_digits: Optional[str] = Field(None, alias="dtmfDigits")
    duration_in_seconds: Optional[str] = Field(None, alias="durationInSeconds")
    dial_duration_in_seconds: Optional[str] = Field(None, alias="dialDurationInSeconds")
    call_start_time: Optional[str] = Field(None, alias="callStartTime")
    status: Optional[str] = None

    @classmethod
    def from_fields(cls, fields: Dict[str, str]) -> "CallSession":
        return cls.model_validate(fields)

    @property
    def is_active(self) -> Optional[bool]:
        """True for "1", False for "0", None when the provider did not say."""
        if self.is_active_raw == "1":
            return True
        if self.is_active_raw == "0":
            return False
        return None

    @property
    def state(self) -> CallState:
        return CallState.parse(self.call_session_state)

    @property
    def dialed_number(self) -> str:
        return self.client_dialed_number or self.destination_number or ""

    def render_params(self, webrtc_caller: bool = False) -> Dict[str, str]:
        # on WebRTC legs destinationNumber is the platform number; the number to
        # call arrives in clientDialedNumber
        destination = self.destination_number or ""
        if webrtc_caller and self.client_dialed_number:
            destination = self.client_dialed_number
        return {
            "callerNumber": self.caller_number or "",
            "destinationNumber": destination,
            "clientDialedNumber": self.client_dialed_number or "",
            "dtmfDigits": self.dtmf_digits or "",
        }
