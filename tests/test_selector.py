"""Unit tests for call flow selection."""

import pytest

from voice_bridge.core.call_flows import FlowType
from voice_bridge.core.selector import is_webrtc_client, select_flow

MARKERS = ["agent_", ".betsure", "sip.africastalking.com"]


class TestIsWebrtcClient:

    @pytest.mark.parametrize("caller", [
        "agent_42.betsure.sip",
        "agent_1",
        "support.betsure@ug.sip.africastalking.com",
        "someone@ug.sip.africastalking.com",
    ])
    def test_client_identities(self, caller):
        assert is_webrtc_client(caller, MARKERS)

    @pytest.mark.parametrize("caller", [None, "", "+256700000000", "256700000000"])
    def test_regular_numbers(self, caller):
        assert not is_webrtc_client(caller, MARKERS)


class TestSelectFlow:

    def test_webrtc_caller_with_dialed_number_is_outbound(self):
        fields = {"callerNumber": "agent_42.betsure.sip", "clientDialedNumber": "+256700000000"}
        assert select_flow(fields, MARKERS) is FlowType.OUTBOUND

    def test_empty_fields_default_to_inbound(self):
        assert select_flow({}, MARKERS) is FlowType.INBOUND

    def test_outbound_rule_beats_dtmf(self):
        fields = {
            "callerNumber": "agent_1.betsure",
            "clientDialedNumber": "+256700000000",
            "dtmfDigits": "5",
        }
        assert select_flow(fields, MARKERS) is FlowType.OUTBOUND

    def test_explicit_outbound_direction(self):
        assert select_flow({"direction": "outbound"}, MARKERS) is FlowType.OUTBOUND

    def test_direction_match_is_literal(self):
        assert select_flow({"direction": "Outbound"}, MARKERS) is FlowType.INBOUND

    def test_destination_from_regular_caller_is_outbound(self):
        fields = {"callerNumber": "+256700000001", "destinationNumber": "+256323200928"}
        assert select_flow(fields, MARKERS) is FlowType.OUTBOUND

    def test_destination_from_webrtc_caller_without_dialed_number_is_not_outbound(self):
        fields = {"callerNumber": "agent_3.betsure", "destinationNumber": "+256323200928"}
        assert select_flow(fields, MARKERS) is FlowType.INBOUND

    def test_webrtc_caller_with_empty_dialed_number(self):
        fields = {"callerNumber": "agent_3.betsure", "clientDialedNumber": "", "dtmfDigits": "2"}
        assert select_flow(fields, MARKERS) is FlowType.IVR

    def test_dtmf_digits_select_ivr(self):
        assert select_flow({"callerNumber": "+256700000001", "dtmfDigits": "1"}, MARKERS) is FlowType.IVR

    def test_empty_dtmf_is_absent(self):
        assert select_flow({"callerNumber": "+256700000001", "dtmfDigits": ""}, MARKERS) is FlowType.INBOUND

    def test_selection_is_deterministic(self):
        fields = {"callerNumber": "agent_9.betsure", "clientDialedNumber": "+256711111111"}
        assert {select_flow(fields, MARKERS) for _ in range(5)} == {FlowType.OUTBOUND}

    def test_custom_markers(self):
        fields = {"callerNumber": "desk-4@pbx.example.org", "clientDialedNumber": "+256711111111"}
        assert select_flow(fields, ["@pbx.example.org"]) is FlowType.OUTBOUND
        assert select_flow(fields, MARKERS) is FlowType.INBOUND
