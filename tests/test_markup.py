"""Unit tests for the provider XML renderer."""

import xml.etree.ElementTree as ET

import pytest

from voice_bridge.core.call_flows import ActionKind, CallFlowAction
from voice_bridge.core.markup import (
    APOLOGY_TEXT,
    FALLBACK_RESPONSE,
    UnresolvedDialTargetError,
    render_actions,
)


def _parse(xml: str) -> ET.Element:
    return ET.fromstring(xml.encode("utf-8"))


def dial(target="destinationNumber"):
    return CallFlowAction(kind=ActionKind.DIAL, target=target)


class TestDial:

    def test_placeholder_uses_destination_number(self):
        xml = render_actions([dial()], {"destinationNumber": "+256712345678", "callerNumber": "agent_7"})
        assert '<Dial phoneNumbers="+256712345678"/>' in xml

    def test_placeholder_falls_back_to_caller_number(self):
        xml = render_actions([dial()], {"destinationNumber": "", "callerNumber": "+256700000001"})
        assert '<Dial phoneNumbers="+256700000001"/>' in xml

    def test_literal_target(self):
        xml = render_actions([dial("agent1.betsure@ug.sip.africastalking.com")], {"destinationNumber": "+1"})
        assert '<Dial phoneNumbers="agent1.betsure@ug.sip.africastalking.com"/>' in xml

    @pytest.mark.parametrize("params", [{}, {"destinationNumber": "", "callerNumber": ""}, {"callerNumber": "  "}])
    def test_unresolved_placeholder_fails_closed(self, params):
        with pytest.raises(UnresolvedDialTargetError):
            render_actions([dial()], params)

    def test_missing_literal_target_fails_closed(self):
        with pytest.raises(UnresolvedDialTargetError):
            render_actions([CallFlowAction(kind=ActionKind.DIAL)], {"destinationNumber": "+256700000001"})

    def test_control_characters_are_dropped_from_target(self):
        xml = render_actions([dial()], {"destinationNumber": "+2567\x01\x1f12"})
        assert _parse(xml)[0].get("phoneNumbers") == "+256712"

    @pytest.mark.parametrize("number", ["\x01", "\x00\x0b", "\ud800"])
    def test_target_of_only_invalid_characters_fails_closed(self, number):
        with pytest.raises(UnresolvedDialTargetError):
            render_actions([dial()], {"destinationNumber": number, "callerNumber": ""})


class TestOtherActions:

    def test_say_defaults_to_woman_voice(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.SAY, text="Hello")], {})
        assert '<Say voice="woman">Hello</Say>' in xml

    def test_say_with_man_voice(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.SAY, text="Hi", voice="man")], {})
        assert '<Say voice="man">Hi</Say>' in xml

    def test_play(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.PLAY, url="https://cdn.example.com/hold.mp3")], {})
        assert '<Play url="https://cdn.example.com/hold.mp3"/>' in xml

    def test_get_digits(self):
        action = CallFlowAction(kind=ActionKind.GET_DIGITS, finish_on_key="#", callback_url="https://x.test/cb")
        xml = render_actions([action], {})
        assert '<GetDigits finishOnKey="#" callbackUrl="https://x.test/cb"/>' in xml

    def test_record(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.RECORD, play_beep=True, finish_on_key="#")], {})
        assert '<Record playBeep="true" finishOnKey="#"/>' in xml

    def test_record_without_beep(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.RECORD)], {})
        assert '<Record playBeep="false"/>' in xml

    def test_redirect(self):
        xml = render_actions([CallFlowAction(kind=ActionKind.REDIRECT, url="https://x.test/next")], {})
        assert "<Redirect>https://x.test/next</Redirect>" in xml

    def test_hangup(self):
        assert "<Hangup/>" in render_actions([CallFlowAction(kind=ActionKind.HANGUP)], {})


class TestDocument:

    def test_empty_action_list_is_valid(self):
        root = _parse(render_actions([], {}))
        assert root.tag == "Response"
        assert list(root) == []

    def test_children_keep_action_order(self):
        actions = [
            CallFlowAction(kind=ActionKind.SAY, text="Welcome"),
            CallFlowAction(kind=ActionKind.GET_DIGITS, finish_on_key="#", callback_url="https://x.test/cb"),
            CallFlowAction(kind=ActionKind.REDIRECT, url="https://x.test/next"),
        ]
        root = _parse(render_actions(actions, {}))
        assert [child.tag for child in root] == ["Say", "GetDigits", "Redirect"]

    def test_missing_fields_are_omitted_not_malformed(self):
        actions = [
            CallFlowAction(kind=ActionKind.SAY),
            CallFlowAction(kind=ActionKind.PLAY),
            CallFlowAction(kind=ActionKind.GET_DIGITS),
            CallFlowAction(kind=ActionKind.REDIRECT),
        ]
        root = _parse(render_actions(actions, {}))
        say, play, digits, redirect = list(root)
        assert say.text is None and say.get("voice") == "woman"
        assert play.attrib == {}
        assert digits.attrib == {}
        assert redirect.text is None

    def test_special_characters_are_escaped(self):
        actions = [
            CallFlowAction(kind=ActionKind.SAY, text='Tom & Jerry <3 "quotes"'),
            CallFlowAction(kind=ActionKind.PLAY, url='https://x.test/a?b=1&c="2"'),
        ]
        root = _parse(render_actions(actions, {}))
        assert root[0].text == 'Tom & Jerry <3 "quotes"'
        assert root[1].get("url") == 'https://x.test/a?b=1&c="2"'

    def test_characters_xml_cannot_carry_are_dropped(self):
        actions = [
            CallFlowAction(kind=ActionKind.SAY, text="Hel\x00lo\x0c\tthere"),
            CallFlowAction(kind=ActionKind.REDIRECT, url="https://x.test/\x08next\ufffe"),
        ]
        root = _parse(render_actions(actions, {}))
        assert root[0].text == "Hello\tthere"
        assert root[1].text == "https://x.test/next"

    def test_rendering_is_pure(self):
        actions = [dial(), CallFlowAction(kind=ActionKind.SAY, text="Bye")]
        params = {"destinationNumber": "+256712345678"}
        assert render_actions(actions, params) == render_actions(actions, params)

    def test_xml_declaration(self):
        assert render_actions([], {}).startswith('<?xml version="1.0" encoding="UTF-8"?>')


class TestFallback:

    def test_fallback_apologises_and_hangs_up(self):
        root = _parse(FALLBACK_RESPONSE)
        assert [child.tag for child in root] == ["Say", "Hangup"]
        assert root[0].text == APOLOGY_TEXT
