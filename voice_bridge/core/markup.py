# voice_bridge/core/markup.py
"""
Provider XML renderer.

`render_actions(actions, params)` turns an ordered action list into the provider's
voice response document:

    <?xml version="1.0" encoding="UTF-8"?>
    <Response>
      <Say voice="woman">Welcome</Say>
      <GetDigits finishOnKey="#" callbackUrl="https://example.com/webhook/voice"/>
    </Response>

Output is a pure function of its arguments. Attribute values and text are escaped,
characters XML 1.0 cannot carry are dropped, and optional attributes that are unset
are left out.
"""
import re
from typing import Iterable, List, Mapping, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from voice_bridge.core.call_flows import DESTINATION_PLACEHOLDER, ActionKind, CallFlowAction

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "
DEFAULT_VOICE = "woman"

APOLOGY_TEXT = "We're sorry, but we're experiencing technical difficulties. Please try again later."


class MarkupError(ValueError):
    pass


class UnresolvedDialTargetError(MarkupError):
    """A dial placeholder resolved to an empty number."""


# code points outside the XML 1.0 Char production
INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_safe(value: str) -> str:
    return INVALID_XML_CHARS.sub("", value)


def _element(tag: str, attrs: List[Tuple[str, Optional[str]]], content: Optional[str] = None) -> str:
    rendered = "".join(f" {name}={quoteattr(xml_safe(value))}" for name, value in attrs if value is not None)
    if content is None:
        return f"<{tag}{rendered}/>"
    return f"<{tag}{rendered}>{escape(xml_safe(content))}</{tag}>"


def resolve_dial_target(action: CallFlowAction, params: Mapping[str, str]) -> str:
    if action.target == DESTINATION_PLACEHOLDER:
        # some WebRTC deliveries carry the number to call in callerNumber
        target = params.get("destinationNumber") or params.get("callerNumber") or ""
    else:
        target = action.target or ""
    target = xml_safe(target)
    if not target.strip():
        raise UnresolvedDialTargetError(f"dial target {action.target!r} resolved to an empty number")
    return target


def render_action(action: CallFlowAction, params: Mapping[str, str]) -> str:
    kind = action.kind
    if kind is ActionKind.DIAL:
        return _element("Dial", [("phoneNumbers", resolve_dial_target(action, params))])
    if kind is ActionKind.SAY:
        return _element("Say", [("voice", action.voice or DEFAULT_VOICE)], action.text or "")
    if kind is ActionKind.PLAY:
        return _element("Play", [("url", action.url)])
    if kind is ActionKind.GET_DIGITS:
        return _element("GetDigits", [("finishOnKey", action.finish_on_key), ("callbackUrl", action.callback_url)])
    if kind is ActionKind.RECORD:
        return _element(
            "Record",
            [("playBeep", "true" if action.play_beep else "false"), ("finishOnKey", action.finish_on_key)],
        )
    if kind is ActionKind.REDIRECT:
        return _element("Redirect", [], action.url or "")
    if kind is ActionKind.HANGUP:
        return _element("Hangup", [])
    raise MarkupError(f"unsupported action kind: {kind!r}")


def render_actions(actions: Iterable[CallFlowAction], params: Mapping[str, str]) -> str:
    lines = [XML_DECLARATION, "<Response>"]
    lines.extend(INDENT + render_action(action, params) for action in actions)
    lines.append("</Response>")
    return "\n".join(lines)


FALLBACK_RESPONSE = render_actions(
    (
        CallFlowAction(kind=ActionKind.SAY, text=APOLOGY_TEXT, voice=DEFAULT_VOICE),
        CallFlowAction(kind=ActionKind.HANGUP),
    ),
    {},
)
