# voice_bridge/core/normalizer.py
"""
Request body normalizer.

The provider posts either JSON or form-urlencoded bodies and does not always label
them correctly, so the body shape is sniffed rather than trusted:

  - JSON declared:   JSON, then strict form parse
  - form declared:   JSON when the body is an object literal, else lenient form parse
  - anything else:   JSON, then strict form parse

Whatever happens the result is a flat {field: str} dict (empty when nothing parses).
Values are always encodable as UTF-8; JSON escapes for lone surrogates become "?".
"""
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

logger = logging.getLogger("voice-bridge.core.normalizer")

FORM_TYPE = "application/x-www-form-urlencoded"


def _media_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _utf8_safe(text: str) -> str:
    # json.loads accepts "\ud800" and yields a lone surrogate
    return text.encode("utf-8", "replace").decode("utf-8")


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _utf8_safe(value)
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def _parse_json(text: str) -> Optional[Dict[str, str]]:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    fields = {}
    for key, value in data.items():
        s = _stringify(value)
        if s is not None:
            fields[_utf8_safe(str(key))] = s
    return fields


def _parse_form(text: str, strict: bool) -> Optional[Dict[str, str]]:
    try:
        pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=strict)
    except ValueError:
        return None
    # last value wins for repeated keys
    return dict(pairs)


def normalize_body(body: bytes, content_type: Optional[str] = None) -> Dict[str, str]:
    """Parse a webhook body into a flat field mapping. Never raises."""
    text = (body or b"").decode("utf-8", errors="replace").strip()
    if not text:
        return {}

    media_type = _media_type(content_type)
    if media_type == FORM_TYPE:
        fields = _parse_json(text) if text.startswith("{") else None
        if fields is None:
            fields = _parse_form(text, strict=False)
    else:
        fields = _parse_json(text)
        if fields is None:
            fields = _parse_form(text, strict=True)

    if fields is None:
        logger.warning("Unparseable webhook body (content-type=%r, %d bytes)", content_type, len(body))
        return {}
    return fields
