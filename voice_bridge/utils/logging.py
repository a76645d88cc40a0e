# voice_bridge/utils/logging.py
"""
Small logging helpers.

Usage:
    from voice_bridge.utils.logging import mask_number
    logger.info("call to %s", mask_number(number))

Phone numbers and caller identities are masked in INFO logs; full field dumps
only go out at DEBUG.
"""
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def mask_number(value: Optional[str], visible: int = 4) -> str:
    """Mask all but the last `visible` characters: '+256712345678' -> '*********5678'."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
