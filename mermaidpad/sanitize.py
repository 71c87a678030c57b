"""Input sanitizing applied before any classification."""

from __future__ import annotations

import re

BYTE_ORDER_MARK = "\ufeff"

# C0 controls except tab/newline/carriage return, DEL, and C1 controls.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def sanitize(raw: str) -> str:
    """Strip a leading byte-order mark and non-printable control characters."""
    if not raw:
        return ""
    text = raw[1:] if raw.startswith(BYTE_ORDER_MARK) else raw
    return _CONTROL_CHARS.sub("", text)


def is_blank(text: str) -> bool:
    return not text or not text.strip()
