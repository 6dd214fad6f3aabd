from __future__ import annotations

import datetime as dt
import re

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}
_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")


def parse_duration(text: str) -> dt.timedelta:
    """Parse durations such as ``7d``, ``24h``, ``1h30m`` or ``250ms``."""

    cleaned = (text or "").strip().lower()
    if not cleaned:
        raise ValueError("empty duration")
    pos = 0
    seconds = 0.0
    for match in _PART_RE.finditer(cleaned):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(cleaned):
        raise ValueError(f"invalid duration: {text!r}")
    return dt.timedelta(seconds=seconds)
