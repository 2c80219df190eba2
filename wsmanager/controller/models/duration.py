"""Duration parsing for configuration and workspace specs.

Operators write timeouts the way the cluster tooling does (``"30m"``,
``"1h30m"``, ``"90s"``).  :data:`Duration` accepts those alongside
everything pydantic already understands for ``timedelta`` (seconds as a
number, ISO-8601 strings).
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Annotated, Any

from pydantic import BeforeValidator

_SEGMENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> Any:
    """Parse a Go-style duration string into a ``timedelta``.

    Non-string values, and strings that are not Go-style durations, are
    returned unchanged so pydantic's own ``timedelta`` parsing gets a turn.
    """
    if not isinstance(value, str):
        return value

    text = value.strip()
    if text == "0":
        return timedelta(0)

    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    pos = 0
    seconds = 0.0
    for match in _SEGMENT.finditer(text):
        if match.start() != pos:
            return value
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        return value
    return timedelta(seconds=sign * seconds)


Duration = Annotated[timedelta, BeforeValidator(parse_duration)]
"""``timedelta`` that also accepts Go-style duration strings."""
