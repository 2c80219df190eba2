"""Timezone-aware timestamps.

Every timestamp the controller compares is aware.  Naive values, from JSON
without an offset or from collaborators that forget one, are taken as UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]
"""``datetime`` that is always timezone-aware after validation."""
