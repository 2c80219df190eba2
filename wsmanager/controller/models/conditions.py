"""Workspace conditions and the append-biased condition set.

A workspace carries at most one condition per type.  All mutation goes
through :meth:`ConditionSet.upsert`, which returns the *same* set when the
upsert would not change anything.  Callers use identity (``is``) to detect
no-op passes and skip the write.

Latch semantics per type:

- ``Failed`` and ``Timeout`` are sticky.  Once present with ``status=True``
  they are never overwritten or cleared.
- Every other type is replaced when its status or message changes.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, RootModel, field_validator

from wsmanager.controller.models.enums import ConditionStatus, ConditionType
from wsmanager.controller.models.timestamps import UTCDateTime

STICKY_CONDITIONS: frozenset[str] = frozenset({ConditionType.FAILED, ConditionType.TIMEOUT})

DEFAULT_REASON = "unknown"


class Condition(BaseModel):
    """A named, timestamped fact attached to a workspace."""

    model_config = ConfigDict(frozen=True)

    type: str
    status: ConditionStatus = ConditionStatus.TRUE
    last_transition_time: UTCDateTime
    message: str = ""
    reason: str = DEFAULT_REASON

    @field_validator("reason", mode="before")
    @classmethod
    def _default_reason(cls, value: str | None) -> str:
        return value or DEFAULT_REASON

    @property
    def is_true(self) -> bool:
        return self.status == ConditionStatus.TRUE


def new_condition(
    condition_type: str,
    *,
    status: ConditionStatus = ConditionStatus.TRUE,
    message: str = "",
    reason: str = "",
    now: datetime | None = None,
) -> Condition:
    """Build a condition stamped with *now* (defaults to the current UTC time)."""
    return Condition(
        type=condition_type,
        status=status,
        last_transition_time=now or datetime.now(UTC),
        message=message,
        reason=reason,
    )


class ConditionSet(RootModel[tuple[Condition, ...]]):
    """Ordered set of conditions keyed by type."""

    model_config = ConfigDict(frozen=True)

    root: tuple[Condition, ...] = ()

    def __iter__(self) -> Iterator[Condition]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, condition_type: object) -> bool:
        return any(c.type == condition_type for c in self.root)

    # -- Query -----------------------------------------------------------------

    def get(self, condition_type: str) -> Condition | None:
        for condition in self.root:
            if condition.type == condition_type:
                return condition
        return None

    def present_and_true(self, condition_type: str) -> bool:
        condition = self.get(condition_type)
        return condition is not None and condition.is_true

    def with_status_and_reason(self, condition_type: str, status: bool, reason: str) -> bool:
        """True iff the condition exists with the given boolean status and reason."""
        condition = self.get(condition_type)
        if condition is None:
            return False
        expected = ConditionStatus.TRUE if status else ConditionStatus.FALSE
        return condition.status == expected and condition.reason == reason

    # -- Mutation --------------------------------------------------------------

    def upsert(self, condition: Condition) -> ConditionSet:
        """Insert or replace *condition*, returning ``self`` when nothing changes.

        A condition of an existing type with identical status and message is a
        no-op, so the original transition time survives.  Sticky conditions
        already set to ``True`` are left alone.
        """
        for idx, existing in enumerate(self.root):
            if existing.type != condition.type:
                continue
            if existing.type in STICKY_CONDITIONS and existing.is_true:
                return self
            if existing.status == condition.status and existing.message == condition.message:
                return self
            items = list(self.root)
            items[idx] = condition
            return ConditionSet(tuple(items))

        return ConditionSet((*self.root, condition))
