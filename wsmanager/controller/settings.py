"""Service configuration loaded from WSMAN_* environment variables."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wsmanager.controller.activity.redis import DEFAULT_KEY_PREFIX
from wsmanager.controller.models.duration import Duration
from wsmanager.controller.status.phase import DEFAULT_POD_FINALIZER
from wsmanager.controller.timeout.reconciler import reconcile_interval_for


class TimeoutConfiguration(BaseModel):
    """How long a workspace may stay in each lifecycle stage.

    Durations accept Go-style strings (``"30m"``, ``"1h30m"``), seconds, or
    ISO-8601 (``"PT30M"``).
    """

    initialization: Duration = timedelta(minutes=30)
    """Pending: from creation until the pod is scheduled."""

    total_startup: Duration = timedelta(hours=1)
    """Creating / Initializing, and Running workspaces that were never active."""

    regular_workspace: Duration = timedelta(minutes=30)
    """Running: inactivity before a regular workspace times out."""

    headless_workspace: Duration = timedelta(hours=1)
    """Running: wall time a headless workspace may run."""

    max_lifetime: Duration = timedelta(hours=36)
    """Running: hard ceiling since creation, regardless of activity."""

    after_close: Duration = timedelta(minutes=2)
    """Running: inactivity after the user closed the workspace."""

    stopping: Duration = timedelta(hours=1)
    """Stopping: since pod deletion, while disposal is still running."""

    content_finalization: Duration = timedelta(hours=1)
    """Stopping: since pod deletion, once the backup completed."""


class WSManagerSettings(BaseSettings):
    """Workspace manager settings.

    All fields are read from environment variables with the ``WSMAN_`` prefix.
    Nested timeout fields use ``__`` as delimiter, for example
    ``WSMAN_TIMEOUTS__MAX_LIFETIME=36h``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WSMAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per line instead of the colourised text format."""

    # -- Timeouts --------------------------------------------------------------
    timeouts: TimeoutConfiguration = Field(default_factory=TimeoutConfiguration)

    heartbeat_interval: Duration = timedelta(seconds=30)
    """Interval at which workspaces report activity.

    The timeout reconciler samples at twice this rate.
    """

    # -- Reconciliation --------------------------------------------------------
    max_concurrent_reconciles: int = Field(default=10, ge=1)
    """Worker pool size per reconciler."""

    reconcile_timeout: Duration = timedelta(seconds=5)
    """Deadline for a single reconcile pass."""

    backoff_base: Duration = timedelta(milliseconds=5)
    backoff_max: Duration = timedelta(seconds=1000)
    """Per-key exponential backoff for failed passes: ``base * 2**failures``, capped."""

    pod_finalizer: str = DEFAULT_POD_FINALIZER
    """Finalizer marking a pod whose content still has to be disposed of."""

    # -- Activity --------------------------------------------------------------
    redis_url: str | None = None
    """Redis connection string for heartbeat data.  In-memory when unset."""

    activity_key_prefix: str = DEFAULT_KEY_PREFIX

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080

    # -- Helpers ---------------------------------------------------------------

    @property
    def reconcile_interval(self) -> timedelta:
        """Timeout sampling period: half the heartbeat interval."""
        return reconcile_interval_for(self.heartbeat_interval)


@lru_cache(maxsize=1)
def get_settings() -> WSManagerSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return WSManagerSettings()
