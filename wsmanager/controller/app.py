from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.routing import APIRouter
from loguru import logger

from wsmanager.controller.activity.base import ActivityLookup, ActivityRecorder
from wsmanager.controller.activity.memory import InMemoryActivity
from wsmanager.controller.activity.redis import RedisActivity
from wsmanager.controller.log import setup_logging
from wsmanager.controller.manager import ControllerManager
from wsmanager.controller.models.api import HealthResponse
from wsmanager.controller.settings import WSManagerSettings, get_settings
from wsmanager.controller.status.reconciler import StatusReconciler
from wsmanager.controller.store.base import WorkspaceStore
from wsmanager.controller.store.memory import InMemoryWorkspaceStore
from wsmanager.controller.timeout.reconciler import TimeoutReconciler


def build_manager(
    store: WorkspaceStore,
    settings: WSManagerSettings,
    activity: ActivityLookup | None = None,
) -> ControllerManager:
    """Wire the status and timeout reconcilers into a controller manager."""
    reconcilers = [
        StatusReconciler(store, finalizer=settings.pod_finalizer),
        TimeoutReconciler(
            store,
            settings.timeouts,
            heartbeat_interval=settings.heartbeat_interval,
            activity=activity,
        ),
    ]
    return ControllerManager.from_settings(store, reconcilers, settings)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    logger.info("Workspace manager starting (host={}, port={})", settings.host, settings.port)
    logger.info(
        "Heartbeat interval {} -> timeout reconcile interval {}",
        settings.heartbeat_interval,
        settings.reconcile_interval,
    )

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.store = None
    _app.state.redis = None
    _app.state.manager = None
    _app.state.activity = None

    # -- Activity --------------------------------------------------------------
    activity: ActivityRecorder
    if settings.redis_url:
        _app.state.redis = aioredis.from_url(
            settings.redis_url,
            decode_responses=False,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        activity = RedisActivity(_app.state.redis, prefix=settings.activity_key_prefix)
        logger.info("Redis: connected (activity prefix={})", settings.activity_key_prefix)
    else:
        activity = InMemoryActivity()
        logger.warning("WSMAN_REDIS_URL not set -- activity tracked in memory only")
    _app.state.activity = activity

    # -- Controllers -----------------------------------------------------------
    store = InMemoryWorkspaceStore()
    _app.state.store = store
    _app.state.manager = build_manager(store, settings, activity)
    await _app.state.manager.start()

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Workspace manager shutting down")
    await _app.state.manager.stop()

    # Close Redis client (returns pooled connections).
    if _app.state.redis is not None:
        await _app.state.redis.aclose()
        logger.info("Redis: closed")


app = FastAPI(title="Workspace Manager", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    manager: ControllerManager | None = getattr(request.app.state, "manager", None)
    if manager is None:
        return HealthResponse(status="ok")
    return HealthResponse(
        status="ok" if manager.is_running else "degraded",
        controllers={c.name: len(c.queue) for c in manager.controllers},
    )


from wsmanager.controller.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)

app.include_router(api)
