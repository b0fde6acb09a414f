from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agencyhub.api.admin import router as admin_router
from agencyhub.api.ai_strategies import router as ai_strategies_router
from agencyhub.api.auth import router as auth_router
from agencyhub.api.billing import router as billing_router
from agencyhub.api.clients import router as clients_router
from agencyhub.api.health import router as health_router
from agencyhub.api.integrations import router as integrations_router
from agencyhub.api.metrics_endpoint import router as metrics_router
from agencyhub.api.organizations import router as organizations_router
from agencyhub.api.plans import router as plans_router
from agencyhub.api.users import router as users_router
from agencyhub.api.webhooks import router as webhooks_router
from agencyhub.core.config import SETTINGS
from agencyhub.core.errors import AppError, EntitlementError, UpstreamError
from agencyhub.core.logging import setup_logging
from agencyhub.db.engine import lifespan_db
from agencyhub.db.redis import lifespan_redis
from agencyhub.middleware.metrics import MetricsMiddleware
from agencyhub.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from agencyhub.services import wiring
from agencyhub.worker import missing_shared_state, run_worker

# Configure logging before anything else runs.  setup_logging replaces the
# root handlers, so the context filter has to be attached again.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _inline_worker() -> AsyncGenerator[None, None]:
    # A standalone worker cannot see this process's in-memory outbox or queue
    missing = missing_shared_state()
    if not missing or SETTINGS.is_test:
        yield
        return

    task = asyncio.create_task(run_worker())
    logger.info("%s not set, applying webhooks in-process", " and ".join(missing))
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        async with lifespan_redis():
            seeded = wiring.plan_registry.ensure_seeded()
            if seeded:
                logger.info("Seeded %d default plans", seeded)
            async with _inline_worker():
                yield


app = FastAPI(
    title="agencyhub",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> CORS -> route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error("Upstream %s failure: %s", exc.provider, exc.message)
    elif isinstance(exc, EntitlementError):
        logger.info("Entitlement denied (%s): %s", exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, _exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(organizations_router)
app.include_router(plans_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(clients_router)
app.include_router(ai_strategies_router)
app.include_router(integrations_router)
app.include_router(billing_router)
app.include_router(webhooks_router)

logger.info(
    "agencyhub started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
