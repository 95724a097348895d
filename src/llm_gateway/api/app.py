"""FastAPI application factory."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address

from llm_gateway import __version__
from llm_gateway.api.errors import register_exception_handlers
from llm_gateway.api.routes import config as config_routes
from llm_gateway.api.routes import messages, providers, status, tokens
from llm_gateway.core.config import GatewayConfig
from llm_gateway.core.container import DIContainer
from llm_gateway.core.gateway import Gateway


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def create_app(
    gateway: Optional[Gateway] = None,
    *,
    config: Optional[GatewayConfig] = None,
    run_health_checks: bool = True,
) -> FastAPI:
    """Build the HTTP surface around ``gateway`` (assembled from env if omitted)."""

    gateway = gateway or DIContainer.create_gateway(config)
    cfg = gateway.config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        gateway.start(run_health_checks=run_health_checks)
        app.state.started_at = time.monotonic()
        try:
            yield
        finally:
            gateway.shutdown()

    limiter = Limiter(key_func=get_remote_address, enabled=cfg.rate_limit_enabled)

    @limiter.limit(cfg.rate_limit)
    def enforce_rate_limit(request: Request) -> None:
        """Counts the request against its client's per-path budget."""

    app = FastAPI(
        title="LLM Gateway",
        version=__version__,
        lifespan=lifespan,
        dependencies=[Depends(enforce_rate_limit)],
    )
    app.state.gateway = gateway
    app.state.started_at = time.monotonic()
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in cfg.cors_origin.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "http_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return response

    register_exception_handlers(app)
    app.include_router(status.router)
    app.include_router(messages.router)
    app.include_router(providers.router)
    app.include_router(config_routes.router)
    app.include_router(tokens.router)
    return app
