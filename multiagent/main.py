"""FastAPI entry-point exposing orchestrator controls."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from multiagent.api.errors import register_exception_handlers
from multiagent.api.rate_limit import RateLimitMiddleware
from multiagent.api.routes import router as agents_router
from multiagent.api.security import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from multiagent.api.workflows import router as workflows_router
from multiagent.config import Config
from multiagent.core.logging import RequestLoggingMiddleware, configure_logging, get_logger
from multiagent.orchestration.orchestrator import Orchestrator
from multiagent.runtime import build_orchestrator, get_orchestrator

SERVICE_NAME = "multi-agent-system"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    orchestrator: Orchestrator = app.state.orchestrator
    logger.info(
        "service_started",
        environment=app.state.config.environment,
        agents=len(orchestrator.list_agents()),
        workflows=orchestrator.list_workflows(),
    )
    yield
    logger.info("service_stopped", active_executions=orchestrator.active_executions)


def create_app(config: Optional[Config] = None, orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    config = config or Config.from_env()
    configure_logging(config)

    app = FastAPI(title="Multi-Agent System", lifespan=lifespan)
    app.state.config = config
    app.state.orchestrator = orchestrator or build_orchestrator(config)

    app.include_router(agents_router)
    app.include_router(workflows_router)
    register_exception_handlers(app, hide_internal_errors=config.is_production)

    if config.rate_limit.enabled:
        app.add_middleware(RateLimitMiddleware, settings=config.rate_limit)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.max_body_bytes)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials=True,
        max_age=86400,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/status")
    async def service_status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
        return {"service": SERVICE_NAME, "status": "operational", **orchestrator.get_status()}

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    config: Config = app.state.config
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    run()
