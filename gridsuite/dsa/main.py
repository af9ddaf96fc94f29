from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from gridsuite.dsa.api.exceptions import register_exception_handlers
from gridsuite.dsa.api.parameters import router as parameters_router
from gridsuite.dsa.api.runs import router as runs_router
from gridsuite.dsa.core.config import settings
from gridsuite.dsa.core.logging import configure_logging
from gridsuite.dsa.core.runtime import DsaRuntime, build_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime: DsaRuntime = app.state.runtime
    await runtime.start()
    try:
        yield
    finally:
        await runtime.stop()


def create_app(runtime: Optional[DsaRuntime] = None) -> FastAPI:
    configure_logging(settings.log_level, settings.log_json)

    if runtime is None:
        try:
            runtime = build_runtime(settings)
        except Exception:
            logger.exception("Failed to initialize dynamic security analysis runtime")
            raise

    app = FastAPI(
        title="Dynamic Security Analysis",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Explicit wiring
    app.state.runtime = runtime

    register_exception_handlers(app)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    app.include_router(runs_router, prefix="/v1", tags=["dynamic-security-analysis"])
    app.include_router(parameters_router, prefix="/v1/parameters", tags=["parameters"])
    return app
