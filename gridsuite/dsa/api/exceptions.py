from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gridsuite.dsa.core.errors import DsaError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DsaError)
    async def dsa_error_handler(request: Request, exc: DsaError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        else:
            logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(httpx.HTTPStatusError)
    async def upstream_error_handler(request: Request, exc: httpx.HTTPStatusError) -> JSONResponse:
        logger.warning("Upstream error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={"code": "UPSTREAM_ERROR", "message": str(exc)},
        )
