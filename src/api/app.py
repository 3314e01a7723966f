"""FastAPI application exposing every pipeline stage under ``/api``."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config import AppConfig, configure_logging, load_config
from src.errors import HistoryMakerError
from src.storage import Database

from .routes import audio, export, image, music, planner, script, settings, video, wikipedia

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HistoryMakerError)
    async def pipeline_error(_request: Request, exc: HistoryMakerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def request_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error")
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


def create_app(
    config: Optional[AppConfig] = None,
    db: Optional[Database] = None,
    gateway_factory: Optional[Callable] = None,
    blob_store_factory: Optional[Callable] = None,
) -> FastAPI:
    """Build the API.

    ``gateway_factory`` and ``blob_store_factory`` replace the default text
    gateway and object store for every request context.
    """
    config = config or load_config()
    configure_logging(config.log_level)

    app = FastAPI(title="History Maker API", version="0.1.0")
    app.state.config = config
    app.state.db = db or Database(config.db_path)
    app.state.gateway_factory = gateway_factory
    app.state.blob_store_factory = blob_store_factory

    _install_error_handlers(app)
    for module in (planner, script, audio, image, video, music, export, wikipedia, settings):
        app.include_router(module.router)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app
