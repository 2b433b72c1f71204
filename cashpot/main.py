from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from cashpot import auth, reports
from cashpot.config import Settings, settings as default_settings
from cashpot.db import Base, check_database, get_db, make_engine, make_session_factory
from cashpot.resources import RESOURCES, build_router, build_stats
from cashpot.responses import error_body, ok

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        body = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            body["exc"] = self.formatException(record.exc_info)
        return json.dumps(body)


def configure_logging(app_settings: Settings) -> None:
    """Human-readable logs in development, JSON lines in production."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, app_settings.log_level.upper(), logging.INFO))
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    if app_settings.is_development:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    else:
        handler.setFormatter(JSONFormatter())
    root.addHandler(handler)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _error(status_code: int, message: str, details=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(status_code, message, details))


def register_error_handlers(app: FastAPI, app_settings: Settings) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        response = _error(exc.status_code, message)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Validation failed", jsonable_encoder(exc.errors()))

    @app.exception_handler(IntegrityError)
    async def integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return _error(409, "Record already exists")

    @app.exception_handler(Exception)
    async def server_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if app_settings.is_development else "Internal server error"
        return _error(500, message)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or default_settings
    configure_logging(app_settings)
    engine = make_engine(app_settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app_settings.environment != "test":
            Base.metadata.create_all(bind=engine)
        logger.info("Cashpot %s backend ready on port %s", app_settings.version, app_settings.port)
        yield
        engine.dispose()

    app = FastAPI(title="Cashpot Backend", version=app_settings.version, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    register_error_handlers(app, app_settings)

    def health(db: Session = Depends(get_db)) -> dict:
        return {
            "status": "ok",
            "timestamp": _now().isoformat(),
            "version": app_settings.version,
            "uptime": round(time.monotonic() - app.state.started_at, 3),
            "database": "ok" if check_database(db) else "unavailable",
        }

    app.add_api_route("/health", health, methods=["GET"], tags=["health"])
    app.add_api_route("/api/health", health, methods=["GET"], tags=["health"])

    @app.get("/api/stats", tags=["stats"])
    def stats(db: Session = Depends(get_db)) -> dict:
        return ok(build_stats(db))

    app.include_router(auth.router)
    app.include_router(reports.router)
    for spec in RESOURCES:
        app.include_router(build_router(spec))
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("cashpot.main:app", host="0.0.0.0", port=default_settings.port)
