"""
Teacher/student registration API.

Run locally with::

    uvicorn main:app --reload        (from the api/ directory)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from classroom import router as classroom_router
from classroom.repository import PostgresStore, Store
from core import config, db, errors
from core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A store handed to create_app() (tests) is used as-is.
    if getattr(app.state, "store", None) is not None:
        yield
        return

    # Initialize the DB pool once per process.
    pool = await db.create_pool()
    try:
        await db.check_connection(pool)
    except errors.StorageError:
        await db.close_pool(pool)
        raise

    app.state.store = PostgresStore(pool)
    try:
        yield
    finally:
        app.state.store = None
        await db.close_pool(pool)


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages: list[str] = []
    for err in exc.errors():
        msg = str(err.get("msg") or "Invalid value")
        # pydantic prefixes messages raised from our own validators.
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return messages


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "errors": _validation_messages(exc)},
        )

    @app.exception_handler(errors.ValidationError)
    async def validation_handler(_: Request, exc: errors.ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "errors": exc.errors},
        )

    @app.exception_handler(errors.NotFoundError)
    async def not_found_handler(_: Request, exc: errors.NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(errors.StorageError)
    async def storage_handler(request: Request, exc: errors.StorageError) -> JSONResponse:
        logger.exception(
            "storage_error method=%s path=%s error=%s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"message": "Database error occurred"})

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"message": message})

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error method=%s path=%s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(store: Store | None = None) -> FastAPI:
    config.load_env()
    setup_logging(config.log_level())

    app = FastAPI(title="Teacher-Student Management API", lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s - %s - %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    _register_exception_handlers(app)
    app.include_router(classroom_router.router, prefix="/api", tags=["classroom"])

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "OK",
            "message": "Teacher-Student Management API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=config.host(), port=config.port())
