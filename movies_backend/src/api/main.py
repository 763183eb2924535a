from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from psycopg_pool import ConnectionPool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import PostgresRepository
from .errors import APIError, SerializationFailure
from .helpers import Envelope, write_json
from .repositories import InMemoryRepository
from .routers import healthcheck as healthcheck_router
from .routers import movies as movies_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "movies", "description": "Create, show, update and delete movies."},
]

SERVER_ERROR_MESSAGE = "the server encountered a problem and could not process your request"


def error_response(status_code: int, message: Any, headers: Optional[Dict[str, str]] = None) -> Response:
    """
    Write {"error": message} with the given status.

    If the error envelope itself cannot be encoded, fall back to an empty 500.
    """
    try:
        return write_json(status_code, Envelope("error", message), headers=headers)
    except SerializationFailure:
        logger.exception("failed to encode error response")
        return Response(status_code=500)


def _validation_errors(exc: RequestValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        key = ".".join(loc) or "body"
        if err.get("type") == "missing":
            msg = "must be provided"
        else:
            msg = str(err.get("msg", "is invalid")).removeprefix("Value error, ")
        errors.setdefault(key, msg)
    return errors


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> Response:
        if exc.status_code >= 500:
            logger.error("%s %s: %s", request.method, request.url.path, exc)
            return error_response(exc.status_code, SERVER_ERROR_MESSAGE)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
        """
        Malformed JSON bodies get 400; everything else gets 422 with one
        message per offending field:

            {"error": {"title": "must be provided"}}
        """
        if any(err.get("type") == "json_invalid" for err in exc.errors()):
            return error_response(400, "body contains badly-formed JSON")
        return error_response(422, _validation_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            return error_response(404, "the requested resource could not be found")
        if exc.status_code == 405:
            return error_response(
                405,
                f"the {request.method} method is not supported for this resource",
                headers=getattr(exc, "headers", None),
            )
        return error_response(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, SERVER_ERROR_MESSAGE)


# PUBLIC_INTERFACE
def create_app(settings: Settings, pool: Optional[ConnectionPool] = None) -> FastAPI:
    """
    Build the FastAPI application.

    With a pool (from db.open_db) movies are stored in PostgreSQL, otherwise
    in memory. The caller keeps ownership of the pool.
    """
    app = FastAPI(
        title="Greenlight",
        description="JSON API for a catalog of movies.",
        version=healthcheck_router.VERSION,
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.repository = PostgresRepository(pool) if pool is not None else InMemoryRepository()

    _register_exception_handlers(app)
    app.include_router(healthcheck_router.router)
    app.include_router(movies_router.router)
    return app


# PUBLIC_INTERFACE
def get_app() -> FastAPI:
    """
    App factory for `uvicorn --factory src.api.main:get_app`, using the
    in-memory store. `python -m src.api` is the entry point that opens the
    database pool.
    """
    return create_app(get_settings())
