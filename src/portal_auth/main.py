from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from portal_auth.core.config import get_settings
from portal_auth.core.cors import CORS_HEADERS, install_cors
from portal_auth.core.errors import PortalAuthError
from portal_auth.db import init_db
from portal_auth.routers import functions, system

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=CORS_HEADERS)


async def _portal_auth_error_handler(request: Request, exc: PortalAuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, type(exc).__name__, exc)
    return _error_response(exc.status_code, exc.public_message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s invalid body: %s", request.method, request.url.path, exc.errors())
    return _error_response(400, "Invalid request body")


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(500, "Internal server error")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger("portal_auth").setLevel(str(settings.log_level).upper())

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        init_db()
        yield

    app = FastAPI(
        title=settings.app_name,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    install_cors(app)

    app.add_exception_handler(PortalAuthError, _portal_auth_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # Functions answer both at /<name> and under the hosted functions prefix.
    app.include_router(functions.router)
    prefix = "/" + str(settings.functions_prefix or "").strip("/")
    if prefix != "/":
        app.include_router(functions.router, prefix=prefix)

    app.include_router(system.router)

    return app


app = create_app()
