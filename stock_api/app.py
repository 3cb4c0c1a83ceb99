"""
Application factory for the stock service.

``create_app()`` wires one Database, one Clock and one AccessGate into the
FastAPI app state.  Kernel errors are mapped to HTTP statuses here and only
here:

    ValidationError      400      NotFoundError      404
    BusinessRuleError    409      ConflictError      409
    DefectError          500      TransientError     503
    AccessError          401 (missing / malformed credential)
                         403 (invalid / expired credential)

Error bodies are ``{"error": <message>, "code": <code>, ...detail}``; 5xx
bodies carry only a generic message and the code.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stock_api.access_gate import (
    AccessGate,
    LocalTokenGate,
    RejectionReason,
    build_access_gate,
)
from stock_api.routes import applications, items, public
from stock_config import Settings, get_settings
from stock_kernel import __version__
from stock_kernel.db.engine import Database
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import (
    AccessError,
    BusinessRuleError,
    ConflictError,
    CredentialRejectedError,
    DefectError,
    NotFoundError,
    StockKernelError,
    TransientError,
    ValidationError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services import ApplicationTransactionEngine, ItemCatalogService

logger = get_logger("api.app")

_STATUS_BY_CATEGORY: tuple[tuple[type[StockKernelError], int], ...] = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (BusinessRuleError, 409),
    (ConflictError, 409),
    (DefectError, 500),
    (TransientError, 503),
    (AccessError, 403),
)

_UNAUTHENTICATED = {
    RejectionReason.MISSING_CREDENTIAL.value,
    RejectionReason.MALFORMED_CREDENTIAL.value,
}


def status_for(exc: StockKernelError) -> int:
    if isinstance(exc, CredentialRejectedError) and exc.reason in _UNAUTHENTICATED:
        return 401
    for category, status in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status
    return 500


# Server-side failures keep driver and invariant details in the logs only
_OPAQUE_MESSAGES: tuple[tuple[type[StockKernelError], str], ...] = (
    (TransientError, "Service temporarily unavailable, operation rolled back"),
    (DefectError, "Internal error"),
)


def error_body(exc: StockKernelError) -> dict[str, Any]:
    for category, message in _OPAQUE_MESSAGES:
        if isinstance(exc, category):
            return {"error": message, "code": exc.code}
    body: dict[str, Any] = {"error": str(exc), "code": exc.code}
    for key, value in vars(exc).items():
        if not key.startswith("_") and key not in body:
            body[key] = value
    return jsonable_encoder(body)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StockKernelError)
    async def kernel_error_handler(request: Request, exc: StockKernelError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(
                "request_failed",
                extra={"path": request.url.path, "error_code": exc.code},
                exc_info=exc,
            )
        else:
            logger.info(
                "request_rejected",
                extra={
                    "path": request.url.path,
                    "status": status,
                    "error_code": exc.code,
                },
            )
        headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
        return JSONResponse(status_code=status, content=error_body(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "code": "INVALID_REQUEST",
                "details": jsonable_encoder(exc.errors()),
            },
        )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    clock: Clock | None = None,
    gate: AccessGate | None = None,
) -> FastAPI:
    """
    Build the service.

    A ``database`` passed in is owned by the caller; one built here from
    ``settings.database_url`` is disposed on shutdown.
    """
    settings = settings or get_settings()
    clock = clock or SystemClock()
    owns_database = database is None
    if database is None:
        database = Database(settings.database_url, echo=settings.sql_echo)
    gate = gate or build_access_gate(settings, clock)
    token_issuer = (
        gate
        if isinstance(gate, LocalTokenGate)
        else LocalTokenGate(settings.jwt_secret, settings.jwt_expires_in_seconds, clock)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "service_started",
            extra={
                "service": settings.service_name,
                "dialect": database.dialect_name,
                "delegated_auth": settings.uses_delegated_auth,
            },
        )
        yield
        if owns_database:
            database.dispose()
        logger.info("service_stopped")

    app = FastAPI(title=settings.service_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.clock = clock
    app.state.gate = gate
    app.state.token_issuer = token_issuer
    app.state.engine = ApplicationTransactionEngine(database, clock)
    app.state.catalog = ItemCatalogService(database, clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        with LogContext.bind(request_id=request_id):
            response = await call_next(request)
            logger.debug(
                "request_completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                },
            )
        response.headers["X-Request-ID"] = request_id
        return response

    _install_error_handlers(app)
    app.include_router(public)
    app.include_router(items)
    app.include_router(applications)
    return app
