"""
HTTP routes.

Endpoints are plain ``def`` so FastAPI runs them in its worker thread pool;
each kernel call opens and closes its own unit of work.  Every ``/api``
route depends on ``require_caller``, which authenticates before any kernel
code runs.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from stock_api.access_gate import AccessGate, LocalTokenGate
from stock_api.schemas import (
    ApplicationCreateRequest,
    ApplicationUpdateRequest,
    ItemCreateRequest,
    ItemUpdateRequest,
    LoginRequest,
    alert_payload,
    application_payload,
    item_payload,
)
from stock_config import Settings
from stock_kernel.db.engine import Database
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import ApplicationUpdate
from stock_kernel.exceptions import ApplicationNotFoundError, ItemNotFoundError
from stock_kernel.selectors import AlertSelector, ApplicationSelector, ItemSelector
from stock_kernel.services import ApplicationTransactionEngine, ItemCatalogService


def _parse_id(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def require_caller(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str | None:
    gate: AccessGate = request.app.state.gate
    return gate.authenticate(authorization)


# ── Public ───────────────────────────────────────

public = APIRouter()


@public.get("/health")
def health(request: Request):
    settings: Settings = request.app.state.settings
    return {"status": "ok", "service": settings.service_name}


@public.post("/auth/login")
def login(body: LoginRequest, request: Request):
    """Demo credential exchange; always issues a locally signed token."""
    settings: Settings = request.app.state.settings
    if body.username == settings.auth_demo_user and body.password == settings.auth_demo_pass:
        issuer: LocalTokenGate = request.app.state.token_issuer
        return {"token": issuer.issue_token(body.username, role="admin")}
    return JSONResponse(
        status_code=401,
        content={"error": "Invalid credentials", "code": "INVALID_CREDENTIALS"},
    )


# ── Items ────────────────────────────────────────

items = APIRouter(prefix="/api/items", dependencies=[Depends(require_caller)])


@items.get("")
def list_items(request: Request):
    database: Database = request.app.state.database
    with database.session_scope() as session:
        return [item_payload(i) for i in ItemSelector(session).list_items()]


@items.post("", status_code=201)
def create_item(body: ItemCreateRequest, request: Request):
    catalog: ItemCatalogService = request.app.state.catalog
    return item_payload(catalog.create_item(**body.changes()))


# Declared before /{item_id} so "alerts" is not read as an id
@items.get("/alerts")
def list_alerts(
    request: Request,
    days: int | None = Query(default=None, ge=0),
):
    settings: Settings = request.app.state.settings
    database: Database = request.app.state.database
    clock: Clock = request.app.state.clock
    horizon = settings.alert_days if days is None else days
    with database.session_scope() as session:
        alerts = AlertSelector(session).list_alerts(clock.now(), horizon)
    return [alert_payload(a) for a in alerts]


@items.get("/{item_id}")
def get_item(item_id: str, request: Request):
    database: Database = request.app.state.database
    parsed = _parse_id(item_id)
    info = None
    if parsed is not None:
        with database.session_scope() as session:
            info = ItemSelector(session).get(parsed)
    if info is None:
        raise ItemNotFoundError(item_id)
    return item_payload(info)


@items.put("/{item_id}")
def update_item(item_id: str, body: ItemUpdateRequest, request: Request):
    catalog: ItemCatalogService = request.app.state.catalog
    parsed = _parse_id(item_id)
    if parsed is None:
        raise ItemNotFoundError(item_id)
    return item_payload(catalog.update_item(parsed, **body.changes()))


@items.delete("/{item_id}")
def delete_item(item_id: str, request: Request):
    catalog: ItemCatalogService = request.app.state.catalog
    parsed = _parse_id(item_id)
    if parsed is None or not catalog.delete_item(parsed):
        raise ItemNotFoundError(item_id)
    return {"deleted": True}


# ── Applications ─────────────────────────────────

applications = APIRouter(
    prefix="/api/applications", dependencies=[Depends(require_caller)]
)


@applications.get("")
def list_applications(
    request: Request,
    item_id: str | None = Query(default=None, alias="itemId"),
):
    database: Database = request.app.state.database
    parsed = None
    if item_id is not None:
        parsed = _parse_id(item_id)
        if parsed is None:
            return []
    with database.session_scope() as session:
        found = ApplicationSelector(session).list_applications(parsed)
    return [application_payload(a) for a in found]


@applications.post("", status_code=201)
def create_application(
    body: ApplicationCreateRequest,
    request: Request,
    caller: str | None = Depends(require_caller),
):
    engine: ApplicationTransactionEngine = request.app.state.engine
    info = engine.create_application(
        animal_id=body.animal_id,
        item_id=body.item_id,
        dose_quantity=body.dose_quantity,
        date=body.date,
        caller_id=caller,
    )
    return {"application": application_payload(info)}


@applications.get("/{application_id}")
def get_application(application_id: str, request: Request):
    database: Database = request.app.state.database
    parsed = _parse_id(application_id)
    info = None
    if parsed is not None:
        with database.session_scope() as session:
            info = ApplicationSelector(session).get(parsed)
    if info is None:
        raise ApplicationNotFoundError(application_id)
    return application_payload(info)


@applications.put("/{application_id}")
def update_application(
    application_id: str,
    body: ApplicationUpdateRequest,
    request: Request,
    caller: str | None = Depends(require_caller),
):
    engine: ApplicationTransactionEngine = request.app.state.engine
    info = engine.update_application(
        application_id,
        ApplicationUpdate(**body.changes()),
        caller_id=caller,
    )
    return application_payload(info)


@applications.delete("/{application_id}")
def delete_application(application_id: str, request: Request):
    engine: ApplicationTransactionEngine = request.app.state.engine
    if not engine.delete_application(application_id):
        raise ApplicationNotFoundError(application_id)
    return {"deleted": True}
