"""
Request models and response payloads for the HTTP surface.

Wire names are camelCase; kernel names are snake_case.  Timestamps without
an offset are read as UTC, and date-only values mean midnight UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from stock_kernel.domain.dtos import ApplicationInfo, ItemInfo, StockAlert


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _widen_date(value: Any) -> Any:
    if isinstance(value, str) and len(value) == 10:
        return f"{value}T00:00:00"
    return value


WireDateTime = Annotated[datetime, BeforeValidator(_widen_date), AfterValidator(_as_utc)]


class _Request(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, with non-null values."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


# ── Items ────────────────────────────────────────


class ItemCreateRequest(_Request):
    name: str
    manufacturer: str
    batch: str
    expiration_date: WireDateTime
    stock_quantity: StrictInt
    min_stock_threshold: StrictInt = 0


class ItemUpdateRequest(_Request):
    name: str | None = None
    manufacturer: str | None = None
    batch: str | None = None
    expiration_date: WireDateTime | None = None
    stock_quantity: StrictInt | None = None
    min_stock_threshold: StrictInt | None = None


# ── Applications ─────────────────────────────────


class ApplicationCreateRequest(_Request):
    animal_id: str
    # Kept as text: an id that is not a UUID is reported as an unknown item
    item_id: str = Field(min_length=1)
    dose_quantity: StrictInt
    date: WireDateTime | None = None


class ApplicationUpdateRequest(_Request):
    animal_id: str | None = None
    item_id: str | None = Field(default=None, min_length=1)
    dose_quantity: StrictInt | None = None
    date: WireDateTime | None = None


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


# ── Responses ────────────────────────────────────


def item_payload(item: ItemInfo) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "name": item.name,
        "manufacturer": item.manufacturer,
        "batch": item.batch,
        "expirationDate": item.expiration_date.isoformat(),
        "stockQuantity": item.stock_quantity,
        "minStockThreshold": item.min_stock_threshold,
        "createdAt": item.created_at.isoformat(),
        "updatedAt": item.updated_at.isoformat(),
    }


def application_payload(application: ApplicationInfo) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": str(application.id),
        "animalId": application.animal_id,
        "itemId": str(application.item_id),
        "doseQuantity": application.dose_quantity,
        "date": application.date.isoformat(),
        "createdAt": application.created_at.isoformat(),
    }
    if application.user_id is not None:
        payload["userId"] = application.user_id
    return payload


def alert_payload(alert: StockAlert) -> dict[str, Any]:
    return {
        "id": str(alert.id),
        "name": alert.name,
        "stockQuantity": alert.stock_quantity,
        "minStockThreshold": alert.min_stock_threshold,
        "expirationDate": alert.expiration_date.isoformat(),
        "lowStock": alert.low_stock,
        "nearExpiry": alert.near_expiry,
    }
