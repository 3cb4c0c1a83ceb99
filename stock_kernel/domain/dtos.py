"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable records returned by the ledgers, the transaction engine and the
    selectors.  Callers never receive ORM instances, so a returned value can
    not be used to mutate stock outside a unit of work.

Architecture position:
    Kernel > Domain -- zero I/O.  ``from_model()`` class methods are boundary
    converters invoked from the service and selector layers only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from stock_kernel.models.application import Application as ApplicationModel
    from stock_kernel.models.item import Item as ItemModel


@dataclass(frozen=True)
class ItemInfo:
    """Snapshot of an Item row."""

    id: UUID
    name: str
    manufacturer: str
    batch: str
    expiration_date: datetime
    stock_quantity: int
    min_stock_threshold: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, item: ItemModel) -> ItemInfo:
        return cls(
            id=item.id,
            name=item.name,
            manufacturer=item.manufacturer,
            batch=item.batch,
            expiration_date=item.expiration_date,
            stock_quantity=item.stock_quantity,
            min_stock_threshold=item.min_stock_threshold,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


@dataclass(frozen=True)
class ApplicationInfo:
    """Snapshot of an Application row."""

    id: UUID
    animal_id: str
    item_id: UUID
    dose_quantity: int
    date: datetime
    user_id: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, application: ApplicationModel) -> ApplicationInfo:
        return cls(
            id=application.id,
            animal_id=application.animal_id,
            item_id=application.item_id,
            dose_quantity=application.dose_quantity,
            date=application.date,
            user_id=application.user_id,
            created_at=application.created_at,
        )


@dataclass(frozen=True)
class ApplicationUpdate:
    """
    Partial rewrite of an Application.

    Fields left as None are kept from the stored row.  ``user_id`` is not
    part of the update: attribution always follows the caller.
    """

    animal_id: str | None = None
    item_id: UUID | str | None = None
    dose_quantity: int | None = None
    date: datetime | None = None


@dataclass(frozen=True)
class StockAlert:
    """One row of the low-stock / near-expiry report."""

    id: UUID
    name: str
    stock_quantity: int
    min_stock_threshold: int
    expiration_date: datetime
    low_stock: bool
    near_expiry: bool
