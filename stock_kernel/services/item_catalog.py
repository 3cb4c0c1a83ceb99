"""
ItemCatalogService -- item CRUD with its own transaction boundary.

Responsibility:
    Creates items, edits their fields (including direct stock corrections),
    and deletes items that no application references.

Architecture position:
    Kernel > Services.  Each public method is one ``session_scope()``;
    ItemLedger does the row work.

Invariants enforced:
    - Direct edits lock the item row like the transaction engine does, so a
      stock correction never interleaves with an application debit.
    - Referential integrity: delete locks the item, counts its applications
      and refuses with ItemReferencedError while any exist.  Applications
      are only inserted while the same lock is held, so the count cannot go
      stale before the delete commits.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from stock_kernel.db.engine import Database
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import ItemInfo
from stock_kernel.exceptions import (
    InvalidFieldError,
    ItemNotFoundError,
    ItemReferencedError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.item_ledger import ItemLedger

logger = get_logger("services.item_catalog")

_TEXT_FIELDS = ("name", "manufacturer", "batch")
_COUNT_FIELDS = ("stock_quantity", "min_stock_threshold")
_CAMEL = {
    "name": "name",
    "manufacturer": "manufacturer",
    "batch": "batch",
    "expiration_date": "expirationDate",
    "stock_quantity": "stockQuantity",
    "min_stock_threshold": "minStockThreshold",
}


def _validate_fields(fields: dict[str, object]) -> None:
    for key, value in fields.items():
        if key not in _CAMEL:
            raise InvalidFieldError(key, "unknown item field")
        label = _CAMEL[key]
        if key in _TEXT_FIELDS:
            if not isinstance(value, str) or not value.strip():
                raise InvalidFieldError(label, "must be a non-empty string")
        elif key in _COUNT_FIELDS:
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidFieldError(label, "must be a non-negative integer")
        elif key == "expiration_date":
            if not isinstance(value, datetime) or value.tzinfo is None:
                raise InvalidFieldError(label, "must be a timezone-aware datetime")


class ItemCatalogService:
    """Item CRUD; every call commits or rolls back on its own."""

    def __init__(self, database: Database, clock: Clock | None = None):
        self._database = database
        self._clock = clock or SystemClock()

    def create_item(
        self,
        name: str,
        manufacturer: str,
        batch: str,
        expiration_date: datetime,
        stock_quantity: int,
        min_stock_threshold: int = 0,
    ) -> ItemInfo:
        """
        Create an item with its opening stock.

        Raises:
            InvalidFieldError: a field is empty, negative or naive.
        """
        _validate_fields(
            {
                "name": name,
                "manufacturer": manufacturer,
                "batch": batch,
                "expiration_date": expiration_date,
                "stock_quantity": stock_quantity,
                "min_stock_threshold": min_stock_threshold,
            }
        )
        with self._database.session_scope() as session:
            item = ItemLedger(session, self._clock).create(
                name=name,
                manufacturer=manufacturer,
                batch=batch,
                expiration_date=expiration_date,
                stock_quantity=stock_quantity,
                min_stock_threshold=min_stock_threshold,
            )
            info = ItemInfo.from_model(item)

        logger.info(
            "item_created",
            extra={
                "item_id": str(info.id),
                "batch": info.batch,
                "stock_quantity": info.stock_quantity,
            },
        )
        return info

    def update_item(self, item_id: UUID, **fields: object) -> ItemInfo:
        """
        Rewrite item fields.  ``stock_quantity`` here is a direct correction,
        not an application event.

        Raises:
            InvalidFieldError: unknown or invalid field value.
            ItemNotFoundError: unknown id.
        """
        _validate_fields(fields)
        with LogContext.bind(item_id=str(item_id)):
            with self._database.session_scope() as session:
                ledger = ItemLedger(session, self._clock)
                item = ledger.get(item_id, for_update=True)
                if item is None:
                    raise ItemNotFoundError(str(item_id))
                if fields:
                    ledger.update_fields(item, **fields)
                info = ItemInfo.from_model(item)

            logger.info("item_updated", extra={"fields": sorted(fields)})
        return info

    def delete_item(self, item_id: UUID) -> bool:
        """
        Delete an unreferenced item.

        Returns:
            False if the item does not exist.

        Raises:
            ItemReferencedError: applications still reference the item.
        """
        with LogContext.bind(item_id=str(item_id)):
            with self._database.session_scope() as session:
                ledger = ItemLedger(session, self._clock)
                item = ledger.get(item_id, for_update=True)
                if item is None:
                    return False
                references = ledger.count_references(item_id)
                if references:
                    raise ItemReferencedError(str(item_id), references)
                ledger.delete(item)

            logger.info("item_deleted")
        return True
