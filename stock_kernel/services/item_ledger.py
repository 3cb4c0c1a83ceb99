"""
ItemLedger -- durable record of stock items.

Responsibility:
    Reads items (optionally with row-level exclusivity), applies signed
    quantity adjustments, and performs plain CRUD on the non-stock fields.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - Exclusivity: ``get(..., for_update=True)`` and ``lock_many`` issue
      SELECT ... FOR UPDATE, blocking every other locking reader of the same
      row until the caller's transaction ends.  ``populate_existing``
      guarantees the values seen are the ones read under the lock.
    - Non-negative stock: ``adjust_quantity`` refuses any delta that would
      take stock below zero and raises NegativeStockError.  Callers check
      sufficiency first, so reaching that branch is a defect.

Failure modes:
    - NegativeStockError (defect, logged at CRITICAL).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.exceptions import NegativeStockError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.application import Application
from stock_kernel.models.item import Item
from stock_kernel.services.base import BaseService

logger = get_logger("services.item_ledger")


class ItemLedger(BaseService[Item]):
    """
    Item store consumed by the transaction engine and the item catalog.

    Contract:
        ``adjust_quantity`` must only be called on an item obtained with
        ``for_update=True`` (or from ``lock_many``) in the same session.
    """

    def get(self, item_id: UUID, for_update: bool = False) -> Item | None:
        stmt = select(Item).where(Item.id == item_id)
        if for_update:
            # Row-level lock; re-read fresh values under it
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def lock_many(self, item_ids: Iterable[UUID]) -> dict[UUID, Item]:
        """
        Lock several items, one at a time, in ascending id order.

        A fixed acquisition order keeps two transactions that touch the same
        pair of items from deadlocking.  Missing ids are absent from the
        result.
        """
        locked: dict[UUID, Item] = {}
        for item_id in sorted(set(item_ids), key=str):
            item = self.get(item_id, for_update=True)
            if item is not None:
                locked[item_id] = item
        return locked

    def adjust_quantity(self, item: Item, delta: int) -> Item:
        """
        Apply a signed quantity change and stamp ``updated_at``.

        Raises:
            NegativeStockError: if ``stock_quantity + delta < 0``.
        """
        new_quantity = item.stock_quantity + delta
        if new_quantity < 0:
            error = NegativeStockError(str(item.id), item.stock_quantity, delta)
            logger.critical(
                "stock_invariant_violated",
                extra={
                    "item_id": str(item.id),
                    "stock_quantity": item.stock_quantity,
                    "delta": delta,
                },
            )
            raise error

        item.stock_quantity = new_quantity
        item.updated_at = self.clock.now()
        self.session.flush()
        logger.debug(
            "stock_adjusted",
            extra={
                "item_id": str(item.id),
                "delta": delta,
                "stock_quantity": new_quantity,
            },
        )
        return item

    def create(
        self,
        name: str,
        manufacturer: str,
        batch: str,
        expiration_date: datetime,
        stock_quantity: int,
        min_stock_threshold: int = 0,
    ) -> Item:
        now = self.clock.now()
        item = Item(
            name=name,
            manufacturer=manufacturer,
            batch=batch,
            expiration_date=expiration_date,
            stock_quantity=stock_quantity,
            min_stock_threshold=min_stock_threshold,
            created_at=now,
            updated_at=now,
        )
        self.session.add(item)
        self.session.flush()
        return item

    def update_fields(self, item: Item, **fields: object) -> Item:
        """Rewrite the given columns and stamp ``updated_at``."""
        for name, value in fields.items():
            setattr(item, name, value)
        item.updated_at = self.clock.now()
        self.session.flush()
        return item

    def count_references(self, item_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Application)
            .where(Application.item_id == item_id)
        )
        return self.session.execute(stmt).scalar_one()

    def delete(self, item: Item) -> None:
        self.session.delete(item)
        self.session.flush()
