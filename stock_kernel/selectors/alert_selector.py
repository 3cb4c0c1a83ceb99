"""
Module: stock_kernel.selectors.alert_selector
Responsibility: Low-stock / near-expiry report over the item ledger.

Classification (both bounds inclusive):
    low_stock   = stock_quantity <= min_stock_threshold
    near_expiry = expiration_date <= as_of + horizon_days

An item is reported if either flag holds.  Already expired items are
near-expiry by the same rule.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import or_, select

from stock_kernel.domain.dtos import StockAlert
from stock_kernel.models.item import Item
from stock_kernel.selectors.base import BaseSelector


class AlertSelector(BaseSelector[Item]):
    """Read-only alert report; stateless apart from the caller's session."""

    def list_alerts(
        self,
        as_of: datetime,
        horizon_days: int,
    ) -> list[StockAlert]:
        """
        Items that are low on stock or expire within the horizon.

        Ordered newest-created first, then by name and id.
        """
        if horizon_days < 0:
            raise ValueError(f"horizon_days must be >= 0, got {horizon_days}")
        cutoff = as_of + timedelta(days=horizon_days)

        stmt = (
            select(Item)
            .where(
                or_(
                    Item.stock_quantity <= Item.min_stock_threshold,
                    Item.expiration_date <= cutoff,
                )
            )
            .order_by(Item.created_at.desc(), Item.name, Item.id)
        )
        items = self.session.execute(stmt).scalars().all()
        return [self._classify(item, cutoff) for item in items]

    @staticmethod
    def _classify(item: Item, cutoff: datetime) -> StockAlert:
        return StockAlert(
            id=item.id,
            name=item.name,
            stock_quantity=item.stock_quantity,
            min_stock_threshold=item.min_stock_threshold,
            expiration_date=item.expiration_date,
            low_stock=item.stock_quantity <= item.min_stock_threshold,
            near_expiry=item.expiration_date <= cutoff,
        )
