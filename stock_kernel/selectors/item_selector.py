"""Read-only queries over the item ledger."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import ItemInfo
from stock_kernel.models.item import Item
from stock_kernel.selectors.base import BaseSelector


class ItemSelector(BaseSelector[Item]):

    def get(self, item_id: UUID) -> ItemInfo | None:
        item = self.session.get(Item, item_id)
        return ItemInfo.from_model(item) if item else None

    def list_items(self) -> list[ItemInfo]:
        """All items, newest first."""
        stmt = select(Item).order_by(Item.created_at.desc(), Item.name, Item.id)
        return [ItemInfo.from_model(i) for i in self.session.execute(stmt).scalars()]
