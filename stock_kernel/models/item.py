"""
Module: stock_kernel.models.item
Responsibility: ORM persistence for perishable, batch-identified stock items.
    ``stock_quantity`` is the running balance that application events debit
    and credit.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - stock_quantity >= 0 (ck_item_stock_non_negative), backing the
      ItemLedger defect check.
    - min_stock_threshold >= 0 (ck_item_min_threshold_non_negative).
    - An item referenced by any application cannot be deleted
      (applications.item_id is ON DELETE RESTRICT).

Failure modes:
    - IntegrityError if a write bypasses ItemLedger and breaks a CHECK.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase


class Item(TrackedBase):
    """
    Stock-keeping unit with batch and expiration metadata.

    Contract:
        ``stock_quantity`` is only changed through ItemLedger: directly by
        the item catalog, or as the side effect of an application event by
        the transaction engine.
    """

    __tablename__ = "items"

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_item_stock_non_negative"),
        CheckConstraint(
            "min_stock_threshold >= 0", name="ck_item_min_threshold_non_negative"
        ),
        Index("idx_item_created_at", "created_at"),
        Index("idx_item_expiration_date", "expiration_date"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    manufacturer: Mapped[str] = mapped_column(String(255), nullable=False)

    batch: Mapped[str] = mapped_column(String(100), nullable=False)

    expiration_date: Mapped[datetime] = mapped_column(nullable=False)

    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    min_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def is_expired(self, as_of: datetime) -> bool:
        """An item expiring exactly at ``as_of`` is already expired."""
        return self.expiration_date <= as_of

    def __repr__(self) -> str:
        return f"<Item {self.name} batch={self.batch} stock={self.stock_quantity}>"
