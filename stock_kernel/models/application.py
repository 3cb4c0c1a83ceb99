"""
Module: stock_kernel.models.application
Responsibility: ORM persistence for application (consumption) events.  Each
    row debits ``dose_quantity`` from exactly one Item; the rows are the
    transaction log behind Item.stock_quantity.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - dose_quantity > 0 (ck_application_dose_positive).
    - item_id references an existing item; the item cannot be deleted while
      referenced (ON DELETE RESTRICT).
    - created_at never changes after insert.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUIDString


class Application(Base):
    """
    One recorded consumption of an item against an animal.

    Contract:
        Created, rewritten and deleted only by ApplicationTransactionEngine,
        inside the same unit of work as the matching stock adjustment.
    """

    __tablename__ = "applications"

    __table_args__ = (
        CheckConstraint("dose_quantity > 0", name="ck_application_dose_positive"),
        Index("idx_application_item", "item_id"),
        Index("idx_application_created_at", "created_at"),
    )

    # External subject identifier, opaque to this system
    animal_id: Mapped[str] = mapped_column(String(255), nullable=False)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )

    dose_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    date: Mapped[datetime] = mapped_column(nullable=False)

    # Attribution from the access gate
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Application animal={self.animal_id} item={self.item_id} "
            f"dose={self.dose_quantity}>"
        )
