"""
Kernel Invariants Contract.

These invariants are structural law.  No setting or caller option may turn
them off.

This module exists solely to declare the invariants explicitly.  The
enforcement is distributed across ApplicationTransactionEngine, ItemLedger,
ItemCatalogService and the table constraints.
"""

from enum import Enum, unique


@unique
class StockInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Item stock never drops below zero.  Enforced by the engine's
    sufficiency check, ItemLedger.adjust_quantity and a CHECK constraint."""

    LEDGER_IDENTITY = "ledger_identity"
    """stock_quantity plus the doses of current applications equals the
    last directly written stock.  Enforced by ApplicationTransactionEngine
    (restore-then-debit on update, credit on delete)."""

    ATOMIC_APPLICATION = "atomic_application"
    """An application row change and its stock movement commit together.
    Enforced by Database.session_scope."""

    ITEM_SERIALIZATION = "item_serialization"
    """Writers touching the same item serialize on its row lock.  Enforced
    by ItemLedger.get(for_update=True) / lock_many."""

    REFERENTIAL_INTEGRITY = "referential_integrity"
    """An item referenced by applications cannot be deleted.  Enforced by
    ItemCatalogService.delete_item and ON DELETE RESTRICT."""


# All invariants as a frozenset for programmatic checks.
ALL_STOCK_INVARIANTS: frozenset[StockInvariant] = frozenset(StockInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "stock_api",
    "stock_config",
)
