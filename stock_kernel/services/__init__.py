"""Services for the stock kernel (write side)."""

from stock_kernel.services.application_engine import ApplicationTransactionEngine
from stock_kernel.services.application_ledger import ApplicationLedger
from stock_kernel.services.item_catalog import ItemCatalogService
from stock_kernel.services.item_ledger import ItemLedger

__all__ = [
    "ApplicationLedger",
    "ApplicationTransactionEngine",
    "ItemCatalogService",
    "ItemLedger",
]
