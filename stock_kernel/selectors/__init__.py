"""Read-only selectors for the stock kernel (query side)."""

from stock_kernel.selectors.alert_selector import AlertSelector
from stock_kernel.selectors.application_selector import ApplicationSelector
from stock_kernel.selectors.item_selector import ItemSelector

__all__ = [
    "AlertSelector",
    "ApplicationSelector",
    "ItemSelector",
]
