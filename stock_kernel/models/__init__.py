"""Domain models for the stock kernel."""

from stock_kernel.models.application import Application
from stock_kernel.models.item import Item

__all__ = [
    "Application",
    "Item",
]
