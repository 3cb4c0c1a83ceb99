"""
Pure domain layer.

Immutable DTOs and the injectable clock.  No ORM, database or I/O
dependencies (except SystemClock, the sanctioned boundary for time).
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    ApplicationInfo,
    ApplicationUpdate,
    ItemInfo,
    StockAlert,
)

__all__ = [
    "ApplicationInfo",
    "ApplicationUpdate",
    "Clock",
    "DeterministicClock",
    "ItemInfo",
    "StockAlert",
    "SystemClock",
]
