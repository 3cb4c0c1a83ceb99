"""Database layer - storage handle and base classes."""

from stock_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from stock_kernel.db.engine import Database

__all__ = [
    "Base",
    "Database",
    "TrackedBase",
    "UTCDateTime",
    "UUID",
    "UUIDString",
]
