"""
BaseService -- abstract base for the kernel ledgers.

Responsibility:
    Provides the common constructor and session-handling contract for the
    ledgers.  A ledger receives a SQLAlchemy ``Session`` from its caller and
    uses ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: ledgers flush within the caller's transaction
    and never commit or roll back.  The transaction engine and the item
    catalog own commit/rollback through ``Database.session_scope()``.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base
from stock_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only kernel services.

    Guarantees:
        The service never calls ``session.commit()`` or
        ``session.rollback()``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
