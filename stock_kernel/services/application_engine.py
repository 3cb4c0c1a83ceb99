"""
ApplicationTransactionEngine -- atomic application writes with stock movement.

Responsibility:
    Creates, rewrites and deletes Application rows together with the
    matching debit/credit of Item.stock_quantity.  This is the only code
    path that moves stock as a side effect of an application event.

Architecture position:
    Kernel > Services.  Owns its transaction boundary: each public method
    is exactly one ``Database.session_scope()``.  Composes ItemLedger and
    ApplicationLedger inside that scope.

Invariants enforced:
    - Atomicity: the stock adjustment and the application row change commit
      together or not at all.  Any error raised inside the scope rolls back
      every staged write, including a debit that already happened.
    - Serialization per item: every stock-affecting path locks the item
      row (SELECT ... FOR UPDATE) and re-reads it before validating.
      Values read before the lock are never trusted.
    - Lock order: application row first, then item rows in ascending id
      order.  Concurrent moves A->B and B->A cannot deadlock.
    - Ledger identity: for every item, stock_quantity plus the doses of
      its current applications is constant across engine operations.  An
      update that changes item or dose credits the full old dose to the
      old item before debiting the new dose from the new item.

Failure modes:
    - InvalidFieldError / InvalidDoseQuantityError: rejected before the
      transaction opens.
    - ItemNotFoundError, ItemExpiredError, InsufficientStockError: raised
      under lock; the unit of work rolls back.
    - ApplicationNotFoundError: update of an unknown id.
    - StorageUnavailableError: storage failed; nothing was applied.

Usage::

    engine = ApplicationTransactionEngine(database, clock)
    app = engine.create_application("cow-17", item_id, 2, caller_id="vet")
    engine.update_application(app.id, ApplicationUpdate(dose_quantity=3))
    engine.delete_application(app.id)
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from stock_kernel.db.engine import Database
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import ApplicationInfo, ApplicationUpdate
from stock_kernel.exceptions import (
    ApplicationNotFoundError,
    InsufficientStockError,
    InvalidDoseQuantityError,
    InvalidFieldError,
    ItemExpiredError,
    ItemNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.item import Item
from stock_kernel.services.application_ledger import ApplicationLedger
from stock_kernel.services.item_ledger import ItemLedger

logger = get_logger("services.application_engine")


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_dose(dose_quantity: object) -> None:
    if not _is_positive_int(dose_quantity):
        raise InvalidDoseQuantityError(dose_quantity)


def _validate_animal_id(animal_id: object) -> None:
    if not isinstance(animal_id, str) or not animal_id.strip():
        raise InvalidFieldError("animalId", "must be a non-empty string")


def _validate_date(date: datetime | None) -> None:
    if date is not None and date.tzinfo is None:
        raise InvalidFieldError("date", "must be timezone-aware")


def _coerce_id(value: UUID | str) -> UUID | None:
    """Parse an id; a malformed id cannot match any row."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class ApplicationTransactionEngine:
    """
    Create / update / delete applications with their stock movement.

    Contract:
        Each public method is one unit of work.  The returned value is only
        produced after commit succeeded.
    """

    def __init__(self, database: Database, clock: Clock | None = None):
        self._database = database
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_application(
        self,
        animal_id: str,
        item_id: UUID | str,
        dose_quantity: int,
        date: datetime | None = None,
        caller_id: str | None = None,
    ) -> ApplicationInfo:
        """
        Record an application and debit its dose from the item.

        Raises:
            InvalidFieldError, InvalidDoseQuantityError: bad command.
            ItemNotFoundError, ItemExpiredError, InsufficientStockError.
        """
        _validate_animal_id(animal_id)
        _validate_dose(dose_quantity)
        _validate_date(date)
        parsed_item_id = _coerce_id(item_id)
        if parsed_item_id is None:
            raise ItemNotFoundError(str(item_id))

        with LogContext.bind(item_id=str(parsed_item_id), actor_id=caller_id):
            with self._database.session_scope() as session:
                items = ItemLedger(session, self._clock)
                applications = ApplicationLedger(session, self._clock)

                item = items.get(parsed_item_id, for_update=True)
                self._debit(items, item, parsed_item_id, dose_quantity)

                application = applications.add(
                    animal_id=animal_id,
                    item_id=parsed_item_id,
                    dose_quantity=dose_quantity,
                    date=date or self._clock.now(),
                    user_id=caller_id,
                )
                info = ApplicationInfo.from_model(application)

            logger.info(
                "application_created",
                extra={
                    "application_id": str(info.id),
                    "dose_quantity": info.dose_quantity,
                },
            )
        return info

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_application(
        self,
        application_id: UUID | str,
        updates: ApplicationUpdate,
        caller_id: str | None = None,
    ) -> ApplicationInfo:
        """
        Rewrite an application, moving stock if its item or dose changes.

        If neither item nor dose changes, only the non-stock fields are
        rewritten.  ``user_id`` is set to ``caller_id`` on every update.

        Raises:
            ApplicationNotFoundError: unknown id.
            InvalidFieldError, InvalidDoseQuantityError: bad update values.
            ItemNotFoundError, ItemExpiredError, InsufficientStockError:
                the new item cannot take the new dose after the old dose
                was restored.
        """
        if updates.animal_id is not None:
            _validate_animal_id(updates.animal_id)
        if updates.dose_quantity is not None:
            _validate_dose(updates.dose_quantity)
        _validate_date(updates.date)

        parsed_id = _coerce_id(application_id)
        if parsed_id is None:
            raise ApplicationNotFoundError(str(application_id))
        new_item_id: UUID | None = None
        if updates.item_id is not None:
            new_item_id = _coerce_id(updates.item_id)
            if new_item_id is None:
                raise ItemNotFoundError(str(updates.item_id))

        with LogContext.bind(application_id=str(parsed_id), actor_id=caller_id):
            with self._database.session_scope() as session:
                items = ItemLedger(session, self._clock)
                applications = ApplicationLedger(session, self._clock)

                application = applications.get(parsed_id, for_update=True)
                if application is None:
                    raise ApplicationNotFoundError(str(parsed_id))

                old_item_id = application.item_id
                old_dose = application.dose_quantity
                target_item_id = new_item_id if new_item_id is not None else old_item_id
                target_dose = (
                    updates.dose_quantity
                    if updates.dose_quantity is not None
                    else old_dose
                )
                stock_moved = target_item_id != old_item_id or target_dose != old_dose

                if stock_moved:
                    locked = items.lock_many([old_item_id, target_item_id])
                    old_item = locked.get(old_item_id)
                    if old_item is None:
                        raise ItemNotFoundError(str(old_item_id))
                    # Restore first so the new debit sees the post-restore balance
                    items.adjust_quantity(old_item, old_dose)
                    self._debit(
                        items, locked.get(target_item_id), target_item_id, target_dose
                    )

                fields: dict[str, object] = {"user_id": caller_id}
                if updates.animal_id is not None:
                    fields["animal_id"] = updates.animal_id
                if new_item_id is not None:
                    fields["item_id"] = target_item_id
                if updates.dose_quantity is not None:
                    fields["dose_quantity"] = target_dose
                if updates.date is not None:
                    fields["date"] = updates.date
                applications.rewrite(application, **fields)
                info = ApplicationInfo.from_model(application)

            logger.info(
                "application_updated",
                extra={
                    "stock_moved": stock_moved,
                    "from_item_id": str(old_item_id),
                    "to_item_id": str(target_item_id),
                    "old_dose": old_dose,
                    "new_dose": target_dose,
                },
            )
        return info

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_application(self, application_id: UUID | str) -> bool:
        """
        Delete an application and credit its dose back to the item.

        Returns:
            False if no such application exists, True once deleted.
        """
        parsed_id = _coerce_id(application_id)
        if parsed_id is None:
            return False

        with LogContext.bind(application_id=str(parsed_id)):
            with self._database.session_scope() as session:
                items = ItemLedger(session, self._clock)
                applications = ApplicationLedger(session, self._clock)

                application = applications.get(parsed_id, for_update=True)
                if application is None:
                    logger.info("application_delete_not_found")
                    return False

                item = items.get(application.item_id, for_update=True)
                if item is None:
                    raise ItemNotFoundError(str(application.item_id))
                restored = application.dose_quantity
                restored_item_id = str(item.id)
                items.adjust_quantity(item, restored)
                applications.delete(application)

            logger.info(
                "application_deleted",
                extra={"item_id": restored_item_id, "restored_quantity": restored},
            )
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _debit(
        self,
        items: ItemLedger,
        item: Item | None,
        item_id: UUID,
        dose_quantity: int,
    ) -> None:
        """Validate a locked item against a dose and debit it."""
        if item is None:
            raise ItemNotFoundError(str(item_id))
        now = self._clock.now()
        if item.is_expired(now):
            raise ItemExpiredError(
                str(item.id), item.expiration_date.isoformat(), now.isoformat()
            )
        if item.stock_quantity < dose_quantity:
            raise InsufficientStockError(
                str(item.id), dose_quantity, item.stock_quantity
            )
        items.adjust_quantity(item, -dose_quantity)
