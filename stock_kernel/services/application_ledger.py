"""
ApplicationLedger -- transactional row store for application events.

No business rules live here: stock consistency is the transaction engine's
job.  Flush-only; the caller owns the transaction.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from stock_kernel.models.application import Application
from stock_kernel.services.base import BaseService


class ApplicationLedger(BaseService[Application]):
    """Plain CRUD keyed by application id."""

    def get(self, application_id: UUID, for_update: bool = False) -> Application | None:
        stmt = select(Application).where(Application.id == application_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def add(
        self,
        animal_id: str,
        item_id: UUID,
        dose_quantity: int,
        date: datetime,
        user_id: str | None,
    ) -> Application:
        application = Application(
            animal_id=animal_id,
            item_id=item_id,
            dose_quantity=dose_quantity,
            date=date,
            user_id=user_id,
            created_at=self.clock.now(),
        )
        self.session.add(application)
        self.session.flush()
        return application

    def rewrite(self, application: Application, **fields: object) -> Application:
        for name, value in fields.items():
            setattr(application, name, value)
        self.session.flush()
        return application

    def delete(self, application: Application) -> None:
        self.session.delete(application)
        self.session.flush()
