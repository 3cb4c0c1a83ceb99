"""Read-only queries over the application ledger."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import ApplicationInfo
from stock_kernel.models.application import Application
from stock_kernel.selectors.base import BaseSelector


class ApplicationSelector(BaseSelector[Application]):

    def get(self, application_id: UUID) -> ApplicationInfo | None:
        application = self.session.get(Application, application_id)
        return ApplicationInfo.from_model(application) if application else None

    def list_applications(self, item_id: UUID | None = None) -> list[ApplicationInfo]:
        """Applications newest first, optionally for one item."""
        stmt = select(Application)
        if item_id is not None:
            stmt = stmt.where(Application.item_id == item_id)
        stmt = stmt.order_by(Application.created_at.desc(), Application.id)
        return [
            ApplicationInfo.from_model(a) for a in self.session.execute(stmt).scalars()
        ]
