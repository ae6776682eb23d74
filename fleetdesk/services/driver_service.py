from datetime import date, timedelta
from typing import Optional

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.platform.base import TableGateway
from fleetdesk.platform.query import lt
from fleetdesk.schemas.driver import DriverCreate, DriverResponse, DriverUpdate
from fleetdesk.services.base import BaseService
from fleetdesk.services.document_service import DocumentService

DEFAULT_EXPIRY_THRESHOLD_DAYS = 30


class DriverService(BaseService[DriverCreate, DriverUpdate, DriverResponse]):
    table = "drivers"
    create_schema = DriverCreate
    update_schema = DriverUpdate
    response_schema = DriverResponse

    def __init__(self, tables: TableGateway, documents: Optional[DocumentService] = None):
        super().__init__(tables)
        self.documents = documents

    async def get_by_status(self, ctx: SessionContext, status: str) -> Result:
        try:
            status = DriverStatusEnum(status).value
        except ValueError:
            return Result.failure(ServiceError.validation(f"Invalid driver status: {status}"))
        return await self.get_all(ctx, {"status": status})

    async def get_with_expiring_licenses(
        self,
        ctx: SessionContext,
        days_threshold: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
        today: Optional[date] = None,
    ) -> Result:
        """
        Drivers whose license expires before ``today + days_threshold``.

        The bound is exclusive: a license expiring exactly ``days_threshold`` days out is
        not included. Already-expired licenses are; drivers without an expiry date are not.
        """
        if days_threshold < 0:
            return Result.failure(ServiceError.validation("days_threshold must not be negative"))
        cutoff = (today or date.today()) + timedelta(days=days_threshold)
        return await self.get_all(ctx, {"license_expiry": lt(cutoff)})

    async def delete(self, ctx: SessionContext, id: str) -> Result:
        """Delete the driver; their document files are removed first and the rows go by cascade."""
        existing = await self.get_by_id(ctx, id)
        if not existing.ok:
            return existing
        if self.documents is not None:
            removed = await self.documents.remove_driver_files(ctx, id)
            if not removed.ok:
                return removed
        return await super().delete(ctx, id)
