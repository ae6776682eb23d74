from datetime import date
from typing import Optional

from fleetdesk.binding.base import COMPANY_STATS, EntityBinding
from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.services.driver_service import DEFAULT_EXPIRY_THRESHOLD_DAYS, DriverService


class DriverBinding(EntityBinding):
    entity = "drivers"
    related = (COMPANY_STATS,)
    service: DriverService

    def __init__(self, service: DriverService, client: QueryClient, ctx: SessionContext):
        super().__init__(service, client, ctx)
        # deleting a driver unassigns its vehicles and drops its documents and assignments
        self.delete = self.mutation(service.delete, "vehicles", "documents", "driver_assignments")

    async def by_status(self, status: str) -> Result:
        return await self.query(
            self.key("by_status", status=status),
            lambda: self.service.get_by_status(self.ctx, status),
            empty=[],
        )

    async def expiring_licenses(
        self, days_threshold: int = DEFAULT_EXPIRY_THRESHOLD_DAYS, today: Optional[date] = None
    ) -> Result:
        today = today or date.today()
        return await self.query(
            self.key("expiring_licenses", days=days_threshold, today=today),
            lambda: self.service.get_with_expiring_licenses(self.ctx, days_threshold, today),
            empty=[],
        )
