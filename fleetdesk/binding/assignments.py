from typing import Optional

from fleetdesk.binding.base import COMPANY_STATS, EntityBinding
from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.services.assignment_service import AssignmentService


class AssignmentBinding(EntityBinding):
    entity = "driver_assignments"
    # opening or closing an assignment changes the vehicle's driver and status
    related = ("vehicles", COMPANY_STATS)
    service: AssignmentService

    def __init__(self, service: AssignmentService, client: QueryClient, ctx: SessionContext):
        super().__init__(service, client, ctx)
        self.assign = self.mutation(service.assign)
        self.end = self.mutation(service.end)

    async def for_driver(self, driver_id: str, status: Optional[str] = None) -> Result:
        return await self.query(
            self.key("for_driver", driver_id=driver_id, status=status),
            lambda: self.service.list_for_driver(self.ctx, driver_id, status),
            empty=[],
        )

    async def active_for_driver(self, driver_id: str) -> Result:
        return await self.query(
            self.key("active", driver_id=driver_id),
            lambda: self.service.active_for_driver(self.ctx, driver_id),
            empty=None,
        )
