from datetime import date
from typing import Optional

from fleetdesk.binding.base import COMPANY_STATS, EntityBinding
from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.services.vehicle_service import DEFAULT_MAINTENANCE_THRESHOLD_DAYS, VehicleService

MAINTENANCE_RECORDS = "maintenance_records"
ASSIGNMENTS = "driver_assignments"


class VehicleBinding(EntityBinding):
    entity = "vehicles"
    related = (COMPANY_STATS,)
    service: VehicleService

    def __init__(self, service: VehicleService, client: QueryClient, ctx: SessionContext):
        super().__init__(service, client, ctx)
        self.delete = self.mutation(service.delete, MAINTENANCE_RECORDS, ASSIGNMENTS)
        self.assign_driver = self.mutation(service.assign_driver, ASSIGNMENTS)
        self.update_status = self.mutation(service.update_status)
        self.update_odometer = self.mutation(service.update_odometer)
        self.create_maintenance_record = self.mutation(service.create_maintenance_record, MAINTENANCE_RECORDS)

    async def page(
        self,
        *,
        status: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Result:
        return await self.query(
            self.key("page", status=status, vehicle_type=vehicle_type, search=search, page=page, limit=limit),
            lambda: self.service.get_vehicles(
                self.ctx, status=status, vehicle_type=vehicle_type, search=search, page=page, limit=limit
            ),
            empty=None,
        )

    async def by_status(self, status: str) -> Result:
        return await self.query(
            self.key("by_status", status=status),
            lambda: self.service.get_by_status(self.ctx, status),
            empty=[],
        )

    async def status_counts(self) -> Result:
        return await self.query(
            self.key("status_counts"),
            lambda: self.service.get_status_counts(self.ctx),
            empty={},
        )

    async def due_for_maintenance(
        self, days_threshold: int = DEFAULT_MAINTENANCE_THRESHOLD_DAYS, today: Optional[date] = None
    ) -> Result:
        today = today or date.today()
        return await self.query(
            self.key("due_for_maintenance", days=days_threshold, today=today),
            lambda: self.service.get_due_for_maintenance(self.ctx, days_threshold, today),
            empty=[],
        )

    async def maintenance_history(self, vehicle_id: str) -> Result:
        return await self.query(
            self.key("history", entity=MAINTENANCE_RECORDS, vehicle_id=vehicle_id),
            lambda: self.service.get_maintenance_history(self.ctx, vehicle_id),
            empty=[],
        )
