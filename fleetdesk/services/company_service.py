import asyncio
from datetime import date, timedelta
from typing import Optional

from pydantic import ValidationError

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.models.vehicle import VehicleStatusEnum
from fleetdesk.platform.base import TableGateway
from fleetdesk.platform.query import TableQuery
from fleetdesk.schemas.company import (
    CompanyCreate,
    CompanyResponse,
    CompanySettings,
    CompanySettingsUpdate,
    CompanyStats,
    CompanyUpdate,
)
from fleetdesk.services.base import BaseService, Payload, validation_failure
from fleetdesk.services.driver_service import DriverService
from fleetdesk.services.vehicle_service import VehicleService, is_due_for_maintenance

ACTIVE_VEHICLE_STATUSES = {VehicleStatusEnum.AVAILABLE.value, VehicleStatusEnum.IN_USE.value}


class CompanyService(BaseService[CompanyCreate, CompanyUpdate, CompanyResponse]):
    table = "companies"
    create_schema = CompanyCreate
    update_schema = CompanyUpdate
    response_schema = CompanyResponse
    tenant_scoped = False

    def __init__(self, tables: TableGateway, drivers: DriverService, vehicles: VehicleService):
        super().__init__(tables)
        self.drivers = drivers
        self.vehicles = vehicles

    @staticmethod
    def _no_tenant() -> Result:
        return Result.failure(ServiceError.not_found("No company is associated with this account"))

    async def get_current(self, ctx: SessionContext) -> Result:
        if not ctx.tenant_id:
            return self._no_tenant()
        return await self.get_by_id(ctx, ctx.tenant_id)

    async def get_by_user_id(self, ctx: SessionContext, user_id: str) -> Result:
        """The company the given user's profile belongs to."""
        query = TableQuery("profiles").where(user_id=user_id).one()
        profile = await self.tables.select(ctx.access_token, query)
        if not profile.ok:
            return self.finish("get_by_user_id", profile)
        company_id = profile.data.get("company_id")
        if not company_id:
            return self._no_tenant()
        return await self.get_by_id(ctx, company_id)

    async def update_current(self, ctx: SessionContext, payload: Payload) -> Result:
        if not ctx.tenant_id:
            return self._no_tenant()
        return await self.update(ctx, ctx.tenant_id, payload)

    async def update_settings(self, ctx: SessionContext, partial_settings: Payload) -> Result:
        """Merge ``partial_settings`` into the current company settings."""
        try:
            changes = self.dump(partial_settings, CompanySettingsUpdate, partial=True)
        except ValidationError as exc:
            return validation_failure(exc)

        current = await self.get_current(ctx)
        if not current.ok:
            return current

        base = current.data.settings or CompanySettings()
        merged = base.model_dump()
        merged.update({key: value for key, value in changes.items() if value is not None})
        try:
            settings = CompanySettings.model_validate(merged).model_dump()
        except ValidationError as exc:
            return validation_failure(exc)
        return await self.update_values(ctx, ctx.tenant_id, {"settings": settings}, operation="update_settings")

    async def get_stats(
        self, ctx: SessionContext, days_threshold: int = 30, today: Optional[date] = None
    ) -> Result:
        """Fleet totals for the caller's company, reduced locally from driver and vehicle rows."""
        if not ctx.tenant_id:
            return self._no_tenant()

        drivers, vehicles = await asyncio.gather(self.drivers.get_all(ctx), self.vehicles.get_all(ctx))
        for result in (drivers, vehicles):
            if not result.ok:
                return result

        cutoff = (today or date.today()) + timedelta(days=days_threshold)
        stats = CompanyStats(
            total_vehicles=len(vehicles.data),
            active_vehicles=sum(1 for v in vehicles.data if (v.status or VehicleStatusEnum.AVAILABLE.value) in ACTIVE_VEHICLE_STATUSES),
            total_drivers=len(drivers.data),
            active_drivers=sum(1 for d in drivers.data if d.status == DriverStatusEnum.ACTIVE.value),
            upcoming_maintenance=sum(1 for v in vehicles.data if is_due_for_maintenance(v, cutoff)),
            expiring_licenses=sum(1 for d in drivers.data if d.license_expiry is not None and d.license_expiry < cutoff),
        )
        return Result.success(stats)
