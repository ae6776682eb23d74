from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.assignment import AssignmentStatusEnum
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.models.vehicle import VehicleStatusEnum
from fleetdesk.platform.query import neq
from fleetdesk.schemas.base import Page
from fleetdesk.schemas.vehicle import (
    MaintenanceRecordCreate,
    MaintenanceRecordResponse,
    VehicleCreate,
    VehicleResponse,
    VehicleUpdate,
)
from fleetdesk.services.base import BaseService, Payload, validation_failure

logger = get_logger(__name__)

DEFAULT_STATUS = VehicleStatusEnum.AVAILABLE.value
DEFAULT_MAINTENANCE_THRESHOLD_DAYS = 30
SEARCH_COLUMNS = ("make", "model", "license_plate")
ASSIGNMENTS = "driver_assignments"


def count_by_status(vehicles: Iterable[VehicleResponse]) -> Dict[str, int]:
    """Group vehicles by status; a missing status counts as ``available``."""
    return dict(Counter(vehicle.status or DEFAULT_STATUS for vehicle in vehicles))


def is_due_for_maintenance(vehicle: VehicleResponse, cutoff: date) -> bool:
    if vehicle.status == VehicleStatusEnum.OUT_OF_SERVICE.value:
        return False
    if vehicle.next_service_date is not None and vehicle.next_service_date < cutoff:
        return True
    return (
        vehicle.next_service_mileage is not None
        and vehicle.mileage is not None
        and vehicle.mileage >= vehicle.next_service_mileage
    )


def _validate_status(status: str) -> Optional[str]:
    try:
        return VehicleStatusEnum(status).value
    except ValueError:
        return None


class VehicleService(BaseService[VehicleCreate, VehicleUpdate, VehicleResponse]):
    table = "vehicles"
    create_schema = VehicleCreate
    update_schema = VehicleUpdate
    response_schema = VehicleResponse

    async def get_vehicles(
        self,
        ctx: SessionContext,
        *,
        status: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Result:
        """One page of vehicles, newest first, with the total matching count."""
        if page < 1 or limit < 1:
            return Result.failure(ServiceError.validation("page and limit must be positive"))

        filters = {}
        if status:
            if _validate_status(status) is None:
                return Result.failure(ServiceError.validation(f"Invalid vehicle status: {status}"))
            filters["status"] = status
        if vehicle_type:
            filters["vehicle_type"] = vehicle_type

        query = (
            self.query(ctx)
            .where(filters)
            .search(SEARCH_COLUMNS, search)
            .order("created_at", desc=True)
            .range((page - 1) * limit, limit)
        )
        result = await self.tables.select(ctx.access_token, query)
        result = self.finish("get_vehicles", result, self.parse_many)
        if not result.ok:
            return result

        total = result.count if result.count is not None else len(result.data)
        return Result.success(Page(items=result.data, total=total, page=page, per_page=limit), count=total)

    async def get_by_status(self, ctx: SessionContext, status: str) -> Result:
        if _validate_status(status) is None:
            return Result.failure(ServiceError.validation(f"Invalid vehicle status: {status}"))
        return await self.get_all(ctx, {"status": status})

    async def get_status_counts(self, ctx: SessionContext) -> Result:
        result = await self.get_all(ctx)
        return result.map(count_by_status)

    async def get_due_for_maintenance(
        self,
        ctx: SessionContext,
        days_threshold: int = DEFAULT_MAINTENANCE_THRESHOLD_DAYS,
        today: Optional[date] = None,
    ) -> Result:
        """
        Vehicles whose next service falls before ``today + days_threshold`` or whose
        odometer has reached the next service mileage, soonest first.
        """
        if days_threshold < 0:
            return Result.failure(ServiceError.validation("days_threshold must not be negative"))
        cutoff = (today or date.today()) + timedelta(days=days_threshold)
        result = await self.get_all(ctx)

        def due(vehicles: List[VehicleResponse]) -> List[VehicleResponse]:
            selected = [vehicle for vehicle in vehicles if is_due_for_maintenance(vehicle, cutoff)]
            return sorted(selected, key=lambda v: (v.next_service_date is None, v.next_service_date or cutoff))

        return result.map(due)

    async def driver_conflict(self, ctx: SessionContext, driver_id: str, vehicle_id: Optional[str] = None) -> Result:
        """Id of a vehicle other than ``vehicle_id`` that ``driver_id`` currently operates, or ``None``."""
        held = self.query(ctx).where(assigned_driver_id=driver_id)
        if vehicle_id is not None:
            held = held.where(id=neq(vehicle_id))
        result = await self.tables.select(ctx.access_token, held)
        if not result.ok:
            return self.finish("driver_conflict", result)
        if result.data:
            return Result.success(result.data[0]["id"])

        open_assignments = self.query(ctx, ASSIGNMENTS).where(driver_id=driver_id, end_date=None)
        if vehicle_id is not None:
            open_assignments = open_assignments.where(vehicle_id=neq(vehicle_id))
        result = await self.tables.select(ctx.access_token, open_assignments)
        if not result.ok:
            return self.finish("driver_conflict", result)
        return Result.success(result.data[0]["vehicle_id"] if result.data else None)

    async def _end_open_assignments(
        self, ctx: SessionContext, vehicle_id: str, keep_driver_id: Optional[str]
    ) -> Result:
        """Close the vehicle's open assignments held by anyone but ``keep_driver_id``."""
        query = self.query(ctx, ASSIGNMENTS).where(vehicle_id=vehicle_id, end_date=None)
        if keep_driver_id is not None:
            query = query.where(driver_id=neq(keep_driver_id))
        values = {
            "end_date": datetime.now(timezone.utc),
            "status": AssignmentStatusEnum.ENDED.value,
            "ended_by": ctx.user_id,
        }
        return self.finish("assign_driver", await self.tables.update(ctx.access_token, query, values))

    async def assign_driver(self, ctx: SessionContext, vehicle_id: str, driver_id: Optional[str]) -> Result:
        """
        Assign ``driver_id`` to the vehicle, or clear the assignment with ``None``.

        A driver operates one vehicle at a time. Open assignment history rows of the
        previous driver are closed.
        """
        if driver_id is not None:
            driver = await self.tables.select(ctx.access_token, self.query(ctx, "drivers").where(id=driver_id).one())
            if not driver.ok:
                if driver.error.kind is ErrorKind.NOT_FOUND:
                    return Result.failure(ServiceError.not_found(f"Driver {driver_id} not found"))
                return self.finish("assign_driver", driver)
            if driver.data.get("status") != DriverStatusEnum.ACTIVE.value:
                return Result.failure(ServiceError.validation("Only active drivers can be assigned to a vehicle"))

            conflict = await self.driver_conflict(ctx, driver_id, vehicle_id)
            if not conflict.ok:
                return conflict
            if conflict.data:
                return Result.failure(
                    ServiceError.validation(
                        f"Driver {driver_id} is already assigned to vehicle {conflict.data}",
                        code="driver_already_assigned",
                    )
                )

        logger.info(f"[VehicleAssign] vehicle_id={vehicle_id}, driver_id={driver_id}")
        updated = await self.update_values(ctx, vehicle_id, {"assigned_driver_id": driver_id}, operation="assign_driver")
        if not updated.ok:
            return updated
        closed = await self._end_open_assignments(ctx, vehicle_id, driver_id)
        if not closed.ok:
            return closed
        return updated

    async def update_status(
        self, ctx: SessionContext, vehicle_id: str, status: str, notes: Optional[str] = None
    ) -> Result:
        status_value = _validate_status(status)
        if status_value is None:
            return Result.failure(ServiceError.validation(f"Invalid vehicle status: {status}"))
        values = {
            "status": status_value,
            "status_notes": notes or None,
            "status_updated_at": datetime.now(timezone.utc),
        }
        return await self.update_values(ctx, vehicle_id, values, operation="update_status")

    async def update_odometer(self, ctx: SessionContext, vehicle_id: str, mileage: int) -> Result:
        """Record a new odometer reading; readings never go backwards."""
        if mileage < 0:
            return Result.failure(ServiceError.validation("Mileage must not be negative"))
        current = await self.get_by_id(ctx, vehicle_id)
        if not current.ok:
            return current
        if current.data.mileage is not None and mileage < current.data.mileage:
            return Result.failure(
                ServiceError.validation(
                    f"Odometer reading {mileage} is lower than the current reading {current.data.mileage}"
                )
            )
        return await self.update_values(ctx, vehicle_id, {"mileage": mileage}, operation="update_odometer")

    async def get_maintenance_history(self, ctx: SessionContext, vehicle_id: str) -> Result:
        query = (
            self.query(ctx, "maintenance_records")
            .where(vehicle_id=vehicle_id)
            .order("service_date", desc=True)
        )
        result = await self.tables.select(ctx.access_token, query)
        return self.finish(
            "get_maintenance_history",
            result,
            lambda rows: [MaintenanceRecordResponse.model_validate(row) for row in rows],
        )

    async def create_maintenance_record(self, ctx: SessionContext, vehicle_id: str, payload: Payload) -> Result:
        """Log a service for the vehicle and advance its ``last_service_date``."""
        try:
            values = self.dump(payload, MaintenanceRecordCreate, partial=False)
        except ValidationError as exc:
            return validation_failure(exc)

        vehicle = await self.get_by_id(ctx, vehicle_id)
        if not vehicle.ok:
            return vehicle

        values.update({"vehicle_id": vehicle_id, "company_id": ctx.tenant_id})
        result = await self.tables.insert(ctx.access_token, "maintenance_records", [values], single=True)
        result = self.finish("create_maintenance_record", result, MaintenanceRecordResponse.model_validate)
        if not result.ok:
            return result

        record = result.data
        last_service = vehicle.data.last_service_date
        if last_service is None or record.service_date > last_service:
            updates = {"last_service_date": record.service_date}
            if record.mileage is not None and (vehicle.data.mileage or 0) < record.mileage:
                updates["mileage"] = record.mileage
            advanced = await self.update_values(ctx, vehicle_id, updates, operation="create_maintenance_record")
            if not advanced.ok:
                return advanced
        return result
