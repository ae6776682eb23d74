from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.assignment import AssignmentStatusEnum
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.models.vehicle import VehicleStatusEnum
from fleetdesk.platform.base import TableGateway
from fleetdesk.schemas.assignment import AssignmentCreate, AssignmentEnd, AssignmentResponse
from fleetdesk.services.base import BaseService, Payload, validation_failure
from fleetdesk.services.vehicle_service import VehicleService

logger = get_logger(__name__)

# vehicles in these states cannot take a driver
UNASSIGNABLE_STATUSES = {VehicleStatusEnum.MAINTENANCE.value, VehicleStatusEnum.OUT_OF_SERVICE.value}


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AssignmentService(BaseService[AssignmentCreate, AssignmentEnd, AssignmentResponse]):
    """
    Driver-to-vehicle assignment history.

    A driver holds at most one open assignment (``end_date`` NULL) and operates at most one
    vehicle. While an assignment is open the vehicle's ``assigned_driver_id`` points at its
    driver and the vehicle is ``in-use``; ending it releases the vehicle again.
    Rows are only written through ``assign`` and ``end``.
    """
    table = "driver_assignments"
    create_schema = AssignmentCreate
    update_schema = AssignmentEnd
    response_schema = AssignmentResponse

    def __init__(self, tables: TableGateway, vehicles: VehicleService):
        super().__init__(tables)
        self.vehicles = vehicles

    async def _row(self, ctx: SessionContext, table: str, id: str, label: str) -> Result:
        result = await self.tables.select(ctx.access_token, self.query(ctx, table).where(id=id).one())
        if not result.ok and result.error.kind is ErrorKind.NOT_FOUND:
            return Result.failure(ServiceError.not_found(f"{label} {id} not found"))
        return self.finish(f"load_{table}", result)

    async def list_for_driver(self, ctx: SessionContext, driver_id: str, status: Optional[str] = None) -> Result:
        """The driver's assignments, latest start first, optionally only ``active`` or ``ended`` ones."""
        filters = {"driver_id": driver_id}
        if status is not None:
            try:
                filters["status"] = AssignmentStatusEnum(status).value
            except ValueError:
                return Result.failure(ServiceError.validation(f"Invalid assignment status: {status}"))

        driver = await self._row(ctx, "drivers", driver_id, "Driver")
        if not driver.ok:
            return driver

        query = self.query(ctx).where(filters).order("start_date", desc=True)
        result = await self.tables.select(ctx.access_token, query)
        return self.finish("list_for_driver", result, self.parse_many)

    async def active_for_driver(self, ctx: SessionContext, driver_id: str) -> Result:
        """The driver's open assignment, or ``None``."""
        query = self.query(ctx).where(driver_id=driver_id, end_date=None)
        result = await self.tables.select(ctx.access_token, query)
        return self.finish("active_for_driver", result, lambda rows: self.parse(rows[0]) if rows else None)

    async def assign(self, ctx: SessionContext, driver_id: str, payload: Payload) -> Result:
        """Open an assignment of ``driver_id`` to ``payload.vehicle_id`` and put the vehicle in use."""
        try:
            values = self.dump(payload, AssignmentCreate, partial=False)
        except ValidationError as exc:
            return validation_failure(exc)
        vehicle_id = values["vehicle_id"]

        driver = await self._row(ctx, "drivers", driver_id, "Driver")
        if not driver.ok:
            return driver
        if driver.data.get("status") != DriverStatusEnum.ACTIVE.value:
            return Result.failure(ServiceError.validation("Only active drivers can be assigned to a vehicle"))

        vehicle = await self._row(ctx, "vehicles", vehicle_id, "Vehicle")
        if not vehicle.ok:
            return vehicle
        if vehicle.data.get("status") in UNASSIGNABLE_STATUSES:
            return Result.failure(
                ServiceError.validation(f"Vehicle {vehicle_id} is {vehicle.data['status']} and cannot be assigned")
            )
        holder = vehicle.data.get("assigned_driver_id")
        if holder and holder != driver_id:
            return Result.failure(
                ServiceError.validation(
                    f"Vehicle {vehicle_id} already has an assigned driver", code="vehicle_already_assigned"
                )
            )

        active = await self.active_for_driver(ctx, driver_id)
        if not active.ok:
            return active
        conflict = await self.vehicles.driver_conflict(ctx, driver_id, vehicle_id)
        if not conflict.ok:
            return conflict
        if active.data is not None or conflict.data:
            return Result.failure(
                ServiceError.validation("Driver already has an active assignment", code="driver_already_assigned")
            )

        row = {
            "company_id": ctx.tenant_id,
            "driver_id": driver_id,
            "vehicle_id": vehicle_id,
            "status": AssignmentStatusEnum.ACTIVE.value,
            "start_date": as_utc(values.get("start_date") or datetime.now(timezone.utc)),
            "notes": values.get("notes"),
            "assigned_by": ctx.user_id,
        }
        created = await self.tables.insert(ctx.access_token, self.table, [row], single=True)
        created = self.finish("assign", created, self.parse)
        if not created.ok:
            return created

        synced = await self.vehicles.update_values(
            ctx,
            vehicle_id,
            {"assigned_driver_id": driver_id, "status": VehicleStatusEnum.IN_USE.value},
            operation="assign",
        )
        if not synced.ok:
            return synced
        logger.info(f"[Assignment] driver {driver_id} assigned to vehicle {vehicle_id} ({created.data.id})")
        return created

    async def end(self, ctx: SessionContext, id: str, payload: Optional[Payload] = None) -> Result:
        """Close an open assignment and release its vehicle."""
        try:
            values = self.dump(payload or {}, AssignmentEnd, partial=False)
        except ValidationError as exc:
            return validation_failure(exc)

        current = await self._row(ctx, self.table, id, "Assignment")
        if not current.ok:
            return current
        assignment = self.parse(current.data)
        if assignment.end_date is not None:
            return Result.failure(ServiceError.validation("Assignment has already ended"))

        end_date = as_utc(values.get("end_date") or datetime.now(timezone.utc))
        if end_date < as_utc(assignment.start_date):
            return Result.failure(ServiceError.validation("An assignment cannot end before it starts"))

        updated = await self.update_values(
            ctx,
            id,
            {
                "end_date": end_date,
                "status": AssignmentStatusEnum.ENDED.value,
                "ended_by": ctx.user_id,
                "end_notes": values.get("notes"),
            },
            operation="end",
        )
        if not updated.ok:
            return updated

        vehicle = await self.vehicles.get_by_id(ctx, assignment.vehicle_id)
        if not vehicle.ok:
            return updated if vehicle.error.kind is ErrorKind.NOT_FOUND else vehicle
        if vehicle.data.assigned_driver_id == assignment.driver_id:
            release = {"assigned_driver_id": None}
            if vehicle.data.status == VehicleStatusEnum.IN_USE.value:
                release["status"] = VehicleStatusEnum.AVAILABLE.value
            synced = await self.vehicles.update_values(ctx, assignment.vehicle_id, release, operation="end")
            if not synced.ok:
                return synced

        logger.info(f"[Assignment] {id} ended; vehicle {assignment.vehicle_id} released")
        return updated

    async def create(self, ctx: SessionContext, payload: Payload) -> Result:
        return Result.failure(ServiceError.validation("Assignments are opened with assign()"))

    async def update(self, ctx: SessionContext, id: str, payload: Payload) -> Result:
        return Result.failure(ServiceError.validation("Assignments are closed with end()"))
