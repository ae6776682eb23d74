from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fleetdesk.binding import VehicleBinding
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.vehicle import VehicleStatusEnum
from fleetdesk.routes.deps import get_vehicle_binding, require_found
from fleetdesk.schemas.vehicle import (
    MaintenanceRecordCreate,
    VehicleCreate,
    VehicleDriverAssignment,
    VehicleOdometerUpdate,
    VehicleStatusUpdate,
    VehicleUpdate,
)
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(prefix="/vehicles", tags=["vehicles"])


# ---------------------------
# LIST
# ---------------------------
@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def list_vehicles(
    status_filter: Optional[VehicleStatusEnum] = Query(None, alias="status"),
    vehicle_type: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    """Paged vehicle list with optional status/type filters and a make/model/plate search."""
    try:
        result = unwrap_or_raise(
            await vehicles.page(
                status=status_filter.value if status_filter else None,
                vehicle_type=vehicle_type,
                search=search,
                page=page,
                limit=limit,
            )
        )
        if result is None:
            return ResponseWrapper.paginated([], 0, page, limit, message="Vehicles fetched successfully")
        return ResponseWrapper.paginated(
            result.items, result.total, result.page, result.per_page, message="Vehicles fetched successfully"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching vehicles: {e}")
        raise handle_http_error(e)


@router.get("/status-counts", response_model=dict, status_code=status.HTTP_200_OK)
async def get_status_counts(vehicles: VehicleBinding = Depends(get_vehicle_binding)):
    try:
        counts = unwrap_or_raise(await vehicles.status_counts())
        return ResponseWrapper.success(data=counts, message="Vehicle status counts fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error counting vehicles: {e}")
        raise handle_http_error(e)


@router.get("/due-maintenance", response_model=dict, status_code=status.HTTP_200_OK)
async def list_due_for_maintenance(
    days: int = Query(30, ge=0, le=365),
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    try:
        items = unwrap_or_raise(await vehicles.due_for_maintenance(days))
        return ResponseWrapper.success(
            data={"items": items, "total": len(items)},
            message=f"Vehicles due for maintenance within {days} days",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching vehicles due for maintenance: {e}")
        raise handle_http_error(e)


# ---------------------------
# CREATE
# ---------------------------
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_vehicle(payload: VehicleCreate, vehicles: VehicleBinding = Depends(get_vehicle_binding)):
    try:
        vehicle = unwrap_or_raise(await vehicles.create(payload))
        logger.info(f"Vehicle {vehicle.id} created for company {vehicle.company_id}")
        return ResponseWrapper.created(data=vehicle, message="Vehicle created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating vehicle: {e}")
        raise handle_http_error(e)


# ---------------------------
# GET / UPDATE / DELETE BY ID
# ---------------------------
@router.get("/{vehicle_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_vehicle(vehicle_id: str, vehicles: VehicleBinding = Depends(get_vehicle_binding)):
    try:
        vehicle = require_found(unwrap_or_raise(await vehicles.get(vehicle_id)), "Vehicle")
        return ResponseWrapper.success(data=vehicle, message="Vehicle fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


@router.put("/{vehicle_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def update_vehicle(
    vehicle_id: str,
    payload: VehicleUpdate,
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    try:
        vehicle = unwrap_or_raise(await vehicles.update(vehicle_id, payload))
        logger.info(f"Vehicle {vehicle_id} updated")
        return ResponseWrapper.updated(data=vehicle, message="Vehicle updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


@router.delete("/{vehicle_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def delete_vehicle(vehicle_id: str, vehicles: VehicleBinding = Depends(get_vehicle_binding)):
    try:
        unwrap_or_raise(await vehicles.delete(vehicle_id))
        logger.info(f"Vehicle {vehicle_id} deleted")
        return ResponseWrapper.deleted(message="Vehicle deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error deleting vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# OPERATIONS
# ---------------------------
@router.patch("/{vehicle_id}/status", response_model=dict, status_code=status.HTTP_200_OK)
async def update_vehicle_status(
    vehicle_id: str,
    payload: VehicleStatusUpdate,
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    try:
        vehicle = unwrap_or_raise(await vehicles.update_status(vehicle_id, payload.status, payload.notes))
        logger.info(f"Vehicle {vehicle_id} status set to {payload.status}")
        return ResponseWrapper.updated(data=vehicle, message="Vehicle status updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating vehicle status {vehicle_id}: {e}")
        raise handle_http_error(e)


@router.patch("/{vehicle_id}/driver", response_model=dict, status_code=status.HTTP_200_OK)
async def assign_vehicle_driver(
    vehicle_id: str,
    payload: VehicleDriverAssignment,
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    """Assign a driver to the vehicle; a null ``driver_id`` clears the assignment."""
    try:
        vehicle = unwrap_or_raise(await vehicles.assign_driver(vehicle_id, payload.driver_id))
        message = "Driver assigned successfully" if payload.driver_id else "Driver unassigned successfully"
        return ResponseWrapper.updated(data=vehicle, message=message)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error assigning driver to vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


@router.patch("/{vehicle_id}/odometer", response_model=dict, status_code=status.HTTP_200_OK)
async def update_vehicle_odometer(
    vehicle_id: str,
    payload: VehicleOdometerUpdate,
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    try:
        vehicle = unwrap_or_raise(await vehicles.update_odometer(vehicle_id, payload.mileage))
        return ResponseWrapper.updated(data=vehicle, message="Odometer updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating odometer for vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# MAINTENANCE
# ---------------------------
@router.get("/{vehicle_id}/maintenance", response_model=dict, status_code=status.HTTP_200_OK)
async def get_maintenance_history(vehicle_id: str, vehicles: VehicleBinding = Depends(get_vehicle_binding)):
    try:
        items = unwrap_or_raise(await vehicles.maintenance_history(vehicle_id))
        return ResponseWrapper.success(
            data={"items": items, "total": len(items)}, message="Maintenance history fetched successfully"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching maintenance history for vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)


@router.post("/{vehicle_id}/maintenance", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_maintenance_record(
    vehicle_id: str,
    payload: MaintenanceRecordCreate,
    vehicles: VehicleBinding = Depends(get_vehicle_binding),
):
    try:
        record = unwrap_or_raise(await vehicles.create_maintenance_record(vehicle_id, payload))
        logger.info(f"Maintenance record {record.id} logged for vehicle {vehicle_id}")
        return ResponseWrapper.created(data=record, message="Maintenance record created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating maintenance record for vehicle {vehicle_id}: {e}")
        raise handle_http_error(e)
