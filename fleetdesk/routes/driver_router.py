from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fleetdesk.binding import DriverBinding
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.routes.deps import get_driver_binding, require_found
from fleetdesk.schemas.driver import DriverCreate, DriverUpdate
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(prefix="/drivers", tags=["drivers"])


# ---------------------------
# LIST
# ---------------------------
@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def list_drivers(
    status_filter: Optional[DriverStatusEnum] = Query(None, alias="status"),
    drivers: DriverBinding = Depends(get_driver_binding),
):
    try:
        if status_filter is not None:
            result = await drivers.by_status(status_filter.value)
        else:
            result = await drivers.list()
        items = unwrap_or_raise(result)
        return ResponseWrapper.success(data={"items": items, "total": len(items)}, message="Drivers fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching drivers: {e}")
        raise handle_http_error(e)


@router.get("/expiring-licenses", response_model=dict, status_code=status.HTTP_200_OK)
async def list_expiring_licenses(
    days: int = Query(30, ge=0, le=365),
    drivers: DriverBinding = Depends(get_driver_binding),
):
    """Drivers whose license expires within ``days`` days (exclusive)."""
    try:
        items = unwrap_or_raise(await drivers.expiring_licenses(days))
        return ResponseWrapper.success(
            data={"items": items, "total": len(items)},
            message=f"Drivers with licenses expiring within {days} days",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching expiring licenses: {e}")
        raise handle_http_error(e)


@router.get("/status/{driver_status}", response_model=dict, status_code=status.HTTP_200_OK)
async def list_drivers_by_status(driver_status: str, drivers: DriverBinding = Depends(get_driver_binding)):
    try:
        items = unwrap_or_raise(await drivers.by_status(driver_status))
        return ResponseWrapper.success(data={"items": items, "total": len(items)}, message="Drivers fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching drivers by status: {e}")
        raise handle_http_error(e)


# ---------------------------
# CREATE
# ---------------------------
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_driver(payload: DriverCreate, drivers: DriverBinding = Depends(get_driver_binding)):
    try:
        driver = unwrap_or_raise(await drivers.create(payload))
        logger.info(f"Driver {driver.id} created for company {driver.company_id}")
        return ResponseWrapper.created(data=driver, message="Driver created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating driver: {e}")
        raise handle_http_error(e)


# ---------------------------
# GET BY ID
# ---------------------------
@router.get("/{driver_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_driver(driver_id: str, drivers: DriverBinding = Depends(get_driver_binding)):
    try:
        driver = require_found(unwrap_or_raise(await drivers.get(driver_id)), "Driver")
        return ResponseWrapper.success(data=driver, message="Driver fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching driver {driver_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# UPDATE
# ---------------------------
@router.put("/{driver_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def update_driver(driver_id: str, payload: DriverUpdate, drivers: DriverBinding = Depends(get_driver_binding)):
    try:
        driver = unwrap_or_raise(await drivers.update(driver_id, payload))
        logger.info(f"Driver {driver_id} updated")
        return ResponseWrapper.updated(data=driver, message="Driver updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating driver {driver_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# DELETE
# ---------------------------
@router.delete("/{driver_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def delete_driver(driver_id: str, drivers: DriverBinding = Depends(get_driver_binding)):
    try:
        unwrap_or_raise(await drivers.delete(driver_id))
        logger.info(f"Driver {driver_id} deleted")
        return ResponseWrapper.deleted(message="Driver deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error deleting driver {driver_id}: {e}")
        raise handle_http_error(e)
