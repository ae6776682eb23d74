from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from fleetdesk.binding import AssignmentBinding
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.assignment import AssignmentStatusEnum
from fleetdesk.routes.deps import get_assignment_binding
from fleetdesk.schemas.assignment import AssignmentCreate, AssignmentEnd
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(tags=["assignments"])


# ---------------------------
# LIST FOR DRIVER
# ---------------------------
@router.get("/drivers/{driver_id}/assignments", response_model=dict, status_code=status.HTTP_200_OK)
async def list_driver_assignments(
    driver_id: str,
    status_filter: Optional[AssignmentStatusEnum] = Query(None, alias="status"),
    assignments: AssignmentBinding = Depends(get_assignment_binding),
):
    """A driver's vehicle assignments, latest first."""
    try:
        items = unwrap_or_raise(
            await assignments.for_driver(driver_id, status_filter.value if status_filter is not None else None)
        )
        return ResponseWrapper.success(
            data={"items": items, "total": len(items)}, message="Assignments fetched successfully"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching assignments of driver {driver_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# ASSIGN
# ---------------------------
@router.post("/drivers/{driver_id}/assignments", response_model=dict, status_code=status.HTTP_201_CREATED)
async def assign_vehicle(
    driver_id: str,
    payload: AssignmentCreate,
    assignments: AssignmentBinding = Depends(get_assignment_binding),
):
    try:
        assignment = unwrap_or_raise(await assignments.assign(driver_id, payload))
        logger.info(f"Driver {driver_id} assigned to vehicle {assignment.vehicle_id}")
        return ResponseWrapper.created(data=assignment, message="Vehicle assigned successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error assigning a vehicle to driver {driver_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# END
# ---------------------------
@router.post("/assignments/{assignment_id}/end", response_model=dict, status_code=status.HTTP_200_OK)
async def end_assignment(
    assignment_id: str,
    payload: Optional[AssignmentEnd] = Body(None),
    assignments: AssignmentBinding = Depends(get_assignment_binding),
):
    try:
        assignment = unwrap_or_raise(await assignments.end(assignment_id, payload))
        logger.info(f"Assignment {assignment_id} ended")
        return ResponseWrapper.updated(data=assignment, message="Assignment ended successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error ending assignment {assignment_id}: {e}")
        raise handle_http_error(e)
