from fastapi import APIRouter, Depends, HTTPException, Query, status

from fleetdesk.binding import CompanyBinding
from fleetdesk.core.logging_config import get_logger
from fleetdesk.routes.deps import get_company_binding, require_found
from fleetdesk.schemas.company import CompanySettingsUpdate, CompanyUpdate
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("/current", response_model=dict, status_code=status.HTTP_200_OK)
async def get_current_company(companies: CompanyBinding = Depends(get_company_binding)):
    try:
        company = require_found(unwrap_or_raise(await companies.current()), "Company")
        return ResponseWrapper.success(data=company, message="Company fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching company: {e}")
        raise handle_http_error(e)


@router.put("/current", response_model=dict, status_code=status.HTTP_200_OK)
async def update_current_company(
    payload: CompanyUpdate,
    companies: CompanyBinding = Depends(get_company_binding),
):
    try:
        company = unwrap_or_raise(await companies.update_current(payload))
        logger.info(f"Company {company.id} updated")
        return ResponseWrapper.updated(data=company, message="Company updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating company: {e}")
        raise handle_http_error(e)


@router.patch("/current/settings", response_model=dict, status_code=status.HTTP_200_OK)
async def update_company_settings(
    payload: CompanySettingsUpdate,
    companies: CompanyBinding = Depends(get_company_binding),
):
    """Merge the given settings into the company's current settings."""
    try:
        company = unwrap_or_raise(await companies.update_settings(payload))
        return ResponseWrapper.updated(data=company, message="Company settings updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating company settings: {e}")
        raise handle_http_error(e)


@router.get("/current/stats", response_model=dict, status_code=status.HTTP_200_OK)
async def get_company_stats(
    days: int = Query(30, ge=0, le=365),
    companies: CompanyBinding = Depends(get_company_binding),
):
    try:
        stats = require_found(unwrap_or_raise(await companies.stats(days)), "Company")
        return ResponseWrapper.success(data=stats, message="Company stats fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching company stats: {e}")
        raise handle_http_error(e)
