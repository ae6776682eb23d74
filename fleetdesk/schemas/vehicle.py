from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime, date
from decimal import Decimal

from fleetdesk.models.vehicle import VehicleStatusEnum
from fleetdesk.schemas.base import RowModel


class VehicleBase(BaseModel):
    make: str
    model: str
    year: int = Field(..., ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=17)
    license_plate: Optional[str] = None
    vehicle_type: Optional[str] = None
    status: VehicleStatusEnum = VehicleStatusEnum.AVAILABLE
    mileage: Optional[int] = Field(None, ge=0)
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None
    next_service_mileage: Optional[int] = Field(None, ge=0)
    assigned_driver_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class VehicleCreate(VehicleBase):
    company_id: Optional[str] = None


class VehicleUpdate(BaseModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=17)
    license_plate: Optional[str] = None
    vehicle_type: Optional[str] = None
    status: Optional[VehicleStatusEnum] = None
    mileage: Optional[int] = Field(None, ge=0)
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None
    next_service_mileage: Optional[int] = Field(None, ge=0)
    assigned_driver_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class VehicleStatusUpdate(BaseModel):
    status: VehicleStatusEnum
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class VehicleDriverAssignment(BaseModel):
    driver_id: Optional[str] = None


class VehicleOdometerUpdate(BaseModel):
    mileage: int = Field(..., ge=0)


class VehicleResponse(RowModel):
    company_id: str
    make: str
    model: str
    year: int
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    vehicle_type: Optional[str] = None
    status: Optional[VehicleStatusEnum] = None
    status_notes: Optional[str] = None
    status_updated_at: Optional[datetime] = None
    mileage: Optional[int] = None
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None
    next_service_mileage: Optional[int] = None
    assigned_driver_id: Optional[str] = None


class MaintenanceRecordCreate(BaseModel):
    service_type: str
    description: Optional[str] = None
    service_date: date
    cost: Optional[Decimal] = Field(None, ge=0)
    mileage: Optional[int] = Field(None, ge=0)


class MaintenanceRecordResponse(RowModel):
    company_id: str
    vehicle_id: str
    service_type: str
    description: Optional[str] = None
    service_date: date
    cost: Optional[Decimal] = None
    mileage: Optional[int] = None
