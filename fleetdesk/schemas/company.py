from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional

from fleetdesk.models.company import DistanceUnitEnum, FuelUnitEnum
from fleetdesk.schemas.base import RowModel


class CompanyAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class CompanySettings(BaseModel):
    timezone: str = "UTC"
    currency: str = "USD"
    distance_unit: DistanceUnitEnum = DistanceUnitEnum.MILES
    fuel_unit: FuelUnitEnum = FuelUnitEnum.GALLONS

    model_config = ConfigDict(use_enum_values=True)


class CompanySettingsUpdate(BaseModel):
    timezone: Optional[str] = None
    currency: Optional[str] = None
    distance_unit: Optional[DistanceUnitEnum] = None
    fuel_unit: Optional[FuelUnitEnum] = None

    model_config = ConfigDict(use_enum_values=True)


class CompanyBase(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[CompanyAddress] = None
    settings: Optional[CompanySettings] = None

    model_config = ConfigDict(use_enum_values=True)


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[CompanyAddress] = None
    settings: Optional[CompanySettings] = None

    model_config = ConfigDict(use_enum_values=True)


class CompanyResponse(RowModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[CompanyAddress] = None
    settings: Optional[CompanySettings] = None


class CompanyStats(BaseModel):
    total_vehicles: int = 0
    active_vehicles: int = 0
    total_drivers: int = 0
    active_drivers: int = 0
    upcoming_maintenance: int = 0
    expiring_licenses: int = 0
