from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from fleetdesk.models.assignment import AssignmentStatusEnum
from fleetdesk.schemas.base import RowModel


class AssignmentCreate(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    start_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AssignmentEnd(BaseModel):
    end_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AssignmentResponse(RowModel):
    company_id: str
    driver_id: str
    vehicle_id: str
    status: AssignmentStatusEnum
    start_date: datetime
    end_date: Optional[datetime] = None
    notes: Optional[str] = None
    end_notes: Optional[str] = None
    assigned_by: Optional[str] = None
    ended_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    @property
    def is_active(self) -> bool:
        return self.end_date is None
