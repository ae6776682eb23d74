from pydantic import BaseModel, ConfigDict
from typing import Optional

from fleetdesk.models.profile import UserRoleEnum
from fleetdesk.schemas.base import RowModel


class ProfileUpsert(BaseModel):
    user_id: str
    email: str
    company_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRoleEnum = UserRoleEnum.DISPATCHER

    model_config = ConfigDict(use_enum_values=True)


class ProfileResponse(RowModel):
    user_id: str
    company_id: Optional[str] = None
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRoleEnum
    avatar_url: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
