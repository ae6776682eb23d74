from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id, enum_check


class UserRoleEnum(str, PyEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    DISPATCHER = "dispatcher"
    DRIVER = "driver"


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        enum_check("role", UserRoleEnum, "ck_profiles_role"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="SET NULL"), index=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    phone = Column(String(30))
    role = Column(String(20), default=UserRoleEnum.DISPATCHER.value, nullable=False)
    avatar_url = Column(String(500))

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    company = relationship("Company", back_populates="profiles")
