from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, Date, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id, enum_check


class DriverStatusEnum(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"
    SUSPENDED = "suspended"


class LicenseClassEnum(str, PyEnum):
    CDL_A = "CDL-A"
    CDL_B = "CDL-B"
    CDL_C = "CDL-C"
    REGULAR = "Regular"


class Driver(Base):
    __tablename__ = "drivers"
    __table_args__ = (
        UniqueConstraint("company_id", "license_number", name="uq_company_driver_license"),
        enum_check("status", DriverStatusEnum, "ck_drivers_status"),
        enum_check("license_class", LicenseClassEnum, "ck_drivers_license_class"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"))

    # Personal info
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255))
    phone = Column(String(30))
    address = Column(String(500))

    # License info
    license_number = Column(String(50))
    license_class = Column(String(20))
    license_expiry = Column(Date, index=True)

    # Employment
    hire_date = Column(Date)
    status = Column(String(20), default=DriverStatusEnum.ACTIVE.value, nullable=False)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    company = relationship("Company", back_populates="drivers")
    documents = relationship("Document", back_populates="driver", cascade="all, delete-orphan")
