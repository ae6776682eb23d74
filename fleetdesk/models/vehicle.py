from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id, enum_check


class VehicleStatusEnum(str, PyEnum):
    AVAILABLE = "available"
    IN_USE = "in-use"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out-of-service"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("company_id", "vin", name="uq_company_vehicle_vin"),
        UniqueConstraint("company_id", "license_plate", name="uq_company_vehicle_plate"),
        enum_check("status", VehicleStatusEnum, "ck_vehicles_status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    vin = Column(String(17))
    license_plate = Column(String(20))
    vehicle_type = Column(String(50))

    status = Column(String(20), default=VehicleStatusEnum.AVAILABLE.value)
    status_notes = Column(Text)
    status_updated_at = Column(DateTime)

    mileage = Column(Integer)
    last_service_date = Column(Date)
    next_service_date = Column(Date, index=True)
    next_service_mileage = Column(Integer)

    assigned_driver_id = Column(String(36), ForeignKey("drivers.id", ondelete="SET NULL"))

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    company = relationship("Company", back_populates="vehicles")
    assigned_driver = relationship("Driver")
    maintenance_records = relationship("MaintenanceRecord", back_populates="vehicle", cascade="all, delete-orphan")
