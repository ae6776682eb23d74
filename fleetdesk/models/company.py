from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, JSON, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id


class DistanceUnitEnum(str, PyEnum):
    MILES = "miles"
    KILOMETERS = "kilometers"


class FuelUnitEnum(str, PyEnum):
    GALLONS = "gallons"
    LITERS = "liters"


class Company(Base):
    __tablename__ = "companies"
    __table_args__ = {'extend_existing': True}

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(150), nullable=False)
    email = Column(String(255))
    phone = Column(String(30))
    website = Column(String(255))
    # street, city, state, postal_code, country
    address = Column(JSON, default=dict)
    # timezone, currency, distance_unit, fuel_unit
    settings = Column(JSON, default=dict)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    profiles = relationship("Profile", back_populates="company")
    drivers = relationship("Driver", back_populates="company", cascade="all, delete-orphan")
    vehicles = relationship("Vehicle", back_populates="company", cascade="all, delete-orphan")
