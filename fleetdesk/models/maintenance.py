from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Numeric, ForeignKey, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id


class MaintenanceRecord(Base):
    __tablename__ = "maintenance_records"
    __table_args__ = {'extend_existing': True}

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)

    service_type = Column(String(100), nullable=False)
    description = Column(Text)
    service_date = Column(Date, nullable=False)
    cost = Column(Numeric(10, 2))
    mileage = Column(Integer)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    vehicle = relationship("Vehicle", back_populates="maintenance_records")
