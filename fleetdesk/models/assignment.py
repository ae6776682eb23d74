from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id, enum_check


class AssignmentStatusEnum(str, PyEnum):
    ACTIVE = "active"
    ENDED = "ended"


class DriverAssignment(Base):
    """One stretch of a driver operating a vehicle; ``end_date`` stays NULL while it lasts."""
    __tablename__ = "driver_assignments"
    __table_args__ = (
        enum_check("status", AssignmentStatusEnum, "ck_driver_assignments_status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(String(36), ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), default=AssignmentStatusEnum.ACTIVE.value, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime)
    notes = Column(Text)
    end_notes = Column(Text)

    assigned_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"))
    ended_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"))

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    driver = relationship("Driver")
    vehicle = relationship("Vehicle")
