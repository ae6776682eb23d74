from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, func
from sqlalchemy.orm import relationship

from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id, enum_check


class DocumentTypeEnum(str, PyEnum):
    LICENSE = "license"
    MEDICAL = "medical"
    INSURANCE = "insurance"
    BACKGROUND = "background"
    TRAINING = "training"


class DocumentStatusEnum(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        enum_check("document_type", DocumentTypeEnum, "ck_documents_type"),
        enum_check("status", DocumentStatusEnum, "ck_documents_status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(String(36), ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)

    document_type = Column(String(20), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False, unique=True)
    file_type = Column(String(150))
    file_size = Column(Integer)

    status = Column(String(20), default=DocumentStatusEnum.PENDING.value, nullable=False)
    expiry_date = Column(Date)
    review_notes = Column(Text)

    uploaded_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"))
    uploaded_at = Column(DateTime, default=func.now())

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    driver = relationship("Driver", back_populates="documents")
