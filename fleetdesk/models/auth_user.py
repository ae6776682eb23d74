from sqlalchemy import Column, String, DateTime, JSON, func
from fleetdesk.database.session import Base
from fleetdesk.models._columns import new_id


class AuthUser(Base):
    __tablename__ = "auth_users"
    __table_args__ = {'extend_existing': True}

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSON, default=dict)
    last_sign_in_at = Column(DateTime)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
