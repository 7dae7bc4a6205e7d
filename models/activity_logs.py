# models/activity_logs.py

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from app.security import utcnow
from models import Base


class ActionType(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGIN_2FA_FAILED = "LOGIN_2FA_FAILED"
    LOGOUT = "LOGOUT"


class ResourceType(str, enum.Enum):
    ADMIN = "ADMIN"
    SESSION = "SESSION"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)

    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True)

    # Salvati come stringa libera: nuove azioni non richiedono un ALTER TYPE
    action_type = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)

    ip_address = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
