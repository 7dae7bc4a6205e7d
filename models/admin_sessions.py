# models/admin_sessions.py

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from app.security import utcnow
from models import Base


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    session_id = Column(Integer, primary_key=True, index=True)

    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)

    # Il JWT emesso al login: la sessione è valida solo se la riga è valida e non scaduta
    session_token = Column(Text, nullable=False, unique=True)
    is_valid = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=False)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
