# models/admin.py

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.security import utcnow
from . import Base  # Importiamo Base dal package models


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)

    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))

    # Username di login dell'admin
    username = Column(String(100), unique=True, index=True, nullable=False)

    email = Column(String(255), unique=True, index=True, nullable=False)

    # Password hashata con bcrypt (non in chiaro!)
    password_hash = Column(String(255), nullable=False)

    full_name = Column(String(255), nullable=True)
    profile_picture = Column(String(500), nullable=True)

    # Flag per disattivazione account admin
    is_active = Column(Boolean, default=True, nullable=False)

    # 2FA TOTP: il secret è base32
    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    two_factor_secret = Column(String(64), nullable=True)
    # Ultimo timecode TOTP accettato: lo stesso codice non può aprire due sessioni
    two_factor_last_timecode = Column(Integer, nullable=True)

    # Usata per il reset password
    security_question = Column(String(255), nullable=True)

    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)
    role = relationship("Role", back_populates="admins")

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Admin(id={self.id}, username={self.username}, is_active={self.is_active})>"
