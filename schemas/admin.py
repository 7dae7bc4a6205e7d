# schemas/admin.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# ------------------------
# Ruolo (per risposte API)
# ------------------------
class RoleOut(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    permissions: List[str] = []


# ------------------------
# Output Admin (per risposte API)
# ------------------------
class AdminOut(BaseModel):
    id: str
    uuid: Optional[str] = None
    username: str
    email: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool
    permissions: List[str] = []
    role: Optional[RoleOut] = None


class SessionOut(BaseModel):
    token: str
    expires_at: datetime


# ------------------------
# Esiti delle operazioni di autenticazione
# ------------------------
class LoginResult(BaseModel):
    success: bool
    message: str
    admin: Optional[AdminOut] = None
    session: Optional[SessionOut] = None
    requires_2fa: bool = False


class SessionValidation(BaseModel):
    is_valid: bool
    admin: Optional[AdminOut] = None
    expires_at: Optional[datetime] = None


class SecurityQuestionOut(BaseModel):
    security_question: Optional[str] = None


class LogoutResult(BaseModel):
    success: bool
    message: str


class RequestIdentity(BaseModel):
    admin_id: Optional[int] = None
    role_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.admin_id is not None
