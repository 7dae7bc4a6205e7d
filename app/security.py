import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from app.config import settings

SESSION_DURATION = timedelta(hours=settings.session_duration_hours)


def utcnow() -> datetime:
    """UTC naive, come salvato nelle colonne DateTime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_access_token(data: dict, expires_at: Optional[datetime] = None) -> str:
    to_encode = data.copy()
    issued_at = utcnow()
    expire = expires_at or (issued_at + SESSION_DURATION)
    # jti: due login nello stesso secondo non devono produrre lo stesso token
    to_encode.update({"exp": expire, "iat": issued_at, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Ritorna i claims se il token è valido (firma + scadenza), altrimenti None.
    """
    if not token:
        return None
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def token_expiry(claims: Dict[str, Any]) -> Optional[datetime]:
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)
