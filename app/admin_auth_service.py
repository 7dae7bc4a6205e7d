# app/admin_auth_service.py
"""
Autenticazione admin: login, 2FA, validazione e chiusura sessione.

Ogni funzione pubblica restituisce un oggetto esito (schemas.admin) e non
solleva eccezioni verso il chiamante: gli errori inattesi vengono loggati
e trasformati in un esito negativo.
"""
import logging
from datetime import timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.passwords import verify_password
from app.security import (
    SESSION_DURATION,
    create_access_token,
    decode_access_token,
    token_expiry,
    utcnow,
)
from app.two_factor import match_timecode
from models.activity_logs import ActionType, ActivityLog, ResourceType
from models.admin import Admin
from models.admin_sessions import AdminSession
from schemas.admin import (
    AdminOut,
    LoginResult,
    LogoutResult,
    RequestIdentity,
    RoleOut,
    SecurityQuestionOut,
    SessionOut,
    SessionValidation,
)

logger = logging.getLogger(__name__)

MSG_INVALID_CREDENTIALS = "Invalid username or password"
MSG_INACTIVE = "Account is inactive. Contact administrator."
MSG_LOGIN_ERROR = "An error occurred during login"
MSG_2FA_REQUIRED = "2FA code required"
MSG_2FA_NOT_ENABLED = "Two-factor authentication is not enabled for this account"
MSG_2FA_INVALID = "Invalid 2FA code"
MSG_LOGIN_OK = "Login successful"
MSG_LOGOUT_OK = "Logged out successfully"
MSG_SESSION_NOT_FOUND = "Session not found"
MSG_LOGOUT_ERROR = "An error occurred during logout"


# -------------------------------------------------
# Serializzazione
# -------------------------------------------------
def serialize_admin(admin: Admin, include_role: bool = True) -> AdminOut:
    """
    Il profilo "ridotto" (include_role=False) è quello restituito quando il
    login è in attesa del codice 2FA: niente ruolo né permessi.
    """
    fields = {
        "id": str(admin.id),
        "uuid": admin.uuid,
        "username": admin.username,
        "email": admin.email,
        "full_name": admin.full_name,
        "is_active": bool(admin.is_active),
    }
    if not include_role:
        return AdminOut(**fields)

    role = admin.role
    permissions = list(role.permissions or []) if role else []
    return AdminOut(
        **fields,
        profile_picture=admin.profile_picture,
        permissions=permissions,
        role=RoleOut(
            id=str(admin.role_id) if admin.role_id is not None else None,
            name=role.name if role else None,
            permissions=permissions,
        ),
    )


def _login_failure(message: str) -> LoginResult:
    return LoginResult(success=False, message=message)


def _find_admin_by_username(db: Session, username: str) -> Optional[Admin]:
    return (
        db.query(Admin)
        .options(joinedload(Admin.role))
        .filter(Admin.username == username)
        .first()
    )


def _check_credentials(db: Session, username: str, password: str):
    """
    Controlli comuni a login e verifica 2FA, nell'ordine:
    username sconosciuto → account inattivo → password errata.
    Ritorna (admin, None) se ok, altrimenti (None, esito negativo).
    """
    admin = _find_admin_by_username(db, username)

    if not admin:
        logger.info("Admin login rejected: unknown username=%s", username)
        return None, _login_failure(MSG_INVALID_CREDENTIALS)

    if not admin.is_active:
        logger.info("Admin login rejected: inactive admin_id=%s", admin.id)
        return None, _login_failure(MSG_INACTIVE)

    if not verify_password(password, admin.password_hash):
        logger.warning("Admin login rejected: wrong password admin_id=%s", admin.id)
        return None, _login_failure(MSG_INVALID_CREDENTIALS)

    return admin, None


def _log_activity(
    db: Session,
    admin_id: Optional[int],
    action_type: ActionType,
    resource_type: ResourceType,
    details: str,
    ip: Optional[str] = None,
) -> None:
    db.add(
        ActivityLog(
            admin_id=admin_id,
            action_type=action_type.value,
            resource_type=resource_type.value,
            details=details,
            ip_address=ip,
        )
    )


def _open_session(
    db: Session,
    admin: Admin,
    details: str,
    ip: Optional[str],
    user_agent: Optional[str],
) -> LoginResult:
    now = utcnow()
    expires_at = now + SESSION_DURATION

    token = create_access_token(
        {
            "adminId": admin.id,
            "username": admin.username,
            "roleId": admin.role_id,
        },
        expires_at=expires_at,
    )

    db.add(
        AdminSession(
            admin_id=admin.id,
            session_token=token,
            is_valid=True,
            expires_at=expires_at,
            ip_address=ip,
            user_agent=user_agent,
        )
    )
    admin.last_login = now
    _log_activity(db, admin.id, ActionType.LOGIN, ResourceType.ADMIN, details, ip)
    db.commit()

    logger.info("Admin logged in admin_id=%s ip=%s", admin.id, ip)

    return LoginResult(
        success=True,
        message=MSG_LOGIN_OK,
        admin=serialize_admin(admin),
        session=SessionOut(token=token, expires_at=expires_at.replace(tzinfo=timezone.utc)),
        requires_2fa=False,
    )


# -------------------------------------------------
# Login
# -------------------------------------------------
def admin_login(
    db: Session,
    username: str,
    password: str,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> LoginResult:
    try:
        admin, failure = _check_credentials(db, username, password)
        if failure:
            return failure

        # Con 2FA attivo la sessione si apre solo dopo verify_two_factor
        if admin.two_factor_enabled:
            return LoginResult(
                success=True,
                message=MSG_2FA_REQUIRED,
                admin=serialize_admin(admin, include_role=False),
                requires_2fa=True,
            )

        return _open_session(db, admin, "Admin logged in successfully", ip, user_agent)
    except Exception:
        db.rollback()
        logger.exception("Login error for username=%s", username)
        return _login_failure(MSG_LOGIN_ERROR)


def _consume_timecode(db: Session, admin: Admin, timecode: int) -> bool:
    """
    UPDATE condizionato: con due richieste concorrenti con lo stesso codice
    solo una trova la riga ancora aggiornabile.
    """
    updated = (
        db.query(Admin)
        .filter(
            Admin.id == admin.id,
            or_(
                Admin.two_factor_last_timecode.is_(None),
                Admin.two_factor_last_timecode < timecode,
            ),
        )
        .update({Admin.two_factor_last_timecode: timecode}, synchronize_session="fetch")
    )
    return updated == 1


def verify_two_factor(
    db: Session,
    username: str,
    password: str,
    code: str,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> LoginResult:
    try:
        admin, failure = _check_credentials(db, username, password)
        if failure:
            return failure

        if not admin.two_factor_enabled or not admin.two_factor_secret:
            return _login_failure(MSG_2FA_NOT_ENABLED)

        timecode = match_timecode(admin.two_factor_secret, code, admin.two_factor_last_timecode)
        if timecode is not None and not _consume_timecode(db, admin, timecode):
            timecode = None

        if timecode is None:
            logger.warning("Invalid or reused 2FA code for admin_id=%s", admin.id)
            _log_activity(
                db, admin.id, ActionType.LOGIN_2FA_FAILED, ResourceType.ADMIN,
                "Invalid 2FA code", ip,
            )
            db.commit()
            return _login_failure(MSG_2FA_INVALID)

        return _open_session(db, admin, "Admin logged in with 2FA", ip, user_agent)
    except Exception:
        db.rollback()
        logger.exception("2FA verification error for username=%s", username)
        return _login_failure(MSG_LOGIN_ERROR)


# -------------------------------------------------
# Sessioni
# -------------------------------------------------
def _find_live_session(db: Session, token: str) -> Optional[AdminSession]:
    return (
        db.query(AdminSession)
        .filter(
            AdminSession.session_token == token,
            AdminSession.is_valid == True,  # noqa: E712
            AdminSession.expires_at > utcnow(),
        )
        .first()
    )


def validate_session(db: Session, session_token: str) -> SessionValidation:
    invalid = SessionValidation(is_valid=False)

    try:
        claims = decode_access_token(session_token)
        if claims is None:
            return invalid

        if _find_live_session(db, session_token) is None:
            return invalid

        admin = (
            db.query(Admin)
            .options(joinedload(Admin.role))
            .filter(Admin.id == claims.get("adminId"), Admin.is_active == True)  # noqa: E712
            .first()
        )
        if not admin:
            return invalid

        return SessionValidation(
            is_valid=True,
            admin=serialize_admin(admin),
            expires_at=token_expiry(claims),
        )
    except Exception:
        logger.exception("Session validation error")
        return invalid


def authenticate_token(db: Session, token: Optional[str]) -> RequestIdentity:
    """
    Identità della richiesta corrente a partire dal bearer token.
    Non solleva mai: token assente, scaduto o revocato → identità anonima.
    """
    anonymous = RequestIdentity()
    if not token:
        return anonymous

    claims = decode_access_token(token)
    if claims is None:
        logger.warning("Token validation failed: invalid or expired token")
        return anonymous

    try:
        if _find_live_session(db, token) is None:
            logger.warning("Token validation failed: session revoked or expired")
            return anonymous
    except Exception:
        logger.exception("Token validation failed: session lookup error")
        return anonymous

    return RequestIdentity(admin_id=claims.get("adminId"), role_id=claims.get("roleId"))


def logout(db: Session, session_token: str, ip: Optional[str] = None) -> LogoutResult:
    try:
        session = (
            db.query(AdminSession)
            .filter(
                AdminSession.session_token == session_token,
                AdminSession.is_valid == True,  # noqa: E712
            )
            .first()
        )
        if not session:
            return LogoutResult(success=False, message=MSG_SESSION_NOT_FOUND)

        session.is_valid = False
        _log_activity(
            db, session.admin_id, ActionType.LOGOUT, ResourceType.SESSION,
            "Admin logged out", ip,
        )
        db.commit()

        logger.info("Admin logged out admin_id=%s", session.admin_id)
        return LogoutResult(success=True, message=MSG_LOGOUT_OK)
    except Exception:
        db.rollback()
        logger.exception("Logout error")
        return LogoutResult(success=False, message=MSG_LOGOUT_ERROR)


# -------------------------------------------------
# Reset password
# -------------------------------------------------
def get_admin_by_username(db: Session, username: str) -> Optional[SecurityQuestionOut]:
    try:
        admin = db.query(Admin).filter(Admin.username == username).first()
        if not admin:
            return None
        return SecurityQuestionOut(security_question=admin.security_question)
    except Exception:
        logger.exception("Error fetching admin username=%s", username)
        return None


# -------------------------------------------------
# Pulizia sessioni
# -------------------------------------------------
def purge_stale_sessions(db: Session) -> int:
    """
    Elimina le sessioni revocate o scadute; ritorna quante righe sono state rimosse.
    Gli errori vengono propagati: la chiama il job di pulizia, che li logga.
    """
    deleted = (
        db.query(AdminSession)
        .filter(
            or_(
                AdminSession.is_valid == False,  # noqa: E712
                AdminSession.expires_at <= utcnow(),
            )
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Purged %s stale admin sessions", deleted)
    return deleted
