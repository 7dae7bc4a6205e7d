"""
Crea (o aggiorna) un account admin con il relativo ruolo.

Uso:
    python scripts/create_admin.py superuser admin@example.com 'SuperAdmin123!' \
        --role superadmin --permissions "*" --enable-2fa
"""
import argparse
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.passwords import hash_password
from app.two_factor import generate_secret, provisioning_uri
from models.admin import Admin
from models.roles import Role


def get_or_create_role(db: Session, name: str, permissions) -> Role:
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name, permissions=list(permissions))
        db.add(role)
        db.flush()
    elif permissions:
        role.permissions = list(permissions)
    return role


def create_admin(
    db: Session,
    username: str,
    email: str,
    password: str,
    role_name: str = "admin",
    permissions=(),
    full_name=None,
    security_question=None,
    enable_2fa: bool = False,
):
    """
    Ritorna (admin, created). Se l'username esiste già l'account viene
    aggiornato e riattivato.
    """
    role = get_or_create_role(db, role_name, permissions)

    admin = db.query(Admin).filter(Admin.username == username).first()
    created = admin is None
    if created:
        admin = Admin(username=username, email=email)
        db.add(admin)

    admin.email = email
    admin.password_hash = hash_password(password)
    admin.full_name = full_name or admin.full_name
    admin.security_question = security_question or admin.security_question
    admin.is_active = True
    admin.role = role

    if enable_2fa and not admin.two_factor_secret:
        admin.two_factor_secret = generate_secret()
        admin.two_factor_last_timecode = None
    admin.two_factor_enabled = enable_2fa

    db.commit()
    return admin, created


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Crea un account admin")
    parser.add_argument("username")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--role", default="admin")
    parser.add_argument("--permissions", default="", help="lista separata da virgole")
    parser.add_argument("--full-name")
    parser.add_argument("--security-question")
    parser.add_argument("--enable-2fa", action="store_true")
    args = parser.parse_args(argv)

    permissions = [p.strip() for p in args.permissions.split(",") if p.strip()]

    db = SessionLocal()
    try:
        admin, created = create_admin(
            db,
            args.username,
            args.email,
            args.password,
            role_name=args.role,
            permissions=permissions,
            full_name=args.full_name,
            security_question=args.security_question,
            enable_2fa=args.enable_2fa,
        )
        print("New admin created:" if created else "Existing admin updated:", admin.username)
        if admin.two_factor_enabled:
            print("2FA provisioning URI:", provisioning_uri(admin.username, admin.two_factor_secret))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
