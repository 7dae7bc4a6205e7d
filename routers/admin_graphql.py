# routers/admin_graphql.py

from datetime import datetime
from typing import List, Optional

import strawberry
from fastapi import Depends, Request
from graphql import GraphQLError
from graphql.validation import NoSchemaIntrospectionCustomRule
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from strawberry.extensions import AddValidationRules, MaskErrors
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from app import admin_auth_service
from app.config import settings
from app.db import get_db
from schemas.admin import AdminOut, LoginResult, RequestIdentity


# ------------------------------
# Tipi GraphQL
# ------------------------------
@strawberry.type
class Role:
    id: Optional[strawberry.ID]
    name: Optional[str]
    permissions: List[str]


@strawberry.type
class Admin:
    id: strawberry.ID
    uuid: Optional[str]
    username: str
    email: str
    full_name: Optional[str]
    profile_picture: Optional[str]
    is_active: bool
    permissions: List[str]
    role: Optional[Role]

    @classmethod
    def from_schema(cls, admin: Optional[AdminOut]) -> Optional["Admin"]:
        if admin is None:
            return None
        role = None
        if admin.role is not None:
            role = Role(
                id=admin.role.id,
                name=admin.role.name,
                permissions=admin.role.permissions,
            )
        return cls(
            id=admin.id,
            uuid=admin.uuid,
            username=admin.username,
            email=admin.email,
            full_name=admin.full_name,
            profile_picture=admin.profile_picture,
            is_active=admin.is_active,
            permissions=admin.permissions,
            role=role,
        )


@strawberry.type(name="Session")
class AdminSessionToken:
    token: str
    expires_at: datetime


@strawberry.type
class LoginResponse:
    success: bool
    message: str
    admin: Optional[Admin]
    session: Optional[AdminSessionToken]
    requires_2fa: bool = strawberry.field(name="requires2FA")

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        session = None
        if result.session is not None:
            session = AdminSessionToken(
                token=result.session.token,
                expires_at=result.session.expires_at,
            )
        return cls(
            success=result.success,
            message=result.message,
            admin=Admin.from_schema(result.admin),
            session=session,
            requires_2fa=result.requires_2fa,
        )


@strawberry.type
class SessionValidation:
    is_valid: bool
    admin: Optional[Admin]
    expires_at: Optional[datetime]


@strawberry.type
class SecurityQuestion:
    security_question: Optional[str]


@strawberry.type
class LogoutResponse:
    success: bool
    message: str


# ------------------------------
# Context per richiesta
# ------------------------------
def client_ip(request: Request) -> str:
    # Dietro proxy / load balancer il client reale è il primo hop di X-Forwarded-For
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    token = auth.replace("Bearer ", "", 1).strip()
    return token or None


def get_context(request: Request, db: Session = Depends(get_db)) -> dict:
    # Dipendenza sincrona: FastAPI la esegue nel threadpool, non sull'event loop
    token = bearer_token(request)
    identity: RequestIdentity = admin_auth_service.authenticate_token(db, token)
    return {
        "db": db,
        "token": token,
        "admin_id": identity.admin_id,
        "role_id": identity.role_id,
        "ip": client_ip(request),
        "user_agent": request.headers.get("user-agent") or "unknown",
    }


# ------------------------------
# Query & Mutation
# ------------------------------
# I resolver sono async ma il lavoro su DB e bcrypt gira nel threadpool
@strawberry.type
class Query:
    @strawberry.field
    async def admin_login(self, info: Info, username: str, password: str) -> LoginResponse:
        ctx = info.context
        result = await run_in_threadpool(
            admin_auth_service.admin_login,
            ctx["db"], username, password, ip=ctx["ip"], user_agent=ctx["user_agent"],
        )
        return LoginResponse.from_result(result)

    @strawberry.field
    async def admin_validate_session(self, info: Info, session_token: str) -> SessionValidation:
        result = await run_in_threadpool(
            admin_auth_service.validate_session, info.context["db"], session_token,
        )
        return SessionValidation(
            is_valid=result.is_valid,
            admin=Admin.from_schema(result.admin),
            expires_at=result.expires_at,
        )

    @strawberry.field
    async def get_admin_by_username(self, info: Info, username: str) -> Optional[SecurityQuestion]:
        result = await run_in_threadpool(
            admin_auth_service.get_admin_by_username, info.context["db"], username,
        )
        if result is None:
            return None
        return SecurityQuestion(security_question=result.security_question)


@strawberry.type
class Mutation:
    @strawberry.mutation(name="adminVerify2FA")
    async def admin_verify_2fa(
        self, info: Info, username: str, password: str, code: str
    ) -> LoginResponse:
        ctx = info.context
        result = await run_in_threadpool(
            admin_auth_service.verify_two_factor,
            ctx["db"], username, password, code, ip=ctx["ip"], user_agent=ctx["user_agent"],
        )
        return LoginResponse.from_result(result)

    @strawberry.mutation
    async def admin_logout(self, info: Info, session_token: Optional[str] = None) -> LogoutResponse:
        # Senza argomento si chiude la sessione del bearer token della richiesta
        ctx = info.context
        token = session_token or ctx["token"]
        if not token:
            return LogoutResponse(success=False, message=admin_auth_service.MSG_SESSION_NOT_FOUND)
        result = await run_in_threadpool(admin_auth_service.logout, ctx["db"], token, ip=ctx["ip"])
        return LogoutResponse(success=result.success, message=result.message)


# ------------------------------
# Schema & router
# ------------------------------
MASKED_ERROR_MESSAGE = "An error occurred processing your request"


def _should_mask_error(error: GraphQLError) -> bool:
    message = (error.message or "").lower()
    return not ("permission" in message or "not found" in message)


def build_schema(
    production: bool = settings.is_production,
    query=Query,
    mutation=Mutation,
) -> strawberry.Schema:
    extensions = []
    if production:
        # In produzione niente introspection e niente dettagli degli errori interni
        extensions.append(AddValidationRules([NoSchemaIntrospectionCustomRule]))
        extensions.append(
            MaskErrors(
                should_mask_error=_should_mask_error,
                error_message=MASKED_ERROR_MESSAGE,
            )
        )
    return strawberry.Schema(query=query, mutation=mutation, extensions=extensions)


schema = build_schema()

router = GraphQLRouter(
    schema,
    context_getter=get_context,
    graphql_ide=None if settings.is_production else "graphiql",
)
