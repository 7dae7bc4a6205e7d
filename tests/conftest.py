"""Root conftest: in-memory SQLite database and FastAPI test client."""

import os

# Niente Postgres né segreti reali nei test
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV"] = "test"
os.environ["DB_AUTO_CREATE"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import get_db
from models import Base
from scripts.create_admin import create_admin
from tests.helpers import ADMIN_PASSWORD


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    from app import db as app_db
    from app.main import app

    # Il lifespan interroga il DB dell'app: stesse tabelle anche lì
    Base.metadata.create_all(bind=app_db.engine)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_admin(db):
    """Factory: crea un admin attivo con ruolo "editor"."""

    def _make(username="superuser", password=ADMIN_PASSWORD, **kwargs):
        kwargs.setdefault("email", f"{username}@example.com")
        kwargs.setdefault("role_name", "editor")
        kwargs.setdefault("permissions", ["events:read", "events:write"])
        admin, _ = create_admin(db, username, password=password, **kwargs)
        return admin

    return _make


@pytest.fixture()
def admin(make_admin):
    return make_admin(
        full_name="Super User",
        security_question="What is your favourite venue?",
    )
