"""Pytest configuration and shared fixtures."""

import os

# Keep the module-level app off the working directory
os.environ.setdefault("ACADEMY_DATABASE_URL", "sqlite://")

from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from academy.api.deps import get_db
from academy.api.main import create_app
from academy.core.audit.recorder import AuditRecorder
from academy.core.config import Settings
from academy.core.rbac.evaluator import PermissionEvaluator
from academy.core.rbac.permissions import Actor
from academy.core.rbac.roles import get_default_role
from academy.db.base import Base
from academy.services.auth_context import AuthContext
from academy.services.catalog import DirectoryPermissionCatalog
from tests.factories import StepClock, make_actor


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def evaluator():
    return PermissionEvaluator()


@pytest.fixture
def recorder(clock):
    return AuditRecorder(capacity=50, clock=clock)


@pytest.fixture
def auth_context():
    return AuthContext()


@pytest.fixture
def actors() -> Dict[str, Actor]:
    """Directory of test actors keyed by id."""
    return {
        "admin": Actor(id="admin", roles=frozenset([get_default_role("admin")])),
        "root": Actor(id="root", roles=frozenset([get_default_role("superadmin")])),
        "student": Actor(id="student", roles=frozenset([get_default_role("student")])),
        "analyst": make_actor("analyst", "view:analytics"),
    }


@pytest.fixture
def catalog(actors):
    return DirectoryPermissionCatalog(actors.values())


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        log_to_file=False,
        decision_log_url=None,
    )


@pytest.fixture
def db_session():
    """Isolated in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def app(settings, recorder, evaluator, actors, db_session):
    """API application resolving the actor from the X-Actor-Id header."""

    async def resolve_actor(request):
        return actors.get(request.headers.get("x-actor-id"))

    application = create_app(
        settings,
        recorder=recorder,
        evaluator=evaluator,
        actor_resolver=resolve_actor,
        create_tables=False,
    )

    def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
