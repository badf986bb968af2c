from typing import Generator, Optional

from fastapi import Request

from academy.core.audit.recorder import AuditRecorder
from academy.core.rbac.evaluator import PermissionEvaluator
from academy.core.rbac.permissions import Actor
from academy.db.session import SessionLocal


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(request: Request) -> Optional[Actor]:
    """Actor placed on the request by the authentication layer, if any."""
    return getattr(request.state, "actor", None)


def get_recorder(request: Request) -> AuditRecorder:
    """The application's audit recorder."""
    return request.app.state.recorder


def get_evaluator(request: Request) -> PermissionEvaluator:
    return request.app.state.evaluator
