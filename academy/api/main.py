from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy import __version__
from academy.api.middleware.actor import ActorMiddleware, ActorResolver
from academy.api.routers import audit, decision_logs, health
from academy.common.logger import setup_logger
from academy.core.audit.recorder import AuditRecorder
from academy.core.audit.sinks import HttpDecisionLogSink
from academy.core.config import Settings, get_settings
from academy.core.rbac.evaluator import PermissionEvaluator
from academy.db.base import Base
from academy.db.session import engine


def create_app(
    settings: Optional[Settings] = None,
    *,
    recorder: Optional[AuditRecorder] = None,
    evaluator: Optional[PermissionEvaluator] = None,
    actor_resolver: Optional[ActorResolver] = None,
    create_tables: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings, read from the environment otherwise
        recorder: Audit recorder, built from settings otherwise
        evaluator: Permission evaluator, built from settings otherwise
        actor_resolver: Resolves the authenticated actor for each request
        create_tables: Create the decision log table on the configured engine
    """
    settings = settings or get_settings()

    setup_logger(
        "academy",
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
        decision_trail=settings.log_to_file and settings.log_decision_trail,
    )

    if recorder is None:
        sink = None
        if settings.decision_log_url:
            sink = HttpDecisionLogSink(settings.decision_log_url, timeout=settings.decision_log_timeout)
        recorder = AuditRecorder(sink, capacity=settings.audit_buffer_size)

    app = FastAPI(
        title=settings.app_name,
        description="Permission evaluation and decision auditing for the Academy dashboard",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.recorder = recorder
    app.state.evaluator = evaluator or PermissionEvaluator(settings.critical_roles_set)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if actor_resolver is not None:
        app.add_middleware(ActorMiddleware, resolver=actor_resolver)

    if create_tables:
        Base.metadata.create_all(bind=engine)

    # Include routers
    app.include_router(health.router)
    app.include_router(audit.router, prefix="/api")
    app.include_router(decision_logs.router, prefix="/api")

    return app


app = create_app()
