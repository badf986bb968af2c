"""Decision log receiver and query API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy.api.deps import get_db
from academy.api.schemas.decision_log import (
    ChainVerificationResponse,
    DecisionLogAck,
    DecisionLogEntryResponse,
    DecisionLogListResponse,
    DecisionLogPayload,
)
from academy.core.rbac.checker import require_permission
from academy.core.rbac.permissions import Actor
from academy.db.models.decision_log import DecisionKind
from academy.services.decision_log import DecisionLogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["decision-logs"])


def _store(db: Session, kind: DecisionKind, payload: DecisionLogPayload):
    try:
        DecisionLogService(db).store(kind, payload)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store %s decision: %s", kind.value, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False},
        )
    return DecisionLogAck(success=True)


@router.post("/auth/permissions-log", response_model=DecisionLogAck)
async def receive_route_decision(
    payload: DecisionLogPayload,
    db: Session = Depends(get_db),
):
    """Store a decision taken by a route guard."""
    if not payload.route:
        raise HTTPException(
            status_code=422,
            detail="route is required",
        )
    return _store(db, DecisionKind.ROUTE, payload)


@router.post("/auth/action-permission-log", response_model=DecisionLogAck)
async def receive_action_decision(
    payload: DecisionLogPayload,
    db: Session = Depends(get_db),
):
    """Store a decision taken for a dashboard action."""
    if not payload.action:
        raise HTTPException(
            status_code=422,
            detail="action is required",
        )
    return _store(db, DecisionKind.ACTION, payload)


@router.get("/decision-logs", response_model=DecisionLogListResponse)
async def list_decision_logs(
    actor: Actor = require_permission("audit:logs", action_name="list decision logs"),
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    result: Optional[str] = None,
    actor_id: Optional[str] = None,
    kind: Optional[DecisionKind] = None,
):
    """
    List stored decisions, newest first.

    Supports filtering by result, actor and decision kind.
    """
    entries, total = DecisionLogService(db).list_entries(
        page=page,
        per_page=per_page,
        result=result,
        actor_id=actor_id,
        kind=kind,
    )
    return DecisionLogListResponse(
        items=[DecisionLogEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/decision-logs/verify", response_model=ChainVerificationResponse)
async def verify_decision_logs(
    actor: Actor = require_permission("audit:logs", action_name="verify decision logs"),
    db: Session = Depends(get_db),
):
    """Check that no stored decision was altered or removed."""
    verification = DecisionLogService(db).verify_chain()
    return ChainVerificationResponse(
        ok=verification.ok,
        checked=verification.checked,
        broken_at=verification.broken_at,
    )
