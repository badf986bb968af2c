"""Local audit surface: the most recent decisions held in memory."""

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from academy.api.deps import get_recorder
from academy.core.audit.recorder import AuditRecorder
from academy.core.rbac.checker import require_permission
from academy.core.rbac.permissions import Actor

router = APIRouter(prefix="/audit", tags=["audit"])


# Schemas
class DecisionRecordResponse(BaseModel):
    timestamp: datetime
    action_name: str
    required_permissions: List[str]
    actor_permissions: List[str]
    matching_permissions: List[str]
    is_super_admin: bool
    result: str
    target: Optional[dict]
    context: Optional[dict]
    actor_id: Optional[str]
    route: Optional[str]


class DecisionRecordListResponse(BaseModel):
    items: List[DecisionRecordResponse]
    total: int
    capacity: int


# Endpoints
@router.get("/decisions", response_model=DecisionRecordListResponse)
async def list_recent_decisions(
    actor: Actor = require_permission("audit:logs", action_name="view audit decisions"),
    recorder: AuditRecorder = Depends(get_recorder),
    result: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
):
    """
    List the most recent decisions, newest first.

    The permission check guarding this endpoint is itself recorded, so it
    is the first item returned.
    """
    records = recorder.recent()
    records.reverse()

    if result:
        records = [r for r in records if r.result.value == result.upper()]

    items = [
        DecisionRecordResponse(
            timestamp=r.timestamp,
            action_name=r.action_name,
            required_permissions=list(r.required_permissions),
            actor_permissions=list(r.actor_permissions),
            matching_permissions=list(r.matching_permissions),
            is_super_admin=r.is_super_admin,
            result=r.result.value,
            target=r.target.to_dict() if r.target else None,
            context=r.to_payload()["additionalData"],
            actor_id=r.actor_id,
            route=r.route,
        )
        for r in records[:limit]
    ]
    return DecisionRecordListResponse(items=items, total=len(records), capacity=recorder.capacity)
