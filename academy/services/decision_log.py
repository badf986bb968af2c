"""Decision log storage.

Receives decision payloads from route guards and action checks, renders a
summary to the log and appends them to the hash-chained decision_logs table.
"""

import logging
from dataclasses import dataclass
from datetime import timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from academy.api.schemas.decision_log import DecisionLogPayload
from academy.db.models.decision_log import DecisionKind, DecisionLogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainVerification:
    """Result of walking the decision log chain."""

    ok: bool
    checked: int
    broken_at: Optional[int] = None


def render_decision(kind: DecisionKind, payload: DecisionLogPayload) -> str:
    """Plain-text summary of a reported decision."""
    outcome = "GRANTED" if payload.granted else "DENIED"
    who = payload.username or "unknown"
    if payload.user_id is not None:
        who = f"{who} (id={payload.user_id})"

    if kind is DecisionKind.ROUTE:
        subject = f"route {payload.route}"
    else:
        subject = f"action {payload.action!r}"
        if payload.target is not None and (payload.target.id is not None or payload.target.name):
            subject += f" on {payload.target.name or payload.target.id}"

    lines = [
        f"Permission check {outcome} for {who}: {subject}",
        f"  roles: {', '.join(payload.user_roles or []) or '-'}",
        f"  required: {', '.join(payload.required_permissions) or '-'}",
        f"  matching: {', '.join(payload.matching_permissions) or '-'}",
    ]
    if payload.is_super_admin:
        lines.append("  super admin override")
    return "\n".join(lines)


class DecisionLogService:
    """Appends and verifies decision log entries."""

    def __init__(self, db: Session):
        self.db = db

    def latest(self) -> Optional[DecisionLogEntry]:
        return self.db.query(DecisionLogEntry).order_by(DecisionLogEntry.id.desc()).first()

    def store(self, kind: DecisionKind, payload: DecisionLogPayload) -> DecisionLogEntry:
        """
        Append a reported decision.

        Args:
            kind: Route guard or action decision
            payload: Validated decision payload

        Returns:
            The stored entry
        """
        previous = self.latest()

        decided_at = payload.timestamp
        if decided_at is not None and decided_at.tzinfo is not None:
            decided_at = decided_at.astimezone(timezone.utc).replace(tzinfo=None)

        action = payload.action
        if not action:
            action = f"access {payload.route}"

        entry = DecisionLogEntry.create_entry(
            kind=kind,
            action=action,
            result="GRANTED" if payload.granted else "DENIED",
            previous_digest=previous.digest if previous else None,
            route=payload.route,
            actor_id=str(payload.user_id) if payload.user_id is not None else None,
            username=payload.username,
            required_permissions=payload.required_permissions,
            user_permissions=payload.user_permissions,
            matching_permissions=payload.matching_permissions,
            user_roles=payload.user_roles,
            is_super_admin=payload.is_super_admin,
            target=payload.target.model_dump() if payload.target else None,
            details=payload.additional_data,
            decided_at=decided_at,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)

        level = logging.INFO if payload.granted else logging.WARNING
        logger.log(level, render_decision(kind, payload))
        return entry

    def list_entries(
        self,
        *,
        page: int = 1,
        per_page: int = 50,
        result: Optional[str] = None,
        actor_id: Optional[str] = None,
        kind: Optional[DecisionKind] = None,
    ) -> Tuple[List[DecisionLogEntry], int]:
        """Stored entries, newest first, with the total matching count."""
        query = self.db.query(DecisionLogEntry)

        if result:
            query = query.filter(DecisionLogEntry.result == result.upper())

        if actor_id:
            query = query.filter(DecisionLogEntry.actor_id == actor_id)

        if kind:
            query = query.filter(DecisionLogEntry.kind == kind.value)

        total = query.count()
        entries = (
            query.order_by(DecisionLogEntry.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return entries, total

    def verify_chain(self) -> ChainVerification:
        """Recompute every digest in insertion order."""
        previous_digest = None
        checked = 0
        for entry in self.db.query(DecisionLogEntry).order_by(DecisionLogEntry.id.asc()):
            if entry.previous_digest != previous_digest or entry.compute_digest() != entry.digest:
                logger.error("Decision log chain broken at entry %s", entry.id)
                return ChainVerification(ok=False, checked=checked, broken_at=entry.id)
            previous_digest = entry.digest
            checked += 1
        return ChainVerification(ok=True, checked=checked)
