"""Decision log model.

Entries are append-only. Each entry stores the SHA-256 digest of its own
content chained to the digest of the previous entry, so an edited or removed
row breaks verification of every row after it.
"""

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String

from academy.db.base import Base


class DecisionKind(str, Enum):
    """Where a decision was taken."""
    ROUTE = "route"     # Route guard evaluation
    ACTION = "action"   # Dashboard action evaluation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def canonical_json(data: Dict[str, Any]) -> str:
    """Deterministic JSON used for hashing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


class DecisionLogEntry(Base):
    """Immutable record of one authorization decision received from a guard."""
    __tablename__ = "decision_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    kind = Column(String(20), nullable=False, index=True)
    action = Column(String(255), nullable=False, index=True)
    route = Column(String(512), nullable=True, index=True)
    actor_id = Column(String(64), nullable=True, index=True)
    username = Column(String(255), nullable=True)

    required_permissions = Column(JSON, nullable=False, default=list)
    user_permissions = Column(JSON, nullable=False, default=list)
    matching_permissions = Column(JSON, nullable=False, default=list)
    user_roles = Column(JSON, nullable=True)
    is_super_admin = Column(Boolean, nullable=False, default=False)
    result = Column(String(10), nullable=False, index=True)

    target = Column(JSON, nullable=True)
    details = Column(JSON, nullable=True)

    decided_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, default=_utcnow, index=True)

    digest = Column(String(64), nullable=False, unique=True)
    previous_digest = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<DecisionLogEntry {self.result} {self.action} by actor {self.actor_id}>"

    def content(self) -> Dict[str, Any]:
        """Fields covered by the digest."""
        return {
            "kind": self.kind,
            "action": self.action,
            "route": self.route,
            "actor_id": self.actor_id,
            "username": self.username,
            "required_permissions": self.required_permissions,
            "user_permissions": self.user_permissions,
            "matching_permissions": self.matching_permissions,
            "user_roles": self.user_roles,
            "is_super_admin": self.is_super_admin,
            "result": self.result,
            "target": self.target,
            "details": self.details,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }

    def compute_digest(self) -> str:
        payload = canonical_json(self.content()) + "|" + (self.previous_digest or "")
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @classmethod
    def create_entry(
        cls,
        kind: DecisionKind,
        action: str,
        result: str,
        *,
        previous_digest: Optional[str] = None,
        route: Optional[str] = None,
        actor_id: Optional[str] = None,
        username: Optional[str] = None,
        required_permissions: Optional[List[str]] = None,
        user_permissions: Optional[List[str]] = None,
        matching_permissions: Optional[List[str]] = None,
        user_roles: Optional[List[str]] = None,
        is_super_admin: bool = False,
        target: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        decided_at: Optional[datetime] = None,
    ) -> "DecisionLogEntry":
        """
        Factory method to create a new, sealed decision log entry.

        Args:
            kind: Route guard or action decision
            action: Action or route description
            result: GRANTED or DENIED
            previous_digest: Digest of the latest stored entry
            route: Route path for guard decisions
            actor_id: ID of the evaluated actor
            username: Display name of the actor
            required_permissions: Permissions the action required
            user_permissions: Actor's effective permissions
            matching_permissions: Intersection of the two
            user_roles: Actor's role names
            is_super_admin: Whether the super admin override applied
            target: Entity acted upon
            details: Additional context
            decided_at: When the decision was taken (naive UTC)
        """
        entry = cls(
            kind=kind.value if isinstance(kind, DecisionKind) else kind,
            action=action,
            result=result,
            route=route,
            actor_id=actor_id,
            username=username,
            required_permissions=sorted(required_permissions or []),
            user_permissions=sorted(user_permissions or []),
            matching_permissions=sorted(matching_permissions or []),
            user_roles=user_roles,
            is_super_admin=is_super_admin,
            target=target,
            details=details,
            decided_at=decided_at,
            previous_digest=previous_digest,
        )
        entry.digest = entry.compute_digest()
        return entry
