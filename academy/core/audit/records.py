"""Decision records produced by the audit recorder."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from academy.core.rbac.evaluator import ActionRequest, Evaluation, Target


class DecisionResult(str, Enum):
    """Outcome of an authorization decision."""

    GRANTED = "GRANTED"
    DENIED = "DENIED"


def _sorted_names(names) -> Tuple[str, ...]:
    if names is None or isinstance(names, (str, bytes)):
        return ()
    try:
        return tuple(sorted(n for n in names if isinstance(n, str)))
    except TypeError:
        return ()


def _json_safe(value: Any) -> Any:
    """Convert context values into JSON-compatible structures."""
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_json_safe(v) for v in value]
        return sorted(items, key=str) if isinstance(value, (set, frozenset)) else items
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return _json_safe(value.to_dict())
    return str(value)


@dataclass(frozen=True)
class DecisionRecord:
    """Immutable outcome of one ActionRequest."""

    timestamp: datetime
    action_name: str
    required_permissions: Tuple[str, ...]
    actor_permissions: Tuple[str, ...]
    matching_permissions: Tuple[str, ...]
    is_super_admin: bool
    result: DecisionResult
    target: Optional[Target] = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    actor_id: Optional[str] = None
    route: Optional[str] = None

    @property
    def granted(self) -> bool:
        return self.result is DecisionResult.GRANTED

    @classmethod
    def from_evaluation(
        cls,
        request: ActionRequest,
        evaluation: Evaluation,
        *,
        actor_id: Optional[str] = None,
        route: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> "DecisionRecord":
        """Capture a request and its evaluation as a record."""
        required = evaluation.required_permissions or request.required_permissions
        context = request.context if isinstance(request.context, Mapping) else {}
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            action_name=request.action_name,
            required_permissions=_sorted_names(required),
            actor_permissions=_sorted_names(request.actor_permissions or ()),
            matching_permissions=_sorted_names(evaluation.matching_permissions),
            is_super_admin=evaluation.is_super_admin,
            result=DecisionResult.GRANTED if evaluation.granted else DecisionResult.DENIED,
            target=request.target,
            context=MappingProxyType(dict(context)),
            actor_id=actor_id,
            route=route,
        )

    def to_payload(self) -> Dict[str, Any]:
        """JSON payload sent to decision log sinks."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action_name,
            "requiredPermissions": list(self.required_permissions),
            "userPermissions": list(self.actor_permissions),
            "matchingPermissions": list(self.matching_permissions),
            "isSuperAdmin": self.is_super_admin,
            "accessGranted": self.granted,
            "result": self.result.value,
            "target": self.target.to_dict() if self.target else None,
            "additionalData": _json_safe(self.context) if self.context else None,
            "userId": self.actor_id,
            "route": self.route,
        }
