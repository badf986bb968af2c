"""Permission evaluation for the Academy platform.

Every authorization question is described by an immutable ActionRequest and
answered by PermissionEvaluator.evaluate(). Call sites build requests; the
rule itself lives only here.

Rules, in order:
1. An actor holding superadmin:full_access is a super admin and is always
   granted.
2. A request whose context carries a role change touching a critical role
   additionally requires manage:critical_roles.
3. Otherwise the actor needs at least one of the required permissions. An
   empty requirement set means "no restriction".
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, Mapping, NamedTuple, Optional

from .permissions import SUPERADMIN_PERMISSION, CRITICAL_ROLES_PERMISSION
from .roles import DEFAULT_CRITICAL_ROLES, normalize_role_names


ROLE_CHANGE_KEY = "role_change"


@dataclass(frozen=True)
class Target:
    """The entity an action is performed on."""

    id: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class RoleChange:
    """Reassignment of an actor from one role to another."""

    previous_role: str
    new_role: str

    @classmethod
    def from_value(cls, value: Any) -> Optional["RoleChange"]:
        """Coerce a context value into a RoleChange, or None if unusable."""
        if isinstance(value, RoleChange):
            return value
        if isinstance(value, Mapping):
            previous = value.get("previous", value.get("previous_role"))
            new = value.get("new", value.get("new_role"))
            # Roles may arrive as {"id": .., "name": ..} objects
            if isinstance(previous, Mapping):
                previous = previous.get("name")
            if isinstance(new, Mapping):
                new = new.get("name")
            if isinstance(previous, str) or isinstance(new, str):
                return cls(
                    previous if isinstance(previous, str) else "",
                    new if isinstance(new, str) else "",
                )
        return None

    def touches(self, critical_roles: Iterable[str]) -> bool:
        """Check if either side of the change is a critical role."""
        critical = normalize_role_names(critical_roles)
        return any(
            isinstance(role, str) and role.strip().lower() in critical
            for role in (self.previous_role, self.new_role)
        )

    def to_dict(self) -> dict:
        return {"previous": self.previous_role, "new": self.new_role}


def _as_name_set(value: Any) -> Optional[FrozenSet[str]]:
    """Normalize a permission collection; None when the input is malformed."""
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return None
    try:
        names = frozenset(value)
    except TypeError:
        return None
    if not all(isinstance(name, str) for name in names):
        return None
    return names


@dataclass(frozen=True)
class ActionRequest:
    """Immutable description of one authorization question."""

    action_name: str
    required_permissions: FrozenSet[str] = frozenset()
    actor_permissions: FrozenSet[str] = frozenset()
    target: Optional[Target] = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        action_name: str,
        required_permissions: Any = None,
        actor_permissions: Any = None,
        *,
        target: Optional[Target] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> "ActionRequest":
        """
        Build a request from loosely typed inputs.

        Collections are frozen; malformed collections are kept as given so the
        evaluator can apply its conservative handling.
        """
        required = _as_name_set(required_permissions)
        actor = _as_name_set(actor_permissions)
        return cls(
            action_name=action_name,
            required_permissions=required if required is not None else required_permissions,
            actor_permissions=actor if actor is not None else actor_permissions,
            target=target,
            context=MappingProxyType(dict(context or {})),
        )

    @property
    def role_change(self) -> Optional[RoleChange]:
        if not isinstance(self.context, Mapping):
            return None
        return RoleChange.from_value(self.context.get(ROLE_CHANGE_KEY))


class Evaluation(NamedTuple):
    """Outcome of one evaluation."""

    granted: bool
    matching_permissions: FrozenSet[str]
    is_super_admin: bool
    required_permissions: FrozenSet[str] = frozenset()
    critical_role_denied: bool = False


class PermissionEvaluator:
    """Pure decision function over ActionRequests."""

    def __init__(self, critical_roles: Iterable[str] = DEFAULT_CRITICAL_ROLES):
        """
        Initialize the evaluator.

        Args:
            critical_roles: Role names whose assignment or removal requires
                manage:critical_roles. Compared case-insensitively.
        """
        self.critical_roles = normalize_role_names(critical_roles)

    def evaluate(self, request: ActionRequest) -> Evaluation:
        """
        Decide whether a request is granted.

        Never raises: a missing or malformed actor permission set is treated
        as empty, and a malformed requirement set denies unless the actor is
        a super admin.
        """
        actor = _as_name_set(getattr(request, "actor_permissions", None)) or frozenset()
        required = _as_name_set(getattr(request, "required_permissions", None))
        is_super_admin = SUPERADMIN_PERMISSION in actor

        if required is None:
            return Evaluation(
                granted=is_super_admin,
                matching_permissions=frozenset(),
                is_super_admin=is_super_admin,
            )

        matching = required & actor

        if self._touches_critical_role(request):
            effective_required = required | {CRITICAL_ROLES_PERMISSION}
            if CRITICAL_ROLES_PERMISSION not in actor and not is_super_admin:
                return Evaluation(
                    granted=False,
                    matching_permissions=matching,
                    is_super_admin=False,
                    required_permissions=effective_required,
                    critical_role_denied=True,
                )
        else:
            effective_required = required

        granted = is_super_admin or not required or len(matching) > 0
        return Evaluation(
            granted=granted,
            matching_permissions=matching,
            is_super_admin=is_super_admin,
            required_permissions=effective_required,
        )

    def is_allowed(self, request: ActionRequest) -> bool:
        """Shorthand for evaluate(request).granted."""
        return self.evaluate(request).granted

    @staticmethod
    def _role_change(request: ActionRequest) -> Optional[RoleChange]:
        try:
            return request.role_change
        except Exception:
            return None

    def _touches_critical_role(self, request: ActionRequest) -> bool:
        role_change = self._role_change(request)
        if role_change is None:
            return False
        try:
            return role_change.touches(self.critical_roles)
        except Exception:
            return False
