"""Permission checking utilities for the Academy API.

Provides a per-actor checker and a FastAPI dependency that route every
server-side check through the PermissionEvaluator and the AuditRecorder.
"""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import Depends, HTTPException, Request, status

from .evaluator import ActionRequest, Evaluation, PermissionEvaluator, Target
from .permissions import Actor


class PermissionChecker:
    """Answers permission questions for one actor."""

    def __init__(self, actor: Actor, evaluator: Optional[PermissionEvaluator] = None):
        """
        Initialize with an actor snapshot.

        Args:
            actor: Actor whose effective permissions are checked
            evaluator: Evaluator to use, a default one otherwise
        """
        self.actor = actor
        self.permissions = actor.effective_permissions()
        self.evaluator = evaluator or PermissionEvaluator()

    def request(
        self,
        action_name: str,
        required_permissions: Iterable[str],
        *,
        target: Optional[Target] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ActionRequest:
        """Build the ActionRequest for an action performed by this actor."""
        return ActionRequest.build(
            action_name,
            required_permissions,
            self.permissions,
            target=target,
            context=context,
        )

    def evaluate(self, action_name: str, required_permissions: Iterable[str], **kwargs) -> Evaluation:
        return self.evaluator.evaluate(self.request(action_name, required_permissions, **kwargs))

    def has_permission(self, permission: str) -> bool:
        """Check if the actor holds a specific permission."""
        return self.evaluate(f"check {permission}", [permission]).granted

    def has_any_permission(self, permissions: List[str]) -> bool:
        """Check if the actor holds any of the given permissions."""
        if not permissions:
            return True
        return self.evaluate("check any", permissions).granted

    def has_all_permissions(self, permissions: List[str]) -> bool:
        """Check if the actor holds all of the given permissions."""
        return all(self.has_permission(p) for p in permissions)


class PermissionDependency:
    """
    FastAPI dependency for permission checking.

    The actor is expected on request.state (set by the authentication layer).
    Denials are answered with 404 so callers cannot probe which resources
    exist.

    Usage:
        @router.get("/audit/decisions", dependencies=[Depends(PermissionDependency("audit:logs"))])
        async def list_decisions():
            ...
    """

    def __init__(self, *permissions: str, action_name: Optional[str] = None):
        self.permissions = frozenset(permissions)
        self.action_name = action_name

    async def __call__(self, request: Request):
        # Import here to avoid circular imports
        from academy.api.deps import get_current_actor, get_evaluator, get_recorder

        actor = get_current_actor(request)
        if actor is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
            )

        evaluator = get_evaluator(request)
        recorder = get_recorder(request)

        action_request = ActionRequest.build(
            self.action_name or f"{request.method} {request.url.path}",
            self.permissions,
            actor.effective_permissions(),
        )
        evaluation = evaluator.evaluate(action_request)
        recorder.record(
            action_request,
            evaluation,
            actor_id=actor.id,
            route=request.url.path,
        )

        if not evaluation.granted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Not Found",
            )

        return actor


def require_permission(*permissions: str, action_name: Optional[str] = None):
    """
    Shorthand for Depends(PermissionDependency(...)).

    Usage:
        @router.get("/decision-logs")
        async def list_logs(actor: Actor = require_permission("audit:logs")):
            ...
    """
    return Depends(PermissionDependency(*permissions, action_name=action_name))
