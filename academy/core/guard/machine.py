"""Route guard state machine.

Sequences actor resolution, permission fetch, evaluation and rendering for
one protected route, recording the decision through the AuditRecorder.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from urllib.parse import quote

from academy.common.config import GuardedRoute, DEFAULT_ACTOR_WAIT_TIMEOUT, DEFAULT_SIGN_IN_PATH
from academy.core.audit import AuditRecorder, DecisionRecord
from academy.core.rbac.evaluator import ActionRequest, Evaluation, PermissionEvaluator
from academy.core.rbac.permissions import Actor
from academy.services.auth_context import AuthContext, AuthenticationTimeout
from academy.services.catalog import PermissionCatalog, PermissionFetchError

from .states import (
    GuardState,
    GuardEvent,
    LOADING_STATES,
    TERMINAL_STATES,
    can_transition,
    get_transition_rule,
)

logger = logging.getLogger(__name__)


class GuardTransitionError(Exception):
    """Raised when an event is not valid in the guard's current state."""

    def __init__(self, message: str, from_state: GuardState, event: GuardEvent):
        super().__init__(message)
        self.from_state = from_state
        self.event = event


class RenderKind(str, Enum):
    """What the protected page should show."""

    PAGE = "page"
    NOT_FOUND = "not_found"
    REDIRECT = "redirect"
    RETRY = "retry"
    LOADING = "loading"


@dataclass(frozen=True)
class RenderOutcome:
    """Render contract returned to page components."""

    kind: RenderKind
    location: Optional[str] = None
    from_location: Optional[str] = None
    message: Optional[str] = None


class RouteGuard:
    """
    State machine guarding one protected route.

    Manages:
    - Bounded wait for the authenticated actor
    - A single permission fetch per actor
    - Evaluation and decision recording
    - Explicit retry after a failed fetch
    - Reset on route change and cancellation on unmount
    """

    def __init__(
        self,
        route: GuardedRoute,
        *,
        auth_context: AuthContext,
        catalog: PermissionCatalog,
        evaluator: PermissionEvaluator,
        recorder: AuditRecorder,
        actor_wait_timeout: float = DEFAULT_ACTOR_WAIT_TIMEOUT,
        sign_in_path: str = DEFAULT_SIGN_IN_PATH,
    ):
        """
        Initialize the guard.

        Args:
            route: Route being protected
            auth_context: Source of the authenticated actor
            catalog: Source of effective permission sets
            evaluator: Permission evaluator
            recorder: Recorder receiving the decision
            actor_wait_timeout: Seconds to wait for an actor before redirecting
            sign_in_path: Where unauthenticated visitors are sent
        """
        self.route = route
        self.auth_context = auth_context
        self.catalog = catalog
        self.evaluator = evaluator
        self.recorder = recorder
        self.actor_wait_timeout = actor_wait_timeout
        self.sign_in_path = sign_in_path

        self._state = GuardState.INIT
        self._generation = 0
        self._history: list[Dict[str, Any]] = []
        self._run_task: Optional[asyncio.Task] = None
        self._actor_wait: Optional[asyncio.Task] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._fetch_actor_id: Optional[str] = None

        self.actor: Optional[Actor] = None
        self.permissions: Optional[FrozenSet[str]] = None
        self.evaluation: Optional[Evaluation] = None
        self.record: Optional[DecisionRecord] = None
        self.error: Optional[str] = None

    @property
    def state(self) -> GuardState:
        """Current state of the guard."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def is_loading(self) -> bool:
        return self._state in LOADING_STATES

    @property
    def fetch_in_flight(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def get_history(self) -> list[Dict[str, Any]]:
        """Get the transition history of this guard."""
        return self._history.copy()

    async def mount(self) -> RenderOutcome:
        """
        Run the guard for its route.

        Re-entrant: a second call while the first is running awaits the same
        run instead of starting another actor wait or fetch. Mounting again
        after unmount() starts over from INIT.
        """
        if self._run_task is None:
            if self._state is not GuardState.INIT:
                self._reset()
            self._run_task = asyncio.ensure_future(self._run(self._generation))
        task = self._run_task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        return self.render()

    async def retry(self) -> RenderOutcome:
        """Re-enter AWAITING_PERMISSIONS after a failed fetch."""
        if self._state is not GuardState.ERROR:
            raise GuardTransitionError(
                f"Cannot retry from state {self._state.value}",
                self._state,
                GuardEvent.RETRY,
            )
        self._transition(GuardEvent.RETRY)
        self.error = None
        self._run_task = asyncio.ensure_future(self._load_and_evaluate(self._generation))
        await asyncio.shield(self._run_task)
        return self.render()

    def unmount(self) -> None:
        """
        Detach the guard from its route.

        Cancels the actor wait; a fetch resolving afterwards is discarded.
        """
        self._generation += 1
        if self._actor_wait is not None and not self._actor_wait.done():
            self._actor_wait.cancel()
        self._actor_wait = None
        self._run_task = None
        self._fetch_task = None
        self._fetch_actor_id = None

    async def navigate(self, route: GuardedRoute) -> RenderOutcome:
        """Move the guard to another route, starting from a clean state."""
        self.unmount()
        self.route = route
        self._reset()
        return await self.mount()

    def render(self) -> RenderOutcome:
        """Map the current state to what the page should show."""
        if self._state is GuardState.GRANTED:
            return RenderOutcome(RenderKind.PAGE)
        if self._state is GuardState.DENIED:
            return RenderOutcome(RenderKind.NOT_FOUND)
        if self._state is GuardState.UNAUTHENTICATED:
            return RenderOutcome(
                RenderKind.REDIRECT,
                location=f"{self.sign_in_path}?next={quote(self.route.path, safe='')}",
                from_location=self.route.path,
            )
        if self._state is GuardState.ERROR:
            return RenderOutcome(RenderKind.RETRY, message=self.error)
        return RenderOutcome(RenderKind.LOADING)

    async def _run(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._transition(GuardEvent.MOUNT)

        self._actor_wait = asyncio.ensure_future(
            self.auth_context.wait_for_actor(self.actor_wait_timeout)
        )
        try:
            actor = await self._actor_wait
        except AuthenticationTimeout:
            if self._is_current(generation):
                logger.info("No actor for %s, redirecting to sign-in", self.route.path)
                self._transition(GuardEvent.ACTOR_TIMEOUT)
            return
        except asyncio.CancelledError:
            if self._is_current(generation):
                raise
            return
        finally:
            if self._is_current(generation):
                self._actor_wait = None

        if not self._is_current(generation):
            return

        self.actor = actor
        self._transition(GuardEvent.ACTOR_RESOLVED)
        await self._load_and_evaluate(generation)

    async def _load_and_evaluate(self, generation: int) -> None:
        actor = self.actor
        try:
            permissions = await self._fetch(actor)
        except Exception as e:
            if self._is_current(generation):
                self.error = "Your permissions could not be verified. Please try again."
                if isinstance(e, PermissionFetchError):
                    logger.warning("Permission fetch failed for %s: %s", self.route.path, e.reason)
                else:
                    logger.exception("Permission catalog error for %s", self.route.path)
                self._transition(GuardEvent.FETCH_FAILED)
            return

        if not self._is_current(generation):
            logger.debug("Discarding permissions for stale guard on %s", self.route.path)
            return

        self.permissions = permissions
        self._transition(GuardEvent.PERMISSIONS_LOADED)

        request = ActionRequest.build(
            f"access {self.route.path}",
            self.route.required_permissions,
            permissions,
        )
        self.evaluation = self.evaluator.evaluate(request)
        self.record = self.recorder.record(
            request,
            self.evaluation,
            actor_id=actor.id,
            route=self.route.path,
        )

        if self.evaluation.granted or self.evaluation.is_super_admin:
            self._transition(GuardEvent.GRANT)
        else:
            self._transition(GuardEvent.DENY)

    async def _fetch(self, actor: Actor) -> FrozenSet[str]:
        # Share the in-flight fetch for the same actor
        if (
            self._fetch_task is None
            or self._fetch_task.done()
            or self._fetch_actor_id != actor.id
        ):
            self._fetch_actor_id = actor.id
            self._fetch_task = asyncio.ensure_future(
                self.catalog.fetch_effective_permissions(actor.id)
            )
        return await asyncio.shield(self._fetch_task)

    def _reset(self) -> None:
        self._transition(GuardEvent.RESET)
        self.actor = None
        self.permissions = None
        self.evaluation = None
        self.record = None
        self.error = None

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _transition(self, event: GuardEvent) -> GuardState:
        if not can_transition(self._state, event):
            raise GuardTransitionError(
                f"Cannot handle {event.value} in state {self._state.value}",
                self._state,
                event,
            )

        rule = get_transition_rule(self._state, event)
        from_state = self._state
        self._state = rule.to_state
        self._history.append({
            "route": self.route.path,
            "from_state": from_state.value,
            "to_state": rule.to_state.value,
            "event": event.value,
            "timestamp": datetime.now(timezone.utc),
        })
        return self._state
