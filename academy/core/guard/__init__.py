"""Route guard module for the Academy platform.

Implements the state machine that protects dashboard routes while the
actor and its permissions load.
"""

from .states import GuardState, GuardEvent, VALID_TRANSITIONS, TERMINAL_STATES, LOADING_STATES
from .machine import RouteGuard, RenderKind, RenderOutcome, GuardTransitionError
from .factory import GuardFactory, UnguardedRouteError

__all__ = [
    "GuardState",
    "GuardEvent",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "LOADING_STATES",
    "RouteGuard",
    "RenderKind",
    "RenderOutcome",
    "GuardTransitionError",
    "GuardFactory",
    "UnguardedRouteError",
]
