"""Route guard states and transitions.

State Machine Diagram:

    ┌──────────┐
    │   INIT   │ ← Guard mounted for a route
    └────┬─────┘
         │ mount
    ┌────▼───────────┐  actor_timeout  ┌─────────────────┐
    │ AWAITING_ACTOR │────────────────►│ UNAUTHENTICATED │
    └────┬───────────┘                 └─────────────────┘
         │ actor_resolved
    ┌────▼─────────────────┐ fetch_failed ┌───────┐
    │ AWAITING_PERMISSIONS │─────────────►│ ERROR │
    └────┬─────────────────┘◄─────────────┴───────┘
         │ permissions_loaded     retry
    ┌────▼───────┐
    │ EVALUATING │
    └────┬───────┘
         ├──────────────┐
    ┌────▼────┐    ┌────▼───┐
    │ GRANTED │    │ DENIED │
    └─────────┘    └────────┘

Any state may be reset to INIT when the guard moves to another route.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set


class GuardState(str, Enum):
    """States of a route guard."""

    INIT = "init"
    AWAITING_ACTOR = "awaiting_actor"
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_PERMISSIONS = "awaiting_permissions"
    EVALUATING = "evaluating"
    GRANTED = "granted"
    DENIED = "denied"
    ERROR = "error"


class GuardEvent(str, Enum):
    """Events that move a guard between states."""

    MOUNT = "mount"                            # INIT → AWAITING_ACTOR
    ACTOR_TIMEOUT = "actor_timeout"            # AWAITING_ACTOR → UNAUTHENTICATED
    ACTOR_RESOLVED = "actor_resolved"          # AWAITING_ACTOR → AWAITING_PERMISSIONS
    FETCH_FAILED = "fetch_failed"              # AWAITING_PERMISSIONS → ERROR
    PERMISSIONS_LOADED = "permissions_loaded"  # AWAITING_PERMISSIONS → EVALUATING
    GRANT = "grant"                            # EVALUATING → GRANTED
    DENY = "deny"                              # EVALUATING → DENIED
    RETRY = "retry"                            # ERROR → AWAITING_PERMISSIONS
    RESET = "reset"                            # Any → INIT (route change)


class TransitionRule(NamedTuple):
    """Defines a valid guard transition."""
    from_state: GuardState
    to_state: GuardState
    event: GuardEvent


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(GuardState.INIT, GuardState.AWAITING_ACTOR, GuardEvent.MOUNT),

    # Actor resolution
    TransitionRule(GuardState.AWAITING_ACTOR, GuardState.UNAUTHENTICATED, GuardEvent.ACTOR_TIMEOUT),
    TransitionRule(GuardState.AWAITING_ACTOR, GuardState.AWAITING_PERMISSIONS, GuardEvent.ACTOR_RESOLVED),

    # Permission fetch
    TransitionRule(GuardState.AWAITING_PERMISSIONS, GuardState.ERROR, GuardEvent.FETCH_FAILED),
    TransitionRule(GuardState.AWAITING_PERMISSIONS, GuardState.EVALUATING, GuardEvent.PERMISSIONS_LOADED),
    TransitionRule(GuardState.ERROR, GuardState.AWAITING_PERMISSIONS, GuardEvent.RETRY),

    # Evaluation
    TransitionRule(GuardState.EVALUATING, GuardState.GRANTED, GuardEvent.GRANT),
    TransitionRule(GuardState.EVALUATING, GuardState.DENIED, GuardEvent.DENY),
]

# Route changes reset any state
TRANSITION_RULES += [
    TransitionRule(state, GuardState.INIT, GuardEvent.RESET) for state in GuardState
]

# Build lookup tables for efficient access
VALID_TRANSITIONS: Dict[GuardState, Set[GuardEvent]] = {}
TRANSITION_TARGETS: Dict[tuple[GuardState, GuardEvent], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.event)
    TRANSITION_TARGETS[(rule.from_state, rule.event)] = rule


# States with no outgoing transitions except reset
TERMINAL_STATES: Set[GuardState] = {
    GuardState.UNAUTHENTICATED,
    GuardState.GRANTED,
    GuardState.DENIED,
}

# States that render a loading affordance
LOADING_STATES: Set[GuardState] = {
    GuardState.INIT,
    GuardState.AWAITING_ACTOR,
    GuardState.AWAITING_PERMISSIONS,
    GuardState.EVALUATING,
}


def can_transition(from_state: GuardState, event: GuardEvent) -> bool:
    """Check if an event is valid in the given state."""
    return event in VALID_TRANSITIONS.get(from_state, set())


def get_transition_rule(from_state: GuardState, event: GuardEvent) -> Optional[TransitionRule]:
    """Get the transition rule for a state/event combination."""
    return TRANSITION_TARGETS.get((from_state, event))


def get_target_state(from_state: GuardState, event: GuardEvent) -> Optional[GuardState]:
    """Get the target state for an event."""
    rule = get_transition_rule(from_state, event)
    return rule.to_state if rule else None
