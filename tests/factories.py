"""Factory functions for test actors, sinks and decision log records.

Usage::

    from tests.factories import make_actor, create_decision_entry

    def test_something(db_session):
        actor = make_actor("u1", "manage:roles")
        entry = create_decision_entry(db_session, actor_id=actor.id)
        assert entry.previous_digest is None
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from academy.core.rbac.permissions import Actor, Role, to_permissions
from academy.db.models import DecisionKind, DecisionLogEntry


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


def make_actor(actor_id: str, *permissions: str, blocked=(), granted=()) -> Actor:
    """Actor holding the given permissions through a single ad hoc role."""
    role = Role(name=f"role-{actor_id}", permissions=to_permissions(permissions))
    return Actor(
        id=actor_id,
        roles=frozenset([role]),
        granted=frozenset(granted),
        blocked=frozenset(blocked),
    )


class RecordingSink:
    """Sink keeping every record it receives."""

    def __init__(self):
        self.records = []

    async def send(self, record):
        self.records.append(record)


class FailingSink:
    """Sink that always raises."""

    def __init__(self, exc: Optional[Exception] = None):
        self.calls = 0
        self.exc = exc or ConnectionError("sink unreachable")

    async def send(self, record):
        self.calls += 1
        raise self.exc


def create_decision_entry(
    db: Session,
    *,
    kind: DecisionKind = DecisionKind.ACTION,
    action: Optional[str] = None,
    result: str = "GRANTED",
    actor_id: Optional[str] = None,
    **kwargs,
) -> DecisionLogEntry:
    """Create a decision log entry chained to the latest stored one."""
    previous = db.query(DecisionLogEntry).order_by(DecisionLogEntry.id.desc()).first()
    n = _next_id()
    entry = DecisionLogEntry.create_entry(
        kind=kind,
        action=action or f"test action {n}",
        result=result,
        previous_digest=previous.digest if previous else None,
        actor_id=actor_id or f"user-{n}",
        **kwargs,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
