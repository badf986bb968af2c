"""Audit recorder for authorization decisions.

Every evaluation is captured as a DecisionRecord, appended to a bounded
in-process buffer, and forwarded at most once to a DecisionLogSink in the
background. Forwarding never delays, fails, or retries the caller.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Iterator, List, Optional, Set

from academy.core.rbac.evaluator import ActionRequest, Evaluation
from .records import DecisionRecord
from .sinks import DecisionLogSink

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 50


class AuditBuffer:
    """FIFO ring buffer of the most recent decision records."""

    def __init__(self, capacity: int = DEFAULT_BUFFER_SIZE):
        if capacity < 1:
            raise ValueError(f"Audit buffer capacity must be positive, got {capacity}")
        self._entries: Deque[DecisionRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, record: DecisionRecord) -> None:
        # deque drops the oldest entry once maxlen is reached
        self._entries.append(record)

    def snapshot(self) -> List[DecisionRecord]:
        """Records oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DecisionRecord]:
        return iter(self.snapshot())


class AuditRecorder:
    """
    Records authorization decisions.

    The buffer is owned by the recorder; callers only get copies through
    recent(). Construct one recorder per application and pass it to the
    components that evaluate permissions.
    """

    def __init__(
        self,
        sink: Optional[DecisionLogSink] = None,
        *,
        capacity: int = DEFAULT_BUFFER_SIZE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the recorder.

        Args:
            sink: Remote decision log; None keeps records local only
            capacity: Number of records retained locally
            clock: Timestamp source, defaults to the current UTC time
        """
        self.sink = sink
        self._buffer = AuditBuffer(capacity)
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()
        self.forward_failures = 0

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    @property
    def pending(self) -> int:
        """Number of forwards still in flight."""
        return len(self._pending)

    def record(
        self,
        request: ActionRequest,
        evaluation: Evaluation,
        *,
        actor_id: Optional[str] = None,
        route: Optional[str] = None,
    ) -> DecisionRecord:
        """
        Record one evaluation.

        The record is in the local buffer when this returns; forwarding is
        scheduled afterwards and never awaited here.
        """
        record = DecisionRecord.from_evaluation(
            request,
            evaluation,
            actor_id=actor_id,
            route=route,
            timestamp=self._clock() if self._clock else None,
        )
        self._buffer.append(record)
        self._forward(record)
        return record

    def recent(self) -> List[DecisionRecord]:
        """The last N decision records, oldest first."""
        return self._buffer.snapshot()

    async def drain(self) -> None:
        """Wait for in-flight forwards to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _forward(self, record: DecisionRecord) -> None:
        if self.sink is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, decision %s kept local only", record.action_name)
            return

        task = loop.create_task(self._deliver(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, record: DecisionRecord) -> None:
        try:
            await self.sink.send(record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Diagnostic only; the decision already stands
            self.forward_failures += 1
            logger.warning(
                "Failed to forward decision %r (%s) to decision log: %s",
                record.action_name,
                record.result.value,
                e,
            )
