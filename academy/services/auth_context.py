"""Authentication context.

Holds the currently authenticated actor and notifies subscribers when it
changes. Authentication itself happens elsewhere; this is only the hand-off
point consumed by route guards.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from academy.core.rbac.permissions import Actor

logger = logging.getLogger(__name__)

ActorListener = Callable[[Optional[Actor]], None]


class AuthenticationTimeout(Exception):
    """Raised when no actor becomes available within the wait window."""

    def __init__(self, timeout: float):
        super().__init__(f"No authenticated actor within {timeout}s")
        self.timeout = timeout


class AuthContext:
    """Observable holder of the authenticated actor."""

    def __init__(self, actor: Optional[Actor] = None):
        self._actor = actor
        self._listeners: List[ActorListener] = []

    @property
    def actor(self) -> Optional[Actor]:
        return self._actor

    def set_actor(self, actor: Optional[Actor]) -> None:
        """Publish a new actor (None on sign-out) to every subscriber."""
        self._actor = actor
        for listener in list(self._listeners):
            try:
                listener(actor)
            except Exception:
                logger.exception("Auth context listener failed")

    def clear(self) -> None:
        self.set_actor(None)

    def subscribe(self, listener: ActorListener) -> Callable[[], None]:
        """
        Register a listener for actor changes.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_for_actor(self, timeout: float) -> Actor:
        """
        Wait until an actor is available.

        Returns immediately when one is already set. Cancelling the awaiting
        task removes the subscription.

        Raises:
            AuthenticationTimeout: If no actor arrives within timeout seconds
        """
        if self._actor is not None:
            return self._actor

        loop = asyncio.get_running_loop()
        arrived: asyncio.Future = loop.create_future()

        def on_change(actor: Optional[Actor]) -> None:
            if actor is not None and not arrived.done():
                arrived.set_result(actor)

        unsubscribe = self.subscribe(on_change)
        try:
            return await asyncio.wait_for(arrived, timeout)
        except asyncio.TimeoutError:
            raise AuthenticationTimeout(timeout) from None
        finally:
            unsubscribe()
