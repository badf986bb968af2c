"""Actor resolution middleware.

Places the authenticated actor on ``request.state.actor`` for the permission
dependencies. How an actor is recognised (session cookie, token, gateway
header) is left to the resolver supplied by the deployment.
"""

import logging
from typing import Awaitable, Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from academy.core.rbac.permissions import Actor

logger = logging.getLogger(__name__)

ActorResolver = Callable[[Request], Awaitable[Optional[Actor]]]

# Paths that never need an actor
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class ActorMiddleware(BaseHTTPMiddleware):
    """Resolve the actor for every request."""

    def __init__(self, app, resolver: ActorResolver):
        super().__init__(app)
        self.resolver = resolver

    async def dispatch(self, request: Request, call_next: Callable):
        request.state.actor = None
        if request.url.path not in EXCLUDED_PATHS:
            request.state.actor = await self.resolver(request)
            if request.state.actor is not None:
                logger.debug("Request %s %s by actor %s", request.method, request.url.path, request.state.actor.id)
        return await call_next(request)
