"""Builds route guards from the declared routes."""

import logging
from typing import Optional

from academy.common.config import RouteConfig, find_route, load_route_config
from academy.core.audit.recorder import AuditRecorder
from academy.core.config import Settings
from academy.core.rbac.evaluator import PermissionEvaluator
from academy.services.auth_context import AuthContext
from academy.services.catalog import PermissionCatalog

from .machine import RouteGuard

logger = logging.getLogger(__name__)


class UnguardedRouteError(LookupError):
    """Raised when no declaration covers a path."""

    def __init__(self, path: str):
        super().__init__(f"No route declaration covers {path}")
        self.path = path


class GuardFactory:
    """Creates one RouteGuard per protected path, sharing collaborators."""

    def __init__(
        self,
        config: RouteConfig,
        *,
        auth_context: AuthContext,
        catalog: PermissionCatalog,
        evaluator: PermissionEvaluator,
        recorder: AuditRecorder,
    ):
        self.config = config
        self.auth_context = auth_context
        self.catalog = catalog
        self.evaluator = evaluator
        self.recorder = recorder

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        auth_context: AuthContext,
        catalog: PermissionCatalog,
        recorder: AuditRecorder,
        evaluator: Optional[PermissionEvaluator] = None,
    ) -> "GuardFactory":
        """
        Build a factory from application settings.

        Routes come from settings.routes_file when set; the sign-in path and
        actor wait timeout in that file override the settings.
        """
        if settings.routes_file:
            config = load_route_config(settings.routes_file)
            logger.info("Loaded %d route declarations from %s", len(config.routes), settings.routes_file)
        else:
            config = RouteConfig(
                sign_in_path=settings.sign_in_path,
                actor_wait_timeout=settings.actor_wait_timeout,
            )

        return cls(
            config,
            auth_context=auth_context,
            catalog=catalog,
            evaluator=evaluator or PermissionEvaluator(settings.critical_roles_set),
            recorder=recorder,
        )

    def guard_for(self, path: str) -> RouteGuard:
        """
        Create a guard for a path.

        Raises:
            UnguardedRouteError: If no declaration covers the path
        """
        route = find_route(self.config, path)
        if route is None:
            raise UnguardedRouteError(path)

        return RouteGuard(
            route,
            auth_context=self.auth_context,
            catalog=self.catalog,
            evaluator=self.evaluator,
            recorder=self.recorder,
            actor_wait_timeout=self.config.actor_wait_timeout,
            sign_in_path=self.config.sign_in_path,
        )
