"""Route declaration loading for the Academy guards.

Handles loading and validation of the YAML file that declares protected
routes and the permissions they require.

Example:

    sign_in_path: /login
    actor_wait_timeout: 1.5
    routes:
      - path: /dashboard/permissions
        required_permissions: [manage:permissions]
      - path: /dashboard
        required_permissions: []
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


DEFAULT_SIGN_IN_PATH = "/login"
DEFAULT_ACTOR_WAIT_TIMEOUT = 1.5


@dataclass(frozen=True)
class GuardedRoute:
    """A protected route and its statically declared permissions.

    An empty required_permissions tuple means "authenticated only".
    """

    path: str
    required_permissions: Tuple[str, ...] = ()
    name: Optional[str] = None


@dataclass
class RouteConfig:
    """Top-level route declaration configuration."""

    routes: List[GuardedRoute] = field(default_factory=list)
    sign_in_path: str = DEFAULT_SIGN_IN_PATH
    actor_wait_timeout: float = DEFAULT_ACTOR_WAIT_TIMEOUT


def parse_route(route_dict: Dict[str, Any]) -> GuardedRoute:
    """Parse a route declaration dictionary.

    Args:
        route_dict: Route declaration dictionary

    Returns:
        GuardedRoute instance

    Raises:
        ValueError: If the path is missing or permissions are not strings
    """
    path = route_dict.get("path")
    if not path or not isinstance(path, str):
        raise ValueError(f"Route declaration without a path: {route_dict!r}")

    permissions = route_dict.get("required_permissions") or []
    if isinstance(permissions, str) or not all(isinstance(p, str) for p in permissions):
        raise ValueError(f"required_permissions for {path} must be a list of strings")

    return GuardedRoute(
        path=path,
        required_permissions=tuple(permissions),
        name=route_dict.get("name"),
    )


def parse_route_config(config_dict: Dict[str, Any]) -> RouteConfig:
    """Parse the full route declaration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        RouteConfig instance
    """
    timeout = float(config_dict.get("actor_wait_timeout", DEFAULT_ACTOR_WAIT_TIMEOUT))
    if timeout <= 0:
        raise ValueError(f"actor_wait_timeout must be positive, got {timeout}")

    return RouteConfig(
        routes=[parse_route(r) for r in config_dict.get("routes", [])],
        sign_in_path=config_dict.get("sign_in_path", DEFAULT_SIGN_IN_PATH),
        actor_wait_timeout=timeout,
    )


def load_route_config(config_path: str) -> RouteConfig:
    """Load route declarations from a YAML file.

    Args:
        config_path: Path to the YAML file

    Returns:
        RouteConfig instance

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Route config file not found: {config_path}")

    with open(path, "r") as f:
        config_dict = yaml.safe_load(f) or {}

    return parse_route_config(config_dict)


def find_route(config: RouteConfig, path: str) -> Optional[GuardedRoute]:
    """Find the declaration for a path.

    Exact matches win; otherwise the longest declared prefix applies.
    """
    best: Optional[GuardedRoute] = None
    for route in config.routes:
        if route.path == path:
            return route
        prefix = route.path.rstrip("/") + "/"
        if path.startswith(prefix):
            if best is None or len(route.path) > len(best.path):
                best = route
    return best
