"""Common utilities for the Academy access control service."""

from .logger import setup_logger
from .config import GuardedRoute, RouteConfig, load_route_config, find_route

__all__ = ["GuardedRoute", "RouteConfig", "find_route", "load_route_config", "setup_logger"]
