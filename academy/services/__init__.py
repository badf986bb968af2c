"""Services backing the route guards and the decision log."""

from .auth_context import AuthContext, AuthenticationTimeout
from .catalog import (
    DirectoryPermissionCatalog,
    HttpPermissionCatalog,
    PermissionCatalog,
    PermissionFetchError,
)

__all__ = [
    "AuthContext",
    "AuthenticationTimeout",
    "DirectoryPermissionCatalog",
    "HttpPermissionCatalog",
    "PermissionCatalog",
    "PermissionFetchError",
]
