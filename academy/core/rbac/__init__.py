"""RBAC (Role-Based Access Control) module for the Academy platform.

This module defines the permission model, role definitions, the permission
evaluator and access control utilities.
"""

from .permissions import (
    Permission,
    Role,
    Actor,
    PERMISSION_DEFINITIONS,
    ACTION_PERMISSIONS,
    SUPERADMIN_PERMISSION,
    CRITICAL_ROLES_PERMISSION,
)
from .roles import DEFAULT_CRITICAL_ROLES, DEFAULT_ROLES
from .evaluator import ActionRequest, Evaluation, PermissionEvaluator, RoleChange, Target
from .checker import PermissionChecker, PermissionDependency, require_permission

__all__ = [
    "Permission",
    "Role",
    "Actor",
    "PERMISSION_DEFINITIONS",
    "ACTION_PERMISSIONS",
    "SUPERADMIN_PERMISSION",
    "CRITICAL_ROLES_PERMISSION",
    "DEFAULT_CRITICAL_ROLES",
    "DEFAULT_ROLES",
    "ActionRequest",
    "Evaluation",
    "PermissionEvaluator",
    "RoleChange",
    "Target",
    "PermissionChecker",
    "PermissionDependency",
    "require_permission",
]
