"""Default role definitions for the Academy platform.

Defines the 5 standard roles with their permission sets:
1. Superadmin - Unrestricted access
2. Admin - User, role and course administration
3. Moderator - Community and content moderation
4. Instructor - Course authoring and student progress
5. Student - Course consumption and own resources

Superadmin, Admin and Moderator are critical roles: assigning or removing
them requires manage:critical_roles on top of the normal role permissions.
"""

from typing import Dict, FrozenSet, Iterable, List

from .permissions import (
    Role,
    SUPERADMIN_PERMISSION,
    CRITICAL_ROLES_PERMISSION,
    to_permissions,
)


DEFAULT_CRITICAL_ROLES: FrozenSet[str] = frozenset(["superadmin", "admin", "moderator"])


# Superadmin: single override permission
SUPERADMIN_PERMISSIONS = [
    SUPERADMIN_PERMISSION,
]

# Admin: full platform administration, may manage critical roles
ADMIN_PERMISSIONS = [
    # Users
    "read:users", "write:users", "delete:users", "manage:all_users",
    "block:users", "unblock:users", "suspend:users", "activate:users",

    # Roles and permissions
    "manage:roles", "assign:roles", "manage:permissions",
    CRITICAL_ROLES_PERMISSION,

    # Courses
    "read:courses", "read:course_details", "manage:courses",
    "manage:categories", "manage:course_content", "manage:enrollments",
    "publish:courses", "archive:courses", "delete:courses",

    # Oversight
    "read:all_progress", "view:analytics", "audit:logs",
    "manage:system_settings", "manage:backups",
    "manage:sales", "refund:sales", "view:sales",
]

# Moderator: community and user generated content
MODERATOR_PERMISSIONS = [
    "read:users", "block:users", "unblock:users",
    "read:courses", "read:course_details",
    "moderate:content", "delete:content",
    "manage:groups", "manage:community_posts",
    "moderate:all_resources", "moderate:all_comments", "moderate:all_ratings",
]

# Instructor: course authoring
INSTRUCTOR_PERMISSIONS = [
    "read:courses", "read:course_details", "access:course_content",
    "manage:courses", "manage:course_content", "publish:courses",
    "read:all_progress", "view:analytics",
    "manage:own_profile", "upload:resources", "manage:own_resources",
    "comment:resources", "manage:own_comments",
]

# Student: course consumption
STUDENT_PERMISSIONS = [
    "read:courses", "read:course_details", "enroll:courses",
    "access:course_content", "manage:own_profile", "read:own_progress",
    "upload:resources", "manage:own_resources",
    "comment:resources", "manage:own_comments",
    "rate:resources", "manage:own_ratings",
]


# Default roles configuration
DEFAULT_ROLES: Dict[str, dict] = {
    "superadmin": {
        "name": "superadmin",
        "description": "Unrestricted access to every action",
        "permissions": SUPERADMIN_PERMISSIONS,
        "is_system": True,
    },
    "admin": {
        "name": "admin",
        "description": "Administers users, roles, courses and sales",
        "permissions": ADMIN_PERMISSIONS,
        "is_system": True,
    },
    "moderator": {
        "name": "moderator",
        "description": "Moderates community posts, resources, comments and ratings",
        "permissions": MODERATOR_PERMISSIONS,
        "is_system": True,
    },
    "instructor": {
        "name": "instructor",
        "description": "Authors courses and follows student progress",
        "permissions": INSTRUCTOR_PERMISSIONS,
        "is_system": True,
    },
    "student": {
        "name": "student",
        "description": "Enrols in courses and manages own resources",
        "permissions": STUDENT_PERMISSIONS,
        "is_system": True,
    },
}


def get_default_role_permissions(role_key: str) -> List[str]:
    """Get permissions list for a default role."""
    role = DEFAULT_ROLES.get(role_key)
    if not role:
        raise ValueError(f"Unknown default role: {role_key}")
    return role["permissions"]


def get_default_role(role_key: str) -> Role:
    """Build the Role snapshot for a default role."""
    permissions = get_default_role_permissions(role_key)
    definition = DEFAULT_ROLES[role_key]
    return Role(
        name=definition["name"],
        description=definition["description"],
        permissions=to_permissions(permissions),
    )


def normalize_role_names(names: Iterable[str]) -> FrozenSet[str]:
    """Lower-case role names for critical role comparison."""
    return frozenset(n.strip().lower() for n in names if n and n.strip())


def is_critical_role(role_name: str, critical_roles: Iterable[str] = DEFAULT_CRITICAL_ROLES) -> bool:
    """Check if a role name belongs to the critical role set (case-insensitive)."""
    if not role_name:
        return False
    return role_name.strip().lower() in normalize_role_names(critical_roles)
