"""Permission model for the Academy platform.

Permission names use the "verb:scope" format and are compared as exact,
case-sensitive strings.
Examples:
  - read:courses
  - manage:roles
  - audit:logs

Two names carry special meaning for the evaluator:
  - superadmin:full_access  grants every action
  - manage:critical_roles   required to assign or remove a critical role
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List


SUPERADMIN_PERMISSION = "superadmin:full_access"
CRITICAL_ROLES_PERMISSION = "manage:critical_roles"


@dataclass(frozen=True)
class Permission:
    """A named capability. Identity is the name only."""

    name: str
    description: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.name

    @property
    def verb(self) -> str:
        return self.name.split(":", 1)[0]

    @property
    def scope(self) -> str:
        parts = self.name.split(":", 1)
        return parts[1] if len(parts) == 2 else ""

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'manage:roles'."""
        parts = perm_str.split(":")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid permission format: {perm_str}")
        known = PERMISSION_DEFINITIONS.get(perm_str)
        return known if known else cls(perm_str)


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions."""

    name: str
    description: str = field(default="", compare=False)
    permissions: FrozenSet[Permission] = field(default_factory=frozenset, compare=False)

    @property
    def permission_names(self) -> FrozenSet[str]:
        return frozenset(p.name for p in self.permissions)


@dataclass(frozen=True)
class Actor:
    """
    Read-only snapshot of an authenticated actor.

    The effective permission set is the union of the permissions of every
    assigned role plus individually granted names, minus individually
    blocked names. A block always wins.
    """

    id: str
    roles: FrozenSet[Role] = frozenset()
    granted: FrozenSet[str] = frozenset()
    blocked: FrozenSet[str] = frozenset()

    @property
    def role_names(self) -> FrozenSet[str]:
        return frozenset(role.name for role in self.roles)

    def effective_permissions(self) -> FrozenSet[str]:
        names = set(self.granted)
        for role in self.roles:
            names |= role.permission_names
        return frozenset(names - set(self.blocked))


# Platform permission catalogue: name -> description
_CATALOG = [
    # Users
    ("read:users", "Can view users"),
    ("write:users", "Can create and edit users"),
    ("delete:users", "Can delete users"),
    ("manage:all_users", "Can manage every user account"),
    ("block:users", "Can block users"),
    ("unblock:users", "Can unblock users"),
    ("suspend:users", "Can suspend users"),
    ("activate:users", "Can activate users"),
    ("impersonate:users", "Can impersonate any user account"),

    # Roles and permissions
    ("manage:roles", "Can manage roles"),
    ("create:roles", "Can create roles"),
    ("edit:roles", "Can edit roles"),
    ("delete:roles", "Can delete roles"),
    ("assign:roles", "Can assign roles to users"),
    ("manage:permissions", "Can manage permissions"),
    ("delete:permissions", "Can delete permissions"),
    (CRITICAL_ROLES_PERMISSION, "Can assign or remove critical system roles"),
    (SUPERADMIN_PERMISSION, "Unrestricted access to every action"),

    # Courses
    ("read:courses", "Can view the list of available courses"),
    ("read:course_details", "Can view the details of a course"),
    ("enroll:courses", "Can enrol in available courses"),
    ("access:course_content", "Can access the content of enrolled courses"),
    ("delete:courses", "Can delete courses"),
    ("publish:courses", "Can publish courses"),
    ("archive:courses", "Can archive courses"),

    # Course management
    ("manage:courses", "Can create, edit or delete courses"),
    ("manage:categories", "Can manage course categories and tags"),
    ("manage:course_content", "Can manage course modules and lessons"),
    ("manage:enrollments", "Can enrol and unenrol users from courses"),

    # Profile and progress
    ("manage:own_profile", "Can edit their own profile"),
    ("read:own_progress", "Can view their own course progress"),
    ("read:all_progress", "Can view the progress of every user"),

    # Moderation and community
    ("moderate:content", "Can approve or reject user generated content"),
    ("delete:content", "Can delete user generated content"),
    ("manage:groups", "Can manage discussion groups"),
    ("manage:community_posts", "Can manage community posts"),

    # System
    ("manage:system_settings", "Can change general system settings"),
    ("manage:backups", "Can run backups and restores"),

    # Analytics and audit
    ("view:analytics", "Can access analytics and reports"),
    ("audit:logs", "Can view the audit trail"),

    # Sales
    ("manage:sales", "Can manage all sales"),
    ("refund:sales", "Can issue refunds"),
    ("view:sales", "Can view completed sales"),

    # Resources, comments and ratings
    ("upload:resources", "Can upload their own resources"),
    ("manage:own_resources", "Can manage their own resources"),
    ("moderate:all_resources", "Can manage any user's resources"),
    ("comment:resources", "Can comment on resources"),
    ("manage:own_comments", "Can manage their own comments"),
    ("moderate:all_comments", "Can manage any user's comments"),
    ("rate:resources", "Can rate resources"),
    ("manage:own_ratings", "Can manage their own ratings"),
    ("moderate:all_ratings", "Can manage any user's ratings"),
]


# All known permissions: name -> Permission
PERMISSION_DEFINITIONS: Dict[str, Permission] = {
    name: Permission(name, description) for name, description in _CATALOG
}


# Dashboard actions and the permissions any one of which allows them
ACTION_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    # User actions
    "CHANGE_USER_ROLE": frozenset(["manage:roles", "manage:all_users", "assign:roles"]),
    "CHANGE_USER_STATUS": frozenset([
        "block:users", "unblock:users", "suspend:users",
        "activate:users", "manage:all_users",
    ]),
    "MANAGE_USER_PERMISSIONS": frozenset(["manage:permissions", "manage:all_users"]),

    # Role actions
    "CREATE_ROLE": frozenset(["manage:roles", "create:roles"]),
    "UPDATE_ROLE": frozenset(["manage:roles", "edit:roles"]),
    "DELETE_ROLE": frozenset(["delete:roles", "manage:roles"]),
    "ASSIGN_PERMISSIONS_TO_ROLE": frozenset(["manage:permissions", "manage:roles"]),

    # Critical system roles
    "MANAGE_CRITICAL_ROLES": frozenset([CRITICAL_ROLES_PERMISSION, SUPERADMIN_PERMISSION]),
}


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string is part of the catalogue."""
    return perm_str in PERMISSION_DEFINITIONS


def get_permissions_for_scope(scope: str) -> List[str]:
    """Get all catalogue permission names acting on a scope (e.g. 'users')."""
    return [name for name, perm in PERMISSION_DEFINITIONS.items() if perm.scope == scope]


def get_all_permissions() -> List[str]:
    """Get all catalogue permission names."""
    return list(PERMISSION_DEFINITIONS.keys())


def get_action_permissions(action_key: str) -> FrozenSet[str]:
    """Get the permissions that allow a dashboard action."""
    perms = ACTION_PERMISSIONS.get(action_key)
    if perms is None:
        raise ValueError(f"Unknown action: {action_key}")
    return perms


def to_permissions(names: Iterable[str]) -> FrozenSet[Permission]:
    """Resolve permission names to Permission objects, keeping unknown names."""
    return frozenset(PERMISSION_DEFINITIONS.get(n) or Permission(n) for n in names)
