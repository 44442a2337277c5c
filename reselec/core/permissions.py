# reselec/core/permissions.py

"""
Permission catalog and authorization checks.

A permission is the string "<module>:<action>" (e.g. "clients:read"); a role groups
permissions. The same functions are used by the API dependencies and by the client SDK,
so this module must stay free of database and settings imports.

A "user" here is any object with a `role` attribute (or None). The role exposes `name`
and `permissions`; permissions may be plain strings or objects with a `code` attribute
(ORM `Permission` rows).
"""

from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

ADMIN_ROLE_NAME = "Admin"

CRUD_ACTIONS = ("read", "create", "update", "delete")

# module -> allowed actions
PERMISSION_MODULES: Dict[str, Tuple[str, ...]] = {
    "clients": CRUD_ACTIONS,
    "equipment": CRUD_ACTIONS,
    "interventions": CRUD_ACTIONS,
    "reports": CRUD_ACTIONS,
    "users": CRUD_ACTIONS,
    "roles": CRUD_ACTIONS,
    "analytics": ("read",),
    "settings": ("read", "update"),
}

ACTION_DESCRIPTIONS = {
    "read": "View",
    "create": "Create",
    "update": "Edit",
    "delete": "Delete",
}


def permission_code(module: str, action: str) -> str:
    return f"{module}:{action}"


def parse_permission(code: str) -> Tuple[str, str]:
    """
    Splits "module:action" into its parts. Raises ValueError for malformed strings.
    """
    module, sep, action = code.partition(":")
    if not sep or not module or not action or ":" in action:
        raise ValueError(f"Invalid permission string: {code!r}")
    return module, action


def permission_catalog() -> List[Tuple[str, str, str]]:
    """(module, action, description) for every known permission, in a stable order."""
    return [
        (module, action, f"{ACTION_DESCRIPTIONS.get(action, action.title())} {module}")
        for module, actions in PERMISSION_MODULES.items()
        for action in actions
    ]


ALL_PERMISSIONS: Tuple[str, ...] = tuple(permission_code(m, a) for m, a, _ in permission_catalog())

# role name -> (description, permissions)
DEFAULT_ROLES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    ADMIN_ROLE_NAME: ("Full access to every module", ALL_PERMISSIONS),
    "Technicien": (
        "Field technician",
        (
            "equipment:read", "equipment:update",
            "interventions:read", "interventions:create", "interventions:update",
            "reports:read", "reports:create",
        ),
    ),
    "Superviseur": (
        "Workshop supervisor",
        (
            "clients:read",
            "equipment:read", "equipment:create", "equipment:update",
            "interventions:read", "interventions:create", "interventions:update", "interventions:delete",
            "reports:read", "reports:create", "reports:update",
            "analytics:read",
        ),
    ),
    "Consultant": (
        "Read-only access",
        (
            "clients:read", "equipment:read", "interventions:read",
            "reports:read", "analytics:read",
        ),
    ),
}


def code_of(permission: Any) -> str:
    """Permission string for a plain string, an ORM row or a {module, action} mapping."""
    if isinstance(permission, str):
        return permission
    if isinstance(permission, dict):
        if "code" in permission:
            return permission["code"]
        return permission_code(permission["module"], permission["action"])
    return permission.code


def resolve_permissions(user: Any) -> FrozenSet[str]:
    role = getattr(user, "role", None)
    if role is None:
        return frozenset()
    permissions: Iterable[Any] = getattr(role, "permissions", None) or ()
    return frozenset(code_of(p) for p in permissions)


def is_admin(user: Any) -> bool:
    return has_role(user, ADMIN_ROLE_NAME)


def has_role(user: Any, role_name: str) -> bool:
    role = getattr(user, "role", None)
    return role is not None and getattr(role, "name", None) == role_name


def has_permission(user: Any, permission: str) -> bool:
    """
    True when the permission is in the user's resolved set, or when the user holds the
    Admin role (which bypasses the per-permission check).
    """
    if user is None:
        return False
    if is_admin(user):
        return True
    return permission in resolve_permissions(user)


def has_any_permission(user: Any, permissions: Iterable[str]) -> bool:
    return any(has_permission(user, p) for p in permissions)
