"""Role and permission definitions shared by the server and the client guard.

The permission table is fixed at build time. It is read through
``has_permission`` (and the two read-only helpers below); the mapping itself
is never handed out for mutation.
"""

import enum
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Optional, Union

from blogadmin.core.exceptions import UnknownPermissionError


class Role(str, enum.Enum):
    lead = "lead"
    admin = "admin"
    super_admin = "super_admin"


class Permission(str, enum.Enum):
    VIEW_BLOGS = "VIEW_BLOGS"
    EDIT_BLOGS = "EDIT_BLOGS"
    DELETE_BLOGS = "DELETE_BLOGS"
    MANAGE_USERS = "MANAGE_USERS"


DEFAULT_ROLE = Role.lead

_PERMISSION_TABLE = MappingProxyType({
    Permission.VIEW_BLOGS: frozenset({Role.lead, Role.admin, Role.super_admin}),
    Permission.EDIT_BLOGS: frozenset({Role.admin, Role.super_admin}),
    Permission.DELETE_BLOGS: frozenset({Role.super_admin}),
    Permission.MANAGE_USERS: frozenset({Role.super_admin}),
})


def parse_role(value: Union[Role, str, None]) -> Optional[Role]:
    """Return the Role for ``value`` or None when it is not a known role."""
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (ValueError, TypeError):
        return None


def parse_permission(value: Union[Permission, str]) -> Permission:
    """Return the Permission for ``value``.

    Raises:
        UnknownPermissionError: If ``value`` names no permission.
    """
    if isinstance(value, Permission):
        return value
    try:
        return Permission(value)
    except (ValueError, TypeError):
        raise UnknownPermissionError(value)


def has_permission(role: Union[Role, str, None], permission: Union[Permission, str]) -> bool:
    """Check whether ``role`` may exercise ``permission``.

    An absent or unrecognised role is denied. An unrecognised permission
    raises ``UnknownPermissionError`` instead of returning False.
    """
    perm = parse_permission(permission)
    resolved = parse_role(role)
    if resolved is None:
        return False
    return _granted(resolved, perm)


@lru_cache(maxsize=None)
def _granted(role: Role, permission: Permission) -> bool:
    return role in _PERMISSION_TABLE[permission]


def authorized_roles(permission: Union[Permission, str]) -> FrozenSet[Role]:
    """Roles allowed to exercise ``permission``."""
    return _PERMISSION_TABLE[parse_permission(permission)]


def permission_matrix() -> Dict[str, List[str]]:
    """Plain copy of the table, ordered by role, for clients that mirror it."""
    order = list(Role)
    return {
        perm.value: [r.value for r in sorted(roles, key=order.index)]
        for perm, roles in _PERMISSION_TABLE.items()
    }
