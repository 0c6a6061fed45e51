"""Authorization gate: pure checks applied to an already verified identity."""

from dataclasses import dataclass
from typing import Optional, Union

from blogadmin.core.exceptions import InvalidRoleError
from blogadmin.core.permissions import Permission, has_permission, parse_role
from blogadmin.core.tokens import VerifiedIdentity


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(True)


def authorize(
    identity: Optional[VerifiedIdentity],
    permission: Union[Permission, str],
) -> Decision:
    """Allow iff the identity's role holds ``permission``.

    Raises:
        UnknownPermissionError: If ``permission`` is not in the table.
    """
    role = identity.role if identity is not None else None
    if has_permission(role, permission):
        return ALLOWED
    name = getattr(permission, "value", permission)
    if role is None:
        return Decision(False, f"{name} requires an authenticated user")
    return Decision(False, f"Role '{role.value}' lacks {name}")


def authorize_role_change(
    identity: Optional[VerifiedIdentity],
    target_user_id: int,
    requested_role: Union[str, None],
) -> Decision:
    """Gate for changing another user's role.

    MANAGE_USERS is checked first, then the self-change block (which holds
    whatever role is requested), then the requested role itself.

    Raises:
        InvalidRoleError: If the caller may change roles but ``requested_role``
            is not a known role.
    """
    decision = authorize(identity, Permission.MANAGE_USERS)
    if not decision:
        return decision
    if identity.user_id == target_user_id:
        return Decision(False, "Users cannot change their own role")
    if parse_role(requested_role) is None:
        raise InvalidRoleError(requested_role)
    return ALLOWED
