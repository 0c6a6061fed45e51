"""Client-side guard: decides which views and actions to offer.

This mirrors the server's evaluator by importing the same permission module;
it only hides affordances. The server re-checks every request.
"""

import enum
from typing import Dict, List, Optional, Tuple, Union

from blogadmin.core.permissions import Permission, Role, has_permission, parse_permission

LOGIN_ROUTE = "/login"

# (path pattern, required permission), matched segment by segment.
ROUTES: Tuple[Tuple[str, Permission], ...] = (
    ("/", Permission.VIEW_BLOGS),
    ("/blog/new", Permission.EDIT_BLOGS),
    ("/blog/edit/:id", Permission.EDIT_BLOGS),
    ("/users", Permission.MANAGE_USERS),
)

NAVIGATION: Tuple[Tuple[str, str, Permission], ...] = (
    ("Blogs", "/", Permission.VIEW_BLOGS),
    ("Add Blog", "/blog/new", Permission.EDIT_BLOGS),
    ("Users", "/users", Permission.MANAGE_USERS),
)


class GuardState(str, enum.Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    AUTHORIZED = "authorized"


class GuardTransitionError(RuntimeError):
    """Raised when a resolved guard is asked to resolve again."""


def can_render(role: Union[Role, str, None], permission: Union[Permission, str]) -> bool:
    """Same answer as the server evaluator, for UI decisions only."""
    return has_permission(role, permission)


def navigation_items(role: Union[Role, str, None]) -> List[Dict[str, str]]:
    """Navigation entries the role may see."""
    return [
        {"name": name, "href": href}
        for name, href, permission in NAVIGATION
        if can_render(role, permission)
    ]


def blog_actions(role: Union[Role, str, None]) -> Dict[str, bool]:
    """Which buttons to show on a blog card / list page."""
    return {
        "add": can_render(role, Permission.EDIT_BLOGS),
        "edit": can_render(role, Permission.EDIT_BLOGS),
        "delete": can_render(role, Permission.DELETE_BLOGS),
    }


def can_edit_role_of(session, user_id: int) -> bool:
    """Role selector is enabled for other users only, and only for user managers."""
    if session is None or not session.is_authenticated():
        return False
    return can_render(session.role, Permission.MANAGE_USERS) and session.user_id != user_id


def _matches(pattern: str, path: str) -> bool:
    want = [p for p in pattern.split("/") if p]
    got = [p for p in path.split("?")[0].split("/") if p]
    if len(want) != len(got):
        return False
    return all(w.startswith(":") or w == g for w, g in zip(want, got))


def required_permission_for(path: str) -> Optional[Permission]:
    for pattern, permission in ROUTES:
        if _matches(pattern, path):
            return permission
    return None


class RouteGuard:
    """Guard for one navigation.

    Starts in LOADING; ``resolve`` moves it to exactly one of
    UNAUTHENTICATED, FORBIDDEN or AUTHORIZED. A resolved guard never returns
    to LOADING; navigate again to get a new guard.
    """

    def __init__(self, required_permission: Union[Permission, str], login_route: str = LOGIN_ROUTE):
        self.required_permission = parse_permission(required_permission)
        self.login_route = login_route
        self.state = GuardState.LOADING

    def resolve(self, session) -> GuardState:
        if self.state is not GuardState.LOADING:
            raise GuardTransitionError(f"Guard already resolved to {self.state.value}")
        if session is None or not session.is_authenticated():
            self.state = GuardState.UNAUTHENTICATED
        elif not can_render(session.role, self.required_permission):
            self.state = GuardState.FORBIDDEN
        else:
            self.state = GuardState.AUTHORIZED
        return self.state

    @property
    def redirect_to(self) -> Optional[str]:
        if self.state in (GuardState.UNAUTHENTICATED, GuardState.FORBIDDEN):
            return self.login_route
        return None


def navigate(path: str, session) -> RouteGuard:
    """Build and resolve a guard for ``path``.

    Raises:
        LookupError: If no route matches ``path``.
    """
    permission = required_permission_for(path)
    if permission is None:
        raise LookupError(f"No route for {path}")
    guard = RouteGuard(permission)
    guard.resolve(session)
    return guard
