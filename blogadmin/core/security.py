"""Password hashing and the request gate (token verification + authorization)."""

import logging
from typing import Optional, Union

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from blogadmin.core.authorization import authorize
from blogadmin.core.exceptions import AuthorizationError, RejectReason, TokenRejected
from blogadmin.core.permissions import Permission, parse_permission
from blogadmin.core.tokens import VerifiedIdentity, get_token_service
from blogadmin.services.cache_service import cache_service

logger = logging.getLogger("blogadmin.security")

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def verify_request_token(request: Request, token: Optional[str]) -> VerifiedIdentity:
    """Run the token verifier and the revocation check for one request."""
    try:
        identity = get_token_service().verify(token)
    except TokenRejected as exc:
        logger.info(
            "Token rejected on %s %s: %s",
            request.method, request.url.path, exc.reason.value,
        )
        raise
    if identity.jti and cache_service.is_token_revoked(identity.jti):
        logger.info("Revoked token presented by user %s", identity.user_id)
        raise TokenRejected(RejectReason.REVOKED)
    request.state.identity = identity
    return identity


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> VerifiedIdentity:
    """Identity asserted by the Bearer token; rejects the request otherwise."""
    return verify_request_token(request, credentials.credentials if credentials else None)


async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Optional[VerifiedIdentity]:
    """Like get_current_identity, but no token at all yields None."""
    if credentials is None:
        return None
    return verify_request_token(request, credentials.credentials)


class RequirePermission:
    """Dependency that verifies the token and then checks one permission."""

    def __init__(self, permission: Union[Permission, str]):
        # Unknown names fail here, when routes are declared.
        self.permission = parse_permission(permission)

    async def __call__(
        self,
        request: Request,
        identity: VerifiedIdentity = Depends(get_current_identity),
    ) -> VerifiedIdentity:
        decision = authorize(identity, self.permission)
        if not decision:
            logger.warning(
                "Denied %s %s for user %s: %s",
                request.method, request.url.path, identity.user_id, decision.reason,
            )
            raise AuthorizationError(decision.reason)
        return identity


# Convenience dependencies
require_view_blogs = RequirePermission(Permission.VIEW_BLOGS)
require_edit_blogs = RequirePermission(Permission.EDIT_BLOGS)
require_delete_blogs = RequirePermission(Permission.DELETE_BLOGS)
require_manage_users = RequirePermission(Permission.MANAGE_USERS)
