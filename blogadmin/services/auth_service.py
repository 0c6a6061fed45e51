"""Auth service — registration, login, logout, user and role management."""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from blogadmin.models.user import User
from blogadmin.core.authorization import authorize, authorize_role_change
from blogadmin.core.permissions import Role, Permission, DEFAULT_ROLE, parse_role
from blogadmin.core.security import hash_password, verify_password
from blogadmin.core.tokens import VerifiedIdentity, get_token_service
from blogadmin.core.exceptions import (
    AuthenticationError, AuthorizationError, InvalidRoleError,
    ResourceConflictError, ResourceNotFoundError, RevocationUnavailableError,
)
from blogadmin.services.cache_service import cache_service

logger = logging.getLogger("blogadmin.auth")


def user_summary(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role.value}


class AuthService:
    """Handles authentication and user management."""

    @staticmethod
    def _token_response(user: User) -> Dict[str, Any]:
        tokens = get_token_service()
        token = tokens.issue(user.id, user.role)
        identity = tokens.verify(token)
        return {
            "token": token,
            "token_type": "bearer",
            "expires_at": identity.expires_at,
            "user": user_summary(user),
        }

    @staticmethod
    def register(
        db: Session,
        name: str,
        email: str,
        password: str,
        requested_role: Optional[str] = None,
        actor: Optional[VerifiedIdentity] = None,
    ) -> Dict[str, Any]:
        """Create a user and return a token for it.

        New users get the default role. A different role is only honoured
        when ``actor`` holds MANAGE_USERS.

        Raises:
            ResourceConflictError: If the email is taken.
            InvalidRoleError: If ``requested_role`` is not a known role.
            AuthorizationError: If a role override is requested without MANAGE_USERS.
        """
        role = DEFAULT_ROLE
        if requested_role is not None:
            role = parse_role(requested_role)
            if role is None:
                raise InvalidRoleError(requested_role)
            if role != DEFAULT_ROLE:
                decision = authorize(actor, Permission.MANAGE_USERS)
                if not decision:
                    raise AuthorizationError(
                        f"Registering with role '{role.value}' requires MANAGE_USERS"
                    )

        user = AuthService.create_user(db, name, email, password, role)
        logger.info("Registered user %s with role %s", user.id, role.value)
        return AuthService._token_response(user)

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a token.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login_at = datetime.now(timezone.utc)
        db.commit()

        return AuthService._token_response(user)

    @staticmethod
    def logout(identity: VerifiedIdentity) -> None:
        """Revoke the presented token for the rest of its lifetime.

        Raises:
            RevocationUnavailableError: If the revocation list is unreachable.
        """
        if not identity.jti or identity.expires_at is None:
            return
        remaining = int((identity.expires_at - datetime.now(timezone.utc)).total_seconds())
        if not cache_service.revoke_token(identity.jti, remaining):
            raise RevocationUnavailableError(
                "Logout could not be recorded; the token stays valid until it expires"
            )

    @staticmethod
    def create_user(
        db: Session,
        name: str,
        email: str,
        password: str,
        role: Role = DEFAULT_ROLE,
    ) -> User:
        """Create a new user."""
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            raise ResourceConflictError("User with this email already exists")

        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    def list_users(db: Session) -> List[User]:
        """List all users, oldest first."""
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def change_role(
        db: Session,
        actor: VerifiedIdentity,
        target_user_id: int,
        requested_role: Any,
    ) -> Tuple[User, Role]:
        """Set another user's role; returns the user and its previous role.

        Raises:
            AuthorizationError: Without MANAGE_USERS, or when targeting oneself.
            InvalidRoleError: If ``requested_role`` is not a known role.
            ResourceNotFoundError: If the target user does not exist.
        """
        decision = authorize_role_change(actor, target_user_id, requested_role)
        if not decision:
            logger.warning("Role change by user %s denied: %s", actor.user_id, decision.reason)
            raise AuthorizationError(decision.reason)

        user = AuthService.get_user(db, target_user_id)
        previous = user.role
        user.role = parse_role(requested_role)
        db.commit()
        db.refresh(user)
        logger.info(
            "User %s set role of user %s to %s; existing tokens keep the old role until expiry",
            actor.user_id, user.id, user.role.value,
        )
        return user, previous


auth_service = AuthService()
