"""Auth API router — register, login, logout, me, permission matrix."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from blogadmin.db.session import get_db
from blogadmin.schemas.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, UserOut,
    MessageResponse, PermissionMatrixResponse,
)
from blogadmin.services.auth_service import auth_service
from blogadmin.services.audit_service import audit_service
from blogadmin.core.config import settings
from blogadmin.core.permissions import Role, permission_matrix
from blogadmin.core.rate_limiter import limiter
from blogadmin.core.security import get_current_identity, get_optional_identity
from blogadmin.core.tokens import VerifiedIdentity

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Optional[VerifiedIdentity] = Depends(get_optional_identity),
):
    """Register a new user (role `lead` unless a user manager overrides it)."""
    result = auth_service.register(
        db, body.name, body.email, body.password, body.role, actor,
    )
    audit_service.log_from_request(
        db, request,
        actor_id=actor.user_id if actor else result["user"]["id"],
        action="user.registered",
        resource_type="user",
        resource_id=str(result["user"]["id"]),
        new_value={"role": result["user"]["role"]},
    )
    return result


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return a JWT."""
    result = auth_service.authenticate(db, body.email, body.password)
    audit_service.log_from_request(
        db, request,
        actor_id=result["user"]["id"],
        action="user.login",
        resource_type="user",
        resource_id=str(result["user"]["id"]),
    )
    return result


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(get_current_identity),
):
    """Revoke the presented token."""
    auth_service.logout(identity)
    audit_service.log_from_request(
        db, request, identity.user_id, "user.logout", "user", str(identity.user_id),
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(get_current_identity),
):
    """Current user profile, as stored (the token's role may be older)."""
    user = auth_service.get_user(db, identity.user_id)
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.value,
        is_active=user.is_active,
        created_at=user.created_at,
    )


@router.get("/permissions", response_model=PermissionMatrixResponse)
async def get_permissions():
    """Role/permission table for client-side guards."""
    return PermissionMatrixResponse(
        roles=[r.value for r in Role],
        permissions=permission_matrix(),
    )
