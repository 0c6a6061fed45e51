"""User management API router (MANAGE_USERS)."""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from blogadmin.db.session import get_db
from blogadmin.schemas.schemas import UserOut, RoleUpdateRequest, RoleUpdateResponse
from blogadmin.services.auth_service import auth_service
from blogadmin.services.audit_service import audit_service
from blogadmin.core.security import require_manage_users
from blogadmin.core.tokens import VerifiedIdentity

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_manage_users),
):
    """List all users without password hashes."""
    return [
        UserOut(
            id=u.id, name=u.name, email=u.email, role=u.role.value,
            is_active=u.is_active, created_at=u.created_at,
        )
        for u in auth_service.list_users(db)
    ]


@router.put("/{user_id}/role", response_model=RoleUpdateResponse)
async def update_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_manage_users),
):
    """Change another user's role. Changing your own role is forbidden."""
    user, previous = auth_service.change_role(db, identity, user_id, body.role)
    audit_service.log_from_request(
        db, request, identity.user_id, "user.role_changed", "user", str(user.id),
        old_value={"role": previous.value}, new_value={"role": user.role.value},
    )
    return RoleUpdateResponse(id=user.id, name=user.name, role=user.role.value)
