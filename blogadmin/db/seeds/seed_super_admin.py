"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session
from blogadmin.models.user import User
from blogadmin.core.permissions import Role
from blogadmin.core.security import hash_password
from blogadmin.core.config import settings


def seed_super_admin(db: Session) -> User:
    """Create the super-admin user if not already present."""
    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return existing

    admin = User(
        name=settings.SUPER_ADMIN_NAME,
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        role=Role.super_admin,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    print(f"Created super admin: {settings.SUPER_ADMIN_EMAIL}")
    return admin
