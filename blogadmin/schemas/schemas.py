"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: Optional[str] = None

class UserSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    role: str

class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: Optional[datetime] = None
    user: UserSummary


# ---- User ----
class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RoleUpdateRequest(BaseModel):
    # Plain string so out-of-set values reach the gate as InvalidRole.
    role: Any = None

class RoleUpdateResponse(BaseModel):
    id: int
    name: str
    role: str


# ---- Blog ----
class AuthorOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class BlogOut(BaseModel):
    id: int
    title: str
    content: str
    image: Optional[str] = None
    author_id: int
    author: Optional[AuthorOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Permissions ----
class PermissionMatrixResponse(BaseModel):
    roles: List[str]
    permissions: Dict[str, List[str]]


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
