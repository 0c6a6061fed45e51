"""Blogs API router — list, view, create, update, delete."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from blogadmin.db.session import get_db
from blogadmin.schemas.schemas import BlogOut, MessageResponse
from blogadmin.services.blog_service import blog_service
from blogadmin.services.image_service import image_service
from blogadmin.services.audit_service import audit_service
from blogadmin.core.security import (
    require_view_blogs, require_edit_blogs, require_delete_blogs,
)
from blogadmin.core.tokens import VerifiedIdentity

router = APIRouter(prefix="/blogs", tags=["blogs"])


async def _store_image(image: Optional[UploadFile]) -> Optional[str]:
    if image is None or not image.filename:
        return None
    # One byte past the limit is enough to reject without reading everything.
    data = await image.read(image_service.max_bytes + 1)
    return image_service.save(image.filename, image.content_type, data)


@router.get("", response_model=List[BlogOut])
async def list_blogs(
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_view_blogs),
):
    """List all blog posts."""
    return [BlogOut.model_validate(b) for b in blog_service.list(db)]


@router.get("/{blog_id}", response_model=BlogOut)
async def get_blog(
    blog_id: int,
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_view_blogs),
):
    """Get a single blog post."""
    return BlogOut.model_validate(blog_service.get(db, blog_id))


@router.post("", response_model=BlogOut, status_code=201)
async def create_blog(
    request: Request,
    title: str = Form(..., min_length=1),
    content: str = Form(..., min_length=1),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_edit_blogs),
):
    """Create a blog post (multipart, optional image)."""
    reference = await _store_image(image)
    blog = blog_service.create(db, identity.user_id, title, content, reference)
    audit_service.log_from_request(
        db, request, identity.user_id, "blog.created", "blog", str(blog.id),
        new_value={"title": blog.title, "image": blog.image},
    )
    return BlogOut.model_validate(blog)


@router.put("/{blog_id}", response_model=BlogOut)
async def update_blog(
    blog_id: int,
    request: Request,
    title: Optional[str] = Form(None, min_length=1),
    content: Optional[str] = Form(None, min_length=1),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_edit_blogs),
):
    """Update a blog post; a new image replaces the old one."""
    reference = await _store_image(image)
    blog = blog_service.update(db, blog_id, title, content, reference)
    audit_service.log_from_request(
        db, request, identity.user_id, "blog.updated", "blog", str(blog.id),
        new_value={"title": blog.title, "image": blog.image},
    )
    return BlogOut.model_validate(blog)


@router.delete("/{blog_id}", response_model=MessageResponse)
async def delete_blog(
    blog_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: VerifiedIdentity = Depends(require_delete_blogs),
):
    """Delete a blog post. Permission is checked before the lookup."""
    blog_service.delete(db, blog_id)
    audit_service.log_from_request(
        db, request, identity.user_id, "blog.deleted", "blog", str(blog_id),
    )
    return MessageResponse(message="Blog deleted successfully")
