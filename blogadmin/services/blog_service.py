"""Blog service — CRUD for posts and their images."""

import logging
from typing import Optional, List

from sqlalchemy.orm import Session

from blogadmin.core.exceptions import ResourceNotFoundError
from blogadmin.models.blog import Blog
from blogadmin.services.image_service import ImageService, image_service as default_images

logger = logging.getLogger("blogadmin.blogs")


class BlogService:
    """Persists blog posts; image bytes go through the image service."""

    def __init__(self, images: Optional[ImageService] = None):
        self.images = images or default_images

    def list(self, db: Session) -> List[Blog]:
        """All posts, newest first."""
        return db.query(Blog).order_by(Blog.created_at.desc(), Blog.id.desc()).all()

    def get(self, db: Session, blog_id: int) -> Blog:
        blog = db.query(Blog).filter(Blog.id == blog_id).first()
        if not blog:
            raise ResourceNotFoundError("Blog not found")
        return blog

    def create(
        self,
        db: Session,
        author_id: int,
        title: str,
        content: str,
        image: Optional[str] = None,
    ) -> Blog:
        """Create a post. ``image`` is a reference already returned by the image service."""
        blog = Blog(title=title, content=content, image=image, author_id=author_id)
        db.add(blog)
        try:
            db.commit()
        except Exception:
            db.rollback()
            self.images.delete(image)
            raise
        db.refresh(blog)
        return blog

    def update(
        self,
        db: Session,
        blog_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Blog:
        """Update a post. A new image replaces (and deletes) the old one.

        Raises:
            ResourceNotFoundError: If the post does not exist; ``image`` is removed.
        """
        try:
            blog = self.get(db, blog_id)
        except ResourceNotFoundError:
            self.images.delete(image)
            raise

        old_image = blog.image
        if title is not None:
            blog.title = title
        if content is not None:
            blog.content = content
        if image is not None:
            blog.image = image
        try:
            db.commit()
        except Exception:
            db.rollback()
            self.images.delete(image)
            raise
        if image is not None and old_image and old_image != image:
            self.images.delete(old_image)
        db.refresh(blog)
        return blog

    def delete(self, db: Session, blog_id: int) -> None:
        blog = self.get(db, blog_id)
        image = blog.image
        db.delete(blog)
        db.commit()
        self.images.delete(image)
        logger.info("Deleted blog %s", blog_id)


blog_service = BlogService()
