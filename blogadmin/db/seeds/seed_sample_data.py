"""Seed sample blog posts for demo purposes."""

from sqlalchemy.orm import Session
from blogadmin.models.blog import Blog
from blogadmin.models.user import User
from blogadmin.core.permissions import Role


def seed_sample_data(db: Session) -> None:
    """Insert sample posts owned by the first super admin."""
    owner = db.query(User).filter(User.role == Role.super_admin).order_by(User.id).first()
    if not owner:
        print("No super admin found. Run seed_super_admin first.")
        return

    sample_posts = [
        {
            "title": "Welcome to the blog",
            "content": "Leads can read posts, admins can write them, super admins manage everything.",
        },
        {
            "title": "Adding images",
            "content": "Posts accept one JPEG, PNG, GIF or WEBP image of up to 5MB.",
        },
    ]

    for post in sample_posts:
        existing = db.query(Blog).filter(Blog.title == post["title"]).first()
        if not existing:
            db.add(Blog(author_id=owner.id, **post))

    db.commit()
    print("Seeded sample posts")
