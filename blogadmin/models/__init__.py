"""Models package — import all models so metadata.create_all sees them."""

from blogadmin.models.user import User
from blogadmin.models.blog import Blog
from blogadmin.models.audit_log import AuditLog

__all__ = ["User", "Blog", "AuditLog"]
