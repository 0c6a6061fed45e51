"""Custom exception classes for the blog admin backend."""

import enum


class BlogAdminError(Exception):
    """Base exception for Blog Admin."""

    code = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(BlogAdminError):
    """Raised at startup when required configuration is missing or invalid."""
    code = "configuration"


class AuthenticationError(BlogAdminError):
    """Raised when the caller cannot be identified."""
    code = "unauthenticated"


class RejectReason(str, enum.Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    REVOKED = "revoked"


class TokenRejected(AuthenticationError):
    """Raised by the token verifier; ``reason`` says which check failed."""

    _MESSAGES = {
        RejectReason.MISSING: "Not authenticated",
        RejectReason.MALFORMED: "Malformed token",
        RejectReason.INVALID_SIGNATURE: "Invalid token signature",
        RejectReason.EXPIRED: "Token has expired",
        RejectReason.REVOKED: "Token has been revoked",
    }

    def __init__(self, reason: RejectReason):
        self.reason = reason
        super().__init__(self._MESSAGES[reason])


class AuthorizationError(BlogAdminError):
    """Raised when the caller lacks permission or attempts a blocked self-action."""
    code = "forbidden"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class InvalidRoleError(BlogAdminError):
    """Raised when a role value is outside the closed role set."""
    code = "invalid_role"

    def __init__(self, role):
        self.role = role
        super().__init__(f"Invalid role: {role!r}")


class UnknownPermissionError(BlogAdminError):
    """Raised when a permission name has no entry in the permission table.

    This is a wiring defect, not an access decision.
    """
    code = "unknown_permission"

    def __init__(self, permission):
        self.permission = permission
        super().__init__(f"Unknown permission: {permission!r}")


class ResourceNotFoundError(BlogAdminError):
    """Raised when a requested resource is not found."""
    code = "not_found"


class ResourceConflictError(BlogAdminError):
    """Raised when a resource already exists."""
    code = "conflict"


class InvalidUploadError(BlogAdminError):
    """Raised when an uploaded image fails validation."""
    code = "invalid_upload"


class StorageError(BlogAdminError):
    """Raised when an image storage operation fails."""
    code = "storage"


class RevocationUnavailableError(BlogAdminError):
    """Raised when a token cannot be added to the revocation list."""
    code = "revocation_unavailable"
