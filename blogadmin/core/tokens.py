"""JWT issuance and staged verification.

Tokens carry ``sub`` (user id), ``role``, ``iat``, ``exp`` and ``jti``. The
server keeps no session state: the role inside a token stays authoritative
until the token expires, even if the user's stored role changes.
"""

import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Union

from jose import jws, jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode, base64url_encode

from blogadmin.core.config import settings
from blogadmin.core.exceptions import (
    ConfigurationError, InvalidRoleError, RejectReason, TokenRejected,
)
from blogadmin.core.permissions import Role, parse_role

logger = logging.getLogger("blogadmin.tokens")

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
MIN_SECRET_LENGTH = 16


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity extracted from a token that passed every check."""
    user_id: int
    role: Role
    jti: Optional[str] = None
    expires_at: Optional[datetime] = None


def _decode_segment(segment: str) -> dict:
    data = json.loads(base64url_decode(segment.encode("ascii")))
    if not isinstance(data, dict):
        raise ValueError("segment is not a JSON object")
    return data


def _is_canonical(segment: str) -> bool:
    # The segment must be the exact encoding of its bytes; the decoder
    # ignores the unused low bits of the last character.
    try:
        raw = base64url_decode(segment.encode("ascii"))
    except (ValueError, TypeError):
        return False
    return base64url_encode(raw).decode("ascii") == segment


class TokenService:
    """Mints and verifies signed, time-bound access tokens."""

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        expiry: timedelta = timedelta(hours=24),
    ):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"JWT_SECRET must be set to at least {MIN_SECRET_LENGTH} characters"
            )
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(f"Unsupported JWT algorithm: {algorithm}")
        self._secret = secret
        self.algorithm = algorithm
        self.expiry = expiry

    def issue(
        self,
        user_id: int,
        role: Union[Role, str],
        issued_at: Optional[datetime] = None,
    ) -> str:
        """Create a signed token for ``user_id`` holding ``role``."""
        resolved = parse_role(role)
        if resolved is None:
            raise InvalidRoleError(role)
        issued_at = issued_at or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "role": resolved.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.expiry).timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, raw_token: Optional[str], now: Optional[datetime] = None) -> VerifiedIdentity:
        """Validate ``raw_token`` and return the identity it asserts.

        Checks run in a fixed order: presence, structure, signature, expiry,
        then the identity claims.

        Raises:
            TokenRejected: With the reason of the first failing check.
        """
        if not raw_token or not raw_token.strip():
            raise TokenRejected(RejectReason.MISSING)
        token = raw_token.strip()

        segments = token.split(".")
        if len(segments) != 3 or not all(segments):
            raise TokenRejected(RejectReason.MALFORMED)
        try:
            _decode_segment(segments[0])
            claims = _decode_segment(segments[1])
        except (ValueError, TypeError):
            raise TokenRejected(RejectReason.MALFORMED)

        if not _is_canonical(segments[2]):
            raise TokenRejected(RejectReason.INVALID_SIGNATURE)
        try:
            jws.verify(token, self._secret, algorithms=[self.algorithm])
        except JOSEError:
            raise TokenRejected(RejectReason.INVALID_SIGNATURE)

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise TokenRejected(RejectReason.MALFORMED)
        now = now or datetime.now(timezone.utc)
        if now.timestamp() > exp:
            raise TokenRejected(RejectReason.EXPIRED)

        try:
            user_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            raise TokenRejected(RejectReason.MALFORMED)
        role = parse_role(claims.get("role"))
        if role is None:
            raise TokenRejected(RejectReason.MALFORMED)

        return VerifiedIdentity(
            user_id=user_id,
            role=role,
            jti=claims.get("jti"),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    """Process-wide token service built from settings.

    Called during application startup so a missing secret stops the process.
    """
    service = TokenService(
        settings.JWT_SECRET,
        settings.JWT_ALGORITHM,
        timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )
    logger.info("Token service ready (%s, %sh expiry)", service.algorithm, settings.JWT_EXPIRY_HOURS)
    return service
