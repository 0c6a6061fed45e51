"""HTTP client for the blog admin API.

Holds the token from login/registration and attaches it to every request.
A 401 clears the session (callers send the user to the login page); a 403
is reported inline without touching the session.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from blogadmin.client.guard import LOGIN_ROUTE
from blogadmin.core.permissions import Role, parse_role, permission_matrix

logger = logging.getLogger("blogadmin.client")


class ClientError(Exception):
    """Non-success response from the API."""

    def __init__(self, status_code: int, detail: str, code: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.code = code
        super().__init__(f"{status_code}: {detail}")


class AuthenticationRequired(ClientError):
    """401: the session is gone; send the user to the login route."""
    redirect_to = LOGIN_ROUTE


class ForbiddenAction(ClientError):
    """403: show the message inline; the session stays."""


class PermissionTableDrift(Exception):
    """The server's permission table differs from the one this client ships."""


@dataclass
class ClientSession:
    token: str
    user: Dict[str, Any] = field(default_factory=dict)

    def _claims(self) -> Dict[str, Any]:
        try:
            return jwt.get_unverified_claims(self.token)
        except JOSEError:
            return {}

    @property
    def role(self) -> Optional[Role]:
        return parse_role(self.user.get("role") or self._claims().get("role"))

    @property
    def user_id(self) -> Optional[int]:
        raw = self.user.get("id", self._claims().get("sub"))
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    @property
    def expires_at(self) -> Optional[datetime]:
        exp = self._claims().get("exp")
        if not isinstance(exp, (int, float)):
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)

    def is_authenticated(self, now: Optional[datetime] = None) -> bool:
        expires_at = self.expires_at
        if not self.token or expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) <= expires_at

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"token": self.token, "user": self.user}))

    @classmethod
    def load(cls, path: Path) -> Optional["ClientSession"]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            return cls(token=data["token"], user=data.get("user") or {})
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring unreadable session file %s", path)
            return None


class BlogAdminClient:
    """Thin wrapper over the REST API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http: Optional[httpx.Client] = None,
        session: Optional[ClientSession] = None,
        timeout: float = 30,
    ):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.session = session

    def _headers(self) -> Dict[str, str]:
        if self.session and self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self.http.request(method, f"/api{path}", headers=self._headers(), **kwargs)
        if resp.status_code < 400:
            return resp.json()
        try:
            body = resp.json()
        except ValueError:
            body = {"detail": resp.text}
        detail = body.get("detail", resp.reason_phrase)
        code = body.get("code")
        if resp.status_code == 401:
            self.session = None
            raise AuthenticationRequired(401, detail, code)
        if resp.status_code == 403:
            raise ForbiddenAction(403, detail, code)
        raise ClientError(resp.status_code, str(detail), code)

    def _start_session(self, data: Dict[str, Any]) -> ClientSession:
        self.session = ClientSession(token=data["token"], user=data.get("user") or {})
        return self.session

    # ---- Auth ----
    def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> ClientSession:
        payload = {"name": name, "email": email, "password": password}
        if role is not None:
            payload["role"] = role
        return self._start_session(self._request("POST", "/register", json=payload))

    def login(self, email: str, password: str) -> ClientSession:
        return self._start_session(
            self._request("POST", "/login", json={"email": email, "password": password})
        )

    def logout(self) -> None:
        try:
            self._request("POST", "/logout")
        finally:
            self.session = None

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/me")

    def permissions(self) -> Dict[str, Any]:
        return self._request("GET", "/permissions")

    def check_permission_table(self) -> None:
        """Raise PermissionTableDrift if the server's table differs from ours."""
        remote = self.permissions()["permissions"]
        local = permission_matrix()
        if {k: sorted(v) for k, v in remote.items()} != {k: sorted(v) for k, v in local.items()}:
            raise PermissionTableDrift(f"server={remote} client={local}")

    # ---- Blogs ----
    def list_blogs(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/blogs")

    def get_blog(self, blog_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/blogs/{blog_id}")

    def create_blog(
        self,
        title: str,
        content: str,
        image: Optional[Tuple[str, bytes, str]] = None,
    ) -> Dict[str, Any]:
        """``image`` is ``(filename, data, content_type)``."""
        files = {"image": image} if image else None
        return self._request(
            "POST", "/blogs", data={"title": title, "content": content}, files=files,
        )

    def update_blog(
        self,
        blog_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        image: Optional[Tuple[str, bytes, str]] = None,
    ) -> Dict[str, Any]:
        data = {k: v for k, v in (("title", title), ("content", content)) if v is not None}
        files = {"image": image} if image else None
        return self._request("PUT", f"/blogs/{blog_id}", data=data, files=files)

    def delete_blog(self, blog_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/blogs/{blog_id}")

    # ---- Users ----
    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users")

    def update_user_role(self, user_id: int, role: str) -> Dict[str, Any]:
        return self._request("PUT", f"/users/{user_id}/role", json={"role": role})

    def close(self) -> None:
        self.http.close()
