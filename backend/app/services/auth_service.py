r"""backend\app\services\auth_service.py

Session login for the dashboard.

Admins may log in with any password; regular users need a four digit
password.  Sessions are opaque bearer tokens kept in memory, and every login,
failed login and logout is appended to a bounded history.
"""

from __future__ import annotations

import logging
import re
import secrets
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional

LOGGER = logging.getLogger(__name__)

HISTORY_LIMIT = 100
_USER_PASSWORD_RE = re.compile(r"^\d{4}$")


class LoginError(Exception):
    """Raised when credentials are rejected."""


@dataclass(frozen=True)
class SessionUser:
    token: str
    username: str
    role: str
    login_time: str

    @property
    def can_edit(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class LoginEvent:
    username: str
    role: Optional[str]
    action: str
    timestamp: str
    session_id: Optional[str] = None
    user_agent: str = "Unknown"
    ip: str = "Unknown"
    reason: Optional[str] = None


class AuthService:
    def __init__(self, admin_usernames: Iterable[str], user_usernames: Iterable[str]) -> None:
        self.admin_usernames = set(admin_usernames)
        self.user_usernames = set(user_usernames)
        self._sessions: Dict[str, SessionUser] = {}
        self._history: Deque[LoginEvent] = deque(maxlen=HISTORY_LIMIT)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    def _record(self, event: LoginEvent) -> None:
        with self._lock:
            self._history.append(event)

    def _failure_reason(self, username: str, password: Optional[str]) -> Optional[str]:
        if not username:
            return "No username"
        if username in self.admin_usernames:
            return None
        if username not in self.user_usernames:
            return "Invalid username"
        if not password or not _USER_PASSWORD_RE.match(password):
            return "Invalid password format"
        return None

    def login(
        self,
        username: str,
        password: Optional[str],
        *,
        user_agent: str = "Unknown",
        ip: str = "Unknown",
    ) -> SessionUser:
        """Validate credentials and open a session.

        Raises ``LoginError`` with a user facing message when rejected.
        """

        username = (username or "").strip()
        now = datetime.now(timezone.utc).isoformat()
        reason = self._failure_reason(username, password)
        if reason is not None:
            LOGGER.info("Login failed for %s: %s", username or "<empty>", reason)
            self._record(
                LoginEvent(
                    username=username or "Unknown",
                    role=None,
                    action="LOGIN_FAILED",
                    timestamp=now,
                    user_agent=user_agent,
                    ip=ip,
                    reason=reason,
                )
            )
            if reason == "Invalid password format":
                raise LoginError("Password must be exactly 4 digits for user accounts")
            raise LoginError("Invalid credentials.")

        role = "admin" if username in self.admin_usernames else "user"
        session = SessionUser(
            token=secrets.token_urlsafe(32),
            username=username,
            role=role,
            login_time=now,
        )
        with self._lock:
            self._sessions[session.token] = session
        self._record(
            LoginEvent(
                username=username,
                role=role,
                action="LOGIN",
                timestamp=now,
                session_id=session.token[:8],
                user_agent=user_agent,
                ip=ip,
            )
        )
        LOGGER.info("Login successful for %s (role=%s)", username, role)
        return session

    def logout(self, token: str, *, user_agent: str = "Unknown", ip: str = "Unknown") -> Optional[SessionUser]:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is None:
            return None
        self._record(
            LoginEvent(
                username=session.username,
                role=session.role,
                action="LOGOUT",
                timestamp=datetime.now(timezone.utc).isoformat(),
                session_id=token[:8],
                user_agent=user_agent,
                ip=ip,
            )
        )
        LOGGER.info("Logout for %s", session.username)
        return session

    def get_session(self, token: Optional[str]) -> Optional[SessionUser]:
        if not token:
            return None
        with self._lock:
            return self._sessions.get(token)

    # ------------------------------------------------------------------
    def history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Return the most recent ``limit`` events, newest first."""

        with self._lock:
            events = list(self._history)
        if limit > 0:
            events = events[-limit:]
        result = []
        for event in reversed(events):
            payload = asdict(event)
            if payload["ip"] == "::1":
                payload["ip"] = "localhost"
            result.append(payload)
        return result

    def history_size(self) -> int:
        with self._lock:
            return len(self._history)
