r"""backend\app\api\deps.py

Shared service instances and request dependencies."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from ..core.config import get_settings, split_csv
from ..services.auth_service import AuthService, SessionUser
from ..services.groups import GroupCatalog
from ..services.store import DataStore
from ..services.sufficiency_service import SufficiencyService

LOGGER = logging.getLogger(__name__)


@dataclass
class AppState:
    catalog: GroupCatalog
    store: DataStore
    auth: AuthService
    sufficiency: SufficiencyService


def build_state(catalog: Optional[GroupCatalog] = None) -> AppState:
    settings = get_settings()
    catalog = catalog or GroupCatalog.from_config()
    return AppState(
        catalog=catalog,
        store=DataStore(part_rank=catalog.part_rank),
        auth=AuthService(split_csv(settings.admin_usernames), split_csv(settings.user_usernames)),
        sufficiency=SufficiencyService(catalog),
    )


_state: Optional[AppState] = None
_state_lock = threading.Lock()


def get_state() -> AppState:
    global _state
    if _state is None:
        with _state_lock:
            if _state is None:
                _state = build_state()
    return _state


def reset_state(state: Optional[AppState] = None) -> AppState:
    """Replace the process-wide state (used by tests and reloads)."""

    global _state
    with _state_lock:
        _state = state or build_state()
        return _state


def error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def require_user(request: Request, state: AppState = Depends(get_state)) -> SessionUser:
    session = state.auth.get_session(bearer_token(request))
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_payload("unauthorized", "Authentication required"),
        )
    request.state.username = session.username
    return session


def require_admin(user: SessionUser = Depends(require_user)) -> SessionUser:
    if user.role != "admin":
        LOGGER.info("Admin access denied for %s", user.username)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=error_payload("forbidden", "You need admin privileges to perform this action"),
        )
    return user
