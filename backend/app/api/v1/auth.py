r"""backend\app\api\v1\auth.py

Login, logout and session inspection endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ...models import schemas
from ...services.auth_service import LoginError, SessionUser
from ..deps import AppState, bearer_token, error_payload, get_state, require_admin, require_user

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _client_details(request: Request) -> Dict[str, str]:
    return {
        "user_agent": request.headers.get("user-agent") or "Unknown",
        "ip": request.client.host if request.client else "Unknown",
    }


def _permissions(user: SessionUser) -> schemas.Permissions:
    return schemas.Permissions(can_edit=user.can_edit, can_view=True)


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    body: schemas.LoginRequest,
    request: Request,
    state: AppState = Depends(get_state),
) -> schemas.LoginResponse:
    """Open a session and return its bearer token."""

    try:
        session = state.auth.login(body.username, body.password, **_client_details(request))
    except LoginError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_payload("invalid_credentials", str(exc)),
        ) from exc

    request.state.username = session.username
    return schemas.LoginResponse(
        token=session.token,
        username=session.username,
        role=session.role,
        permissions=_permissions(session),
    )


@router.post("/logout")
def logout(
    request: Request,
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    state.auth.logout(bearer_token(request) or "", **_client_details(request))
    return {"success": True}


@router.get("/user-info", response_model=schemas.UserInfo)
def user_info(user: SessionUser = Depends(require_user)) -> schemas.UserInfo:
    return schemas.UserInfo(
        username=user.username,
        role=user.role,
        login_time=user.login_time,
        permissions=_permissions(user),
    )


@router.get("/login-history")
def login_history(
    limit: int = Query(50, ge=1, le=100),
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    """Return the most recent login events, newest first."""

    LOGGER.info("Login history requested by %s", user.username)
    return {
        "success": True,
        "history": state.auth.history(limit),
        "total_entries": state.auth.history_size(),
    }
