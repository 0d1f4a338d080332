r"""frontend\utils\api.py"""

import os
from typing import Any, Optional

import requests
import streamlit as st

API_URL = os.getenv("API_URL", "http://localhost:8000/api/v1")


def get_api_token() -> str:
    """Return the session token from session state or the environment."""

    return (st.session_state.get("api_token") or os.getenv("API_TOKEN", "")).strip()


def get_headers(token: Optional[str] = None) -> dict:
    """Return default headers for API requests.

    If a session token is present in Streamlit's session state or the
    ``API_TOKEN`` environment variable, include it as a bearer token in the
    ``Authorization`` header.

    Parameters
    ----------
    token:
        Optional explicit token to use. When ``None`` (the default), the token
        is looked up via :func:`get_api_token` so callers can decide whether the
        token should influence cache keys.
    """

    resolved_token = token.strip() if isinstance(token, str) else get_api_token()
    return {"Authorization": f"Bearer {resolved_token}"} if resolved_token else {}


def is_admin() -> bool:
    return st.session_state.get("role") == "admin"


def error_detail(exc: requests.RequestException) -> str:
    """Extract the ``{"error", "message"}`` detail from a failed API call."""

    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)
    try:
        detail: Any = response.json().get("detail")
    except ValueError:
        return response.text or str(exc)
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("error") or str(detail)
    return str(detail or exc)


def require_login() -> None:
    """Stop rendering the page until the user has signed in."""

    if not get_api_token():
        st.warning("Please sign in from the home page first.")
        st.stop()


def api_get(path: str, **params: Any) -> Any:
    response = requests.get(f"{API_URL}{path}", params=params or None, headers=get_headers(), timeout=30)
    response.raise_for_status()
    return response.json()


def api_send(method: str, path: str, **kwargs: Any) -> Any:
    response = requests.request(method, f"{API_URL}{path}", headers=get_headers(), timeout=60, **kwargs)
    response.raise_for_status()
    return response.json()
