r"""backend/tests/test_auth_api.py"""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.api import deps  # noqa: E402
from backend.app.api.deps import reset_state  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.app.services.auth_service import HISTORY_LIMIT, AuthService, LoginError  # noqa: E402


@pytest.fixture()
def client() -> TestClient:
    reset_state()
    return TestClient(app)


def _login(client: TestClient, username: str, password: str = "1234"):
    return client.post("/api/v1/login", json={"username": username, "password": password})


def test_admin_logs_in_with_any_password(client: TestClient) -> None:
    response = _login(client, "admin", "whatever")

    assert response.status_code == 200
    payload = response.json()
    assert payload["role"] == "admin"
    assert payload["permissions"] == {"can_edit": True, "can_view": True}
    assert payload["token"]


def test_user_needs_four_digit_password(client: TestClient) -> None:
    rejected = _login(client, "user5313", "12a4")
    assert rejected.status_code == 401
    assert rejected.json()["detail"]["message"] == "Password must be exactly 4 digits for user accounts"

    accepted = _login(client, "user5313", "0420")
    assert accepted.status_code == 200
    assert accepted.json()["role"] == "user"
    assert accepted.json()["permissions"]["can_edit"] is False


def test_unknown_user_is_rejected(client: TestClient) -> None:
    response = _login(client, "mallory")

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "invalid_credentials"


def test_protected_routes_need_a_session(client: TestClient) -> None:
    assert client.get("/api/v1/edi-data").status_code == 401
    bogus = client.get("/api/v1/edi-data", headers={"Authorization": "Bearer nope"})
    assert bogus.status_code == 401
    assert bogus.json()["detail"]["error"] == "unauthorized"


def test_users_cannot_edit(client: TestClient) -> None:
    token = _login(client, "user5314").json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/v1/edi-data", headers=headers).status_code == 200
    denied = client.put("/api/v1/edi-data/1", json={"status": "OK"}, headers=headers)
    assert denied.status_code == 403
    assert denied.json()["detail"]["error"] == "forbidden"
    assert client.get("/api/v1/login-history", headers=headers).status_code == 403


def test_logout_ends_session(client: TestClient) -> None:
    token = _login(client, "admin").json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    info = client.get("/api/v1/user-info", headers=headers)
    assert info.status_code == 200
    assert info.json()["username"] == "admin"

    assert client.post("/api/v1/logout", headers=headers).status_code == 200
    assert client.get("/api/v1/user-info", headers=headers).status_code == 401


def test_login_history_newest_first(client: TestClient) -> None:
    _login(client, "user5313", "bad")
    token = _login(client, "admin").json()["token"]

    response = client.get("/api/v1/login-history", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_entries"] == 2
    latest, earlier = payload["history"]
    assert (latest["username"], latest["action"]) == ("admin", "LOGIN")
    assert (earlier["action"], earlier["reason"]) == ("LOGIN_FAILED", "Invalid password format")


def test_history_is_bounded_and_localhost_is_named() -> None:
    service = AuthService(["admin"], ["user5313"])
    for _ in range(HISTORY_LIMIT + 5):
        with pytest.raises(LoginError):
            service.login("ghost", "1234", ip="10.0.0.1")
    service.login("admin", "", ip="::1")

    assert service.history_size() == HISTORY_LIMIT
    history = service.history()
    assert len(history) == 50
    assert history[0]["ip"] == "localhost"
    assert history[1]["reason"] == "Invalid username"


def test_shared_state_is_built_once_under_concurrency(monkeypatch) -> None:
    built = []

    def slow_build_state():
        time.sleep(0.05)
        state = object()
        built.append(state)
        return state

    monkeypatch.setattr(deps, "_state", None)
    monkeypatch.setattr(deps, "build_state", slow_build_state)
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(deps.get_state())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert len(seen) == 8
    assert all(state is built[0] for state in seen)
