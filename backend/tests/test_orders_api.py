r"""backend/tests/test_orders_api.py"""

from __future__ import annotations

import io
import sys
from pathlib import Path

import pandas as pd
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.api.deps import reset_state  # noqa: E402
from backend.app.core.config import get_settings  # noqa: E402
from backend.app.main import app  # noqa: E402


EDI_EXPORT = (
    "LK25010001,PP4166-4681P004,2025/05/01,30,Upper Frame\n"
    "LK25010002,PP4166-4681P003,2025/04/01,20,Upper Frame\n"
    "LK25010003,PP4166-4726P003,2025/01/15,5,Top Plate\n"
).encode("utf-8")


@pytest.fixture()
def client() -> TestClient:
    reset_state()
    return TestClient(app)


def _headers(client: TestClient, username: str = "admin", password: str = "x"):
    token = client.post("/api/v1/login", json={"username": username, "password": password}).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def _import(client: TestClient, headers, payload: bytes = EDI_EXPORT):
    return client.post(
        "/api/v1/import-edi",
        files={"ediFile": ("orders.csv", payload, "text/csv")},
        headers=headers,
    )


def test_import_then_list_in_display_order(client: TestClient) -> None:
    headers = _headers(client)

    response = _import(client, headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["imported"] == 3
    assert payload["debug"]["valid_orders_found"] == 3

    orders = client.get("/api/v1/edi-data", headers=headers).json()
    assert [order["drawing_number"] for order in orders] == [
        "PP4166-4681P003",
        "PP4166-4681P004",
        "PP4166-4726P003",
    ]
    assert orders[0]["delivery_date"] == "2025/04/01"
    assert orders[0]["status"] == ""

    again = _import(client, headers).json()
    assert again["imported"] == 0
    assert again["skipped"] == 3


def test_import_requires_a_file(client: TestClient) -> None:
    response = client.post("/api/v1/import-edi", headers=_headers(client))

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "no_file"


def test_import_rejects_oversized_upload(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "max_upload_bytes", 16)

    response = _import(client, _headers(client))

    assert response.status_code == 413
    assert response.json()["detail"]["error"] == "file_too_large"


def test_status_update(client: TestClient) -> None:
    headers = _headers(client)
    _import(client, headers)
    order_id = client.get("/api/v1/edi-data", headers=headers).json()[0]["id"]

    response = client.put(f"/api/v1/edi-data/{order_id}", json={"status": "OK"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["order"]["status"] == "OK"
    missing = client.put("/api/v1/edi-data/9999", json={"status": "OK"}, headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"] == "order_not_found"


def test_csv_export(client: TestClient) -> None:
    headers = _headers(client)
    _import(client, headers)

    response = client.get("/api/v1/export/csv", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert ".csv" in response.headers["content-disposition"]
    assert response.content.startswith(b"\xef\xbb\xbf")
    frame = pd.read_csv(io.BytesIO(response.content), encoding="utf-8-sig")
    assert list(frame["Order Number"]) == ["LK25010002", "LK25010001", "LK25010003"]
    assert list(frame["Quantity"]) == [20, 30, 5]


def test_json_export(client: TestClient) -> None:
    headers = _headers(client, "user5313", "1111")
    admin = _headers(client)
    _import(client, admin)

    response = client.get("/api/v1/export/json", headers=headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["export_info"]["exported_by"] == "user5313"
    assert payload["export_info"]["total_records"] == 3
    assert "EDI_Orders_" in response.headers["content-disposition"]
