from __future__ import annotations

from fastapi.testclient import TestClient

from bulk_uploader.api.dependencies import get_settings, get_upload_orchestrator
from bulk_uploader.main import app


def _reset_dependencies() -> None:
    get_upload_orchestrator.cache_clear()
    get_settings.cache_clear()


def test_healthz() -> None:
    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_submit_batch_then_cancel_it() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        submit_response = client.post("/batches", json={"files": ["a.txt", "b.txt"]})
        assert submit_response.status_code == 202
        submitted = submit_response.json()
        batch_id = submitted["batchId"]
        assert [item["name"] for item in submitted["items"]] == ["a.txt", "b.txt"]
        assert submitted["aggregate"]["total"] == 2
        assert submitted["aggregate"]["isComplete"] is False

        cancel_response = client.post(f"/batches/{batch_id}/cancel")
        assert cancel_response.status_code == 200
        assert cancel_response.json() == {"affected": 2}

        batch_response = client.get(f"/batches/{batch_id}")

    assert batch_response.status_code == 200
    body = batch_response.json()
    assert body["aggregate"]["cancelled"] == 2
    assert body["aggregate"]["isComplete"] is True
    assert {item["state"] for item in body["items"]} == {"CANCELLED"}


def test_list_batches_reports_uploader_id() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        client.post("/batches", json={"files": ["a.txt"]})
        response = client.get("/batches")

    assert response.status_code == 200
    body = response.json()
    assert body["uploaderId"] == "uploader-local"
    assert len(body["batches"]) == 1
    assert body["batches"][0]["items"][0]["name"] == "a.txt"


def test_item_routes_cancel_and_ignore_retry_of_non_failed_item() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        submitted = client.post("/batches", json={"files": ["a.txt"]}).json()
        item_id = submitted["items"][0]["itemId"]

        cancel_response = client.post(f"/items/{item_id}/cancel")
        retry_response = client.post(f"/items/{item_id}/retry")
        item_response = client.get(f"/items/{item_id}")

    assert cancel_response.status_code == 200
    assert cancel_response.json()["state"] == "CANCELLED"
    assert retry_response.status_code == 200
    assert retry_response.json()["state"] == "CANCELLED"
    assert item_response.json()["itemId"] == item_id


def test_clear_batch_removes_it() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        batch_id = client.post("/batches", json={"files": ["a.txt", "b.txt"]}).json()["batchId"]

        clear_response = client.delete(f"/batches/{batch_id}")
        missing_response = client.get(f"/batches/{batch_id}")
        all_response = client.get("/uploads")

    assert clear_response.json() == {"affected": 2}
    assert missing_response.status_code == 404
    assert all_response.json()["items"] == []


def test_global_cancel_and_retry_routes() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        client.post("/batches", json={"files": ["a.txt", "b.txt", "c.txt", "d.txt"]})

        cancel_response = client.post("/uploads/cancel")
        retry_response = client.post("/uploads/retry-failed")
        all_response = client.get("/uploads")

    assert cancel_response.json() == {"affected": 4}
    assert retry_response.json() == {"affected": 0}
    assert all_response.json()["aggregate"]["cancelled"] == 4


def test_unknown_ids_return_404() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        batch_response = client.get("/batches/batch_missing")
        cancel_response = client.post("/batches/batch_missing/cancel")
        item_response = client.get("/items/upload_missing")
        retry_response = client.post("/items/upload_missing/retry")

    assert batch_response.status_code == 404
    assert cancel_response.status_code == 404
    assert item_response.status_code == 404
    assert retry_response.status_code == 404


def test_submit_without_files_returns_422() -> None:
    _reset_dependencies()

    with TestClient(app) as client:
        response = client.post("/batches", json={"files": []})

    assert response.status_code == 422
