"""API integration tests."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from notum.app import create_app
from notum.core.config import Settings
from notum.core.errors import RemoteError, TransportError


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    settings = Settings(db_path=tmp_path / "api.db", log_json=False)
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def resource(client: TestClient) -> dict:
    resp = client.post(
        "/resources",
        json={"type": "page", "url": "https://a.example/post", "title": "Post", "content": "some words here"},
    )
    assert resp.status_code == 200
    return resp.json()


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_metrics(client: TestClient) -> None:
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "notum_operations_total" in resp.text


def test_resource_flow(client: TestClient, resource: dict) -> None:
    assert resource["metadata"]["domain"] == "a.example"
    assert resource["metadata"]["wordCount"] == 3

    duplicate = client.post(
        "/resources",
        json={"type": "page", "url": "https://b.example", "title": "Other", "content": "some words here"},
    )
    assert duplicate.json()["id"] == resource["id"]

    assert [r["id"] for r in client.get("/resources").json()] == [resource["id"]]
    assert client.get("/resources", params={"type": "pdf"}).json() == []
    assert client.get("/resources/search", params={"q": "WORDS"}).json()[0]["id"] == resource["id"]

    progress = client.patch(f"/resources/{resource['id']}/progress", json={"completionPercentage": 40})
    assert progress.status_code == 200
    assert progress.json()["studyProgress"]["completionPercentage"] == 40

    assert client.get("/resources/missing").status_code == 404
    assert client.patch("/resources/missing/progress", json={}).status_code == 404
    assert client.delete(f"/resources/{resource['id']}").json() == {"deleted": True}
    assert client.delete(f"/resources/{resource['id']}").status_code == 404


def test_highlights_and_flashcards(client: TestClient, resource: dict) -> None:
    position = {"startOffset": 5, "endOffset": 10, "selector": "article p"}
    created = client.post(
        "/highlights",
        json={"resourceId": resource["id"], "url": resource["url"], "text": "words", "context": "some words", "position": position},
    )
    assert created.status_code == 200
    highlight = created.json()
    assert highlight["color"] == "#ffff00"

    missing_parent = client.post(
        "/highlights",
        json={"resourceId": "missing", "url": "u", "text": "t", "position": position},
    )
    assert missing_parent.status_code == 404

    card = client.post("/flashcards/from-highlight", json={"highlightId": highlight["id"], "back": "meaning"}).json()
    assert card["front"] == "words"
    assert [c["id"] for c in client.get("/flashcards/due").json()] == [card["id"]]

    reviewed = client.post(f"/flashcards/{card['id']}/review", json={"correct": False}).json()
    assert reviewed["difficulty"] == 2.5
    assert client.get("/flashcards/due").json() == []
    assert client.post("/flashcards/missing/review", json={"correct": True}).status_code == 404
    assert client.patch(f"/flashcards/{card['id']}", json={"difficulty": 9}).status_code == 400

    assert client.delete(f"/highlights/{highlight['id']}").json() == {"deleted": True}
    assert client.get(f"/flashcards/{card['id']}").status_code == 404


def test_tracks(client: TestClient, resource: dict) -> None:
    templates = client.get("/tracks", params={"templates": True}).json()
    assert len(templates) == 3

    copy = client.post(f"/tracks/{templates[0]['id']}/duplicate", json={"name": "Mine"})
    assert copy.status_code == 200
    track = copy.json()
    assert track["isTemplate"] is False
    assert client.post(f"/tracks/{track['id']}/duplicate", json={"name": "Again"}).status_code == 400

    added = client.post(f"/tracks/{track['id']}/resources", json={"resourceId": resource["id"]}).json()
    assert added["resources"] == [resource["id"]]

    milestone = client.post(f"/tracks/{track['id']}/milestones", json={"name": "Read"}).json()
    assert milestone["order"] == 0
    done = client.post(f"/tracks/{track['id']}/milestones/{milestone['id']}/complete").json()
    assert done["progress"]["completedAt"] is not None
    assert client.post(f"/tracks/{track['id']}/milestones/nope/complete").status_code == 404

    assert [t["id"] for t in client.get("/tracks", params={"templates": False}).json()] == [track["id"]]
    assert client.delete(f"/tracks/{track['id']}").json() == {"deleted": True}


def test_messages_endpoint(client: TestClient) -> None:
    resp = client.post(
        "/messages",
        json={"type": "SAVE_RESOURCE", "data": {"type": "page", "url": "https://m.example", "title": "M"}},
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert "error" in client.post("/messages", json={"type": "UNKNOWN"}).json()


def test_export_and_import(client: TestClient, resource: dict) -> None:
    track = client.post("/tracks", json={"name": "Reading"}).json()
    client.post(f"/tracks/{track['id']}/resources", json={"resourceId": resource["id"]})

    exported = client.post("/export", json={"trackIds": [track["id"]]})
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("application/json")
    bundle = exported.json()
    assert [t["name"] for t in bundle["studyTracks"]] == ["Reading"]

    archive = client.post("/export", json={"trackIds": [track["id"]], "format": "zip"})
    assert "Reading_export.zip" in archive.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(archive.content)) as zipped:
        assert "Reading.md" in zipped.namelist()

    report = client.post("/import", content=exported.content, headers={"Content-Type": "application/json"}).json()
    assert report["resources"]["reused"] == 1
    assert report["tracks"]["imported"] == 1

    zipped_report = client.post("/import", content=archive.content, headers={"Content-Type": "application/zip"})
    assert zipped_report.json()["tracks"]["imported"] == 1

    bad = client.post("/import", content=b"{}", headers={"Content-Type": "application/json"})
    assert bad.status_code == 400


def test_invalid_caller_data_is_a_bad_request(client: TestClient, resource: dict) -> None:
    bad_metadata = client.post(
        "/resources",
        json={"url": "https://x.test", "title": "T", "metadata": {"wordCount": "many"}},
    )
    assert bad_metadata.status_code == 400
    assert any(name in bad_metadata.json()["detail"] for name in ("wordCount", "word_count"))
    assert [r["id"] for r in client.get("/resources").json()] == [resource["id"]]


def test_progress_accepts_last_visited(client: TestClient, resource: dict) -> None:
    resp = client.patch(
        f"/resources/{resource['id']}/progress",
        json={"lastVisited": "2023-05-01T12:00:00+00:00", "timeSpent": 30},
    )
    assert resp.status_code == 200
    assert resp.json()["studyProgress"]["lastVisited"].startswith("2023-05-01T12:00:00")


def test_channel_failures_map_to_gateway_errors(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    notum = client.app.state.notum

    async def failing_archive(track_ids=None):
        raise RemoteError("PROCESS_MARKDOWN", "renderer crashed")

    async def broken_send(message_type, data=None):
        raise TransportError("channel closed")

    monkeypatch.setattr(notum.exporter, "export_archive", failing_archive)
    monkeypatch.setattr(notum.bus, "send", broken_send)

    assert client.post("/export", json={"format": "zip"}).status_code == 502
    assert client.post("/messages", json={"type": "GET_DUE_FLASHCARDS"}).status_code == 503
