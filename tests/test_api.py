import json

import pytest
from fastapi.testclient import TestClient

from jpreview.main import app, get_review_service
from jpreview.services import ReviewService
from jpreview.storage import InMemoryKeyValueStore, KeyValueEventLog, KeyValuePendingQuiz

from conftest import CATALOG_DOCUMENT, kst_ms, make_event


@pytest.fixture
def client(tmp_path, monkeypatch):
    path = tmp_path / "daily_plan.json"
    path.write_text(json.dumps(CATALOG_DOCUMENT, ensure_ascii=False), encoding="utf-8")
    monkeypatch.setenv("JPREVIEW_CATALOG_PATH", str(path))
    monkeypatch.delenv("JPREVIEW_STORE_PATH", raising=False)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_record_view_event(client):
    response = client.post("/v1/events", json={"item_id": "D1W1", "item_type": "word"})
    assert response.status_code == 200
    body = response.json()
    assert body["item_id"] == "D1W1"
    assert body["outcome"] == "view"
    assert isinstance(body["timestamp"], int)


def test_review_endpoints_use_service(client, clock):
    store = InMemoryKeyValueStore()
    log = KeyValueEventLog(store)
    log.append(make_event("D1W2", "wrong", kst_ms(2025, 1, 10)))
    log.append(make_event("D1W1", "view", kst_ms(2025, 1, 10)))
    service = ReviewService(log, KeyValuePendingQuiz(store), clock=clock)
    app.dependency_overrides[get_review_service] = lambda: service

    assert client.get("/v1/review/yesterday").json() == {"window": "yesterday", "item_ids": ["D1W2", "D1W1"]}
    assert client.get("/v1/review/last7", params={"max_items": 1}).json()["item_ids"] == ["D1W2"]
    assert client.get("/v1/review/last7", params={"max_items": -1}).status_code == 422


def test_empty_handoff_is_rejected(client):
    response = client.post("/v1/quiz/start", json={"item_ids": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "nothing to review"


def test_session_without_handoff(client):
    response = client.post("/v1/quiz/sessions")
    assert response.status_code == 400
    assert response.json()["detail"] == "no quiz items"


def test_full_quiz_over_http(client):
    assert client.post("/v1/quiz/start", json={"item_ids": ["D2W1", "D1P"]}).status_code == 200

    created = client.post("/v1/quiz/sessions").json()
    session_id = created["session_id"]
    assert created["state"] == "presenting"
    assert created["question"]["item_id"] == "D1P"
    assert len(created["question"]["choices"]) == 4

    answered = client.post(f"/v1/quiz/sessions/{session_id}/answer", json={"choice": "~하고 싶다"}).json()
    assert answered["outcome"] == "correct"
    assert answered["next"]["question"]["item_id"] == "D2W1"

    choices = answered["next"]["question"]["choices"]
    wrong = next(choice for choice in choices if choice != "책")
    answered = client.post(f"/v1/quiz/sessions/{session_id}/answer", json={"choice": wrong}).json()
    assert answered["outcome"] == "wrong"
    assert answered["correct_answer"] == "책"
    assert answered["next"]["state"] == "complete"
    assert answered["next"]["message"] == "quiz complete"

    again = client.post(f"/v1/quiz/sessions/{session_id}/answer", json={"choice": "책"})
    assert again.status_code == 404
    assert client.get(f"/v1/quiz/sessions/{session_id}").status_code == 404


def test_invalid_choice_and_unknown_session(client):
    client.post("/v1/quiz/start", json={"item_ids": ["D1W1"]})
    session_id = client.post("/v1/quiz/sessions").json()["session_id"]
    assert client.post(f"/v1/quiz/sessions/{session_id}/answer", json={"choice": "???"}).status_code == 400
    assert client.get("/v1/quiz/sessions/missing").status_code == 404
    assert client.post("/v1/quiz/sessions/missing/answer", json={"choice": "x"}).status_code == 404
