from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api_server import create_app

BASE = "/api/interview-sessions"


@pytest.fixture
def client(orchestrator) -> TestClient:
    return TestClient(create_app(orchestrator))


def _start(client: TestClient) -> str:
    resp = client.post(f"{BASE}/start", json={"candidate_id": "CAND-1", "role": "Data Engineer", "difficulty": "hard"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "not_started"
    assert body["next_round"] == "technical"
    return body["session_id"]


def test_start_and_resume(client):
    session_id = _start(client)
    view = client.get(f"{BASE}/{session_id}").json()
    assert view["status"] == "not_started"
    assert view["next_action"] == "start_round"


def test_round_start_submit_and_status(client, queue):
    session_id = _start(client)
    snapshot = client.post(f"{BASE}/{session_id}/rounds/technical/start").json()
    assert snapshot["current_item"]["item_id"] == "q1"
    assert snapshot["current_item"]["difficulty"] == "hard"

    resp = client.post(
        f"{BASE}/{session_id}/rounds/technical/submit",
        json={"item_id": "q1", "answer": "Normalisation removes redundancy.", "time_spent": 42},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["next_item"]["item_id"] == "q2"
    assert body["progress"] == {"answered": 1, "total": 3, "remaining": 2, "percentage": 33, "is_complete": False}

    pending = client.get(f"{BASE}/{session_id}/items/q1/evaluation").json()
    assert pending == {"evaluated": False, "status": "queued", "job_id": body["job_id"], "evaluation": None}
    queue.run_all()
    done = client.get(f"{BASE}/{session_id}/items/q1/evaluation").json()
    assert done["evaluated"] is True
    assert done["evaluation"]["score"] == 70.0

    status = client.get(f"{BASE}/{session_id}/rounds/technical").json()
    assert status["progress"]["answered"] == 1
    assert status["category_scores"] == {"Core CS": 70.0}


def test_error_mapping(client):
    assert client.get(f"{BASE}/missing").status_code == 404
    session_id = _start(client)
    early = client.post(f"{BASE}/{session_id}/rounds/coding/start")
    assert early.status_code == 409
    client.post(f"{BASE}/{session_id}/rounds/technical/start")
    wrong = client.post(f"{BASE}/{session_id}/rounds/technical/submit", json={"item_id": "q3", "answer": "x"})
    assert wrong.status_code == 409
    assert "q1" in wrong.json()["detail"]
    assert client.post(f"{BASE}/{session_id}/rounds/puzzles/start").status_code == 422
    assert client.get(f"{BASE}/{session_id}/report").status_code == 409


def test_deadline_exceeded_detail(client, clock):
    session_id = _start(client)
    client.post(f"{BASE}/{session_id}/rounds/technical/start")
    for kind, ids in (("technical", ["q1", "q2", "q3"]), ("hr", ["hr1", "hr2"])):
        for item_id in ids:
            resp = client.post(f"{BASE}/{session_id}/rounds/{kind}/submit", json={"item_id": item_id, "answer": "ok"})
            assert resp.status_code == 200
    clock.advance(minutes=6)
    resp = client.post(
        f"{BASE}/{session_id}/rounds/coding/submit",
        json={"item_id": "cp1", "answer": "", "code": "return []", "language": "python"},
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == "deadline_exceeded"


def test_view_item_follows_round_navigation(client):
    session_id = _start(client)
    client.post(f"{BASE}/{session_id}/rounds/technical/start")
    client.post(f"{BASE}/{session_id}/rounds/technical/submit", json={"item_id": "q1", "answer": "Indexes trade writes for reads."})
    past = client.get(f"{BASE}/{session_id}/rounds/technical/items/0")
    assert past.status_code == 200
    assert past.json()["locked"] is True
    assert past.json()["answer"] == "Indexes trade writes for reads."
    assert client.get(f"{BASE}/{session_id}/rounds/technical/items/2").status_code == 409

    for item_id in ("q2", "q3"):
        client.post(f"{BASE}/{session_id}/rounds/technical/submit", json={"item_id": item_id, "answer": "ok"})
    for item_id in ("hr1", "hr2"):
        client.post(f"{BASE}/{session_id}/rounds/hr/submit", json={"item_id": item_id, "answer": "ok"})
    client.post(
        f"{BASE}/{session_id}/rounds/coding/submit",
        json={"item_id": "cp1", "answer": "", "code": "return []", "language": "python"},
    )
    assert client.get(f"{BASE}/{session_id}/rounds/coding/items/1").json()["locked"] is False
    assert client.get(f"{BASE}/{session_id}/rounds/coding/items/0").status_code == 409


def test_drafts_and_integrity(client):
    session_id = _start(client)
    client.post(f"{BASE}/{session_id}/rounds/technical/start")
    put = client.put(f"{BASE}/{session_id}/items/q1/draft", json={"text": "draft answer"})
    assert put.status_code == 200
    assert client.get(f"{BASE}/{session_id}/items/q1/draft").json()["text"] == "draft answer"
    assert client.put(f"{BASE}/{session_id}/items/q2/draft", json={"text": "nope"}).status_code == 409

    signal = client.post(f"{BASE}/{session_id}/integrity", json={"signal_type": "tab_switch", "item_id": "q1"})
    assert signal.status_code == 201
    assert signal.json()["signal_type"] == "tab_switch"
    assert client.post(f"{BASE}/missing/integrity", json={"signal_type": "paste"}).status_code == 404


def test_abandon(client):
    session_id = _start(client)
    resp = client.post(f"{BASE}/{session_id}/abandon")
    assert resp.json()["status"] == "abandoned"
    assert client.post(f"{BASE}/{session_id}/rounds/technical/start").status_code == 409


def test_routes_unavailable_without_orchestrator():
    app = create_app()
    client = TestClient(app)
    assert client.get(f"{BASE}/anything").status_code == 503
