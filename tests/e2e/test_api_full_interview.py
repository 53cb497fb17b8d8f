from fastapi.testclient import TestClient

from api.client import InterviewClient
from api_server import create_app


def _client(orchestrator) -> InterviewClient:
    return InterviewClient(http=TestClient(create_app(orchestrator)))


def test_technical_round_polls_then_advances_to_hr(orchestrator, queue):
    api = _client(orchestrator)
    session_id = api.start("CAND-1", "Backend Engineer")["session_id"]
    first = api.start_round(session_id, "technical")["current_item"]
    assert first["item_id"] == "q1"

    submitted = api.submit(session_id, "technical", "q1", "An index is a B-tree over column values.", time_spent=45)
    assert submitted["next_item"]["item_id"] == "q2"
    assert api.evaluation(session_id, "q1")["evaluated"] is False

    queue.run_all()
    graded = api.evaluation(session_id, "q1")
    assert graded["evaluated"] is True
    assert graded["evaluation"]["score"] == 70.0

    api.submit(session_id, "technical", "q2", "Quicksort partitions around a pivot.", time_spent=50)
    last = api.submit(session_id, "technical", "q3", "Shard by tenant and cache hot reads.", time_spent=80)
    assert last["next_item"] is None
    assert last["round_status"] == "completed"

    view = api.resume(session_id)
    assert view["status"] == "hr_in_progress"
    assert view["current_round"] == "hr"
    assert view["current_item"]["item_id"] == "hr1"


def test_full_interview_produces_final_report_and_pdf(orchestrator, queue):
    api = _client(orchestrator)
    session_id = api.start("CAND-2", "Full Stack Developer", context="React, Node")["session_id"]
    api.start_round(session_id, "technical")
    for item_id in ("q1", "q2", "q3"):
        api.submit(session_id, "technical", item_id, "A complete answer.", time_spent=30)
    for item_id in ("hr1", "hr2"):
        api.submit(session_id, "hr", item_id, "Situation, task, action, result.", time_spent=60)
    for item_id in ("cp1", "cp2"):
        api.submit(session_id, "coding", item_id, "", time_spent=600, code="const f = () => 1;", language="javascript")
    api.record_signal(session_id, "tab_switch")

    view = api.resume(session_id)
    assert view["status"] == "completed"
    assert view["next_action"] == "view_report"
    assert len(view["pending_evaluations"]) == 7

    queue.run_all()
    report = api.report(session_id)
    assert report["provisional"] is False
    assert report["round_scores"] == {"technical": 70.0, "hr": 70.0, "coding": 80.0}
    assert report["integrity_penalty"] == 2.0
    assert report["overall_score"] == 71.5
    assert report["decision"] == "Hire"
    assert report["probability"] == 80

    pdf = api.report_pdf(session_id)
    assert pdf.startswith(b"%PDF")
