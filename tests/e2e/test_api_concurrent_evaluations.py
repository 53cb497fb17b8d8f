import pytest
from fastapi.testclient import TestClient

from api.client import InterviewApiError, InterviewClient
from api_server import create_app


def test_next_answer_accepted_while_previous_evaluation_pending(orchestrator, queue):
    api = InterviewClient(http=TestClient(create_app(orchestrator)))
    session_id = api.start("CAND-3", "ML Engineer")["session_id"]
    api.start_round(session_id, "technical")

    first = api.submit(session_id, "technical", "q1", "Bias-variance trade-off.", time_spent=30)
    second = api.submit(session_id, "technical", "q2", "Gradient descent with momentum.", time_spent=30)
    assert first["job_id"] != second["job_id"]
    assert second["next_item"]["item_id"] == "q3"
    assert api.evaluation(session_id, "q1")["evaluated"] is False

    # Resolve q2 before q1.
    queue.run_all(reverse=True)
    assert api.evaluation(session_id, "q2")["evaluated"] is True
    assert api.evaluation(session_id, "q1")["evaluated"] is True

    status = api.resume(session_id)
    assert status["round"]["current_index"] == 2
    assert status["current_item"]["item_id"] == "q3"
    assert status["pending_evaluations"] == []


def test_duplicate_submit_is_rejected_without_new_job(orchestrator, queue):
    api = InterviewClient(http=TestClient(create_app(orchestrator)))
    session_id = api.start("CAND-4", "SRE")["session_id"]
    api.start_round(session_id, "technical")
    api.submit(session_id, "technical", "q1", "Use SLOs.", time_spent=5)
    with pytest.raises(InterviewApiError) as excinfo:
        api.submit(session_id, "technical", "q1", "Use SLOs.", time_spent=5)
    assert excinfo.value.status_code == 409
    assert len(queue.calls) == 1
