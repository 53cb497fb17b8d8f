import pytest
from fastapi.testclient import TestClient

from api.client import InterviewApiError, InterviewClient
from api_server import create_app


def test_coding_deadline_scores_only_answered_problem(orchestrator, queue, clock):
    api = InterviewClient(http=TestClient(create_app(orchestrator)))
    session_id = api.start("CAND-5", "Backend Engineer")["session_id"]
    api.start_round(session_id, "technical")
    for item_id in ("q1", "q2", "q3"):
        api.submit(session_id, "technical", item_id, "Answer.", time_spent=20)
    for item_id in ("hr1", "hr2"):
        api.submit(session_id, "hr", item_id, "Answer.", time_spent=20)

    coding = api.resume(session_id)["round"]
    assert coding["kind"] == "coding"
    assert coding["deadline_at"] is not None
    assert coding["current_item"]["sample_tests"]
    assert all(not case["hidden"] for case in coding["current_item"]["sample_tests"])

    api.submit(session_id, "coding", "cp1", "", time_spent=240, code="function twoSum() { return [0, 1]; }")
    clock.advance(minutes=5, seconds=1)

    view = api.resume(session_id)
    assert view["status"] == "completed"
    sealed = view["round"]
    assert sealed["status"] == "completed"
    assert sealed["deadline_exceeded"] is True
    assert sealed["progress"]["answered"] == 1

    with pytest.raises(InterviewApiError) as excinfo:
        api.submit(session_id, "coding", "cp2", "", code="too late")
    assert excinfo.value.status_code == 409
    assert excinfo.value.detail == "deadline_exceeded"

    queue.run_all()
    report = api.report(session_id)
    assert report["round_scores"]["coding"] == 80.0
    assert report["category_scores"]["coding"] == {"DSA": 80.0}
    assert report["provisional"] is False
