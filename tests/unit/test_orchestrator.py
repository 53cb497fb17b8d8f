import sqlite3

import pytest

from config.app_config import RoundSettings
from config.registry import ANSWER_EVALUATOR_KEY, bind_model
from evaluation import worker as worker_module
from interview_session.errors import ConfigurationError, DeadlineExceeded, InvalidItem, InvalidTransition, SessionNotFound
from interview_session.orchestrator import SessionOrchestrator
from question_gen.generator import generate_items
from storage.jobs import mark_evaluating
from storage.sqlite import get_conn


def _answer_round(orchestrator, session_id, kind, answer="A thoughtful, structured answer."):
    while True:
        snapshot = orchestrator.round_status(session_id, kind)
        if snapshot.status != "in_progress":
            return snapshot
        item_id = snapshot.current_item["item_id"]
        if kind == "coding":
            orchestrator.submit(session_id, kind, item_id, "", 120, code="function solve() { return 1; }", language="javascript")
        else:
            orchestrator.submit(session_id, kind, item_id, answer, 30)


@pytest.fixture
def session_id(orchestrator):
    return orchestrator.create_session("cand-1", "Backend Engineer", context="5 years of Python").session_id


def test_new_session_waits_for_technical_round(orchestrator, session_id):
    view = orchestrator.resume(session_id)
    assert view.status == "not_started"
    assert view.next_action == "start_round"
    assert view.next_round == "technical"
    assert view.current_item is None


def test_start_round_presents_first_item_without_answer_key(orchestrator, session_id):
    snapshot = orchestrator.start_round(session_id, "technical")
    assert snapshot.status == "in_progress"
    assert snapshot.current_item["item_id"] == "q1"
    assert "expected_answer" not in snapshot.current_item
    assert snapshot.progress.total == 3
    again = orchestrator.start_round(session_id, "technical")
    assert again.current_item == snapshot.current_item
    assert orchestrator.get_session(session_id).status == "technical_in_progress"


def test_round_cannot_start_before_predecessor(orchestrator, session_id):
    with pytest.raises(InvalidTransition):
        orchestrator.start_round(session_id, "hr")
    session = orchestrator.get_session(session_id)
    assert session.status == "not_started"
    assert session.round("hr").status == "not_started"


def test_submit_advances_pointer_by_exactly_one(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    for expected in range(3):
        before = orchestrator.get_session(session_id).round("technical").current_index
        assert before == expected
        item_id = orchestrator.round_status(session_id, "technical").current_item["item_id"]
        orchestrator.submit(session_id, "technical", item_id, "answer", 10)
        after = orchestrator.get_session(session_id).round("technical").current_index
        assert after == before + 1


def test_only_current_item_accepts_answers(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    with pytest.raises(InvalidItem):
        orchestrator.submit(session_id, "technical", "q2", "jumping ahead", 5)
    assert orchestrator.get_session(session_id).round("technical").current_index == 0


def test_completed_round_rejects_every_submit(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    _answer_round(orchestrator, session_id, "technical")
    for item_id in ("q1", "q2", "q3"):
        with pytest.raises(InvalidTransition):
            orchestrator.submit(session_id, "technical", item_id, "late", 1)


def test_resume_twice_returns_identical_views(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    first = orchestrator.resume(session_id)
    second = orchestrator.resume(session_id)
    assert first == second
    assert first.pending_evaluations == ["q1"]
    assert first.poll["interval_s"] > 0


def test_auto_advance_starts_next_round(orchestrator, session_id, queue):
    orchestrator.start_round(session_id, "technical")
    snapshot = _answer_round(orchestrator, session_id, "technical")
    assert snapshot.status == "completed"
    view = orchestrator.resume(session_id)
    assert view.status == "hr_in_progress"
    assert view.current_item["item_id"] == "hr1"
    queue.run_all()
    technical = orchestrator.round_status(session_id, "technical")
    assert technical.score == 70.0
    assert technical.category_scores == {"Core CS": 70.0, "DSA": 70.0, "System Design": 70.0}


def test_manual_advance_waits_for_start(app_config, dispatcher, clock, drafts):
    orchestrator = SessionOrchestrator(app_config.model_copy(update={"auto_advance": False}), dispatcher, clock=clock, drafts=drafts)
    session_id = orchestrator.create_session("cand-2", "SRE").session_id
    orchestrator.start_round(session_id, "technical")
    _answer_round(orchestrator, session_id, "technical")
    view = orchestrator.resume(session_id)
    assert view.status == "technical_completed"
    assert view.next_action == "start_round"
    assert view.next_round == "hr"
    orchestrator.start_round(session_id, "hr")
    assert orchestrator.resume(session_id).status == "hr_in_progress"


def test_skip_still_produces_an_evaluation(orchestrator, session_id, queue):
    orchestrator.start_round(session_id, "technical")
    result = orchestrator.submit(session_id, "technical", "q1", "  ", 3)
    assert result.job_id
    assert result.next_item["item_id"] == "q2"
    item = orchestrator.get_session(session_id).round("technical").item("q1")
    assert item.skipped is True
    queue.run_all()
    status = orchestrator.evaluation_status(session_id, "q1")
    assert status["evaluated"] is True
    assert status["evaluation"]["score"] == 0.0


def test_evaluation_status_is_non_blocking(orchestrator, session_id, queue):
    orchestrator.start_round(session_id, "technical")
    assert orchestrator.evaluation_status(session_id, "q1") == {"evaluated": False, "status": "not_submitted"}
    orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    pending = orchestrator.evaluation_status(session_id, "q1")
    assert pending["evaluated"] is False
    assert pending["status"] == "queued"
    queue.run_all()
    done = orchestrator.evaluation_status(session_id, "q1")
    assert done["evaluated"] is True
    assert done["evaluation"]["score"] == 70.0
    with pytest.raises(SessionNotFound):
        orchestrator.evaluation_status("nope", "q1")


def test_failed_evaluation_applies_neutral_score(orchestrator, session_id, queue):
    def broken(**_):
        raise KeyError("evaluator missing")

    bind_model(ANSWER_EVALUATOR_KEY, broken)
    orchestrator.start_round(session_id, "technical")
    orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    queue.run_all()
    snapshot = orchestrator.round_status(session_id, "technical")
    item = orchestrator.get_session(session_id).round("technical").item("q1")
    assert item.score == 50.0
    assert item.evaluation_id is not None
    assert snapshot.category_scores["Core CS"] == 50.0


def test_item_time_limit_auto_skips(app_config, dispatcher, clock, drafts):
    rounds = dict(app_config.rounds)
    rounds["technical"] = RoundSettings(item_count=3, category_mix=["Core CS"], item_time_limit_s=60)
    orchestrator = SessionOrchestrator(app_config.model_copy(update={"rounds": rounds}), dispatcher, clock=clock, drafts=drafts)
    session_id = orchestrator.create_session("cand-3", "SWE").session_id
    started = clock.now()
    orchestrator.start_round(session_id, "technical")
    clock.advance(seconds=130)
    view = orchestrator.resume(session_id)
    assert view.current_item["item_id"] == "q3"
    technical = orchestrator.get_session(session_id).round("technical")
    assert [item.skipped for item in technical.items[:2]] == [True, True]
    assert technical.items[0].time_spent == 60
    assert (technical.items[2].presented_at - started).total_seconds() == 120
    assert sorted(view.pending_evaluations) == ["q1", "q2"]


def test_round_deadline_seals_round_and_keeps_draft(orchestrator, session_id, clock):
    orchestrator.start_round(session_id, "technical")
    _answer_round(orchestrator, session_id, "technical")
    _answer_round(orchestrator, session_id, "hr")
    assert orchestrator.resume(session_id).status == "coding_in_progress"
    orchestrator.save_draft(session_id, "cp1", "function twoSum(nums, target) {")
    clock.advance(minutes=5, seconds=1)

    view = orchestrator.resume(session_id)
    assert view.status == "completed"
    coding = orchestrator.get_session(session_id).round("coding")
    assert coding.status == "completed"
    assert coding.deadline_exceeded is True
    assert coding.current_index == 0
    assert coding.items[0].pending_answer == "function twoSum(nums, target) {"
    assert not coding.items[0].answered
    with pytest.raises(DeadlineExceeded):
        orchestrator.submit(session_id, "coding", "cp1", "", 1, code="late")


def test_drafts_only_for_current_item_and_cleared_on_submit(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    with pytest.raises(InvalidItem):
        orchestrator.save_draft(session_id, "q2", "ahead")
    orchestrator.save_draft(session_id, "q1", "half an answer")
    assert orchestrator.get_draft(session_id, "q1") == "half an answer"
    orchestrator.submit(session_id, "technical", "q1", "full answer", 40)
    assert orchestrator.get_draft(session_id, "q1") is None


def test_abandoned_session_rejects_submissions(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    view = orchestrator.abandon(session_id)
    assert view.status == "abandoned"
    assert view.next_action == "none"
    with pytest.raises(InvalidTransition):
        orchestrator.submit(session_id, "technical", "q1", "answer", 1)


def test_integrity_signal_tags_current_round(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    signal = orchestrator.record_signal(session_id, "devtools", item_id="q1")
    assert signal.signal_type == "other"
    assert signal.round_kind == "technical"
    with pytest.raises(SessionNotFound):
        orchestrator.record_signal("missing", "paste")


def test_report_requires_completed_session(orchestrator, session_id):
    with pytest.raises(InvalidTransition):
        orchestrator.get_report(session_id)


def test_report_is_provisional_until_evaluations_settle(orchestrator, session_id, queue):
    orchestrator.start_round(session_id, "technical")
    for kind in ("technical", "hr", "coding"):
        _answer_round(orchestrator, session_id, kind)
    orchestrator.record_signal(session_id, "paste", item_id="cp2")
    assert orchestrator.resume(session_id).next_action == "view_report"

    provisional = orchestrator.get_report(session_id)
    assert provisional.provisional is True
    assert provisional.round_scores == {"technical": 0.0, "hr": 0.0, "coding": 0.0}

    queue.run_all()
    final = orchestrator.get_report(session_id)
    assert final.provisional is False
    assert final.round_scores == {"technical": 70.0, "hr": 70.0, "coding": 80.0}
    assert final.raw_score == 73.5
    assert final.integrity_penalty == 5.0
    assert final.overall_score == 68.5
    assert final.decision == "Consider"
    assert orchestrator.get_report(session_id) == final


def test_unknown_session_raises(orchestrator):
    with pytest.raises(SessionNotFound):
        orchestrator.resume("does-not-exist")


def test_orchestrator_rejects_invalid_weights(app_config, dispatcher):
    scoring = app_config.scoring.model_copy(update={"weights": {"technical": 0.5, "hr": 0.5, "coding": 0.5}})
    with pytest.raises(ConfigurationError):
        SessionOrchestrator(app_config.model_copy(update={"scoring": scoring}), dispatcher)


def test_orphaned_answers_are_requeued(orchestrator, session_id, queue):
    orchestrator.start_round(session_id, "technical")
    orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    queue.calls.clear()
    with get_conn() as conn:
        conn.execute("DELETE FROM evaluation_jobs")
    orchestrator.resume(session_id)
    assert len(queue.calls) == 1
    queue.run_all()
    assert orchestrator.evaluation_status(session_id, "q1")["evaluated"] is True


def test_result_saved_after_storage_error_reaches_the_session(orchestrator, session_id, queue, sleeps, monkeypatch):
    real_complete = worker_module.complete_job
    failures = []

    def locked_once(*args, **kwargs):
        if not failures:
            failures.append(args[0])
            raise sqlite3.OperationalError("database is locked")
        return real_complete(*args, **kwargs)

    monkeypatch.setattr(worker_module, "complete_job", locked_once)
    orchestrator.start_round(session_id, "technical")
    orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    queue.run_all()
    assert sleeps == [2.0]
    assert orchestrator.evaluation_status(session_id, "q1")["evaluated"] is True
    assert orchestrator.resume(session_id).pending_evaluations == []


def test_stalled_job_is_resent_on_resume(orchestrator, session_id, queue, clock):
    orchestrator.start_round(session_id, "technical")
    result = orchestrator.submit(session_id, "technical", "q1", "answer", 12)
    mark_evaluating(result.job_id, 1, clock.now())
    queue.calls.clear()
    clock.advance(hours=2)
    assert orchestrator.resume(session_id).pending_evaluations == ["q1"]
    assert queue.calls == [result.job_id]
    queue.run_all()
    assert orchestrator.evaluation_status(session_id, "q1")["evaluated"] is True


def test_answered_items_stay_viewable_but_locked(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    orchestrator.submit(session_id, "technical", "q1", "B-trees keep lookups logarithmic", 20)
    past = orchestrator.view_item(session_id, "technical", 0)
    assert past["item_id"] == "q1"
    assert past["locked"] is True
    assert past["answer"] == "B-trees keep lookups logarithmic"
    assert "expected_answer" not in past
    current = orchestrator.view_item(session_id, "technical", 1)
    assert current["locked"] is False
    assert "answer" not in current
    with pytest.raises(InvalidTransition):
        orchestrator.view_item(session_id, "technical", 2)


def test_current_only_round_hides_previous_items(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    _answer_round(orchestrator, session_id, "technical")
    _answer_round(orchestrator, session_id, "hr")
    orchestrator.submit(session_id, "coding", "cp1", "", 60, code="function solve() {}", language="javascript")
    assert orchestrator.view_item(session_id, "coding", 1)["item_id"] == "cp2"
    with pytest.raises(InvalidTransition):
        orchestrator.view_item(session_id, "coding", 0)


def test_session_locks_released_for_finished_or_missing_sessions(orchestrator, session_id):
    orchestrator.start_round(session_id, "technical")
    assert session_id in orchestrator._locks
    orchestrator.abandon(session_id)
    assert session_id not in orchestrator._locks
    orchestrator.resume(session_id)
    assert session_id not in orchestrator._locks
    with pytest.raises(SessionNotFound):
        orchestrator.resume("missing")
    assert "missing" not in orchestrator._locks


def test_empty_round_advances_on_start(app_config, dispatcher, clock, drafts):
    def generator(kind, round_cfg, **kwargs):
        return [] if kind == "technical" else generate_items(kind, round_cfg, **kwargs)

    orchestrator = SessionOrchestrator(app_config, dispatcher, clock=clock, drafts=drafts, generator=generator)
    session_id = orchestrator.create_session("cand-4", "SWE").session_id
    snapshot = orchestrator.start_round(session_id, "technical")
    assert snapshot.status == "completed"
    session = orchestrator.get_session(session_id)
    assert session.status == "hr_in_progress"
    assert session.round("hr").items[0].presented_at == clock.now()


def test_time_spent_measured_when_not_reported(orchestrator, session_id, clock):
    orchestrator.start_round(session_id, "technical")
    clock.advance(seconds=40)
    orchestrator.submit(session_id, "technical", "q1", "answer")
    assert orchestrator.get_session(session_id).round("technical").item("q1").time_spent == 40
