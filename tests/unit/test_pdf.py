from datetime import datetime, timezone

from interview_session.models import Item, Session
from services.report import aggregate
from session_reports import generate_hiring_report_pdf

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_pdf_renders_report_and_items():
    session = Session(session_id="abc123", candidate_id="c1", role="Backend Engineer – Payments", created_at=NOW, updated_at=NOW)
    session.round("technical").items = [
        Item(item_id="q1", position=0, prompt="Explain CAP", category="System Design", submitted_at=NOW, score=82.0),
        Item(item_id="q2", position=1, prompt="Explain GC", category="Core CS", submitted_at=NOW, skipped=True, score=0.0),
        Item(item_id="q3", position=2, prompt="Explain locks", category="Core CS", pending_answer="Mutexes…"),
    ]
    report = aggregate(
        76,
        68,
        40,
        [],
        {"technical": 0.4, "hr": 0.25, "coding": 0.35},
        category_scores={"technical": {"System Design": 82.0, "Core CS": 0.0}},
        session_id="abc123",
        generated_at=NOW,
    )
    payload = generate_hiring_report_pdf(report, session)
    assert isinstance(payload, bytes)
    assert payload.startswith(b"%PDF")
    assert len(payload) > 1000
