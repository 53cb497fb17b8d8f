from datetime import datetime, timedelta, timezone

from interview_session.clock import as_utc, deadline_after, elapsed_seconds, is_expired

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_deadline_after_requires_a_span():
    assert deadline_after(START) is None
    assert deadline_after(START, minutes=5) == START + timedelta(minutes=5)
    assert deadline_after(START, seconds=90) == START + timedelta(seconds=90)


def test_deadline_expires_at_exact_instant():
    deadline = START + timedelta(minutes=5)
    assert not is_expired(deadline, deadline - timedelta(microseconds=1))
    assert is_expired(deadline, deadline)
    assert not is_expired(None, deadline)


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2026, 3, 2, 9, 0)
    assert as_utc(naive) == START
    assert elapsed_seconds(naive, START + timedelta(seconds=30)) == 30.0
