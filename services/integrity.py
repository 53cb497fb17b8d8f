"""Append-only integrity signal log."""
from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional, get_args

from interview_session.models import IntegritySignal, RoundKind, SignalType
from observability.logger import log_event
from storage.signals import insert_integrity_signal, list_integrity_signals

logger = logging.getLogger(__name__)

_KNOWN_TYPES = set(get_args(SignalType))


def normalise_signal_type(signal_type: str) -> str:
    value = (signal_type or "").strip().lower().replace("-", "_")
    return value if value in _KNOWN_TYPES else "other"


def record_signal(
    session_id: str,
    signal_type: str,
    *,
    item_id: Optional[str] = None,
    round_kind: Optional[RoundKind] = None,
    detail: str = "",
    timestamp: Optional[dt.datetime] = None,
) -> IntegritySignal:
    """Append one signal; unknown types are stored as ``other``."""

    kind = normalise_signal_type(signal_type)
    if kind != signal_type:
        detail = detail or f"reported as {signal_type!r}"
    ts = timestamp or dt.datetime.now(dt.timezone.utc)
    signal_id = insert_integrity_signal(
        ts,
        session_id=session_id,
        signal_type=kind,
        item_id=item_id,
        round_kind=round_kind,
        detail=detail,
    )
    log_event("integrity_signal", session_id, signal=kind, item_id=item_id, round=round_kind)
    return IntegritySignal(
        signal_id=signal_id,
        session_id=session_id,
        item_id=item_id,
        round_kind=round_kind,
        signal_type=kind,
        detail=detail,
        timestamp=ts,
    )


def list_signals(session_id: str) -> List[IntegritySignal]:
    return list_integrity_signals(session_id)


__all__ = ["normalise_signal_type", "record_signal", "list_signals"]
