"""Session state machine across the technical, HR and coding rounds."""
from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from config.app_config import AppConfig, validate_app_config
from config.settings import settings
from observability.logger import log_event
from question_gen.generator import generate_items
from services import integrity
from services.drafts import DraftBuffer
from services.report import aggregate
from storage.reports import load_report, save_report
from storage.sessions import insert_session, load_session, save_session

from .clock import Clock, SystemClock
from .errors import InvalidItem, InvalidTransition, SessionNotFound
from .models import (
    ROUND_ORDER,
    CurrentView,
    Difficulty,
    HiringReport,
    IntegritySignal,
    Item,
    NextAction,
    RoundKind,
    RoundSnapshot,
    Session,
    SubmitResult,
)
from .rounds import Dispatcher, RoundStateMachine

TERMINAL_SESSION_STATUSES = ("completed", "abandoned")


def next_round(kind: Optional[RoundKind]) -> Optional[RoundKind]:
    if kind is None:
        return ROUND_ORDER[0]
    index = ROUND_ORDER.index(kind)
    return ROUND_ORDER[index + 1] if index + 1 < len(ROUND_ORDER) else None


class SessionOrchestrator:
    """Owns session status and every cross-round transition.

    Each public call loads the session under a per-session lock, brings it up to
    date (deadlines, finished evaluations, pending transitions), applies the
    request and saves with an optimistic version check.
    """

    def __init__(
        self,
        cfg: AppConfig,
        dispatcher: Dispatcher,
        *,
        clock: Optional[Clock] = None,
        generator: Callable[..., List[Item]] = generate_items,
        drafts: Optional[DraftBuffer] = None,
    ) -> None:
        self.cfg = validate_app_config(cfg)
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.drafts = drafts or DraftBuffer(settings.DRAFT_DEBOUNCE_S)
        self.rounds: Dict[RoundKind, RoundStateMachine] = {
            kind: RoundStateMachine(
                kind,
                self.cfg,
                dispatcher,
                generator=generator,
                clock=self.clock,
                persist=self._persist,
                draft_reader=self.drafts.get,
            )
            for kind in ROUND_ORDER
        }
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # -- plumbing -----------------------------------------------------------------

    def _lock_for(self, session_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks.setdefault(session_id, threading.RLock())

    def _load(self, session_id: str) -> Session:
        session = load_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @contextmanager
    def _session(self, session_id: str) -> Iterator[Session]:
        session: Optional[Session] = None
        try:
            with self._lock_for(session_id):
                session = self._load(session_id)
                yield session
        finally:
            if session is None or session.status in TERMINAL_SESSION_STATUSES:
                with self._locks_guard:
                    self._locks.pop(session_id, None)

    def _persist(self, session: Session) -> None:
        session.updated_at = self.clock.now()
        save_session(session)

    # -- operations ---------------------------------------------------------------

    def create_session(
        self,
        candidate_id: str,
        role: str,
        *,
        difficulty: Difficulty = "medium",
        context: str = "",
    ) -> Session:
        now = self.clock.now()
        session = Session(
            session_id=uuid.uuid4().hex,
            candidate_id=candidate_id,
            role=role,
            difficulty=difficulty,
            context=context,
            created_at=now,
            updated_at=now,
        )
        insert_session(session)
        log_event("session_created", session.session_id, candidate_id=candidate_id, role=role)
        return session

    def start_round(self, session_id: str, kind: RoundKind) -> RoundSnapshot:
        with self._session(session_id) as session:
            self._refresh(session)
            self._start_round(session, kind)
            self._settle(session)
            return self.rounds[kind].status(session)

    def submit(
        self,
        session_id: str,
        kind: RoundKind,
        item_id: str,
        answer: Optional[str],
        time_spent: Optional[int] = None,
        *,
        code: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SubmitResult:
        with self._session(session_id) as session:
            self._refresh(session)
            if session.status == "abandoned":
                raise InvalidTransition("session was abandoned")
            result = self.rounds[kind].submit(session, item_id, answer, time_spent, code=code, language=language)
            self.drafts.discard(session_id, item_id)
            log_event(
                "item_submitted",
                session_id,
                round=kind,
                item_id=item_id,
                job_id=result.job_id,
                status=result.round_status,
            )
            self._settle(session)
            return result

    def get_session(self, session_id: str) -> Session:
        return self._load(session_id)

    def resume(self, session_id: str) -> CurrentView:
        with self._session(session_id) as session:
            self._refresh(session)
            return self._view(session)

    def round_status(self, session_id: str, kind: RoundKind) -> RoundSnapshot:
        with self._session(session_id) as session:
            self._refresh(session)
            return self.rounds[kind].status(session)

    def view_item(self, session_id: str, kind: RoundKind, index: int) -> Dict[str, Any]:
        with self._session(session_id) as session:
            self._refresh(session)
            return self.rounds[kind].view_item(session, index)

    def evaluation_status(self, session_id: str, item_id: str) -> Dict[str, Any]:
        """Non-blocking read of the item's evaluation job."""

        self._load(session_id)
        self.dispatcher.reap_stale(session_id)
        job = self.dispatcher.status(session_id, item_id)
        if job is None:
            return {"evaluated": False, "status": "not_submitted"}
        if not job.terminal or job.result is None:
            return {"evaluated": False, "status": job.status, "job_id": job.job_id}
        return {
            "evaluated": True,
            "status": job.status,
            "job_id": job.job_id,
            "evaluation": job.result.model_dump(mode="json"),
        }

    def record_signal(
        self,
        session_id: str,
        signal_type: str,
        *,
        item_id: Optional[str] = None,
        detail: str = "",
    ) -> IntegritySignal:
        session = self._load(session_id)
        return integrity.record_signal(
            session_id,
            signal_type,
            item_id=item_id,
            round_kind=session.current_round,
            detail=detail,
            timestamp=self.clock.now(),
        )

    def get_report(self, session_id: str) -> HiringReport:
        """Stored report; a provisional one is recomputed until evaluations settle."""

        with self._session(session_id) as session:
            self._refresh(session)
            if session.status != "completed":
                raise InvalidTransition("report is available once all rounds are completed")
            report = load_report(session_id)
            if report is None or report.provisional:
                report = self._build_report(session)
                save_report(report)
                if not report.provisional:
                    log_event("report_finalised", session_id, decision=report.decision, score=report.overall_score)
            return report

    def abandon(self, session_id: str) -> CurrentView:
        with self._session(session_id) as session:
            if session.status == "completed":
                raise InvalidTransition("completed sessions cannot be abandoned")
            if session.status != "abandoned":
                session.status = "abandoned"
                self._persist(session)
                log_event("session_abandoned", session_id, round=session.current_round)
            return self._view(session)

    def save_draft(self, session_id: str, item_id: str, text: str) -> None:
        session = self._load(session_id)
        current = self._current_item(session)
        if current is None or current.item_id != item_id:
            raise InvalidItem(item_id, current.item_id if current else None)
        self.drafts.stage(session_id, item_id, text)

    def get_draft(self, session_id: str, item_id: str) -> Optional[str]:
        self._load(session_id)
        return self.drafts.get(session_id, item_id)

    def advance_past_round(self, session: Session, round_kind: RoundKind) -> None:
        """Record a completed round and unlock, start or finish what follows."""

        round_ = session.round(round_kind)
        if round_.status != "completed":
            raise InvalidTransition(f"{round_kind} round is not completed")
        if session.status == f"{round_kind}_in_progress":
            session.status = f"{round_kind}_completed"  # type: ignore[assignment]
            self._persist(session)
            log_event("round_completed", session.session_id, round=round_kind, score=round_.score)
        if session.status != f"{round_kind}_completed":
            return
        following = next_round(round_kind)
        if following is None:
            self._finalise(session)
        elif self.cfg.auto_advance:
            self._start_round(session, following)

    # -- internals ----------------------------------------------------------------

    def _start_round(self, session: Session, kind: RoundKind) -> None:
        if session.status in TERMINAL_SESSION_STATUSES:
            raise InvalidTransition(f"session is {session.status}")
        round_ = session.round(kind)
        if round_.status != "not_started":
            return
        index = ROUND_ORDER.index(kind)
        if index > 0:
            previous = ROUND_ORDER[index - 1]
            if session.round(previous).status != "completed":
                raise InvalidTransition(f"{kind} round cannot start before the {previous} round completes")
        session.status = f"{kind}_in_progress"  # type: ignore[assignment]
        session.current_round = kind
        self.rounds[kind].start(session)
        log_event("round_started", session.session_id, round=kind)

    def _refresh(self, session: Session) -> None:
        self.dispatcher.reap_stale(session.session_id)
        for kind in ROUND_ORDER:
            machine = self.rounds[kind]
            if session.status != "abandoned":
                machine.enforce_deadlines(session)
            if session.round(kind).status != "not_started":
                machine.sync_evaluations(session)
        self._settle(session)

    def _settle(self, session: Session) -> None:
        """Finish any transition a completed round left half done."""

        while session.status not in TERMINAL_SESSION_STATUSES and session.current_round is not None:
            kind = session.current_round
            before = (session.status, session.current_round)
            if session.round(kind).status != "completed":
                return
            self.advance_past_round(session, kind)
            if (session.status, session.current_round) == before:
                return

    def _pending(self, session: Session) -> List[str]:
        pending: List[str] = []
        for kind in ROUND_ORDER:
            pending.extend(self.rounds[kind].pending_item_ids(session))
        return pending

    def _build_report(self, session: Session) -> HiringReport:
        rounds = session.rounds
        return aggregate(
            rounds["technical"].score,
            rounds["hr"].score,
            rounds["coding"].score,
            integrity.list_signals(session.session_id),
            self.cfg.scoring.weights,
            policy=self.cfg.scoring,
            category_scores={kind: dict(rounds[kind].category_scores) for kind in ROUND_ORDER},
            provisional=bool(self._pending(session)),
            session_id=session.session_id,
            generated_at=self.clock.now(),
        )

    def _finalise(self, session: Session) -> None:
        report = self._build_report(session)
        save_report(report)
        session.status = "completed"
        session.completed_at = self.clock.now()
        self._persist(session)
        log_event(
            "session_completed",
            session.session_id,
            decision=report.decision,
            score=report.overall_score,
            status="provisional" if report.provisional else "final",
        )

    def _current_item(self, session: Session) -> Optional[Item]:
        if session.current_round is None:
            return None
        round_ = session.round(session.current_round)
        if round_.status != "in_progress" or round_.current_index >= len(round_.items):
            return None
        return round_.items[round_.current_index]

    def _next_action(self, session: Session) -> NextAction:
        if session.status == "abandoned":
            return "none"
        if session.status == "completed":
            return "view_report"
        if session.status == "not_started" or session.status.endswith("_completed"):
            return "start_round"
        return "answer" if self._current_item(session) is not None else "none"

    def _view(self, session: Session) -> CurrentView:
        snapshot = self.rounds[session.current_round].status(session) if session.current_round else None
        pending = self._pending(session)
        upcoming = None
        if session.status == "not_started" or session.status.endswith("_completed"):
            upcoming = next_round(session.current_round)
        return CurrentView(
            session_id=session.session_id,
            status=session.status,
            current_round=session.current_round,
            next_round=upcoming,
            round=snapshot,
            current_item=snapshot.current_item if snapshot else None,
            pending_evaluations=pending,
            next_action=self._next_action(session),
            report_ready=session.status == "completed",
            poll={"interval_s": settings.POLL_INTERVAL_S, "max_attempts": float(settings.POLL_MAX_ATTEMPTS)}
            if pending
            else {},
        )


__all__ = ["TERMINAL_SESSION_STATUSES", "next_round", "SessionOrchestrator"]
