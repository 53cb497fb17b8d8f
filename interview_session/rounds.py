"""Lifecycle of a single round: start, submit, deadlines and evaluation sync."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from config.app_config import AppConfig, round_settings
from question_gen.generator import generate_items
from services.scoring import score_round

from .clock import Clock, SystemClock, deadline_after, elapsed_seconds, is_expired
from .errors import DeadlineExceeded, InvalidItem, InvalidTransition
from .models import (
    EvaluationJob,
    EvaluationPayload,
    Item,
    Progress,
    Round,
    RoundKind,
    RoundSnapshot,
    Session,
    SubmitResult,
)
from .progression import ItemProgression

logger = logging.getLogger(__name__)

SKIP_SENTINEL = "[skipped]"

Persist = Callable[[Session], None]
DraftReader = Callable[[str, str], Optional[str]]


class Dispatcher(Protocol):  # What the round needs from the evaluation dispatcher
    def enqueue(self, session_id: str, item_id: str, payload: EvaluationPayload) -> str: ...

    def status(self, session_id: str, item_id: str) -> Optional[EvaluationJob]: ...

    def reap_stale(self, session_id: str) -> int: ...


def is_skip(answer: Optional[str], code: Optional[str] = None) -> bool:
    text = (answer or "").strip()
    if code is not None and code.strip():
        return False
    return not text or text.lower() == SKIP_SENTINEL


def progress_of(round_: Round) -> Progress:
    total = len(round_.items)
    answered = round_.answered_count
    return Progress(
        answered=answered,
        total=total,
        remaining=total - answered,
        percentage=round(answered / total * 100) if total else 0,
        is_complete=round_.status == "completed",
    )


class RoundStateMachine:
    """Drives one round kind for any session.

    Every mutation is persisted through ``persist`` before evaluation jobs are
    enqueued, so a job never refers to an answer the store has not seen.
    """

    def __init__(
        self,
        kind: RoundKind,
        cfg: AppConfig,
        dispatcher: Dispatcher,
        *,
        generator: Callable[..., List[Item]] = generate_items,
        clock: Optional[Clock] = None,
        persist: Optional[Persist] = None,
        draft_reader: Optional[DraftReader] = None,
    ) -> None:
        self.kind = kind
        self.settings = round_settings(cfg, kind)
        self.policy = cfg.scoring
        self._dispatcher = dispatcher
        self._generator = generator
        self._clock = clock or SystemClock()
        self._persist = persist
        self._draft_reader = draft_reader

    def _progression(self, round_: Round) -> ItemProgression:
        return ItemProgression(round_, self.settings.navigation)

    def start(self, session: Session) -> RoundSnapshot:
        round_ = session.round(self.kind)
        if round_.status == "not_started":
            now = self._clock.now()
            round_.items = self._generator(
                self.kind,
                self.settings,
                role=session.role,
                difficulty=session.difficulty,
                context=session.context,
            )
            round_.current_index = 0
            round_.status = "in_progress"
            round_.started_at = now
            round_.deadline_at = deadline_after(now, minutes=self.settings.deadline_minutes)
            if round_.items:
                round_.items[0].presented_at = now
            else:
                self._complete(round_, now)
            self._flush(session, [])
        return self.status(session)

    def submit(
        self,
        session: Session,
        item_id: str,
        answer: Optional[str],
        time_spent: Optional[int],
        *,
        code: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SubmitResult:
        self.enforce_deadlines(session)
        round_ = session.round(self.kind)
        if round_.status == "completed":
            if round_.deadline_exceeded:
                raise DeadlineExceeded(self.kind)
            raise InvalidTransition(f"{self.kind} round is already completed")
        if round_.status != "in_progress":
            raise InvalidTransition(f"{self.kind} round has not started")
        progression = self._progression(round_)
        current = progression.current_item()
        if current is None or current.item_id != item_id:
            raise InvalidItem(item_id, current.item_id if current else None)

        now = self._clock.now()
        skipped = is_skip(answer, code if self.kind == "coding" else None)
        outbox: List[Item] = []
        spent = elapsed_seconds(current.presented_at, now) if time_spent is None else time_spent
        self._record(current, "" if skipped else (answer or ""), max(0, int(spent)), now, outbox, skipped=skipped)
        if self.kind == "coding":
            current.code = code or ""
            current.language = language or current.language
        next_item = progression.advance()
        if next_item is not None:
            next_item.presented_at = now
        else:
            self._complete(round_, now)
        jobs = self._flush(session, outbox)
        return SubmitResult(
            item_id=item_id,
            job_id=jobs.get(item_id, ""),
            next_item=next_item.public_view() if next_item else None,
            progress=progress_of(round_),
            round_status=round_.status,
        )

    def status(self, session: Session) -> RoundSnapshot:
        round_ = session.round(self.kind)
        current = None
        if round_.status == "in_progress":
            item = self._progression(round_).current_item()
            current = item.public_view() if item else None
        return RoundSnapshot(
            kind=self.kind,
            status=round_.status,
            current_index=round_.current_index,
            current_item=current,
            progress=progress_of(round_),
            started_at=round_.started_at,
            completed_at=round_.completed_at,
            deadline_at=round_.deadline_at,
            deadline_exceeded=round_.deadline_exceeded,
            score=round_.score,
            category_scores=dict(round_.category_scores),
        )

    def view_item(self, session: Session, index: int) -> Dict[str, Any]:
        """Public view of the item at ``index`` when the navigation policy allows it."""

        round_ = session.round(self.kind)
        progression = self._progression(round_)
        if not progression.is_viewable(index):
            raise InvalidTransition(f"{self.kind} item {index} is not viewable")
        item = round_.items[index]
        view = item.public_view()
        view["locked"] = progression.is_locked(index)
        if item.answered:
            view["answer"] = item.answer
        return view

    def enforce_deadlines(self, session: Session) -> bool:
        """Apply round and item deadlines as of now; True when state changed."""

        round_ = session.round(self.kind)
        if round_.status != "in_progress":
            return False
        now = self._clock.now()
        if is_expired(round_.deadline_at, now):
            self._force_complete(session, round_, now)
            self._flush(session, [])
            logger.info("%s round of %s sealed by deadline", self.kind, session.session_id)
            return True
        limit = self.settings.item_time_limit_s
        if not limit:
            return False
        progression = self._progression(round_)
        outbox: List[Item] = []
        while not progression.is_exhausted():
            item = progression.current_item()
            item_deadline = deadline_after(item.presented_at or round_.started_at or now, seconds=limit)
            if not is_expired(item_deadline, now):
                break
            self._record(item, "", limit, item_deadline, outbox, skipped=True)
            following = progression.advance()
            if following is not None:
                following.presented_at = item_deadline
        if not outbox:
            return False
        if progression.is_exhausted():
            self._complete(round_, now)
        self._flush(session, outbox)
        return True

    def sync_evaluations(self, session: Session) -> bool:
        """Copy finished job results onto items and re-enqueue orphaned answers."""

        round_ = session.round(self.kind)
        changed = False
        orphans: List[Item] = []
        for item in round_.items:
            if not item.answered or item.evaluated:
                continue
            job = self._dispatcher.status(session.session_id, item.item_id)
            if job is None:
                orphans.append(item)
                continue
            if not job.terminal:
                continue
            item.evaluation_id = job.job_id
            if job.status == "failed" or job.result is None:
                item.score = self.policy.neutral_score
            else:
                item.score = job.result.score
            changed = True
        if changed:
            score_round(round_, self.settings.category_weights, self.settings.default_category_weight)
        if changed or orphans:
            self._flush(session, orphans)
        return changed

    def pending_item_ids(self, session: Session) -> List[str]:
        round_ = session.round(self.kind)
        return [item.item_id for item in round_.items if item.answered and not item.evaluated]

    def _record(self, item: Item, answer: str, time_spent: int, at: datetime, outbox: List[Item], *, skipped: bool) -> None:
        item.answer = answer
        item.skipped = skipped
        item.time_spent = time_spent
        item.submitted_at = at
        item.pending_answer = None
        outbox.append(item)

    def _complete(self, round_: Round, now: datetime, *, deadline: bool = False) -> None:
        round_.status = "completed"
        round_.completed_at = now
        round_.deadline_exceeded = deadline
        score_round(round_, self.settings.category_weights, self.settings.default_category_weight)

    def _force_complete(self, session: Session, round_: Round, now: datetime) -> None:
        current = self._progression(round_).current_item()
        if current is not None and not current.answered and self._draft_reader is not None:
            current.pending_answer = self._draft_reader(session.session_id, current.item_id)
        self._complete(round_, now, deadline=True)

    def _flush(self, session: Session, outbox: List[Item]) -> Dict[str, str]:
        if self._persist is not None:
            self._persist(session)
        jobs: Dict[str, str] = {}
        for item in outbox:
            payload = EvaluationPayload.from_item(self.kind, item)
            jobs[item.item_id] = self._dispatcher.enqueue(session.session_id, item.item_id, payload)
        return jobs


__all__ = ["SKIP_SENTINEL", "Dispatcher", "is_skip", "progress_of", "RoundStateMachine"]
