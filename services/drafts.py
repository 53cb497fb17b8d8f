"""Debounced server-side cache for in-progress answers."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from storage.drafts import delete_draft, load_draft, upsert_draft

logger = logging.getLogger(__name__)

DraftKey = Tuple[str, str]


class DraftBuffer:
    """Keeps the latest text per item and writes it once typing settles.

    Every ``stage`` call restarts the item's timer. Drafts are a convenience cache;
    a lost draft never affects grading.
    """

    def __init__(
        self,
        debounce_s: float = 2.0,
        writer: Callable[[str, str, str], None] = upsert_draft,
        reader: Callable[[str, str], Optional[str]] = load_draft,
        deleter: Callable[[str, str], None] = delete_draft,
    ) -> None:
        self.debounce_s = debounce_s
        self._writer = writer
        self._reader = reader
        self._deleter = deleter
        self._pending: Dict[DraftKey, str] = {}
        self._timers: Dict[DraftKey, threading.Timer] = {}
        self._lock = threading.Lock()

    def stage(self, session_id: str, item_id: str, text: str) -> None:
        key = (session_id, item_id)
        with self._lock:
            self._pending[key] = text
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(self.debounce_s, self._write, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    def _write(self, key: DraftKey) -> None:
        with self._lock:
            text = self._pending.pop(key, None)
            self._timers.pop(key, None)
        if text is None:
            return
        try:
            self._writer(key[0], key[1], text)
        except Exception:  # noqa: BLE001
            logger.exception("draft write failed for %s/%s", key[0], key[1])

    def flush(self, session_id: Optional[str] = None) -> None:
        """Write pending drafts now, optionally only for one session."""

        with self._lock:
            keys = [key for key in self._pending if session_id is None or key[0] == session_id]
            for key in keys:
                timer = self._timers.pop(key, None)
                if timer is not None:
                    timer.cancel()
            snapshot = {key: self._pending.pop(key) for key in keys}
        for key, text in snapshot.items():
            self._writer(key[0], key[1], text)

    def get(self, session_id: str, item_id: str) -> Optional[str]:
        with self._lock:
            text = self._pending.get((session_id, item_id))
        if text is not None:
            return text
        return self._reader(session_id, item_id)

    def discard(self, session_id: str, item_id: str) -> None:
        """Drop buffered and stored text once the item has been submitted."""

        key = (session_id, item_id)
        with self._lock:
            self._pending.pop(key, None)
            timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._deleter(session_id, item_id)

    def close(self) -> None:
        self.flush()


__all__ = ["DraftBuffer"]
