"""HTTP client for the interview session API with bounded evaluation polling."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

PREFIX = "/api/interview-sessions"


class InterviewApiError(RuntimeError):  # Non-2xx response from the API
    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"interview API returned {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class InterviewClient:
    """Thin wrapper over the REST surface.

    ``http`` may be an ``httpx.Client`` or a FastAPI ``TestClient``; both expose
    the same request API.
    """

    def __init__(self, base_url: str = "http://localhost:8000", *, http: Optional[httpx.Client] = None, timeout_s: float = 10.0) -> None:
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout_s)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._http.request(method, f"{PREFIX}{path}", **kwargs)
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            raise InterviewApiError(response.status_code, detail)
        if response.headers.get("content-type", "").startswith("application/pdf"):
            return response.content
        return response.json()

    def start(self, candidate_id: str, role: str, *, difficulty: str = "medium", context: str = "") -> Dict[str, Any]:
        body = {"candidate_id": candidate_id, "role": role, "difficulty": difficulty, "context": context}
        return self._request("POST", "/start", json=body)

    def resume(self, session_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/{session_id}")

    def start_round(self, session_id: str, kind: str) -> Dict[str, Any]:
        return self._request("POST", f"/{session_id}/rounds/{kind}/start")

    def submit(
        self,
        session_id: str,
        kind: str,
        item_id: str,
        answer: Optional[str],
        *,
        time_spent: Optional[int] = None,
        code: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {"item_id": item_id, "answer": answer, "time_spent": time_spent, "code": code, "language": language}
        return self._request("POST", f"/{session_id}/rounds/{kind}/submit", json=body)

    def view_item(self, session_id: str, kind: str, index: int) -> Dict[str, Any]:
        return self._request("GET", f"/{session_id}/rounds/{kind}/items/{index}")

    def evaluation(self, session_id: str, item_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/{session_id}/items/{item_id}/evaluation")

    def save_draft(self, session_id: str, item_id: str, text: str) -> Dict[str, Any]:
        return self._request("PUT", f"/{session_id}/items/{item_id}/draft", json={"text": text})

    def record_signal(self, session_id: str, signal_type: str, *, item_id: Optional[str] = None, detail: str = "") -> Dict[str, Any]:
        body = {"signal_type": signal_type, "item_id": item_id, "detail": detail}
        return self._request("POST", f"/{session_id}/integrity", json=body)

    def report(self, session_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/{session_id}/report")

    def report_pdf(self, session_id: str) -> bytes:
        return self._request("GET", f"/{session_id}/report.pdf")

    def wait_for_evaluation(
        self,
        session_id: str,
        item_id: str,
        *,
        interval_s: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Dict[str, Any]:
        """Poll until the item is graded or the attempt budget runs out.

        A budget that runs out is not an error: the result carries
        ``timed_out=True`` and the evaluation keeps running server-side.
        """

        interval = settings.POLL_INTERVAL_S if interval_s is None else interval_s
        attempts = settings.POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        last: Dict[str, Any] = {}
        for attempt in range(attempts):
            last = self.evaluation(session_id, item_id)
            if last.get("evaluated"):
                return last
            if attempt + 1 < attempts:
                sleep(interval)
        logger.info("evaluation of %s/%s still %s after %d polls", session_id, item_id, last.get("status"), attempts)
        return {"evaluated": False, "timed_out": True, "status": last.get("status", "unknown")}

    def close(self) -> None:
        self._http.close()


__all__ = ["InterviewApiError", "InterviewClient"]
