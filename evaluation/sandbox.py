"""HTTP client for a Judge0-compatible code execution sandbox."""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from interview_session.errors import EvaluationError
from interview_session.models import SandboxCaseResult

logger = logging.getLogger(__name__)

LANGUAGE_IDS: Dict[str, int] = {
    "javascript": 63,
    "python": 71,
    "java": 62,
    "cpp": 54,
    "c": 50,
}
ACCEPTED = 3
STATUS_DESCRIPTIONS: Dict[int, str] = {
    1: "In Queue",
    2: "Processing",
    3: "Accepted",
    4: "Wrong Answer",
    5: "Time Limit Exceeded",
    6: "Compilation Error",
    7: "Runtime Error (SIGSEGV)",
    8: "Runtime Error (SIGXFSZ)",
    9: "Runtime Error (SIGFPE)",
    10: "Runtime Error (SIGABRT)",
    11: "Runtime Error (NZEC)",
    12: "Runtime Error (Other)",
    13: "Internal Error",
    14: "Exec Format Error",
}


def language_id(language: str) -> int:
    return LANGUAGE_IDS.get((language or "").lower(), LANGUAGE_IDS["javascript"])


class Judge0Sandbox:
    """Runs code against test cases one submission at a time.

    Instances are callable with the ``providers.code_sandbox`` signature. Transport
    failures raise :class:`EvaluationError` so the dispatcher can retry the job.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout_s: float = 30.0,
        pause_s: float = 0.5,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.pause_s = pause_s
        self._client = client
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Any) -> Optional["Judge0Sandbox"]:
        if not settings.SANDBOX_URL:
            return None
        return cls(
            settings.SANDBOX_URL,
            api_key=os.getenv(settings.SANDBOX_API_KEY_ENV),
            timeout_s=settings.SANDBOX_TIMEOUT_S,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Auth-Token"] = self.api_key
        return headers

    def execute(self, code: str, language: str, stdin: str = "", expected_output: str = "") -> Dict[str, Any]:
        body = {
            "language_id": language_id(language),
            "source_code": code,
            "stdin": stdin,
            "expected_output": expected_output,
        }
        url = f"{self.base_url}/submissions?base64_encoded=false&wait=true"
        try:
            if self._client is not None:
                response = self._client.post(url, json=body, headers=self._headers(), timeout=self.timeout_s)
            else:
                with httpx.Client(timeout=self.timeout_s) as client:
                    response = client.post(url, json=body, headers=self._headers())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("sandbox execution failed: %s", exc)
            raise EvaluationError(f"sandbox unavailable: {exc}") from exc
        status_id = int((data.get("status") or {}).get("id", 0))
        return {
            "stdout": data.get("stdout") or "",
            "status_id": status_id,
            "status": STATUS_DESCRIPTIONS.get(status_id, "Unknown"),
            "time": float(data.get("time") or 0.0),
            "memory": float(data.get("memory") or 0.0),
            "error": data.get("stderr") or data.get("compile_output") or None,
        }

    def run_tests(self, code: str, language: str, test_cases: List[Dict[str, Any]]) -> List[SandboxCaseResult]:
        results: List[SandboxCaseResult] = []
        for index, case in enumerate(test_cases):
            if index:
                self._sleep(self.pause_s)
            expected = str(case.get("output", "")).strip()
            outcome = self.execute(code, language, str(case.get("input", "")), expected)
            actual = outcome["stdout"].strip()
            results.append(
                SandboxCaseResult(
                    name=f"Test {index + 1}",
                    passed=outcome["status_id"] == ACCEPTED and actual == expected,
                    input=str(case.get("input", "")),
                    expected_output=expected,
                    actual_output=actual,
                    execution_time=outcome["time"],
                    memory=outcome["memory"],
                    error=outcome["error"],
                    status=outcome["status"],
                )
            )
        logger.info("sandbox ran %d cases, %d passed", len(results), sum(r.passed for r in results))
        return results

    def __call__(self, *, code: str, language: str, test_cases: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {"results": [result.model_dump() for result in self.run_tests(code, language, test_cases)]}


__all__ = ["LANGUAGE_IDS", "STATUS_DESCRIPTIONS", "language_id", "Judge0Sandbox"]
