from __future__ import annotations  # Schema-validated JSON calls to configured LLM routes

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config.app_config import LlmRoute

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()


class HttpClient(Protocol):  # Anything with an httpx-compatible post()
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> Any: ...


class LlmGatewayError(RuntimeError):  # Transport, status or validation failure
    pass


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:  # Single user prompt convenience wrapper
    return chat([{"role": "user", "content": task}], schema, cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``messages`` to the route and parse the reply into ``schema``.

    Invalid replies are retried ``cfg.max_retries`` times with a corrective hint.
    Transport and HTTP status errors are raised immediately as
    :class:`LlmGatewayError`; callers decide whether to retry those.
    """

    if cfg.sequential:
        with _route_lock(cfg):
            return _run(messages, schema, cfg, client, options)
    return _run(messages, schema, cfg, client, options)


def _route_lock(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS.setdefault(key, threading.Lock())


def _run(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    cfg: LlmRoute,
    client: Optional[HttpClient],
    options: Optional[Dict[str, Any]],
) -> T:
    conversation = _base_messages(messages, schema, cfg.enforce_json)
    attempts = cfg.max_retries + 1
    url = f"{cfg.base_url}{cfg.endpoint}"
    headers = _headers(cfg)
    last_error: Optional[Exception] = None
    logger.info("LLM request route=%s model=%s attempts=%d preview=%s", cfg.name, cfg.model, attempts, _preview(conversation))
    for attempt in range(attempts):
        outgoing = list(conversation)
        if last_error is not None:
            outgoing.append({"role": "system", "content": _retry_hint(str(last_error), cfg.enforce_json)})
        payload: Dict[str, Any] = {"model": cfg.model, "messages": outgoing}
        if options:
            payload.update(options)
        if cfg.response_format:
            payload["response_format"] = {"type": cfg.response_format}
        data = _post_json(url, payload, headers, cfg.timeout_s, client)
        try:
            parsed = schema.model_validate_json(_strip_code_fences(_extract_content(data)))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("LLM output invalid route=%s attempt=%d: %s", cfg.name, attempt + 1, exc)
            last_error = exc
            continue
        logger.info("LLM request done route=%s attempt=%d", cfg.name, attempt + 1)
        return parsed
    raise LlmGatewayError("LLM output validation failed") from last_error


def _base_messages(messages: Sequence[Dict[str, str]], schema: Type[BaseModel], enforce_json: bool) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    if enforce_json:
        schema_json = json.dumps(schema.model_json_schema(), indent=2)
        out.append({"role": "system", "content": "Reply with a single JSON object matching this schema:\n" + schema_json})
    for message in messages:
        role = str(message.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        out.append({"role": role, "content": str(message.get("content", ""))})
    return out


def _headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Any:
    try:
        if client is not None:
            response = client.post(url, json=payload, headers=headers, timeout=timeout)
        else:
            with httpx.Client(timeout=timeout) as http_client:
                response = http_client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("LLM transport failure: %s", exc)
        raise LlmGatewayError("LLM transport failed") from exc
    if response.status_code >= 400:
        logger.error("LLM error status: %s", response.status_code)
        raise LlmGatewayError(f"LLM returned status {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise LlmGatewayError("LLM payload was not JSON") from exc


def _preview(messages: Sequence[Dict[str, str]]) -> str:
    for message in reversed(messages):
        text = message.get("content", "").strip()
        if text:
            first = text.splitlines()[0]
            return first if len(first) <= 120 else first[:117] + "..."
    return ""


def _extract_content(data: Any) -> str:  # OpenAI-style choices or a bare {"content": ...}
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _strip_code_fences(content: str) -> str:
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _retry_hint(error_text: str, enforce_json: bool) -> str:
    reason = error_text.splitlines()[0].strip() if error_text else ""
    if len(reason) > 200:
        reason = reason[:197] + "..."
    hint = "The previous reply failed validation."
    if reason:
        hint += f" Reason: {reason}."
    if enforce_json:
        return hint + " Return a single JSON object that matches the schema."
    return hint + " Follow the requested format precisely."


__all__ = ["HttpClient", "LlmGatewayError", "call", "chat"]
