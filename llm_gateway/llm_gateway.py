from __future__ import annotations  # HTTP gateway for chat-completion style LLM routes

import json
import logging
import os
import threading
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import LlmRoute


logger = logging.getLogger(__name__)  # Module logger setup

T = TypeVar("T", bound=BaseModel)

_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()


class HttpResponse(Protocol):  # Subset of httpx.Response the gateway reads
    status_code: int

    def json(self) -> Any: ...


class HttpClient(Protocol):  # Subset of httpx.Client the gateway calls
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> HttpResponse: ...


class LlmGatewayError(RuntimeError):  # Transport, status or output failure
    pass


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:  # Single user prompt shortcut for chat()
    return chat([{"role": "user", "content": task}], schema, cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``messages`` to the route and validate the reply against ``schema``.

    Replies that fail validation are retried up to ``cfg.max_retries`` times,
    each retry carrying a system note with the previous validation error.
    Transport errors, HTTP error statuses and non-JSON bodies are not retried.
    """

    conversation = _schema_preamble(schema, cfg) + _normalize_messages(messages)
    attempts = cfg.max_retries + 1
    logger.info(
        "LLM request start route=%s model=%s attempts=%d preview=%s",
        cfg.name,
        cfg.model,
        attempts,
        _preview(conversation),
    )
    guard = _lock_for(cfg) if cfg.sequential else nullcontext()
    last_error: Optional[Exception] = None
    with guard:
        for attempt in range(attempts):
            turn = list(conversation)
            if last_error is not None:
                turn.append({"role": "system", "content": _retry_hint(str(last_error), cfg.enforce_json)})
            content = _send(cfg, _payload(cfg, turn, options), client)
            try:
                parsed = _validate(schema, content)
            except ValidationError as exc:
                logger.warning("LLM output validation failed route=%s attempt=%d: %s", cfg.name, attempt + 1, exc)
                last_error = exc
                continue
            logger.info("LLM request done route=%s model=%s attempt=%d", cfg.name, cfg.model, attempt + 1)
            return parsed
    raise LlmGatewayError("LLM output validation failed") from last_error


def bind_route(route: LlmRoute, schema: Type[T], client: Optional[HttpClient] = None) -> Callable[..., T]:  # Registry-friendly callable for one route
    def _invoke(system_prompt: str, user_content: str, **options: Any) -> T:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]
        return chat(messages, schema, cfg=route, client=client, options=options or None)

    return _invoke


def _lock_for(cfg: LlmRoute) -> threading.Lock:  # One lock per route name
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS.setdefault(key, threading.Lock())


def _schema_preamble(schema: Type[BaseModel], cfg: LlmRoute) -> List[Dict[str, str]]:  # JSON schema system note when enforced
    if not cfg.enforce_json:
        return []
    schema_json = json.dumps(schema.model_json_schema(), indent=2)
    return [{"role": "system", "content": "Reply with a single JSON object matching this schema:\n" + schema_json}]


def _payload(cfg: LlmRoute, messages: List[Dict[str, str]], options: Optional[Dict[str, Any]]) -> Dict[str, Any]:  # Request body
    payload: Dict[str, Any] = {"model": cfg.model, "messages": messages}
    if cfg.temperature is not None:
        payload["temperature"] = cfg.temperature
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    payload.update(options or {})
    return payload


def _headers(cfg: LlmRoute) -> Dict[str, str]:  # Bearer auth from the route's env var
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(cfg.api_key_env) if cfg.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _send(cfg: LlmRoute, payload: Dict[str, Any], client: Optional[HttpClient]) -> str:  # POST once and return the message content
    url = f"{cfg.base_url}{cfg.endpoint}"
    try:
        if client is not None:
            response = client.post(url, json=payload, headers=_headers(cfg), timeout=cfg.timeout_s)
            return _content_of(response)
        with httpx.Client(timeout=cfg.timeout_s) as http_client:
            response = http_client.post(url, json=payload, headers=_headers(cfg))
            return _content_of(response)
    except httpx.HTTPError as exc:
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmGatewayError("LLM transport failed") from exc


def _content_of(response: HttpResponse) -> str:  # Status check, JSON decode, content extraction
    if response.status_code >= 400:
        logger.error("LLM error status: %s", response.status_code)
        raise LlmGatewayError(f"LLM returned status {response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        logger.error("Invalid JSON payload from LLM: %s", exc)
        raise LlmGatewayError("LLM payload was not JSON") from exc
    return _extract_content(data)


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:  # Ensure message payload shape
    normalized: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": str(item.get("content", ""))})
    return normalized


def _preview(messages: Sequence[Dict[str, str]], limit: int = 120) -> str:  # First non-empty user line for logs
    for message in messages:
        if message["role"] == "system":
            continue
        text = message["content"].strip()
        if text:
            line = text.splitlines()[0]
            return line if len(line) <= limit else line[: limit - 3] + "..."
    return ""


def _extract_content(data: Any) -> str:  # choices[0].message.content, or a bare content field
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _validate(schema: Type[T], content: str) -> T:  # Validate, falling back to the embedded JSON object
    cleaned = _strip_code_fences(content)
    try:
        return schema.model_validate_json(cleaned)
    except ValidationError:
        embedded = _first_json_object(cleaned)
        if embedded is None or embedded == cleaned:
            raise
        return schema.model_validate_json(embedded)


def _strip_code_fences(content: str) -> str:  # ```json ... ``` -> ...
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _first_json_object(text: str) -> Optional[str]:  # Outermost {...} when prose surrounds the JSON
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _retry_hint(error_text: str, enforce_json: bool) -> str:  # System note appended on retry
    reason = (error_text.splitlines() or [""])[0].strip()
    if len(reason) > 200:
        reason = reason[:197] + "..."
    hint = "The previous reply failed validation."
    if reason:
        hint += f" Reason: {reason}."
    if enforce_json:
        return hint + " Return a single JSON object that matches the schema."
    return hint + " Follow the requested format precisely."
