from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest
from pydantic import BaseModel

from config import LlmRoute
from llm_gateway import LlmGatewayError, bind_route, call, chat


class Verdict(BaseModel):
    risk_score: str
    risk_score_numeric: int


class FakeResponse:
    def __init__(self, status_code: int = 200, content: Any = None, raw: Any = None):
        self.status_code = status_code
        self._raw = raw if raw is not None else {"choices": [{"message": {"content": content}}]}

    def json(self) -> Any:
        if isinstance(self._raw, Exception):
            raise self._raw
        return self._raw

    @property
    def text(self) -> str:
        return json.dumps(self._raw, default=str)


class FakeClient:
    def __init__(self, responses: List[FakeResponse]):
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def post(self, url, *, json, headers, timeout):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self.responses.pop(0)


def _route(**overrides) -> LlmRoute:
    data = {
        "name": "test_risk",
        "base_url": "https://llm.example",
        "endpoint": "/v1/chat/completions",
        "model": "tiny",
        "timeout_s": 5,
        "max_retries": 1,
        "temperature": 0.2,
        "api_key_env": "TEST_LLM_KEY",
        "response_format": "json_object",
        "enforce_json": False,
    }
    data.update(overrides)
    return LlmRoute(**data)


def test_chat_builds_payload_and_validates(monkeypatch):
    monkeypatch.setenv("TEST_LLM_KEY", "sk-test")
    client = FakeClient([FakeResponse(content='{"risk_score": "low", "risk_score_numeric": 80}')])
    result = chat([{"role": "user", "content": "score"}], Verdict, cfg=_route(), client=client)
    assert result == Verdict(risk_score="low", risk_score_numeric=80)
    request = client.requests[0]
    assert request["url"] == "https://llm.example/v1/chat/completions"
    assert request["headers"]["Authorization"] == "Bearer sk-test"
    assert request["json"]["temperature"] == 0.2
    assert request["json"]["response_format"] == {"type": "json_object"}
    assert request["json"]["messages"] == [{"role": "user", "content": "score"}]


def test_enforce_json_prepends_schema_prompt():
    client = FakeClient([FakeResponse(content='{"risk_score": "low", "risk_score_numeric": 1}')])
    call("score", Verdict, cfg=_route(enforce_json=True), client=client)
    first = client.requests[0]["json"]["messages"][0]
    assert first["role"] == "system"
    assert "risk_score_numeric" in first["content"]


def test_code_fences_and_surrounding_prose_are_tolerated():
    fenced = '```json\n{"risk_score": "high", "risk_score_numeric": 10}\n```'
    prose = 'Here you go: {"risk_score": "medium", "risk_score_numeric": 55} thanks'
    client = FakeClient([FakeResponse(content=fenced), FakeResponse(content=prose)])
    assert call("a", Verdict, cfg=_route(), client=client).risk_score == "high"
    assert call("b", Verdict, cfg=_route(), client=client).risk_score_numeric == 55


def test_invalid_output_is_retried_with_hint():
    client = FakeClient(
        [
            FakeResponse(content="not json at all"),
            FakeResponse(content='{"risk_score": "low", "risk_score_numeric": 90}'),
        ]
    )
    result = call("score", Verdict, cfg=_route(), client=client)
    assert result.risk_score_numeric == 90
    retry_messages = client.requests[1]["json"]["messages"]
    assert retry_messages[-1]["role"] == "system"
    assert retry_messages[-1]["content"].startswith("The previous reply failed validation.")


def test_retries_exhausted_raise_gateway_error():
    client = FakeClient([FakeResponse(content="nope"), FakeResponse(content="still nope")])
    with pytest.raises(LlmGatewayError):
        call("score", Verdict, cfg=_route(), client=client)


def test_error_status_raises():
    client = FakeClient([FakeResponse(status_code=500, raw={"error": "boom"})])
    with pytest.raises(LlmGatewayError, match="status 500"):
        call("score", Verdict, cfg=_route(), client=client)


def test_non_json_body_raises():
    client = FakeClient([FakeResponse(raw=ValueError("bad body"))])
    with pytest.raises(LlmGatewayError, match="not JSON"):
        call("score", Verdict, cfg=_route(), client=client)


def test_missing_content_raises():
    client = FakeClient([FakeResponse(raw={"choices": []})])
    with pytest.raises(LlmGatewayError, match="missing content"):
        call("score", Verdict, cfg=_route(), client=client)


def test_transport_failure_is_wrapped():
    class Broken:
        def post(self, url, *, json, headers, timeout):
            raise httpx.ConnectError("refused")

    with pytest.raises(LlmGatewayError, match="transport"):
        call("score", Verdict, cfg=_route(), client=Broken())


def test_bind_route_sends_system_and_user_messages():
    client = FakeClient([FakeResponse(content='{"risk_score": "low", "risk_score_numeric": 70}')])
    invoke = bind_route(_route(sequential=True), Verdict, client=client)
    result = invoke("You are a risk analyst.", '{"facts": {}}')
    assert result.risk_score == "low"
    messages = client.requests[0]["json"]["messages"]
    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[0]["content"] == "You are a risk analyst."
