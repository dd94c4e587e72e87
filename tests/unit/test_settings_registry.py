from __future__ import annotations

import json

import pytest

from config import LlmRoute, load_config, resolve_route
from config.llm import load_route
from config.registry import RISK_KEY, bind_model, get_model, unbind_model
from config.settings import Settings


def test_settings_env_override(monkeypatch):
    monkeypatch.setenv("ASSISTANT_NAME", "Robin")
    monkeypatch.setenv("DEFAULT_MIN_DOWN_PAYMENT", "750")
    cfg = Settings()
    assert cfg.ASSISTANT_NAME == "Robin"
    assert cfg.DEFAULT_MIN_DOWN_PAYMENT == 750
    assert cfg.ASSESSMENT_FLOW == "flow1_locked_v2"


def test_registry_bind_get_unbind():
    def fn(*_, **__):
        return "ok"

    bind_model("models.test_only", fn)
    assert get_model("models.test_only") is fn
    unbind_model("models.test_only")
    with pytest.raises(KeyError):
        get_model("models.test_only")
    unbind_model("models.test_only")


def _write_config(tmp_path, registry):
    path = tmp_path / "app_config.json"
    path.write_text(
        json.dumps(
            {
                "llm_routes": {
                    "risk": {
                        "name": "risk",
                        "base_url": "https://llm.example",
                        "endpoint": "/v1/chat/completions",
                        "model": "tiny",
                        "timeout_s": 10,
                    }
                },
                "registry": registry,
            }
        ),
        encoding="utf-8",
    )
    return path


def test_load_and_resolve_route(tmp_path):
    path = _write_config(tmp_path, {RISK_KEY: "risk"})
    route = load_route(path, RISK_KEY)
    assert isinstance(route, LlmRoute)
    assert route.model == "tiny"
    assert route.max_retries == 2
    assert route.enforce_json is True


def test_resolve_route_errors(tmp_path):
    cfg = load_config(_write_config(tmp_path, {RISK_KEY: "gone"}))
    with pytest.raises(KeyError):
        resolve_route(cfg, RISK_KEY)
    with pytest.raises(KeyError):
        resolve_route(cfg, "models.other")


def test_shipped_app_config_binds_risk_route():
    from api_server import ROOT

    route = load_route(ROOT / "app_config.json", RISK_KEY)
    assert route.api_key_env == "OPENAI_API_KEY"
    assert route.response_format == "json_object"
