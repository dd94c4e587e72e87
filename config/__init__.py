"""Configuration package for the applicant interview service."""
from .llm import AppConfig, LlmRoute, load_config, load_route, resolve_route
from .registry import RISK_KEY, bind_model, get_model, unbind_model
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "load_route",
    "resolve_route",
    "RISK_KEY",
    "bind_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
