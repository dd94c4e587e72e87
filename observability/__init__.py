"""Observability utilities for the assessment service."""
from .logger import log_event
from .tracing import span, total_ms

__all__ = ["log_event", "span", "total_ms"]
