"""Span helper for recording step timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def span(events: List[Dict[str, Any]], name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        events.append({"span": name, "ms": elapsed_ms})


def total_ms(events: List[Dict[str, Any]]) -> int:
    return sum(int(evt.get("ms", 0)) for evt in events if "span" in evt)


__all__ = ["span", "total_ms"]
