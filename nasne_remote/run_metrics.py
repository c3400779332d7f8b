from __future__ import annotations

"""
nasne_remote/run_metrics.py

Contadores y latencias de la sesión (API JSON + DLNA), thread-safe.

    METRICS.incr("nasne.api.calls")
    METRICS.observe_ms("dlna.browse.latency_ms", elapsed_ms)
    METRICS.add_error("dlna", "soap", endpoint=url, detail="HTTP 500")
"""

import threading
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorEvent:
    subsystem: str  # "nasne" | "dlna"
    action: str  # "request" | "decode" | "soap"
    endpoint: str | None
    detail: str


class RunMetrics:
    def __init__(self, *, max_error_events: int = 200) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._timings: dict[str, dict[str, float]] = {}
        self._errors: list[ErrorEvent] = []
        self._max_error_events = max(0, int(max_error_events))

    def incr(self, key: str, n: int = 1) -> None:
        if not key:
            return
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + int(n)

    def observe_ms(self, key: str, ms: float) -> None:
        if not key:
            return
        v = float(ms)
        with self._lock:
            t = self._timings.setdefault(key, {"count": 0.0, "sum": 0.0, "max": v})
            t["count"] += 1.0
            t["sum"] += v
            t["max"] = max(t["max"], v)

    def add_error(self, subsystem: str, action: str, *, endpoint: str | None, detail: str) -> None:
        if self._max_error_events <= 0:
            return
        ev = ErrorEvent(subsystem=subsystem, action=action, endpoint=endpoint, detail=str(detail)[:800])
        with self._lock:
            self._errors.append(ev)
            # los más antiguos salen primero
            del self._errors[: -self._max_error_events]

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._errors.clear()

    def snapshot(self) -> dict[str, Any]:
        """Copia consistente; `avg` se calcula aquí."""
        with self._lock:
            counters = dict(self._counters)
            timings = {k: dict(v) for k, v in self._timings.items()}
            errors = list(self._errors)

        for t in timings.values():
            t["avg"] = t["sum"] / max(1.0, t["count"])
        return {"counters": counters, "timings_ms": timings, "errors": errors}


METRICS = RunMetrics()
