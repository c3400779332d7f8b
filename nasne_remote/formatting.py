from __future__ import annotations

"""
nasne_remote/formatting.py

Helpers de presentación para la CLI (fechas EPG y duraciones).
Nunca lanzan: entrada inválida -> texto original o "".
"""

from datetime import datetime


def _parse_dt(value: str | None) -> datetime | None:
    s = (value or "").strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        d = datetime.fromisoformat(s)
    except ValueError:
        return None
    # Fechas con zona -> hora local (como las muestra el dispositivo)
    return d.astimezone() if d.tzinfo is not None else d


def format_date_time(value: str | None) -> str:
    """'M/D HH:MM' (sin ceros a la izquierda en mes/día)."""
    d = _parse_dt(value)
    if d is None:
        return value or ""
    return f"{d.month}/{d.day} {d:%H:%M}"


def format_time(value: str | None) -> str:
    d = _parse_dt(value)
    if d is None:
        return ""
    return f"{d:%H:%M}"


def format_duration(seconds: int | float | None) -> str:
    """'1h 30m', '2h', '45m'."""
    if seconds is None:
        return ""
    try:
        total = int(seconds)
    except (TypeError, ValueError):
        return ""
    h, rem = divmod(max(0, total), 3600)
    m = rem // 60
    if h > 0:
        return f"{h}h {m}m" if m > 0 else f"{h}h"
    return f"{m}m"
