from __future__ import annotations

from nasne_remote.config_base import (
    _cap_float_min,
    _cap_int,
    _get_env_float,
    _get_env_int,
    _get_env_str,
    _parse_env_csv_tokens,
    _parse_env_int_list,
)

# ============================================================
# Dispositivo (API JSON)
# ============================================================

# IP por defecto si settings.json todavía no guarda ninguna.
NASNE_HOST: str | None = _get_env_str("NASNE_HOST", None)

NASNE_STATUS_PORT: int = _cap_int("NASNE_STATUS_PORT", _get_env_int("NASNE_STATUS_PORT", 64210), min_v=1, max_v=65535)
NASNE_SCHEDULE_PORT: int = _cap_int("NASNE_SCHEDULE_PORT", _get_env_int("NASNE_SCHEDULE_PORT", 64220), min_v=1, max_v=65535)

NASNE_API_TIMEOUT_SECONDS: float = _cap_float_min(
    "NASNE_API_TIMEOUT_SECONDS", _get_env_float("NASNE_API_TIMEOUT_SECONDS", 8.0), min_v=0.5
)

NASNE_HTTP_USER_AGENT: str = _get_env_str("NASNE_HTTP_USER_AGENT", "NasneRemote/1.0") or "NasneRemote/1.0"

# Descarga directa del cuerpo de una grabación (puerto de status).
NASNE_RECORDED_BODY_PATH: str = _get_env_str("NASNE_RECORDED_BODY_PATH", "/recorded/bodyGet") or "/recorded/bodyGet"

# ============================================================
# DLNA: discovery de description (puertos + paths)
# ============================================================

DLNA_CANDIDATE_PORTS: list[int] = _parse_env_int_list(
    "DLNA_CANDIDATE_PORTS",
    [58888, 60888, 55888, 50888, 2869, 8200],
)

DLNA_DESCRIPTION_PATH: str = _get_env_str("DLNA_DESCRIPTION_PATH", "/description.xml") or "/description.xml"

_DLNA_ALT_DESCRIPTION_PATHS_RAW: str = _get_env_str(
    "DLNA_ALT_DESCRIPTION_PATHS",
    "/rootDesc.xml,/DeviceDescription.xml,/dms/description.xml,/MediaServer.xml,/upnp/desc.xml,/",
) or "/rootDesc.xml,/DeviceDescription.xml,/dms/description.xml,/MediaServer.xml,/upnp/desc.xml,/"
DLNA_ALT_DESCRIPTION_PATHS: list[str] = _parse_env_csv_tokens(_DLNA_ALT_DESCRIPTION_PATHS_RAW, lower=False)

DLNA_PROBE_TIMEOUT_SECONDS: float = _cap_float_min(
    "DLNA_PROBE_TIMEOUT_SECONDS", _get_env_float("DLNA_PROBE_TIMEOUT_SECONDS", 3.0), min_v=0.2
)
DLNA_ALT_PROBE_TIMEOUT_SECONDS: float = _cap_float_min(
    "DLNA_ALT_PROBE_TIMEOUT_SECONDS", _get_env_float("DLNA_ALT_PROBE_TIMEOUT_SECONDS", 2.0), min_v=0.2
)

DLNA_CONTROL_FALLBACK_PATH: str = (
    _get_env_str("DLNA_CONTROL_FALLBACK_PATH", "/upnp/control/ContentDirectory") or "/upnp/control/ContentDirectory"
)

# ============================================================
# DLNA: Browse + traversal
# ============================================================

DLNA_BROWSE_TIMEOUT_SECONDS: float = _cap_float_min(
    "DLNA_BROWSE_TIMEOUT_SECONDS", _get_env_float("DLNA_BROWSE_TIMEOUT_SECONDS", 10.0), min_v=0.5
)
DLNA_BROWSE_REQUESTED_COUNT: int = _cap_int(
    "DLNA_BROWSE_REQUESTED_COUNT", _get_env_int("DLNA_BROWSE_REQUESTED_COUNT", 200), min_v=1, max_v=5000
)
NASNE_WALK_MAX_DEPTH: int = _cap_int("NASNE_WALK_MAX_DEPTH", _get_env_int("NASNE_WALK_MAX_DEPTH", 16), min_v=1, max_v=200)
