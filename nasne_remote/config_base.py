"""
nasne_remote/config_base.py

- Carga .env UNA vez
- Define PATHS base (BASE_DIR/DATA_DIR) temprano
- Helpers defensivos (_get_env_*, _cap_*, parsers CSV)
- Flags globales (DEBUG_MODE/SILENT_MODE/LOG_LEVEL/HTTP_DEBUG)
- LOGGER_FILE_* + congelado de LOGGER_FILE_PATH

Este módulo NO debe importar config_device.py para evitar ciclos.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

# No sobre-escribimos env vars ya definidas en el entorno.
load_dotenv(override=False)

from nasne_remote import logger as _logger  # noqa: E402


# ============================================================
# Paths base
# ============================================================

# Directorio del paquete nasne_remote/
BASE_DIR: Final[Path] = Path(__file__).resolve().parent

# Raíz del proyecto (un nivel por encima del paquete)
PROJECT_DIR: Final[Path] = BASE_DIR.parent

# data/ en la raíz del proyecto (settings.json vive aquí)
_DATA_DIR_RAW: Final[str] = (os.getenv("DATA_DIR") or "data").strip() or "data"
_DATA_DIR_CANDIDATE = Path(_DATA_DIR_RAW)
DATA_DIR: Final[Path] = (
    _DATA_DIR_CANDIDATE if _DATA_DIR_CANDIDATE.is_absolute() else (PROJECT_DIR / _DATA_DIR_CANDIDATE)
)


# ============================================================
# Helpers: parseo defensivo de env vars
# ============================================================

_TRUE_SET: Final[set[str]] = {"1", "true", "t", "yes", "y", "on"}
_FALSE_SET: Final[set[str]] = {"0", "false", "f", "no", "n", "off"}


def _clean_env_raw(v: object | None) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    if not s:
        return None
    if len(s) >= 2 and (s[0] == s[-1]) and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s or None


def _get_env_str(name: str, default: str | None = None) -> str | None:
    v = _clean_env_raw(os.getenv(name))
    return default if v is None else v


def _get_env_int(name: str, default: int) -> int:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        _logger.warning(f"Invalid int for {name!r}: {v!r}, using default {default}", always=True)
        return default


def _get_env_float(name: str, default: float) -> float:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        _logger.warning(f"Invalid float for {name!r}: {v!r}, using default {default}", always=True)
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    v = _clean_env_raw(os.getenv(name))
    if v is None:
        return default
    s = v.strip().lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    _logger.warning(f"Invalid bool for {name!r}: {v!r}, using default {default}", always=True)
    return default


def _cap_int(name: str, value: int, *, min_v: int, max_v: int) -> int:
    if value < min_v:
        _logger.warning(f"{name} < {min_v}; forcing to {min_v}", always=True)
        return min_v
    if value > max_v:
        _logger.warning(f"{name} too high; capping to {max_v}", always=True)
        return max_v
    return value


def _cap_float_min(name: str, value: float, *, min_v: float) -> float:
    if value < min_v:
        _logger.warning(f"{name} < {min_v}; forcing to {min_v}", always=True)
        return min_v
    return value


def _parse_env_csv_tokens(raw: str, *, lower: bool = True) -> list[str]:
    """
    CSV -> lista ordenada y sin duplicados.

    lower=False conserva mayúsculas (paths HTTP como /DeviceDescription.xml).
    """
    cleaned = (raw or "").strip().strip('"').strip("'").strip()
    if not cleaned:
        return []

    parts = [p.strip() for p in cleaned.split(",") if p.strip()]
    if lower:
        parts = [p.lower() for p in parts]

    seen: set[str] = set()
    out: list[str] = []
    for p in parts:
        if p in seen:
            continue
        seen.add(p)
        out.append(p)
    return out


def _parse_env_int_list(name: str, default: list[int]) -> list[int]:
    """CSV de enteros (puertos). Tokens inválidos se ignoran con warning."""
    raw = _get_env_str(name, None)
    if raw is None:
        return list(default)

    out: list[int] = []
    for tok in _parse_env_csv_tokens(raw):
        try:
            out.append(int(tok))
        except ValueError:
            _logger.warning(f"Invalid int token in {name!r} ignored: {tok!r}", always=True)

    if not out:
        _logger.warning(f"{name} has no valid values; using default {default}", always=True)
        return list(default)
    return out


# ============================================================
# MODO DE EJECUCIÓN
# ============================================================

DEBUG_MODE: bool = _get_env_bool("DEBUG_MODE", False)
SILENT_MODE: bool = _get_env_bool("SILENT_MODE", False)

HTTP_DEBUG: bool = _get_env_bool("HTTP_DEBUG", False)
LOG_LEVEL: str | None = _get_env_str("LOG_LEVEL", None)

LOGGER_LOG_LINE_MAX_CHARS: int = _cap_int(
    "LOGGER_LOG_LINE_MAX_CHARS", _get_env_int("LOGGER_LOG_LINE_MAX_CHARS", 500), min_v=80, max_v=100_000
)


# ============================================================
# Settings (clave/valor persistente)
# ============================================================

_SETTINGS_FILE_RAW: Final[str] = _get_env_str("NASNE_SETTINGS_FILE", "settings.json") or "settings.json"
_SETTINGS_FILE_CANDIDATE = Path(_SETTINGS_FILE_RAW)
SETTINGS_FILE_PATH: Final[Path] = (
    _SETTINGS_FILE_CANDIDATE if _SETTINGS_FILE_CANDIDATE.is_absolute() else (DATA_DIR / _SETTINGS_FILE_CANDIDATE)
)


# ============================================================
# LOGGER (persistencia opcional a fichero por ejecución)
# ============================================================

LOGGER_FILE_ENABLED: bool = _get_env_bool("LOGGER_FILE_ENABLED", False)

_LOGGER_FILE_DIR_CANDIDATE = Path(_get_env_str("LOGGER_FILE_DIR", "logs") or "logs")
LOGGER_FILE_DIR: Final[Path] = (
    _LOGGER_FILE_DIR_CANDIDATE if _LOGGER_FILE_DIR_CANDIDATE.is_absolute() else (PROJECT_DIR / _LOGGER_FILE_DIR_CANDIDATE)
)


def _build_logger_file_path() -> Path | None:
    """
    Fichero de log de la ejecución (nasne_<timestamp>_<pid>.log).

    Se congela en os.environ para que todo el proceso escriba en el mismo.
    """
    if not LOGGER_FILE_ENABLED:
        return None

    env_path = _clean_env_raw(os.getenv("LOGGER_FILE_PATH"))
    if env_path:
        p = Path(env_path)
        return (p if p.is_absolute() else (PROJECT_DIR / p)).resolve()

    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    resolved = (LOGGER_FILE_DIR / f"nasne_{ts}_{os.getpid()}.log").resolve()
    os.environ["LOGGER_FILE_PATH"] = str(resolved)
    return resolved


LOGGER_FILE_PATH: Path | None = _build_logger_file_path()
