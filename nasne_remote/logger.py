from __future__ import annotations

"""
nasne_remote/logger.py

Fachada de logging del cliente nasne.

- debug / info / warning / error(always=...)
- progress: línea siempre visible en stdout (menú/CLI)
- debug_ctx(tag, msg): trazas de protocolo solo con DEBUG_MODE
- truncate_line: recorta volcados JSON/XML

SILENT_MODE suprime debug/info/warning salvo always=True; error() siempre emite.

La config se lee de `nasne_remote.config_base` vía sys.modules (sin importarla,
config_base importa este módulo).
"""

import logging
import os
import sys
from types import ModuleType
from typing import Any, Final

LOGGER_NAME: Final[str] = "nasne_remote"

_CONFIG_MODULE: Final[str] = "nasne_remote.config_base"
_FILE_HANDLER_TAG: Final[str] = "_nasne_remote_file_handler"
_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_LOG_LINE_MAX_CHARS: Final[int] = 500

_LEVELS: Final[dict[str, int]] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_LOGGER: logging.Logger | None = None


# ============================================================================
# Config (lectura perezosa)
# ============================================================================


def _safe_get_cfg() -> ModuleType | None:
    mod = sys.modules.get(_CONFIG_MODULE)
    return mod if isinstance(mod, ModuleType) else None


def _cfg(name: str, default: Any = None) -> Any:
    cfg = _safe_get_cfg()
    if cfg is None:
        return default
    return getattr(cfg, name, default)


def is_silent_mode() -> bool:
    return bool(_cfg("SILENT_MODE", False))


def is_debug_mode() -> bool:
    return bool(_cfg("DEBUG_MODE", False))


def _resolve_level_from_config() -> int:
    """LOG_LEVEL explícito > DEBUG_MODE > INFO."""
    lvl = _cfg("LOG_LEVEL", None)
    if isinstance(lvl, str):
        mapped = _LEVELS.get(lvl.strip().upper())
        if mapped is not None:
            return mapped
    return logging.DEBUG if is_debug_mode() else logging.INFO


def _configure_external_loggers() -> None:
    """urllib3/requests a WARNING salvo HTTP_DEBUG=True."""
    if _cfg("HTTP_DEBUG", False):
        return
    for name in ("urllib3", "urllib3.connectionpool", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _file_logging_path() -> str | None:
    if not _cfg("LOGGER_FILE_ENABLED", False):
        return None
    env_p = (os.getenv("LOGGER_FILE_PATH") or "").strip()
    if env_p:
        return env_p
    p = _cfg("LOGGER_FILE_PATH", None)
    return str(p) if p else None


def _ensure_file_handler(root: logging.Logger, *, level: int) -> None:
    path = _file_logging_path()
    if not path:
        return
    if any(getattr(h, _FILE_HANDLER_TAG, False) for h in root.handlers):
        return

    try:
        dir_name = os.path.dirname(path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)
        fh = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    except OSError:
        return
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(_FORMAT))
    setattr(fh, _FILE_HANDLER_TAG, True)
    root.addHandler(fh)


def _ensure_configured() -> logging.Logger:
    """Inicialización idempotente."""
    global _LOGGER

    if _LOGGER is not None:
        return _LOGGER

    level = _resolve_level_from_config()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_FORMAT)
    else:
        root.setLevel(level)

    _configure_external_loggers()
    _ensure_file_handler(root, level=level)

    _LOGGER = logging.getLogger(LOGGER_NAME)
    return _LOGGER


# ============================================================================
# API pública
# ============================================================================


def progress(message: str) -> None:
    """Línea siempre visible (ignora SILENT_MODE)."""
    try:
        sys.stdout.write(f"{message}\n")
        sys.stdout.flush()
    except OSError:
        pass


def debug(msg: str, *args: object, always: bool = False, **kwargs: Any) -> None:
    if always or not is_silent_mode():
        _ensure_configured().debug(msg, *args, **kwargs)


def info(msg: str, *args: object, always: bool = False, **kwargs: Any) -> None:
    if always or not is_silent_mode():
        _ensure_configured().info(msg, *args, **kwargs)


def warning(msg: str, *args: object, always: bool = False, **kwargs: Any) -> None:
    if always or not is_silent_mode():
        _ensure_configured().warning(msg, *args, **kwargs)


def error(msg: str, *args: object, always: bool = False, **kwargs: Any) -> None:
    _ensure_configured().error(msg, *args, **kwargs)


def truncate_line(text: str, max_chars: int | None = None) -> str:
    limit = max_chars if isinstance(max_chars, int) and max_chars > 0 else None
    if limit is None:
        try:
            limit = int(_cfg("LOGGER_LOG_LINE_MAX_CHARS", _DEFAULT_LOG_LINE_MAX_CHARS))
        except (TypeError, ValueError):
            limit = _DEFAULT_LOG_LINE_MAX_CHARS
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 12)] + " …(truncated)"


def debug_ctx(tag: str, msg: object) -> None:
    """
    Traza "[TAG][DEBUG] msg" solo con DEBUG_MODE.

    En SILENT_MODE sale por progress() para no perderse.
    """
    if not is_debug_mode():
        return

    text = f"[{(tag or 'DEBUG').strip().upper()}][DEBUG] {msg}"
    if is_silent_mode():
        progress(text)
    else:
        info(text)
