from __future__ import annotations

"""
nasne_remote/program_resolver.py

Localiza el "programa actual" dentro de respuestas de channelInfoGet2 cuya forma
varía según firmware.

Estrategias ordenadas (la primera que encuentra algo gana):
  1) objeto directo bajo currentProgram / program / epgInfo / epg con title o eventId
  2) primer elemento de una lista no vacía bajo programs / programList / epgInfoList / item
  3) bajo `channel`: currentProgram / program / programs / epgInfo
  4) la propia respuesta si parece un programa
  5) último recurso: escaneo de cualquier valor de primer nivel

Ninguna estrategia lanza: candidatos que no son dict se ignoran.
"""

from collections.abc import Callable, Mapping
from typing import Any, Final

from nasne_remote import logger as _logger
from nasne_remote.models import ProgramRecord

Strategy = Callable[[Mapping[str, Any]], "Mapping[str, Any] | None"]

_DIRECT_KEYS: Final[tuple[str, ...]] = ("currentProgram", "program", "epgInfo", "epg")
_LIST_KEYS: Final[tuple[str, ...]] = ("programs", "programList", "epgInfoList", "item")
_CHANNEL_KEYS: Final[tuple[str, ...]] = ("currentProgram", "program", "programs", "epgInfo")


def _has_identity(obj: Mapping[str, Any]) -> bool:
    return bool(obj.get("title") or obj.get("eventId"))


def _first_of(value: object) -> Mapping[str, Any] | None:
    if isinstance(value, list) and value and isinstance(value[0], Mapping):
        return value[0]
    return None


# =============================================================================
# Estrategias
# =============================================================================


def _direct_object(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for key in _DIRECT_KEYS:
        v = raw.get(key)
        if isinstance(v, Mapping) and _has_identity(v):
            return v
    return None


def _first_in_list(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for key in _LIST_KEYS:
        found = _first_of(raw.get(key))
        if found is not None:
            return found
    return None


def _under_channel(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    channel = raw.get("channel")
    if not isinstance(channel, Mapping):
        return None
    for key in _CHANNEL_KEYS:
        v = channel.get(key)
        if isinstance(v, list):
            found = _first_of(v)
            if found is not None:
                return found
        elif isinstance(v, Mapping) and _has_identity(v):
            return v
    return None


def _self_as_program(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    if raw.get("title") and (raw.get("startDateTime") or raw.get("duration") or raw.get("eventId")):
        return raw
    return None


def _scan_top_level(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for v in raw.values():
        if isinstance(v, list):
            found = _first_of(v)
            if found is not None and found.get("title"):
                return found
        elif isinstance(v, Mapping) and v.get("title") and v.get("startDateTime"):
            return v
    return None


STRATEGIES: Final[tuple[Strategy, ...]] = (
    _direct_object,
    _first_in_list,
    _under_channel,
    _self_as_program,
    _scan_top_level,
)


# =============================================================================
# API pública
# =============================================================================


def extract_program(raw: object) -> ProgramRecord | None:
    """
    Devuelve el programa actual o None si ninguna forma conocida encaja.

    None = forma no resuelta: el llamante muestra una vista de fallback con el JSON crudo.
    """
    if not isinstance(raw, Mapping):
        _logger.debug_ctx("NASNE", f"extract_program: respuesta no-objeto ({type(raw).__name__})")
        return None

    for strategy in STRATEGIES:
        found = strategy(raw)
        if found is not None:
            _logger.debug_ctx("NASNE", f"extract_program: hit {strategy.__name__}")
            return ProgramRecord.from_payload(found)

    _logger.debug_ctx("NASNE", f"extract_program: sin forma reconocida keys={sorted(raw.keys())}")
    return None
