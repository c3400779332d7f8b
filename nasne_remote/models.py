from __future__ import annotations

"""
nasne_remote/models.py

Modelos públicos (inmutables) construidos a partir de JSON/XML no tipado.

Regla común: ningún constructor `from_payload` lanza por campos ausentes o
renombrados. La ausencia se representa como None / "" y se propaga como
"no encontrado".
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Final, Literal

from typing_extensions import TypeAlias

NotFoundReason: TypeAlias = Literal["shape_unresolved", "endpoint_not_found", "resource_not_found"]
PlaybackSource: TypeAlias = Literal["payload", "content_directory", "constructed"]


# =============================================================================
# Constantes del dispositivo
# =============================================================================


class BroadcastingType(IntEnum):
    """Banda de emisión aceptada por channelListGet / reservedInfoCreate."""

    DTTV = 2
    BS = 3
    CS = 4


class Quality(IntEnum):
    """Calidad de grabación."""

    DR = 100
    THREE_X = 101


# conditionId de reservedInfoCreate
CONDITION_ONCE: Final[str] = "1"
CONDITION_DAILY: Final[str] = "d"
CONDITION_WEEKLY: Final[str] = "w3"


# =============================================================================
# Helpers defensivos
# =============================================================================


def _as_str(value: object) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    s = str(value).strip()
    return s or None


def _safe_parse_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return int(float(s))
    except (ValueError, OverflowError):
        return None


def _first_str(raw: Mapping[str, Any], *keys: str) -> str | None:
    for k in keys:
        v = _as_str(raw.get(k))
        if v is not None:
            return v
    return None


# =============================================================================
# Endpoint / request
# =============================================================================


@dataclass(frozen=True, slots=True)
class DeviceEndpoint:
    """
    Dispositivo + mapa área funcional -> puerto.

    La API está repartida por puertos según el primer segmento del path
    (/status/... -> 64210, /schedule/... -> 64220). Segmentos desconocidos
    van al puerto por defecto.
    """

    host: str
    ports: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({"status": 64210, "schedule": 64220, "recorded": 64220, "chEpg": 64220})
    )
    default_port: int = 64210

    def __post_init__(self) -> None:
        if not isinstance(self.ports, MappingProxyType):
            object.__setattr__(self, "ports", MappingProxyType(dict(self.ports)))

    def port_for(self, path: str) -> int:
        parts = (path or "").split("/")
        segment = parts[1] if len(parts) > 1 else ""
        return int(self.ports.get(segment, self.default_port))

    def base_url(self, port: int) -> str:
        return f"http://{self.host}:{int(port)}"


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """Path + parámetros ya filtrados (sin None), en el orden de inserción."""

    path: str
    params: tuple[tuple[str, str], ...] = ()

    @classmethod
    def build(cls, path: str, params: Mapping[str, object] | None = None) -> "RequestDescriptor":
        pairs: list[tuple[str, str]] = []
        for k, v in (params or {}).items():
            if v is None:
                continue
            # booleanos como en JS: true/false
            pairs.append((str(k), str(v).lower() if isinstance(v, bool) else str(v)))
        return cls(path=path, params=tuple(pairs))


# =============================================================================
# Registros JSON
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProgramRecord:
    title: str | None
    start_date_time: str | None
    duration: int | None
    end_date_time: str | None = None
    description: str | None = None
    description_long: str | None = None
    event_id: int | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "ProgramRecord":
        return cls(
            title=_as_str(raw.get("title")),
            start_date_time=_as_str(raw.get("startDateTime")),
            duration=_safe_parse_int(raw.get("duration")),
            end_date_time=_as_str(raw.get("endDateTime")),
            description=_as_str(raw.get("description")),
            description_long=_as_str(raw.get("descriptionLong")),
            event_id=_safe_parse_int(raw.get("eventId")),
            raw=dict(raw),
        )

    @property
    def summary(self) -> str | None:
        """Texto descriptivo disponible (corto primero)."""
        return self.description or self.description_long


@dataclass(frozen=True, slots=True)
class Channel:
    service_id: int | None
    transport_stream_id: int | None
    network_id: int | None
    title: str | None
    remote_control_key_id: int | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "Channel":
        return cls(
            service_id=_safe_parse_int(raw.get("serviceId")),
            transport_stream_id=_safe_parse_int(raw.get("transportStreamId")),
            network_id=_safe_parse_int(raw.get("networkId")),
            title=_first_str(raw, "title", "serviceName"),
            remote_control_key_id=_safe_parse_int(raw.get("remoteControlKeyId")),
            raw=dict(raw),
        )

    @property
    def display_name(self) -> str:
        return self.title or "Unknown"

    @property
    def display_number(self) -> str:
        n = self.remote_control_key_id if self.remote_control_key_id is not None else self.service_id
        return "" if n is None else str(n)


@dataclass(frozen=True, slots=True)
class ReservationRecord:
    id: str | None
    type: int
    title: str | None
    start_date_time: str | None
    duration: int | None
    channel_name: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "ReservationRecord":
        rtype = _safe_parse_int(raw.get("type"))
        return cls(
            id=_as_str(raw.get("id")),
            type=rtype if rtype is not None else 0,
            title=_as_str(raw.get("title")),
            start_date_time=_as_str(raw.get("startDateTime")),
            duration=_safe_parse_int(raw.get("duration")),
            channel_name=_first_str(raw, "channelName", "serviceName"),
            raw=dict(raw),
        )


@dataclass(frozen=True, slots=True)
class RecordingRecord:
    """
    Grabación completada.

    `raw` conserva todos los campos originales: algunos firmwares incluyen ahí
    una URL reproducible (contentUrl, url, res...).
    """

    id: str | None
    title: str | None
    channel_name: str | None
    duration: int | None
    start_date_time: str | None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "RecordingRecord":
        return cls(
            id=_as_str(raw.get("id")),
            title=_as_str(raw.get("title")),
            channel_name=_first_str(raw, "channelName", "serviceName"),
            duration=_safe_parse_int(raw.get("duration")),
            start_date_time=_as_str(raw.get("startDateTime")),
            raw=dict(raw),
        )


@dataclass(frozen=True, slots=True)
class ReservationRequest:
    """
    Parámetros de reservedInfoCreate.

    Con solo `event_id` el dispositivo rellena título/horario desde la EPG;
    los defaults de title/condition_id/quality se envían igualmente.
    """

    service_id: int | None = None
    broadcasting_type: int | None = None
    start_date_time: str | None = None
    duration: int | None = None
    title: str | None = None
    event_id: int | None = None
    condition_id: str | None = None
    quality: int | None = None

    def to_params(self) -> dict[str, object]:
        params: dict[str, object] = {
            "title": self.title or "",
            "startDateTime": self.start_date_time,
            "duration": self.duration,
            "serviceId": self.service_id,
            "broadcastingType": int(self.broadcasting_type) if self.broadcasting_type is not None else None,
            "conditionId": self.condition_id or CONDITION_ONCE,
            "quality": int(self.quality) if self.quality else int(Quality.DR),
        }
        if self.event_id:
            params["eventId"] = self.event_id
        return params


# =============================================================================
# DLNA / playback
# =============================================================================


@dataclass(frozen=True, slots=True)
class Resource:
    """Recurso reproducible (DIDL <res>)."""

    url: str
    protocol_info: str | None = None


@dataclass(frozen=True, slots=True)
class ContentContainer:
    """Contenedor ContentDirectory accesible por ObjectID."""

    object_id: str
    title: str


@dataclass(frozen=True, slots=True)
class ContentItem:
    title: str
    resources: tuple[Resource, ...]


@dataclass(frozen=True, slots=True)
class DiscoveredEndpoint:
    """Resultado cacheado del discovery DLNA para la sesión."""

    port: int
    description: str
    control_url: str


@dataclass(frozen=True, slots=True)
class PlaybackTarget:
    url: str
    source: PlaybackSource
    protocol_info: str | None = None
    misses: tuple[NotFoundReason, ...] = ()
