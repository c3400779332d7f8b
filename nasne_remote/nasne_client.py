from __future__ import annotations

"""
nasne_remote/nasne_client.py

Fachada de alto nivel sobre la API JSON del dispositivo.

Objetivo:
- Un método por operación de la API (canales, EPG, reservas, grabaciones).
- Normalizar respuestas cuya forma varía (item / reservedList / titleList...).
- Resolver una URL reproducible para una grabación:
    1) campos URL del propio payload
    2) búsqueda por título en ContentDirectory (DLNA)
    3) URL construida /recorded/bodyGet?id=...

Errores:
- Fallos de red/HTTP/JSON -> DeviceUnreachable (se propaga).
- "No encontrado" -> None, nunca excepción.
"""

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Final
from urllib.parse import urlencode

from nasne_remote import logger as _logger
from nasne_remote.config_device import NASNE_RECORDED_BODY_PATH
from nasne_remote.content_walker import find_recording_resource
from nasne_remote.errors import DeviceUnreachable
from nasne_remote.models import (
    Channel,
    NotFoundReason,
    PlaybackTarget,
    ProgramRecord,
    Quality,
    RecordingRecord,
    ReservationRecord,
    ReservationRequest,
)
from nasne_remote.program_resolver import extract_program
from nasne_remote.session import DeviceSession

_LIST_DEFAULTS: Final[dict[str, object]] = {
    "searchCriteria": 0,
    "filter": 0,
    "startingIndex": 0,
    "requestedCount": 0,
    "sortCriteria": 0,
    "withDescriptionLong": 1,
    "withUserData": 0,
}

_URL_FIELDS: Final[tuple[str, ...]] = (
    "contentUrl",
    "url",
    "res",
    "file",
    "filePath",
    "uri",
    "streamUrl",
    "resourceUrl",
)
_HTTP_URL_RE: Final[re.Pattern[str]] = re.compile(r"^https?://")

MANUAL_RECORDING_SECONDS: Final[int] = 3600


# =============================================================================
# Helpers de forma de respuesta
# =============================================================================


def _records(raw: object, *keys: str) -> list[Mapping[str, Any]]:
    """Primera lista encontrada bajo `keys`, solo con elementos dict."""
    if not isinstance(raw, Mapping):
        return []
    for key in keys:
        v = raw.get(key)
        if isinstance(v, list):
            return [x for x in v if isinstance(x, Mapping)]
    return []


def find_video_url(raw: Mapping[str, Any]) -> str | None:
    """
    URL http(s) dentro de un payload de grabación.

    1) campos conocidos cuyo valor empieza por "http"
    2) cualquier string de primer nivel con esquema http(s)
    3) un nivel de objetos anidados (no listas)
    """
    for key in _URL_FIELDS:
        v = raw.get(key)
        if isinstance(v, str) and v.startswith("http"):
            _logger.debug_ctx("NASNE", f"URL en campo {key!r}: {v}")
            return v

    for key, v in raw.items():
        if isinstance(v, str) and _HTTP_URL_RE.match(v):
            _logger.debug_ctx("NASNE", f"URL en campo {key!r}: {v}")
            return v
        if isinstance(v, Mapping):
            for sub_key, sub_v in v.items():
                if isinstance(sub_v, str) and _HTTP_URL_RE.match(sub_v):
                    _logger.debug_ctx("NASNE", f"URL en campo {key}.{sub_key}: {sub_v}")
                    return sub_v
    return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# Cliente
# =============================================================================


class NasneClient:
    def __init__(self, session: DeviceSession) -> None:
        self.session = session

    @classmethod
    def for_host(cls, host: str) -> "NasneClient":
        return cls(DeviceSession(host))

    def _get(self, path: str, params: Mapping[str, object] | None = None) -> Any:
        return self.session.transport.request(path, params)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_channel_list_raw(self, broadcasting_type: int) -> Any:
        return self._get("/status/channelListGet", {"broadcastingType": int(broadcasting_type)})

    def get_channel_list(self, broadcasting_type: int) -> list[Channel]:
        raw = self.get_channel_list_raw(broadcasting_type)
        return [Channel.from_payload(c) for c in _records(raw, "channel")]

    def get_channel_info(
        self,
        service_id: int | None,
        transport_stream_id: int | None,
        network_id: int | None,
        **options: object,
    ) -> Any:
        params: dict[str, object] = {
            "serviceId": service_id,
            "transportStreamId": transport_stream_id,
            "networkId": network_id,
            "withDescriptionLong": 1,
        }
        params.update(options)
        return self._get("/status/channelInfoGet2", params)

    def get_current_program(self, channel: Channel) -> ProgramRecord | None:
        """Programa en emisión del canal (None si la forma de respuesta no se reconoce)."""
        raw = self.get_channel_info(channel.service_id, channel.transport_stream_id, channel.network_id)
        program = extract_program(raw)
        if program is None:
            _logger.info(f"[NASNE] channelInfoGet2 sin programa reconocible para {channel.display_name!r}")
        return program

    def get_box_status(self) -> Any:
        return self._get("/status/boxStatusListGet")

    def test_connection(self) -> bool:
        try:
            self.get_box_status()
        except DeviceUnreachable as exc:
            _logger.error(f"[NASNE] Connection failed: {exc}")
            return False
        return True

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def get_reserved_list_raw(self, **options: object) -> Any:
        return self._get("/schedule/reservedListGet", {**_LIST_DEFAULTS, **options})

    def get_reserved_list(self, **options: object) -> list[ReservationRecord]:
        raw = self.get_reserved_list_raw(**options)
        return [ReservationRecord.from_payload(r) for r in _records(raw, "item", "reservedList")]

    def create_reservation(self, request: ReservationRequest) -> Any:
        return self._get("/schedule/reservedInfoCreate", request.to_params())

    def delete_reservation(self, reservation_id: str | int, reservation_type: int = 0) -> Any:
        return self._get("/schedule/reservedInfoDelete", {"id": reservation_id, "type": reservation_type})

    def get_conflict_list(
        self,
        *,
        start_date_time: str | None = None,
        duration: int | None = None,
        broadcasting_type: int | None = None,
        service_id: int | None = None,
    ) -> Any:
        return self._get(
            "/schedule/conflictListGet",
            {
                "startDateTime": start_date_time,
                "duration": duration,
                "broadcastingType": broadcasting_type,
                "serviceId": service_id,
            },
        )

    def record_program(
        self,
        program: ProgramRecord,
        channel: Channel,
        *,
        broadcasting_type: int,
        quality: int = Quality.DR,
    ) -> Any:
        request = ReservationRequest(
            service_id=channel.service_id,
            broadcasting_type=int(broadcasting_type),
            start_date_time=program.start_date_time,
            duration=program.duration,
            title=program.title,
            event_id=program.event_id,
            quality=int(quality),
        )
        _logger.info(f"[NASNE] Reservando {program.title!r} en {channel.display_name!r}")
        return self.create_reservation(request)

    def record_manual(
        self,
        channel: Channel,
        *,
        broadcasting_type: int,
        quality: int = Quality.DR,
        now_iso: str | None = None,
    ) -> Any:
        """Reserva de una hora desde ahora, titulada con el nombre del canal."""
        program = ProgramRecord(
            title=channel.title or "Manual Recording",
            start_date_time=now_iso or _now_iso(),
            duration=MANUAL_RECORDING_SECONDS,
        )
        return self.record_program(program, channel, broadcasting_type=broadcasting_type, quality=quality)

    # ------------------------------------------------------------------
    # Recorded
    # ------------------------------------------------------------------

    def get_recorded_title_list_raw(self, **options: object) -> Any:
        return self._get("/recorded/titleListGet", {**_LIST_DEFAULTS, **options})

    def get_recorded_title_list(self, **options: object) -> list[RecordingRecord]:
        raw = self.get_recorded_title_list_raw(**options)
        return [RecordingRecord.from_payload(r) for r in _records(raw, "item", "titleList")]

    def delete_recorded_title(self, recording_id: str | int) -> Any:
        return self._get("/recorded/titleDelete", {"id": recording_id})

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def recorded_body_url(self, recording_id: str) -> str:
        endpoint = self.session.endpoint
        base = endpoint.base_url(endpoint.port_for("/status/"))
        return f"{base}{NASNE_RECORDED_BODY_PATH}?{urlencode({'id': recording_id})}"

    def resolve_playback(self, recording: RecordingRecord) -> PlaybackTarget | None:
        """
        URL reproducible para una grabación.

        None solo si no hay URL en el payload, DLNA no encuentra nada y la
        grabación no tiene id para construir la URL directa.
        """
        misses: list[NotFoundReason] = []

        url = find_video_url(recording.raw)
        if url:
            return PlaybackTarget(url=url, source="payload")

        if recording.title:
            had_endpoint = self.session.discovered is not None
            resource = find_recording_resource(self.session, recording.title)
            if resource is not None:
                return PlaybackTarget(
                    url=resource.url,
                    source="content_directory",
                    protocol_info=resource.protocol_info,
                )
            if had_endpoint or self.session.discovered is not None:
                misses.append("resource_not_found")
            else:
                misses.append("endpoint_not_found")

        if recording.id:
            _logger.debug_ctx("NASNE", f"playback fallback bodyGet id={recording.id} misses={misses}")
            return PlaybackTarget(url=self.recorded_body_url(recording.id), source="constructed", misses=tuple(misses))

        _logger.warning(f"[NASNE] Sin URL reproducible para {recording.title!r} ({misses})")
        return None
