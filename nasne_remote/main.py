from __future__ import annotations

"""
nasne_remote/main.py

Punto de entrada (CLI) del mando a distancia.

Este módulo es UI/CLI puro:
- Resuelve el host (flag -> settings.json -> NASNE_HOST -> prompt).
- Presenta menú de acciones o ejecuta la acción indicada por flags.
- Toda la lógica vive en NasneClient.

Reglas de consola (alineado con nasne_remote/logger.py)
------------------------------------------------------
- Menús, listados y prompts: SIEMPRE visibles -> logger.info(..., always=True)
- Estado global (inicio / conexión / fin): logger.progress(...)
- Debug contextual: logger.debug_ctx("CLI", "...")
- Salidas por cancelación/CTRL+C: limpias, sin stacktrace.
"""

import argparse
from typing import Final, Literal

from nasne_remote import logger as logger
from nasne_remote.config_base import DEBUG_MODE, SILENT_MODE
from nasne_remote.config_device import NASNE_HOST
from nasne_remote.errors import DeviceUnreachable
from nasne_remote.formatting import format_date_time, format_duration, format_time
from nasne_remote.models import BroadcastingType, Channel, Quality, RecordingRecord
from nasne_remote.nasne_client import NasneClient
from nasne_remote.program_resolver import extract_program
from nasne_remote.run_metrics import METRICS
from nasne_remote.settings_store import KEY_HOST, KEY_QUALITY, SettingsStore

Choice = Literal["1", "2", "3", "4", "5"]

_BANDS: Final[dict[str, BroadcastingType]] = {
    "dttv": BroadcastingType.DTTV,
    "bs": BroadcastingType.BS,
    "cs": BroadcastingType.CS,
}
_QUALITIES: Final[dict[str, Quality]] = {"dr": Quality.DR, "3x": Quality.THREE_X}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Flags opcionales para ejecución directa (sin menú).

    - Sin flags de acción: menú interactivo.
    """
    parser = argparse.ArgumentParser(
        prog="nasne-remote",
        add_help=True,
        description="nasne remote - canales, reservas y grabaciones desde consola",
    )
    parser.add_argument("--host", help="IP del dispositivo (se guarda tras conectar)")
    parser.add_argument("--band", choices=sorted(_BANDS), default="dttv", help="Banda de emisión")
    parser.add_argument("--quality", choices=sorted(_QUALITIES), help="Calidad de grabación (se guarda)")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--channels", action="store_true", help="Listar canales de la banda")
    mode.add_argument("--program", metavar="SERVICE_ID", type=int, help="Programa actual de un canal")
    mode.add_argument("--record", metavar="SERVICE_ID", type=int, help="Reservar el programa actual de un canal")
    mode.add_argument("--reservations", action="store_true", help="Listar reservas")
    mode.add_argument("--recordings", action="store_true", help="Listar grabaciones")
    mode.add_argument("--play", metavar="RECORDING_ID", help="Resolver URL reproducible de una grabación")
    mode.add_argument(
        "--delete-reservation",
        nargs=2,
        metavar=("ID", "TYPE"),
        help="Borrar una reserva",
    )
    mode.add_argument("--delete-recording", metavar="ID", help="Borrar una grabación")
    mode.add_argument("--status", action="store_true", help="Estado del dispositivo")

    return parser.parse_args(argv)


# =============================================================================
# Conexión
# =============================================================================


def _resolve_host(args: argparse.Namespace, store: SettingsStore) -> str | None:
    host = (args.host or "").strip() or store.host() or (NASNE_HOST or "").strip()
    if host:
        return host
    raw = input("IP del nasne (Enter cancela): ").strip()
    return raw or None


def _connect(host: str, store: SettingsStore) -> NasneClient | None:
    logger.progress(f"[NASNE] Conectando a {host}...")
    client = NasneClient.for_host(host)
    if not client.test_connection():
        logger.error(f"[NASNE] No se pudo conectar a {host}")
        return None
    store.set(KEY_HOST, host)
    logger.progress(f"[NASNE] Conectado a {host}")
    return client


# =============================================================================
# Acciones
# =============================================================================


def _show_channels(client: NasneClient, band: BroadcastingType) -> list[Channel]:
    channels = client.get_channel_list(band)
    if not channels:
        logger.info(f"No hay canales en {band.name}.", always=True)
        return channels
    for ch in channels:
        logger.info(f"  {ch.display_number:>4}  {ch.display_name}  (serviceId={ch.service_id})", always=True)
    return channels


def _find_channel(client: NasneClient, band: BroadcastingType, service_id: int) -> Channel | None:
    for ch in client.get_channel_list(band):
        if ch.service_id == service_id:
            return ch
    logger.info(f"Canal {service_id} no encontrado en {band.name}.", always=True)
    return None


def _show_program(client: NasneClient, channel: Channel) -> None:
    raw = client.get_channel_info(channel.service_id, channel.transport_stream_id, channel.network_id)
    program = extract_program(raw)
    if program is None:
        logger.info(f"{channel.display_name}: sin información de programa.", always=True)
        logger.info(logger.truncate_line(repr(raw), 2000), always=True)
        return

    span = format_time(program.start_date_time)
    if program.end_date_time:
        span = f"{span} - {format_time(program.end_date_time)}"
    logger.info(f"{channel.display_name}: {program.title or '(sin título)'}", always=True)
    logger.info(f"  {span}  {format_duration(program.duration)}", always=True)
    logger.info(f"  {program.summary or 'Sin detalles del programa.'}", always=True)


def _record_current(client: NasneClient, channel: Channel, band: BroadcastingType, quality: int) -> None:
    program = client.get_current_program(channel)
    if program is None:
        client.record_manual(channel, broadcasting_type=band, quality=quality)
        logger.info(f"Grabación manual (1h) reservada en {channel.display_name}.", always=True)
        return
    client.record_program(program, channel, broadcasting_type=band, quality=quality)
    logger.info(f"Reservado: {program.title}", always=True)


def _show_reservations(client: NasneClient) -> None:
    reservations = client.get_reserved_list()
    if not reservations:
        logger.info("No hay reservas.", always=True)
        return
    for r in reservations:
        when = format_date_time(r.start_date_time) if r.start_date_time else "?"
        channel = f"  [{r.channel_name}]" if r.channel_name else ""
        logger.info(
            f"  id={r.id} type={r.type}  {when}  {format_duration(r.duration)}  {r.title or '(sin título)'}{channel}",
            always=True,
        )


def _show_recordings(client: NasneClient) -> list[RecordingRecord]:
    recordings = client.get_recorded_title_list()
    if not recordings:
        logger.info("No hay grabaciones.", always=True)
        return recordings
    for rec in recordings:
        when = format_date_time(rec.start_date_time) if rec.start_date_time else ""
        logger.info(
            f"  id={rec.id}  {when}  {format_duration(rec.duration)}  {rec.title or '(sin título)'}"
            f"  {rec.channel_name or ''}",
            always=True,
        )
    return recordings


def _play(client: NasneClient, recording_id: str) -> None:
    for rec in client.get_recorded_title_list():
        if rec.id == recording_id:
            target = client.resolve_playback(rec)
            if target is None:
                logger.info("No se encontró una URL reproducible.", always=True)
                return
            logger.info(f"{target.url}", always=True)
            logger.debug_ctx("CLI", f"source={target.source} protocolInfo={target.protocol_info} misses={target.misses}")
            return
    logger.info(f"Grabación {recording_id} no encontrada.", always=True)


def _show_status(client: NasneClient) -> None:
    logger.info(logger.truncate_line(repr(client.get_box_status()), 4000), always=True)


# =============================================================================
# Menú
# =============================================================================


def _ask_action() -> Choice | None:
    if SILENT_MODE:
        menu = "1) Canales\n2) Reservas\n3) Grabaciones\n4) Reproducir\n5) Estado\n(Enter sale)"
        prompt = "> "
    else:
        menu = (
            "¿Qué quieres hacer?\n"
            "  1) Canales + programa actual\n"
            "  2) Reservas\n"
            "  3) Grabaciones\n"
            "  4) Reproducir una grabación (URL)\n"
            "  5) Estado del dispositivo\n"
            "(Pulsa Enter para salir)"
        )
        prompt = "Selecciona una opción (1-5): "

    while True:
        logger.info("\n" + menu, always=True)
        raw = input(prompt).strip()
        if raw == "":
            return None
        if raw in {"1", "2", "3", "4", "5"}:
            return raw  # type: ignore[return-value]
        logger.info("Opción no válida (usa 1-5, o Enter para salir).", always=True)


def _interactive(client: NasneClient, band: BroadcastingType) -> None:
    while True:
        choice = _ask_action()
        if choice is None:
            return
        try:
            if choice == "1":
                channels = _show_channels(client, band)
                raw = input("serviceId para ver el programa (Enter vuelve): ").strip()
                if raw.isdigit():
                    for ch in channels:
                        if ch.service_id == int(raw):
                            _show_program(client, ch)
            elif choice == "2":
                _show_reservations(client)
            elif choice == "3":
                _show_recordings(client)
            elif choice == "4":
                raw = input("id de la grabación (Enter vuelve): ").strip()
                if raw:
                    _play(client, raw)
            else:
                _show_status(client)
        except DeviceUnreachable as exc:
            logger.error(f"[NASNE] {exc}")


def _run(args: argparse.Namespace, store: SettingsStore) -> None:
    if args.quality:
        store.set(KEY_QUALITY, int(_QUALITIES[args.quality]))
    quality = store.quality(int(Quality.DR))
    band = _BANDS[args.band]

    host = _resolve_host(args, store)
    if host is None:
        logger.info("[NASNE] Operación cancelada.", always=True)
        return

    client = _connect(host, store)
    if client is None:
        return

    if args.channels:
        _show_channels(client, band)
    elif args.program is not None:
        ch = _find_channel(client, band, args.program)
        if ch is not None:
            _show_program(client, ch)
    elif args.record is not None:
        ch = _find_channel(client, band, args.record)
        if ch is not None:
            _record_current(client, ch, band, quality)
    elif args.reservations:
        _show_reservations(client)
    elif args.recordings:
        _show_recordings(client)
    elif args.play:
        _play(client, args.play)
    elif args.delete_reservation:
        rid, rtype = args.delete_reservation
        client.delete_reservation(rid, int(rtype))
        logger.info(f"Reserva {rid} borrada.", always=True)
    elif args.delete_recording:
        client.delete_recorded_title(args.delete_recording)
        logger.info(f"Grabación {args.delete_recording} borrada.", always=True)
    elif args.status:
        _show_status(client)
    else:
        _interactive(client, band)


def start(argv: list[str] | None = None) -> None:
    """Entry-point principal (console_scripts)."""
    logger.progress("[NASNE] Inicio")
    args = _parse_args(argv)

    if SILENT_MODE:
        logger.progress("[NASNE] SILENT_MODE=True" + (" DEBUG_MODE=True" if DEBUG_MODE else ""))
    elif DEBUG_MODE:
        logger.debug_ctx("CLI", "SILENT_MODE=False DEBUG_MODE=True")

    try:
        _run(args, SettingsStore())
    except DeviceUnreachable as exc:
        logger.error(f"[NASNE] {exc}")
    except KeyboardInterrupt:
        logger.info("\n[NASNE] Interrumpido por el usuario (Ctrl+C).", always=True)
    finally:
        if DEBUG_MODE:
            logger.debug_ctx("CLI", f"metrics={METRICS.snapshot()['counters']}")
        logger.progress("[NASNE] Fin")


if __name__ == "__main__":
    start()
