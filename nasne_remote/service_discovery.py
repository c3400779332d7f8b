from __future__ import annotations

"""
nasne_remote/service_discovery.py

Localiza el media server DLNA del dispositivo probando puertos y paths de
device description conocidos (sin SSDP: el host ya es conocido).

Orden:
  1) path canónico en cada puerto candidato (timeout corto)
  2) paths alternativos en cada puerto (timeout más corto)

El primer documento que contenga un marcador de media server gana, corta el
resto de sondas y queda cacheado en la sesión junto con su controlURL.
"""

import time
from typing import Final

from nasne_remote import logger as _logger
from nasne_remote.config_device import (
    DLNA_ALT_DESCRIPTION_PATHS,
    DLNA_ALT_PROBE_TIMEOUT_SECONDS,
    DLNA_CANDIDATE_PORTS,
    DLNA_DESCRIPTION_PATH,
    DLNA_PROBE_TIMEOUT_SECONDS,
)
from nasne_remote.control_endpoint import resolve_control_url
from nasne_remote.models import DiscoveredEndpoint
from nasne_remote.run_metrics import METRICS
from nasne_remote.session import DeviceSession

MEDIA_SERVER_MARKERS: Final[tuple[str, ...]] = (
    "ContentDirectory",
    "urn:schemas-upnp-org:device:MediaServer",
)


def looks_like_media_server(text: str | None) -> bool:
    if not text:
        return False
    return any(marker in text for marker in MEDIA_SERVER_MARKERS)


def _probe_plan() -> list[tuple[int, str, float]]:
    plan: list[tuple[int, str, float]] = [
        (port, DLNA_DESCRIPTION_PATH, DLNA_PROBE_TIMEOUT_SECONDS) for port in DLNA_CANDIDATE_PORTS
    ]
    for port in DLNA_CANDIDATE_PORTS:
        for path in DLNA_ALT_DESCRIPTION_PATHS:
            if path == DLNA_DESCRIPTION_PATH:
                continue
            plan.append((port, path, DLNA_ALT_PROBE_TIMEOUT_SECONDS))
    return plan


def discover_content_endpoint(session: DeviceSession) -> DiscoveredEndpoint | None:
    """
    Endpoint DLNA de la sesión (cacheado) o None si ningún candidato responde.

    Nunca lanza.
    """
    cached = session.discovered
    if cached is not None:
        METRICS.incr("dlna.discovery.cache_hits")
        return cached

    host = session.host
    if not host:
        return None

    t0 = time.monotonic()
    for port, path, timeout_s in _probe_plan():
        url = f"http://{host}:{port}{path}"
        METRICS.incr("dlna.discovery.probes")

        text = session.transport.fetch_text(url, timeout_seconds=timeout_s)
        if not looks_like_media_server(text):
            continue

        control_url = resolve_control_url(text or "", host, port)
        if control_url is None:
            continue

        found = DiscoveredEndpoint(port=port, description=text or "", control_url=control_url)
        session.remember_discovered(found)
        METRICS.observe_ms("dlna.discovery.latency_ms", (time.monotonic() - t0) * 1000.0)
        _logger.info(f"[DLNA] Media server en {url} (control={control_url})")
        return found

    METRICS.incr("dlna.discovery.not_found")
    METRICS.observe_ms("dlna.discovery.latency_ms", (time.monotonic() - t0) * 1000.0)
    _logger.warning(f"[DLNA] No se encontró media server en {host} (puertos {DLNA_CANDIDATE_PORTS})")
    return None
