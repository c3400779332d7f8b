from __future__ import annotations

"""
nasne_remote/session.py

Estado de una sesión contra UN dispositivo.

- endpoint + transporte HTTP
- cache del endpoint DLNA descubierto (solo éxitos; vive lo que la sesión)

Cambiar de dispositivo = crear otra sesión (switch_host); la cache no se hereda.
"""

from types import MappingProxyType

import requests

from nasne_remote import logger as _logger
from nasne_remote.config_device import NASNE_SCHEDULE_PORT, NASNE_STATUS_PORT
from nasne_remote.models import DeviceEndpoint, DiscoveredEndpoint
from nasne_remote.transport import DeviceTransport


def build_endpoint(host: str) -> DeviceEndpoint:
    """DeviceEndpoint con los puertos configurados."""
    return DeviceEndpoint(
        host=(host or "").strip(),
        ports=MappingProxyType(
            {
                "status": NASNE_STATUS_PORT,
                "schedule": NASNE_SCHEDULE_PORT,
                "recorded": NASNE_SCHEDULE_PORT,
                "chEpg": NASNE_SCHEDULE_PORT,
            }
        ),
        default_port=NASNE_STATUS_PORT,
    )


class DeviceSession:
    def __init__(self, host: str, *, http: requests.Session | None = None) -> None:
        self.endpoint = build_endpoint(host)
        self.transport = DeviceTransport(self.endpoint, session=http)
        self._discovered: DiscoveredEndpoint | None = None

    @property
    def host(self) -> str:
        return self.endpoint.host

    @property
    def discovered(self) -> DiscoveredEndpoint | None:
        return self._discovered

    def remember_discovered(self, found: DiscoveredEndpoint) -> None:
        self._discovered = found
        _logger.debug_ctx("DLNA", f"endpoint cacheado port={found.port} control={found.control_url}")

    def switch_host(self, host: str) -> "DeviceSession":
        """
        Sesión para otro host. Mismo host -> la misma sesión (cache intacta).
        """
        if (host or "").strip() == self.host:
            return self
        return DeviceSession(host, http=self.transport.session)
