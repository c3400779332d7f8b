from __future__ import annotations

"""
nasne_remote/transport.py

Transporte HTTP hacia el dispositivo.

- request(path, params): GET a la API JSON. Puerto según el área funcional del path.
  Lanza DeviceUnreachable ante conexión/timeout/no-2xx/JSON inválido.
- fetch_text(url) / post_soap(url, ...): helpers para el protocolo secundario (DLNA).
  No lanzan: devuelven None y dejan que el llamante pruebe el siguiente candidato.

Sin reintentos: el HTTPAdapter se monta con Retry(total=0). El llamante decide.
"""

import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from nasne_remote import logger as _logger
from nasne_remote.config_device import NASNE_API_TIMEOUT_SECONDS, NASNE_HTTP_USER_AGENT
from nasne_remote.errors import DeviceUnreachable
from nasne_remote.models import DeviceEndpoint, RequestDescriptor
from nasne_remote.run_metrics import METRICS


def build_http_session(*, user_agent: str = NASNE_HTTP_USER_AGENT) -> requests.Session:
    """
    requests.Session con pooling y SIN retries.

    Un único dispositivo en LAN: pool pequeño.
    """
    session = requests.Session()

    retries = Retry(total=0, connect=0, read=0, redirect=3, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retries, pool_connections=4, pool_maxsize=4)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update(
        {
            "User-Agent": (user_agent or "").strip() or "NasneRemote/1.0",
            "Accept": "application/json,text/xml,*/*",
        }
    )
    return session


class DeviceTransport:
    """Cliente HTTP ligado a un DeviceEndpoint."""

    def __init__(
        self,
        endpoint: DeviceEndpoint,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = NASNE_API_TIMEOUT_SECONDS,
    ) -> None:
        self.endpoint = endpoint
        self.session = session if session is not None else build_http_session()
        self.timeout_seconds = float(timeout_seconds)

    # ------------------------------------------------------------------
    # API JSON
    # ------------------------------------------------------------------

    def build_url(self, path: str, params: Mapping[str, object] | None = None) -> str:
        """URL completa: puerto por área funcional + query sin valores None."""
        desc = RequestDescriptor.build(path, params)
        url = f"{self.endpoint.base_url(self.endpoint.port_for(desc.path))}{desc.path}"
        if desc.params:
            url = f"{url}?{urlencode(desc.params)}"
        return url

    def request(self, path: str, params: Mapping[str, object] | None = None) -> Any:
        """
        GET + decodificación JSON.

        Cuerpo vacío con 2xx -> {} (p.ej. deletes que no devuelven nada).
        """
        url = self.build_url(path, params)
        _logger.debug_ctx("NASNE", f"GET {url}")

        METRICS.incr("nasne.api.calls")
        t0 = time.monotonic()
        try:
            resp = self.session.get(url, timeout=self.timeout_seconds)
        except RequestException as exc:
            METRICS.incr("nasne.api.errors")
            METRICS.add_error("nasne", "request", endpoint=url, detail=repr(exc))
            _logger.warning(f"[NASNE] Sin respuesta de {url}: {exc!r}")
            raise DeviceUnreachable(f"nasne API unreachable: {exc}", url=url) from exc
        finally:
            METRICS.observe_ms("nasne.api.latency_ms", (time.monotonic() - t0) * 1000.0)

        status = int(resp.status_code)
        if not 200 <= status < 300:
            METRICS.incr("nasne.api.errors")
            METRICS.add_error("nasne", "request", endpoint=url, detail=f"HTTP {status}")
            _logger.warning(f"[NASNE] HTTP {status} desde {url}")
            raise DeviceUnreachable(f"nasne API error: {status} {resp.reason or ''}".strip(), status_code=status, url=url)

        if not (resp.text or "").strip():
            return {}

        try:
            data = resp.json()
        except ValueError as exc:
            METRICS.incr("nasne.api.errors")
            METRICS.add_error("nasne", "decode", endpoint=url, detail=repr(exc))
            _logger.warning(f"[NASNE] JSON inválido desde {url}: {_logger.truncate_line(resp.text)}")
            raise DeviceUnreachable(f"nasne API returned invalid JSON: {exc}", status_code=status, url=url) from exc

        _logger.debug_ctx("NASNE", f"<- {_logger.truncate_line(repr(data))}")
        return data

    # ------------------------------------------------------------------
    # Protocolo secundario (DLNA)
    # ------------------------------------------------------------------

    def fetch_text(self, url: str, *, timeout_seconds: float) -> str | None:
        """GET de texto (description XML). None ante cualquier fallo."""
        try:
            resp = self.session.get(url, timeout=float(timeout_seconds))
        except RequestException as exc:
            _logger.debug_ctx("DLNA", f"GET {url} failed: {exc!r}")
            return None

        if not 200 <= int(resp.status_code) < 300:
            _logger.debug_ctx("DLNA", f"GET {url} -> HTTP {resp.status_code}")
            return None
        return resp.text

    def post_soap(self, url: str, body: str, *, soap_action: str, timeout_seconds: float) -> str | None:
        """POST SOAP. None ante cualquier fallo."""
        headers = {
            "Content-Type": 'text/xml; charset="utf-8"',
            "SOAPACTION": soap_action,
        }
        try:
            resp = self.session.post(url, data=body.encode("utf-8"), headers=headers, timeout=float(timeout_seconds))
        except RequestException as exc:
            METRICS.add_error("dlna", "soap", endpoint=url, detail=repr(exc))
            _logger.debug_ctx("DLNA", f"POST {url} failed: {exc!r}")
            return None

        if not 200 <= int(resp.status_code) < 300:
            METRICS.add_error("dlna", "soap", endpoint=url, detail=f"HTTP {resp.status_code}")
            _logger.debug_ctx("DLNA", f"POST {url} -> HTTP {resp.status_code}")
            return None
        return resp.text
