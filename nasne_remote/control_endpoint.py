from __future__ import annotations

"""
nasne_remote/control_endpoint.py

Extrae la controlURL del servicio ContentDirectory de un device description.

Se trabaja sobre el texto crudo con regex: algunos firmwares sirven descriptions
que no son XML bien formado (namespaces rotos, basura tras </root>), así que no
dependemos de un parser estricto.
"""

import re
from typing import Final
from urllib.parse import urljoin

from nasne_remote import logger as _logger
from nasne_remote.config_device import DLNA_CONTROL_FALLBACK_PATH

_SERVICE_BLOCK_RE: Final[re.Pattern[str]] = re.compile(
    r"<(?:\w+:)?service\b[^>]*>(.*?)</(?:\w+:)?service>", re.IGNORECASE | re.DOTALL
)
_SERVICE_TYPE_RE: Final[re.Pattern[str]] = re.compile(
    r"<(?:\w+:)?serviceType\b[^>]*>(.*?)</(?:\w+:)?serviceType>", re.IGNORECASE | re.DOTALL
)
_CONTROL_URL_RE: Final[re.Pattern[str]] = re.compile(
    r"<(?:\w+:)?controlURL\b[^>]*>(.*?)</(?:\w+:)?controlURL>", re.IGNORECASE | re.DOTALL
)


def _content_directory_control_path(description: str) -> str | None:
    for block in _SERVICE_BLOCK_RE.finditer(description or ""):
        body = block.group(1)
        st = _SERVICE_TYPE_RE.search(body)
        if st is None or "ContentDirectory" not in st.group(1):
            continue
        cu = _CONTROL_URL_RE.search(body)
        if cu is None:
            continue
        path = cu.group(1).strip()
        if path:
            return path
    return None


def resolve_control_url(description: str, host: str, port: int) -> str | None:
    """
    controlURL absoluta para ContentDirectory.

    - URL absoluta en el description -> tal cual.
    - Path relativo -> unido a http://host:port/.
    - Sin bloque ContentDirectory -> path de fallback convencional.
    - host vacío -> None.
    """
    h = (host or "").strip()
    if not h:
        return None

    base = f"http://{h}:{int(port)}/"
    path = _content_directory_control_path(description)

    if path is None:
        _logger.debug_ctx("DLNA", f"controlURL no encontrada en {base}; usando {DLNA_CONTROL_FALLBACK_PATH}")
        return urljoin(base, DLNA_CONTROL_FALLBACK_PATH)

    if path.lower().startswith(("http://", "https://")):
        return path
    return urljoin(base, path)
