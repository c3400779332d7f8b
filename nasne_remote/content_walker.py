from __future__ import annotations

"""
nasne_remote/content_walker.py

Búsqueda de una grabación en el árbol ContentDirectory por título.

- Browse (BrowseDirectChildren) vía SOAP contra la controlURL descubierta.
- El DIDL-Lite llega escapado dentro de <Result>: se extrae y se des-escapa.
- Contenedores, items y <res> se sacan con regex (DIDL de firmwares "quirky").
- DFS con límite de profundidad y set de contenedores visitados (anti-ciclos).

En cada nivel se miran primero los items y después se baja a los contenedores.
Reglas de título (cada una sobre TODO el nivel antes de pasar a la siguiente):
  1) igualdad exacta
  2) el título buscado contiene el del item
  3) el título del item contiene el buscado
Títulos vacíos nunca coinciden.
"""

import html
import re
import time
from collections.abc import Callable, Sequence
from typing import Final
from xml.sax.saxutils import escape as _xml_escape

from nasne_remote import logger as _logger
from nasne_remote.config_device import (
    DLNA_BROWSE_REQUESTED_COUNT,
    DLNA_BROWSE_TIMEOUT_SECONDS,
    NASNE_WALK_MAX_DEPTH,
)
from nasne_remote.models import ContentContainer, ContentItem, Resource
from nasne_remote.run_metrics import METRICS
from nasne_remote.service_discovery import discover_content_endpoint
from nasne_remote.session import DeviceSession

CONTENT_DIRECTORY_SERVICE: Final[str] = "urn:schemas-upnp-org:service:ContentDirectory:1"
ROOT_OBJECT_ID: Final[str] = "0"

_VIDEO_EXTENSIONS: Final[tuple[str, ...]] = (".ts", ".m2ts", ".mts", ".mp4", ".m4v", ".mpg", ".mpeg", ".mkv", ".avi")

_RESULT_RE: Final[re.Pattern[str]] = re.compile(r"<(?:\w+:)?Result\b[^>]*>(.*?)</(?:\w+:)?Result>", re.DOTALL)
_CONTAINER_RE: Final[re.Pattern[str]] = re.compile(r"<container\b([^>]*?)(?:/>|>(.*?)</container>)", re.DOTALL)
_ITEM_RE: Final[re.Pattern[str]] = re.compile(r"<item\b([^>]*)>(.*?)</item>", re.DOTALL)
_TITLE_RE: Final[re.Pattern[str]] = re.compile(r"<dc:title\b[^>]*>(.*?)</dc:title>", re.DOTALL)
_RES_RE: Final[re.Pattern[str]] = re.compile(r"<res\b([^>]*)>(.*?)</res>", re.DOTALL)
_ID_ATTR_RE: Final[re.Pattern[str]] = re.compile(r"""\bid\s*=\s*(["'])(.*?)\1""", re.DOTALL)
_PROTOCOL_INFO_ATTR_RE: Final[re.Pattern[str]] = re.compile(r"""\bprotocolInfo\s*=\s*(["'])(.*?)\1""", re.DOTALL)


# =============================================================================
# SOAP Browse
# =============================================================================


def _browse_envelope(object_id: str, *, starting_index: int = 0, requested_count: int = DLNA_BROWSE_REQUESTED_COUNT) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/" '
        's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
        "<s:Body>"
        f'<u:Browse xmlns:u="{CONTENT_DIRECTORY_SERVICE}">'
        f"<ObjectID>{_xml_escape(object_id)}</ObjectID>"
        "<BrowseFlag>BrowseDirectChildren</BrowseFlag>"
        "<Filter>*</Filter>"
        f"<StartingIndex>{int(starting_index)}</StartingIndex>"
        f"<RequestedCount>{int(requested_count)}</RequestedCount>"
        "<SortCriteria></SortCriteria>"
        "</u:Browse>"
        "</s:Body>"
        "</s:Envelope>"
    )


def extract_didl(envelope: str) -> str | None:
    """Texto DIDL-Lite contenido en <Result>, ya des-escapado."""
    m = _RESULT_RE.search(envelope or "")
    if m is None:
        return None
    return html.unescape(m.group(1))


# =============================================================================
# Parsing DIDL (regex)
# =============================================================================


def _text(raw: str) -> str:
    return html.unescape(raw or "").strip()


def _attr(pattern: re.Pattern[str], attrs: str) -> str | None:
    m = pattern.search(attrs or "")
    if m is None:
        return None
    return html.unescape(m.group(2)).strip() or None


def parse_containers(didl: str) -> list[ContentContainer]:
    out: list[ContentContainer] = []
    for m in _CONTAINER_RE.finditer(didl or ""):
        object_id = _attr(_ID_ATTR_RE, m.group(1))
        if not object_id:
            continue
        t = _TITLE_RE.search(m.group(2) or "")
        out.append(ContentContainer(object_id=object_id, title=_text(t.group(1)) if t else ""))
    return out


def parse_items(didl: str) -> list[ContentItem]:
    """Items con título y al menos un <res> con URL. El resto se descarta."""
    out: list[ContentItem] = []
    for m in _ITEM_RE.finditer(didl or ""):
        body = m.group(2)
        t = _TITLE_RE.search(body)
        title = _text(t.group(1)) if t else ""
        if not title:
            continue

        resources: list[Resource] = []
        for r in _RES_RE.finditer(body):
            url = _text(r.group(2))
            if not url:
                continue
            resources.append(Resource(url=url, protocol_info=_attr(_PROTOCOL_INFO_ATTR_RE, r.group(1))))

        if resources:
            out.append(ContentItem(title=title, resources=tuple(resources)))
    return out


def browse_children(
    session: DeviceSession,
    control_url: str,
    object_id: str,
) -> tuple[list[ContentContainer], list[ContentItem]] | None:
    """Hijos directos de un contenedor. None si el Browse falla o no hay <Result>."""
    METRICS.incr("dlna.browse.calls")
    t0 = time.monotonic()
    envelope = session.transport.post_soap(
        control_url,
        _browse_envelope(object_id),
        soap_action=f'"{CONTENT_DIRECTORY_SERVICE}#Browse"',
        timeout_seconds=DLNA_BROWSE_TIMEOUT_SECONDS,
    )
    METRICS.observe_ms("dlna.browse.latency_ms", (time.monotonic() - t0) * 1000.0)

    if envelope is None:
        METRICS.incr("dlna.browse.errors")
        return None

    didl = extract_didl(envelope)
    if didl is None:
        METRICS.incr("dlna.browse.missing_result")
        _logger.debug_ctx("DLNA", f"Browse {object_id!r} sin <Result>")
        return None

    return parse_containers(didl), parse_items(didl)


# =============================================================================
# Matching
# =============================================================================


def _norm(title: str) -> str:
    return " ".join((title or "").split()).casefold()


_MatchRule = Callable[[str, str], bool]

_MATCH_RULES: Final[tuple[_MatchRule, ...]] = (
    lambda target, title: target == title,
    lambda target, title: title in target,
    lambda target, title: target in title,
)


def match_item(items: Sequence[ContentItem], target_title: str) -> ContentItem | None:
    """
    Primer item que cumple la regla más fuerte posible en este nivel.

    La igualdad literal gana a cualquier coincidencia normalizada.
    """
    target = _norm(target_title)
    if not target:
        return None

    for item in items:
        if item.title == target_title:
            return item

    normalized = [(_norm(it.title), it) for it in items]
    for rule in _MATCH_RULES:
        for title, item in normalized:
            if title and rule(target, title):
                return item
    return None


def _is_video_resource(res: Resource) -> bool:
    info = (res.protocol_info or "").lower()
    if "video" in info:
        return True
    path = res.url.lower().split("?", 1)[0]
    return "video" in path or path.endswith(_VIDEO_EXTENSIONS)


def pick_resource(item: ContentItem) -> Resource | None:
    """Recurso de vídeo si lo hay; si no, el primero."""
    for res in item.resources:
        if _is_video_resource(res):
            return res
    return item.resources[0] if item.resources else None


# =============================================================================
# Traversal
# =============================================================================


def _walk(
    session: DeviceSession,
    control_url: str,
    object_id: str,
    target_title: str,
    *,
    depth: int,
    max_depth: int,
    visited: set[str],
) -> Resource | None:
    if depth > max_depth or object_id in visited:
        return None
    visited.add(object_id)
    METRICS.incr("dlna.walk.containers_visited")

    children = browse_children(session, control_url, object_id)
    if children is None:
        return None
    containers, items = children

    hit = match_item(items, target_title)
    if hit is not None:
        _logger.debug_ctx("DLNA", f"match {hit.title!r} en contenedor {object_id!r} (depth={depth})")
        return pick_resource(hit)

    for c in containers:
        found = _walk(
            session,
            control_url,
            c.object_id,
            target_title,
            depth=depth + 1,
            max_depth=max_depth,
            visited=visited,
        )
        if found is not None:
            return found
    return None


def find_recording_resource(
    session: DeviceSession,
    title: str,
    *,
    max_depth: int = NASNE_WALK_MAX_DEPTH,
) -> Resource | None:
    """
    Recurso reproducible para una grabación, buscando por título.

    None si no hay endpoint DLNA o si ningún item coincide.
    """
    if not _norm(title):
        return None

    endpoint = discover_content_endpoint(session)
    if endpoint is None:
        return None

    resource = _walk(
        session,
        endpoint.control_url,
        ROOT_OBJECT_ID,
        title,
        depth=0,
        max_depth=max(0, int(max_depth)),
        visited=set(),
    )
    if resource is None:
        _logger.info(f"[DLNA] Sin recurso para {title!r}")
    return resource
