from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from xml.sax.saxutils import escape

import json
import pytest

from nasne_remote.run_metrics import METRICS
from nasne_remote.session import DeviceSession


@dataclass(slots=True)
class FakeResponse:
    status_code: int = 200
    text: str = ""
    reason: str = "OK"

    def json(self) -> Any:
        return json.loads(self.text)


@dataclass(slots=True)
class HTTPCall:
    method: str
    url: str
    timeout: float | None
    data: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)


Router = Callable[[str, str, "bytes | None"], "FakeResponse | BaseException"]


class FakeHTTP:
    """
    Minimal requests.Session stand-in with programmable routing.

    The router receives (method, url, body) and returns a FakeResponse,
    or an exception instance to be raised.
    """

    def __init__(self, router: Router) -> None:
        self._router = router
        self.calls: list[HTTPCall] = []
        self.headers: dict[str, str] = {}

    def _dispatch(self, call: HTTPCall) -> FakeResponse:
        self.calls.append(call)
        out = self._router(call.method, call.url, call.data)
        if isinstance(out, BaseException):
            raise out
        return out

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        return self._dispatch(HTTPCall(method="GET", url=url, timeout=timeout))

    def post(
        self,
        url: str,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        return self._dispatch(HTTPCall(method="POST", url=url, timeout=timeout, data=data, headers=dict(headers or {})))


def json_response(payload: object, *, status: int = 200) -> FakeResponse:
    return FakeResponse(status_code=status, text=json.dumps(payload))


def build_soap_envelope(didl_xml: str) -> str:
    """BrowseResponse with the DIDL escaped inside <Result>, as servers send it."""
    return (
        "<?xml version='1.0'?>"
        "<s:Envelope xmlns:s='http://schemas.xmlsoap.org/soap/envelope/'>"
        "<s:Body>"
        "<u:BrowseResponse xmlns:u='urn:schemas-upnp-org:service:ContentDirectory:1'>"
        f"<Result>{escape(didl_xml)}</Result>"
        "<NumberReturned>1</NumberReturned>"
        "<TotalMatches>1</TotalMatches>"
        "</u:BrowseResponse>"
        "</s:Body>"
        "</s:Envelope>"
    )


def build_didl(
    *,
    containers: list[tuple[str, str]] | None = None,
    items: list[tuple[str, list[tuple[str, str]]]] | None = None,
) -> str:
    """containers: [(id, title)]; items: [(title, [(url, protocolInfo)])]."""
    parts = [
        '<DIDL-Lite xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:upnp="urn:schemas-upnp-org:metadata-1-0/upnp/" '
        'xmlns="urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/">'
    ]
    for cid, title in containers or []:
        parts.append(
            f'<container id="{escape(cid)}" parentID="0" restricted="1">'
            f"<dc:title>{escape(title)}</dc:title>"
            "<upnp:class>object.container.storageFolder</upnp:class>"
            "</container>"
        )
    for n, (title, resources) in enumerate(items or []):
        res = "".join(f'<res protocolInfo="{escape(pi)}">{escape(url)}</res>' for url, pi in resources)
        parts.append(
            f'<item id="i{n}" parentID="0" restricted="1">'
            f"<dc:title>{escape(title)}</dc:title>"
            "<upnp:class>object.item.videoItem</upnp:class>"
            f"{res}"
            "</item>"
        )
    parts.append("</DIDL-Lite>")
    return "".join(parts)


DESCRIPTION_XML = (
    "<?xml version='1.0'?>"
    "<root xmlns='urn:schemas-upnp-org:device-1-0'>"
    "<device>"
    "<deviceType>urn:schemas-upnp-org:device:MediaServer:1</deviceType>"
    "<friendlyName>nasne</friendlyName>"
    "<serviceList>"
    "<service>"
    "<serviceType>urn:schemas-upnp-org:service:ConnectionManager:1</serviceType>"
    "<controlURL>/upnp/control/ConnectionManager</controlURL>"
    "</service>"
    "<service>"
    "<serviceType>urn:schemas-upnp-org:service:ContentDirectory:1</serviceType>"
    "<controlURL>/ctl/ContentDir</controlURL>"
    "</service>"
    "</serviceList>"
    "</device>"
    "</root>"
)


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    METRICS.reset()


@pytest.fixture()
def make_session() -> Callable[[Router], tuple[DeviceSession, FakeHTTP]]:
    def _make(router: Router, host: str = "192.168.1.10") -> tuple[DeviceSession, FakeHTTP]:
        http = FakeHTTP(router)
        return DeviceSession(host, http=http), http  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def description_xml() -> str:
    return DESCRIPTION_XML


@pytest.fixture()
def soap_envelope() -> Callable[[str], str]:
    return build_soap_envelope


@pytest.fixture()
def didl() -> Callable[..., str]:
    return build_didl


@pytest.fixture()
def json_ok() -> Callable[..., FakeResponse]:
    return json_response


@pytest.fixture()
def response() -> type[FakeResponse]:
    return FakeResponse
