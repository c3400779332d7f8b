from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from nasne_remote.errors import DeviceUnreachable
from nasne_remote.models import BroadcastingType, Channel, ProgramRecord, Quality, RecordingRecord, ReservationRequest
from nasne_remote.nasne_client import NasneClient, find_video_url


def _split(url: str) -> tuple[str, int | None, str, dict[str, str]]:
    parts = urlsplit(url)
    return parts.hostname or "", parts.port, parts.path, dict(parse_qsl(parts.query, keep_blank_values=True))


@pytest.fixture()
def api(make_session, json_ok):
    """Client whose API answers every GET with `payload` (or per-path dict)."""

    def _make(payload: object = None, *, by_path: dict[str, object] | None = None):
        def router(method, url, body):
            _, _, path, _ = _split(url)
            if by_path is not None and path in by_path:
                out = by_path[path]
                return out if isinstance(out, BaseException) else json_ok(out)
            return json_ok(payload if payload is not None else {})

        session, http = make_session(router)
        return NasneClient(session), http

    return _make


class TestChannels:
    def test_channel_list(self, api) -> None:
        client, http = api(
            {
                "channel": [
                    {"serviceId": 1024, "transportStreamId": 32736, "networkId": 32736, "title": "NHK", "remoteControlKeyId": 1},
                    {"serviceId": 1032, "serviceName": "Other"},
                    "garbage",
                ]
            }
        )
        channels = client.get_channel_list(BroadcastingType.BS)
        assert [c.display_name for c in channels] == ["NHK", "Other"]
        assert channels[0].display_number == "1"
        assert channels[1].display_number == "1032"

        _, port, path, q = _split(http.calls[0].url)
        assert (port, path, q) == (64210, "/status/channelListGet", {"broadcastingType": "3"})

    def test_channel_list_missing_key(self, api) -> None:
        client, _ = api({"errorCode": 0})
        assert client.get_channel_list(BroadcastingType.DTTV) == []

    def test_current_program_sends_tuning_info(self, api) -> None:
        client, http = api({"channel": {"currentProgram": {"title": "Now", "eventId": 3}}})
        ch = Channel(service_id=1, transport_stream_id=2, network_id=3, title="C")
        program = client.get_current_program(ch)
        assert program is not None and program.title == "Now"

        _, _, path, q = _split(http.calls[0].url)
        assert path == "/status/channelInfoGet2"
        assert q == {"serviceId": "1", "transportStreamId": "2", "networkId": "3", "withDescriptionLong": "1"}

    def test_current_program_unresolved_is_none(self, api) -> None:
        client, _ = api({"errorCode": 0})
        ch = Channel(service_id=1, transport_stream_id=None, network_id=None, title="C")
        assert client.get_current_program(ch) is None


class TestReservations:
    def test_reserved_list_defaults_and_shapes(self, api) -> None:
        client, http = api({"reservedList": [{"id": "7", "title": "A", "duration": 1800}, {"id": 8, "type": 2}]})
        out = client.get_reserved_list()
        assert [(r.id, r.type) for r in out] == [("7", 0), ("8", 2)]

        _, port, path, q = _split(http.calls[0].url)
        assert port == 64220
        assert path == "/schedule/reservedListGet"
        assert q["requestedCount"] == "0"
        assert q["withDescriptionLong"] == "1"
        assert q["withUserData"] == "0"

    def test_reserved_list_prefers_item(self, api) -> None:
        client, _ = api({"item": [{"id": "1"}], "reservedList": [{"id": "2"}]})
        assert [r.id for r in client.get_reserved_list()] == ["1"]

    def test_create_with_only_event_id_sends_defaults(self, api) -> None:
        client, http = api({})
        client.create_reservation(ReservationRequest(event_id=12345))

        _, _, path, q = _split(http.calls[0].url)
        assert path == "/schedule/reservedInfoCreate"
        assert q == {"title": "", "conditionId": "1", "quality": "100", "eventId": "12345"}

    def test_create_full_request(self, api) -> None:
        client, http = api({})
        client.create_reservation(
            ReservationRequest(
                service_id=1024,
                broadcasting_type=BroadcastingType.DTTV,
                start_date_time="2024-01-01T20:00:00+09:00",
                duration=3600,
                title="Movie",
                condition_id="w3",
                quality=Quality.THREE_X,
            )
        )
        _, _, _, q = _split(http.calls[0].url)
        assert q == {
            "title": "Movie",
            "startDateTime": "2024-01-01T20:00:00+09:00",
            "duration": "3600",
            "serviceId": "1024",
            "broadcastingType": "2",
            "conditionId": "w3",
            "quality": "101",
        }

    def test_delete_is_single_request_and_tolerates_empty_body(self, make_session, response) -> None:
        session, http = make_session(lambda m, u, b: response(status_code=200, text=""))
        client = NasneClient(session)
        assert client.delete_reservation("42", 1) == {}
        assert len(http.calls) == 1
        _, _, path, q = _split(http.calls[0].url)
        assert path == "/schedule/reservedInfoDelete"
        assert q == {"id": "42", "type": "1"}

    def test_conflict_list_drops_missing(self, api) -> None:
        client, http = api({"conflictList": []})
        client.get_conflict_list(start_date_time="2024-01-01T20:00:00", duration=60)
        _, _, path, q = _split(http.calls[0].url)
        assert path == "/schedule/conflictListGet"
        assert q == {"startDateTime": "2024-01-01T20:00:00", "duration": "60"}

    def test_record_program_uses_program_and_channel(self, api) -> None:
        client, http = api({})
        program = ProgramRecord(title="News", start_date_time="2024-01-01T19:00:00", duration=1800, event_id=99)
        ch = Channel(service_id=1024, transport_stream_id=1, network_id=1, title="NHK")
        client.record_program(program, ch, broadcasting_type=BroadcastingType.DTTV, quality=Quality.THREE_X)
        _, _, _, q = _split(http.calls[0].url)
        assert q["title"] == "News"
        assert q["serviceId"] == "1024"
        assert q["eventId"] == "99"
        assert q["quality"] == "101"

    def test_record_manual_is_one_hour_named_after_channel(self, api) -> None:
        client, http = api({})
        ch = Channel(service_id=5, transport_stream_id=None, network_id=None, title="BS1")
        client.record_manual(ch, broadcasting_type=BroadcastingType.BS, now_iso="2024-01-01T10:00:00.000Z")
        _, _, _, q = _split(http.calls[0].url)
        assert q["title"] == "BS1"
        assert q["duration"] == "3600"
        assert q["startDateTime"] == "2024-01-01T10:00:00.000Z"
        assert "eventId" not in q

    def test_record_manual_untitled_channel(self, api) -> None:
        client, http = api({})
        ch = Channel(service_id=5, transport_stream_id=None, network_id=None, title=None)
        client.record_manual(ch, broadcasting_type=BroadcastingType.BS)
        _, _, _, q = _split(http.calls[0].url)
        assert q["title"] == "Manual Recording"


class TestRecordings:
    def test_title_list_shapes(self, api) -> None:
        client, _ = api({"titleList": [{"id": "r1", "title": "T", "channelName": "NHK", "duration": "60"}]})
        out = client.get_recorded_title_list()
        assert out[0].id == "r1"
        assert out[0].channel_name == "NHK"
        assert out[0].duration == 60

    def test_delete_recorded_title(self, api) -> None:
        client, http = api({})
        client.delete_recorded_title("r1")
        _, port, path, q = _split(http.calls[0].url)
        assert (port, path, q) == (64220, "/recorded/titleDelete", {"id": "r1"})


class TestConnection:
    def test_ok(self, api) -> None:
        client, http = api({"errorCode": 0})
        assert client.test_connection() is True
        _, _, path, _ = _split(http.calls[0].url)
        assert path == "/status/boxStatusListGet"

    def test_failure_is_false(self, make_session) -> None:
        session, _ = make_session(lambda m, u, b: requests.ConnectionError("down"))
        assert NasneClient(session).test_connection() is False

    def test_other_calls_propagate(self, make_session) -> None:
        session, _ = make_session(lambda m, u, b: requests.ConnectionError("down"))
        with pytest.raises(DeviceUnreachable):
            NasneClient(session).get_reserved_list()


class TestFindVideoUrl:
    def test_known_field_first(self) -> None:
        raw = {"aaa": "http://h/other", "streamUrl": "http://h/stream"}
        assert find_video_url(raw) == "http://h/stream"

    def test_known_field_order(self) -> None:
        assert find_video_url({"url": "http://h/u", "contentUrl": "http://h/c"}) == "http://h/c"

    def test_known_field_must_start_with_http(self) -> None:
        assert find_video_url({"url": "/relative", "x": "https://h/x"}) == "https://h/x"

    def test_nested_one_level(self) -> None:
        raw = {"meta": {"link": "http://h/nested"}, "list": ["http://h/in-list"]}
        assert find_video_url(raw) == "http://h/nested"

    def test_not_deeper_than_one_level_and_not_lists(self) -> None:
        raw = {"meta": {"deep": {"link": "http://h/x"}}, "list": ["http://h/in-list"]}
        assert find_video_url(raw) is None


class TestResolvePlayback:
    def _recording(self, **raw: object) -> RecordingRecord:
        return RecordingRecord.from_payload(raw)

    def test_payload_url_wins_without_network(self, make_session) -> None:
        session, http = make_session(lambda m, u, b: requests.ConnectionError("unused"))
        target = NasneClient(session).resolve_playback(self._recording(id="1", title="T", contentUrl="http://h/c.ts"))
        assert target is not None
        assert (target.url, target.source) == ("http://h/c.ts", "payload")
        assert http.calls == []

    def test_content_directory_then_constructed(
        self, make_session, response, description_xml, soap_envelope, didl
    ) -> None:
        doc = didl(items=[("Drama", [("http://192.168.1.10:58888/d.ts", "http-get:*:video/mpeg:*")])])

        def router(method, url, body):
            if method == "GET":
                if url.endswith(":58888/description.xml"):
                    return response(text=description_xml)
                return response(status_code=404, text="")
            return response(text=soap_envelope(doc))

        session, _ = make_session(router)
        client = NasneClient(session)

        found = client.resolve_playback(self._recording(id="9", title="Drama"))
        assert found is not None
        assert found.source == "content_directory"
        assert found.url == "http://192.168.1.10:58888/d.ts"
        assert found.protocol_info == "http-get:*:video/mpeg:*"

        missing = client.resolve_playback(self._recording(id="10", title="Nothing like it"))
        assert missing is not None
        assert missing.source == "constructed"
        assert missing.misses == ("resource_not_found",)
        assert missing.url == "http://192.168.1.10:64210/recorded/bodyGet?id=10"

    def test_no_endpoint_falls_back_to_body_url(self, make_session, response) -> None:
        session, _ = make_session(lambda m, u, b: response(status_code=404, text=""))
        target = NasneClient(session).resolve_playback(self._recording(id="a b/c", title="T"))
        assert target is not None
        assert target.source == "constructed"
        assert target.misses == ("endpoint_not_found",)
        assert target.url == "http://192.168.1.10:64210/recorded/bodyGet?id=a+b%2Fc"

    def test_nothing_to_go_on_returns_none(self, make_session, response) -> None:
        session, _ = make_session(lambda m, u, b: response(status_code=404, text=""))
        assert NasneClient(session).resolve_playback(self._recording(title="T")) is None
