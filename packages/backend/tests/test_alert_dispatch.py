"""Alert dispatch tests — payload shape and the producer → relay → kiosk path."""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from expoalerts.realtime.dispatch import AlertDispatcher
from expoalerts.realtime.link import KioskLink, LinkState
from expoalerts.realtime.payload import alert_payload, encode_payload, format_timestamp
from expoalerts.realtime.relay import KioskRelay
from realtime_fakes import (
    FakeConnector,
    FakeKioskSocket,
    FakeLinkSocket,
    RelayBackedSocket,
    settle,
)

ENDPOINT = "ws://relay.test:5010/ws/ingest"


def _persisted(**overrides):
    row = dict(
        id=7,
        alert="Fire drill",
        sent_by="jane",
        sent_at=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
    )
    row.update(overrides)
    return SimpleNamespace(**row)


# ─── Payload ───────────────────────────────────────────────


def test_payload_key_order_and_names():
    payload = alert_payload(_persisted())
    assert list(payload) == ["id", "alert", "sentBy", "sentAt"]
    assert encode_payload(payload) == (
        '{"id":7,"alert":"Fire drill","sentBy":"jane","sentAt":"2025-01-01T10:00:00Z"}'
    )


def test_payload_omits_absent_optional_fields():
    payload = alert_payload({"alert": "Fire drill", "sent_at": "2025-01-01T10:00:00Z"})
    assert encode_payload(payload) == '{"alert":"Fire drill","sentAt":"2025-01-01T10:00:00Z"}'


def test_timestamps_are_rendered_in_utc():
    plus_two = timezone(timedelta(hours=2))
    assert format_timestamp(datetime(2025, 1, 1, 12, 0, tzinfo=plus_two)) == "2025-01-01T10:00:00Z"
    assert format_timestamp(datetime(2025, 1, 1, 10, 0)) == "2025-01-01T10:00:00Z"


def test_payload_keeps_non_ascii_text():
    text = encode_payload(alert_payload(_persisted(alert="Évacuation — Hall B")))
    assert "Évacuation — Hall B" in text


# ─── Dispatcher ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_dispatch_while_open_sends_serialized_alert():
    socket = FakeLinkSocket()
    link = KioskLink(ENDPOINT, connector=FakeConnector([socket]))
    link.initialize()
    await settle()

    assert AlertDispatcher(link).dispatch(_persisted()) is True
    await settle()

    assert socket.sent == [encode_payload(alert_payload(_persisted()))]
    await link.close()


@pytest.mark.asyncio
async def test_dispatch_while_closed_is_silent_drop():
    link = KioskLink(ENDPOINT, connector=FakeConnector([OSError("refused")]))
    link.initialize()
    await settle()
    assert link.state is LinkState.CLOSED

    with capture_logs() as logs:
        assert AlertDispatcher(link).dispatch(_persisted()) is False

    assert any(
        e["event"] == "kiosk_link.not_connected" and e["log_level"] == "warning"
        for e in logs
    )
    await link.close()


def test_dispatch_never_raises():
    class ExplodingLink:
        def send(self, payload):
            raise RuntimeError("boom")

    with capture_logs() as logs:
        assert AlertDispatcher(ExplodingLink()).dispatch(_persisted()) is False

    assert logs[0]["event"] == "alert_dispatch.failed"
    assert logs[0]["alert_id"] == 7


def test_dispatch_rejects_unserializable_alert_quietly():
    with capture_logs() as logs:
        assert AlertDispatcher(KioskLink(ENDPOINT)).dispatch(object()) is False
    assert logs[0]["event"] == "alert_dispatch.failed"


# ─── Producer → relay → kiosks ─────────────────────────────


@pytest.mark.asyncio
async def test_fire_drill_reaches_both_open_kiosks():
    relay = KioskRelay()
    lobby, hall = FakeKioskSocket("Lobby"), FakeKioskSocket("Hall")
    await relay.accept(lobby)
    await relay.accept(hall)

    link = KioskLink(ENDPOINT, connector=FakeConnector([RelayBackedSocket(relay)]))
    link.initialize()
    await settle()

    AlertDispatcher(link).dispatch({"alert": "Fire drill", "sent_at": "2025-01-01T10:00:00Z"})
    await settle()

    expected = '{"alert":"Fire drill","sentAt":"2025-01-01T10:00:00Z"}'
    assert lobby.sent == [expected]
    assert hall.sent == [expected]
    await link.close()


@pytest.mark.asyncio
async def test_relay_sees_dispatch_order():
    relay = KioskRelay()
    kiosk = FakeKioskSocket("Lobby")
    await relay.accept(kiosk)
    socket = RelayBackedSocket(relay)
    link = KioskLink(ENDPOINT, connector=FakeConnector([socket]))
    link.initialize()
    await settle()

    dispatcher = AlertDispatcher(link)
    for i in range(1, 6):
        dispatcher.dispatch(_persisted(id=i, alert=f"Alert {i}"))
    await settle()

    assert [json.loads(t)["id"] for t in socket.sent] == [1, 2, 3, 4, 5]
    assert kiosk.sent == socket.sent
    await link.close()


@pytest.mark.asyncio
async def test_dispatch_while_closed_reaches_no_kiosk():
    relay = KioskRelay()
    kiosk = FakeKioskSocket("Lobby")
    await relay.accept(kiosk)
    link = KioskLink(ENDPOINT, connector=FakeConnector([OSError("refused")]))
    link.initialize()
    await settle()

    AlertDispatcher(link).dispatch(_persisted())
    await settle()

    assert kiosk.sent == []
    await link.close()
