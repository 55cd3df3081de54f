"""Tests for record fan-out, the record schema, the watcher and the daemon."""

import asyncio

import pytest

from ws1001.config import Settings
from ws1001.daemon import StationDaemon
from ws1001.ipc.client import DaemonError, IPCClient
from ws1001.ipc.protocol import (
    MSG_WEATHER_RECORD,
    decode_message,
    encode_message,
)
from ws1001.ipc.server import RecordServer
from ws1001.protocol.codec import decode_now_record
from ws1001.protocol.session import SessionState
from ws1001.schemas.record import IPCMessage, WeatherRecordData
from ws1001.watch import format_record, format_status


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_event_loop().time() + timeout
    while not predicate():
        if asyncio.get_event_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


async def _started_server(status=None) -> RecordServer:
    server = RecordServer(0, status or (lambda: {"state": "connected"}))
    await server.start()
    return server


async def _request(port: int, raw: bytes) -> dict:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        writer.write(raw)
        await writer.drain()
        return decode_message(await asyncio.wait_for(reader.readline(), 2.0))
    finally:
        writer.close()


class TestWireProtocol:
    def test_encode_is_single_line(self):
        raw = encode_message({"cmd": "status", "x": [1, 2]})
        assert raw.endswith(b"\n")
        assert raw.count(b"\n") == 1

    def test_decode_round_trip(self):
        msg = {"ok": True, "data": {"state": "connected"}}
        assert decode_message(encode_message(msg)) == msg


class TestRecordServer:
    def test_status_includes_fan_out_counters(self):
        async def scenario():
            server = await _started_server()
            try:
                return await IPCClient(server.bound_port).status()
            finally:
                await server.stop()

        assert asyncio.run(scenario()) == {
            "state": "connected", "subscribers": 0, "published": 0,
        }

    def test_unknown_command(self):
        async def scenario():
            server = await _started_server()
            try:
                return await _request(server.bound_port, encode_message({"cmd": "reboot"}))
            finally:
                await server.stop()

        response = asyncio.run(scenario())
        assert response["ok"] is False
        assert "reboot" in response["error"]

    def test_invalid_json(self):
        async def scenario():
            server = await _started_server()
            try:
                return await _request(server.bound_port, b"not json\n")
            finally:
                await server.stop()

        assert asyncio.run(scenario()) == {"ok": False, "error": "Invalid JSON"}

    def test_unsubscribe_stops_delivery(self, make_now_record):
        record = decode_now_record(make_now_record())

        async def scenario():
            server = await _started_server()
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            try:
                writer.write(encode_message({"cmd": "subscribe"}))
                await writer.drain()
                await reader.readline()
                writer.write(encode_message({"cmd": "unsubscribe"}))
                await writer.drain()
                await reader.readline()
                return await server.publish(record), server.published
            finally:
                writer.close()
                await server.stop()

        assert asyncio.run(scenario()) == (0, 1)

    def test_subscriber_receives_published_record(self, make_now_record):
        record = decode_now_record(make_now_record(outside_temp=-4.5))

        async def scenario():
            server = await _started_server()
            subscription = IPCClient(server.bound_port).records()
            pending = asyncio.ensure_future(subscription.__anext__())
            try:
                await _wait_for(lambda: server.subscriber_count == 1)
                delivered = await server.publish(record)
                return delivered, await asyncio.wait_for(pending, 2.0)
            finally:
                await subscription.aclose()
                await server.stop()

        delivered, received = asyncio.run(scenario())
        assert delivered == 1
        assert isinstance(received, WeatherRecordData)
        assert received.outside.temperature == -4.5

    def test_late_subscriber_gets_latest_record(self, make_now_record):
        older = decode_now_record(make_now_record(uv_index=1))
        latest = decode_now_record(make_now_record(uv_index=7))

        async def scenario():
            server = await _started_server()
            await server.publish(older)
            await server.publish(latest)
            subscription = IPCClient(server.bound_port).records()
            try:
                return await asyncio.wait_for(subscription.__anext__(), 2.0)
            finally:
                await subscription.aclose()
                await server.stop()

        assert asyncio.run(scenario()).uv_index == 7

    def test_publish_without_subscribers(self, make_now_record):
        async def scenario():
            server = await _started_server()
            try:
                return await server.publish(decode_now_record(make_now_record()))
            finally:
                await server.stop()

        assert asyncio.run(scenario()) == 0


class TestIPCClient:
    def test_status_unreachable(self):
        async def scenario():
            server = await _started_server()
            port = server.bound_port
            await server.stop()
            return await IPCClient(port).status()

        with pytest.raises(OSError):
            asyncio.run(scenario())

    def test_error_response_raises(self):
        async def scenario():
            async def reject(reader, writer):
                await reader.readline()
                writer.write(encode_message({"ok": False, "error": "busy"}))
                await writer.drain()
                writer.close()

            fake = await asyncio.start_server(reject, "127.0.0.1", 0)
            try:
                return await IPCClient(fake.sockets[0].getsockname()[1]).status()
            finally:
                fake.close()

        with pytest.raises(DaemonError, match="busy"):
            asyncio.run(scenario())

class TestRecordSchema:
    def test_from_record(self, make_now_record):
        record = decode_now_record(make_now_record())
        data = WeatherRecordData.from_record(record).model_dump(mode="json")
        assert data["device"] == "HP2000"
        assert data["outside"] == {"temperature": 21.5, "humidity": 78}
        assert data["inside"] == {"temperature": 22.25, "humidity": 45}
        assert data["wind"] == {"direction": 180, "speed": 3.5, "gust": 6.25, "chill": 21.0}
        assert data["rain"] == {"rate": 0.0, "daily": 1.5, "weekly": 4.25, "yearly": 250.75}
        assert data["solar_radiation"] == 432.5
        assert data["uv_index"] == 3
        assert data["heat_index"] == 22

    def test_monthly_rain_absent(self, make_now_record):
        record = decode_now_record(make_now_record(monthly_rain=12.5))
        data = WeatherRecordData.from_record(record).model_dump(mode="json")
        assert "monthly" not in data["rain"]

    def test_message_envelope(self, make_now_record):
        record = decode_now_record(make_now_record())
        message = IPCMessage(
            type=MSG_WEATHER_RECORD, data=WeatherRecordData.from_record(record),
        ).model_dump(mode="json")
        assert message["type"] == "weather_record"
        assert message["data"]["barometer"] == 1009.25

    def test_console_line(self, make_now_record):
        record = decode_now_record(make_now_record())
        line = format_record(WeatherRecordData.from_record(record))
        assert line.startswith("HP2000: out 21.5 78%")
        assert "@ 180" in line



    def test_status_text(self):
        text = format_status({
            "state": "connected",
            "peer": ["192.168.1.77", 50123],
            "poll_interval": 10.0,
            "subscribers": 2,
            "published": 5,
            "records": 6,
            "skipped": 1,
            "last_record": None,
        })
        assert "state:          connected" in text
        assert "192.168.1.77:50123" in text
        assert "6 (1 skipped)" in text


class StubSession:
    state = SessionState.CONNECTED
    peer = ("192.168.1.77", 50123)


class TestDaemon:
    def test_publish_reaches_subscribers(self, make_now_record):
        record = decode_now_record(make_now_record(wind_direction=90))

        async def scenario():
            daemon = StationDaemon(Settings(_env_file=None))
            daemon.record_server = await _started_server(daemon.status)
            subscription = IPCClient(daemon.record_server.bound_port).records()
            pending = asyncio.ensure_future(subscription.__anext__())
            try:
                await _wait_for(lambda: daemon.record_server.subscriber_count == 1)
                await daemon._publish(record)
                return await asyncio.wait_for(pending, 2.0)
            finally:
                await subscription.aclose()
                await daemon.record_server.stop()

        assert asyncio.run(scenario()).wind.direction == 90

    def test_status_before_connect(self):
        daemon = StationDaemon(Settings(_env_file=None, poll_interval_sec=15))
        assert daemon.status() == {"state": "idle", "peer": None, "poll_interval": 15}

    def test_status_while_connected(self):
        daemon = StationDaemon(Settings(_env_file=None))
        daemon.session = StubSession()
        status = daemon.status()
        assert status["state"] == "connected"
        assert status["peer"] == ["192.168.1.77", 50123]

    def test_status_over_ipc(self):
        async def scenario():
            daemon = StationDaemon(Settings(_env_file=None))
            daemon.session = StubSession()
            daemon.record_server = await _started_server(daemon.status)
            try:
                return await IPCClient(daemon.record_server.bound_port).status()
            finally:
                await daemon.record_server.stop()

        status = asyncio.run(scenario())
        assert status["state"] == "connected"
        assert status["subscribers"] == 0
        assert status["published"] == 0
