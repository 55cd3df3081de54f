"""Record server: runs inside the daemon.

Publishes every decoded weather record to subscribed local clients and
answers status requests. A client that subscribes while a record is
already known gets that record straight after the acknowledgement, so a
watcher never waits a full poll interval for its first line.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from ..protocol.records import WeatherRecord
from ..schemas.record import IPCMessage, WeatherRecordData
from .protocol import (
    CMD_STATUS,
    CMD_SUBSCRIBE,
    CMD_UNSUBSCRIBE,
    IPC_HOST,
    MSG_WEATHER_RECORD,
    decode_message,
    encode_message,
)

logger = logging.getLogger(__name__)

StatusProvider = Callable[[], dict[str, Any]]


class RecordServer:
    """Localhost fan-out of weather records."""

    def __init__(self, port: int, status: StatusProvider, host: str = IPC_HOST):
        self.host = host
        self.port = port
        self._status = status
        self._server: asyncio.Server | None = None
        self._subscribers: set[asyncio.StreamWriter] = set()
        self._latest: Optional[bytes] = None
        self.published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def bound_port(self) -> int:
        """Actual listening port (differs from port when port is 0)."""
        if self._server and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self.port

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_client, self.host, self.port,
        )
        logger.info("Record server listening on %s:%d", self.host, self.bound_port)

    async def stop(self) -> None:
        """Stop listening and hang up on every subscriber."""
        for writer in list(self._subscribers):
            writer.close()
        self._subscribers.clear()

        if self._server:
            self._server.close()
            self._server = None
            logger.info("Record server stopped")

    async def publish(self, record: WeatherRecord) -> int:
        """Send a record to all subscribers. Returns how many received it."""
        message = IPCMessage(
            type=MSG_WEATHER_RECORD,
            data=WeatherRecordData.from_record(record),
        )
        data = encode_message(message.model_dump(mode="json"))
        self._latest = data
        self.published += 1

        dead: list[asyncio.StreamWriter] = []
        for writer in list(self._subscribers):
            try:
                writer.write(data)
                await writer.drain()
            except OSError:
                dead.append(writer)

        for writer in dead:
            self._subscribers.discard(writer)
        if dead:
            logger.debug("Dropped %d dead subscriber(s)", len(dead))
        return len(self._subscribers)

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.debug("Client connected: %s", peer)

        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                try:
                    msg = decode_message(line)
                except ValueError:
                    await self._send(writer, {"ok": False, "error": "Invalid JSON"})
                    continue
                await self._dispatch(msg, writer)
        except OSError:
            pass
        finally:
            self._subscribers.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
            logger.debug("Client disconnected: %s", peer)

    async def _dispatch(self, msg: Any, writer: asyncio.StreamWriter) -> None:
        cmd = msg.get("cmd") if isinstance(msg, dict) else None

        if cmd == CMD_STATUS:
            status = dict(self._status())
            status["subscribers"] = self.subscriber_count
            status["published"] = self.published
            await self._send(writer, {"ok": True, "data": status})
        elif cmd == CMD_SUBSCRIBE:
            self._subscribers.add(writer)
            await self._send(writer, {"ok": True, "subscribed": True})
            if self._latest is not None:
                writer.write(self._latest)
                await writer.drain()
        elif cmd == CMD_UNSUBSCRIBE:
            self._subscribers.discard(writer)
            await self._send(writer, {"ok": True})
        else:
            await self._send(writer, {"ok": False, "error": f"Unknown command: {cmd}"})

    @staticmethod
    async def _send(writer: asyncio.StreamWriter, msg: dict[str, Any]) -> None:
        writer.write(encode_message(msg))
        await writer.drain()
