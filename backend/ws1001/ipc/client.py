"""Client side of the record server, used by ws1001-watch."""

import asyncio
import logging
from typing import Any, AsyncIterator

from ..schemas.record import WeatherRecordData
from .protocol import (
    CMD_STATUS,
    CMD_SUBSCRIBE,
    IPC_HOST,
    MSG_WEATHER_RECORD,
    decode_message,
    encode_message,
)

logger = logging.getLogger(__name__)


class DaemonError(Exception):
    """The daemon answered a request with an error."""


class IPCClient:
    """Talks to a running daemon over localhost TCP."""

    def __init__(self, port: int, host: str = IPC_HOST, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def status(self) -> dict[str, Any]:
        """Fetch the daemon's session and stream status.

        Raises OSError if the daemon is unreachable, asyncio.TimeoutError
        if it does not answer, DaemonError if it answers with an error.
        """
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(encode_message({"cmd": CMD_STATUS}))
            await writer.drain()
            line = await asyncio.wait_for(reader.readline(), self.timeout)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        if not line:
            raise ConnectionError("Daemon closed the connection")
        response = decode_message(line)
        if not response.get("ok"):
            raise DaemonError(response.get("error", "request failed"))
        return response["data"]

    async def records(self) -> AsyncIterator[WeatherRecordData]:
        """Subscribe and yield records until the daemon disconnects."""
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(encode_message({"cmd": CMD_SUBSCRIBE}))
            await writer.drain()

            ack = await asyncio.wait_for(reader.readline(), self.timeout)
            if not ack:
                return
            logger.debug("Subscribed to %s:%d", self.host, self.port)

            while True:
                line = await reader.readline()
                if not line:
                    break
                message = decode_message(line)
                if message.get("type") == MSG_WEATHER_RECORD:
                    yield WeatherRecordData.model_validate(message["data"])
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
