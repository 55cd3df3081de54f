"""Session with a WS-1001 console: discovery, connection and polling.

Discovery is "announce then wait": the PC binds its TCP listener, sends a
SEARCH frame to the UDP broadcast address, and the console connects back.
The first inbound connection becomes the session transport and is held
until the session is closed. Each poll is one READ/NOWRECORD query
answered by exactly one frame.
"""

import asyncio
import logging
import socket
from enum import Enum
from typing import Optional

from ..config import Settings
from ..config import settings as default_settings
from ..errors import DecodingError, DiscoveryTimeout, SessionClosed, TransportError, WS1001Error
from .codec import decode_header, decode_response, encode_command, expected_frame_size
from .constants import HEADER_SIZE, MAX_FRAME_SIZE
from .records import Command, WeatherRecord

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    AWAITING_CONNECTION = "awaiting_connection"
    CONNECTED = "connected"
    POLLING = "polling"
    CLOSED = "closed"
    FAILED = "failed"


def _send_search(cfg: Settings, frame: bytes) -> None:
    """Send one SEARCH datagram to the broadcast address (blocking)."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 0)
        sock.bind((cfg.bind_host, cfg.discovery_bind_port))
        sock.sendto(frame, (cfg.broadcast_address, cfg.broadcast_port))


async def broadcast_search(cfg: Settings) -> None:
    """Broadcast a SEARCH command so consoles on the LAN connect back."""
    frame = encode_command(Command.search(cfg.device_name))
    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(None, _send_search, cfg, frame)
    except OSError as exc:
        raise TransportError(
            f"SEARCH broadcast to {cfg.broadcast_address}:{cfg.broadcast_port} failed: {exc}"
        ) from exc
    logger.debug("TX: %s", frame.hex())
    logger.info("Sent SEARCH broadcast to %s:%d", cfg.broadcast_address, cfg.broadcast_port)


class WeatherStationSession:
    """One console connection, from discovery to close."""

    def __init__(self, cfg: Optional[Settings] = None, poll_interval: Optional[float] = None):
        self.settings = cfg or default_settings
        self.poll_interval = poll_interval or self.settings.poll_interval_sec
        self.peer: Optional[tuple] = None
        self._state = SessionState.IDLE
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._io_lock = asyncio.Lock()

    @classmethod
    def from_streams(
        cls,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        cfg: Optional[Settings] = None,
        poll_interval: Optional[float] = None,
    ) -> "WeatherStationSession":
        """Wrap an already established console connection."""
        session = cls(cfg, poll_interval)
        session._attach(reader, writer)
        return session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state in (SessionState.CONNECTED, SessionState.POLLING)

    def _attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self.peer = writer.get_extra_info("peername")
        self._state = SessionState.CONNECTED

    async def connect(self) -> None:
        """Run discovery and wait for the console to connect.

        Returns once a console is connected. Raises DiscoveryTimeout if
        none connects within the discovery timeout, TransportError if a
        socket cannot be bound or the broadcast cannot be sent.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Cannot connect a session that is {self._state.value}")

        cfg = self.settings
        loop = asyncio.get_event_loop()
        accepted: asyncio.Future = loop.create_future()

        def _on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            if accepted.done():
                logger.warning(
                    "Refusing extra connection from %s", writer.get_extra_info("peername"),
                )
                writer.close()
                return
            accepted.set_result((reader, writer))

        self._state = SessionState.DISCOVERING
        try:
            server = await asyncio.start_server(_on_connect, cfg.bind_host, cfg.listen_port)
        except OSError as exc:
            self._state = SessionState.FAILED
            raise TransportError(
                f"Cannot listen on {cfg.bind_host}:{cfg.listen_port}: {exc}"
            ) from exc

        try:
            logger.info("Waiting for console on %s:%d", cfg.bind_host, cfg.listen_port)
            await broadcast_search(cfg)
            self._state = SessionState.AWAITING_CONNECTION
            try:
                reader, writer = await asyncio.wait_for(accepted, cfg.discovery_timeout)
            except asyncio.TimeoutError as exc:
                raise DiscoveryTimeout(
                    f"No console connected within {cfg.discovery_timeout_sec:g}s"
                ) from exc
        except WS1001Error:
            self._state = SessionState.FAILED
            raise
        except asyncio.CancelledError:
            self._state = SessionState.CLOSED
            raise
        finally:
            # Only the first connection is used
            server.close()

        self._attach(reader, writer)
        logger.info("Console connected from %s", self.peer)

    async def next_record(self) -> Optional[WeatherRecord]:
        """Run one query/response cycle.

        Returns the decoded record, or None if the console closed the
        stream without answering. Transport failures raise TransportError,
        undecodable frames raise DecodingError; both leave the session
        FAILED. Cancelling a pending cycle also drops the link.
        """
        async with self._io_lock:
            if not self.connected:
                raise SessionClosed(f"Session is {self._state.value}")
            self._state = SessionState.POLLING
            try:
                await self._send(encode_command(Command.query(self.settings.device_name)))
                frame = await self._receive_frame()
                if frame is None:
                    logger.debug("Console closed the stream")
                    self._state = SessionState.CONNECTED
                    return None
                record = decode_response(frame)
            except DecodingError:
                self._state = SessionState.FAILED
                raise
            except asyncio.TimeoutError as exc:
                self._state = SessionState.FAILED
                raise TransportError(
                    f"No response from console within {self.settings.read_timeout_sec:g}s"
                ) from exc
            except OSError as exc:
                self._state = SessionState.FAILED
                raise TransportError(f"Console link failed: {exc}") from exc
            except asyncio.CancelledError:
                # A half-read frame would desync the next cycle
                self._state = SessionState.FAILED
                self._drop_link()
                raise

            self._state = SessionState.CONNECTED
            return record

    async def close(self) -> None:
        """Close the console connection. Safe to call more than once."""
        writer = self._writer
        self._reader = None
        self._writer = None
        if self._state is not SessionState.FAILED:
            self._state = SessionState.CLOSED
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            logger.debug("Error closing console link: %s", exc)
        logger.info("Closed console link to %s", self.peer)

    def _drop_link(self) -> None:
        if self._writer is not None:
            self._writer.close()
        self._reader = None
        self._writer = None

    async def _send(self, data: bytes) -> None:
        self._writer.write(data)
        await self._writer.drain()
        logger.debug("TX: %s", data.hex())

    async def _read(self, n: int) -> bytes:
        data = await asyncio.wait_for(self._reader.read(n), self.settings.read_timeout)
        logger.debug("RX: %s", data.hex())
        return data

    async def _receive_frame(self) -> Optional[bytes]:
        """Read the frame answering the last query. None on end-of-stream."""
        frame = await self._read(MAX_FRAME_SIZE)
        if not frame:
            return None

        # A frame split across TCP segments is topped up to the size its
        # header announces; short frames are left for the decoder to reject.
        while len(frame) < HEADER_SIZE:
            more = await self._read(HEADER_SIZE - len(frame))
            if not more:
                return frame
            frame += more
        expected = expected_frame_size(decode_header(frame))
        while expected is not None and len(frame) < expected:
            more = await self._read(expected - len(frame))
            if not more:
                break
            frame += more
        return frame

    async def __aenter__(self) -> "WeatherStationSession":
        if self._state is SessionState.IDLE:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def open_session(
    poll_interval: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> WeatherStationSession:
    """Discover a console and return a connected session."""
    session = WeatherStationSession(settings, poll_interval)
    await session.connect()
    return session
