#!/usr/bin/env python3
"""WS-1001 weather station daemon.

Discovers the console, owns the console link, polls it on the configured
interval and streams every record to IPC subscribers.

Start:  ws1001-daemon   (or python -m ws1001.daemon)
Stop:   Ctrl-C or SIGTERM
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Optional

from .config import Settings, settings
from .errors import WS1001Error
from .ipc.server import RecordServer
from .protocol.records import WeatherRecord
from .protocol.session import SessionState, WeatherStationSession
from .services.poller import RecordStream

logger = logging.getLogger("ws1001.daemon")


class StationDaemon:
    """Console owner, poller and IPC server."""

    def __init__(self, cfg: Optional[Settings] = None) -> None:
        self.settings = cfg or settings
        self.session: Optional[WeatherStationSession] = None
        self.stream: Optional[RecordStream] = None
        self.record_server: Optional[RecordServer] = None

    # ---- public entry point ----

    async def run(self) -> None:
        """Run until the console link fails or SIGTERM / SIGINT arrives."""
        self.record_server = RecordServer(self.settings.ipc_port, self.status)
        await self.record_server.start()

        poll_task = asyncio.create_task(self._poll())
        loop = asyncio.get_event_loop()
        if sys.platform != "win32":
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, poll_task.cancel)

        try:
            await poll_task
        except asyncio.CancelledError:
            logger.info("Shutdown requested")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        logger.info("Shutting down daemon...")
        if self.stream:
            self.stream.stop()
        if self.session:
            await self.session.close()
        if self.record_server:
            await self.record_server.stop()
        logger.info("Daemon stopped")

    # ---- polling ----

    async def _poll(self) -> None:
        self.session = WeatherStationSession(self.settings)
        async with self.session:
            self.stream = RecordStream(self.session)
            async for record in self.stream:
                if record is not None:
                    await self._publish(record)

    async def _publish(self, record: WeatherRecord) -> None:
        logger.info(
            "NOWRECORD: outside=%.1f/%d%% wind=%.1f@%d baro=%.1f",
            record.outside.temperature,
            record.outside.humidity_percent,
            record.wind.wind_speed,
            record.wind.direction,
            record.barometer,
        )
        delivered = await self.record_server.publish(record)
        logger.debug("Record sent to %d subscriber(s)", delivered)

    # ---- status ----

    def status(self) -> dict[str, Any]:
        state = self.session.state if self.session else SessionState.IDLE
        status: dict[str, Any] = {
            "state": state.value,
            "peer": list(self.session.peer) if self.session and self.session.peer else None,
            "poll_interval": self.settings.poll_interval_sec,
        }
        if self.stream:
            status.update(self.stream.stats)
        return status


# --------------- Entry point ---------------

def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s:     %(name)s - %(message)s",
    )
    daemon = StationDaemon()
    try:
        asyncio.run(daemon.run())
    except KeyboardInterrupt:
        pass
    except WS1001Error as exc:
        logger.error("Station link failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
