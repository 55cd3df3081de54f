"""Timer-driven polling of a console session.

RecordStream turns a connected session into a lazy, unbounded sequence
of records: one query/response cycle per tick, one element per cycle.
A tick where the console closed the stream yields None and the sequence
goes on; any other failure ends it by raising.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from ..config import Settings
from ..errors import WS1001Error
from ..protocol.records import WeatherRecord
from ..protocol.session import WeatherStationSession, open_session

logger = logging.getLogger(__name__)


class RecordStream:
    """Polls a session on a fixed interval. Iterable once."""

    def __init__(self, session: WeatherStationSession, poll_interval: Optional[float] = None):
        self.session = session
        self.poll_interval = poll_interval or session.poll_interval
        self._started = False
        self._running = False
        self._records = 0
        self._skipped = 0
        self._last_record: Optional[datetime] = None
        self._start_time = time.time()

    @property
    def stats(self) -> dict:
        return {
            "last_record": self._last_record.isoformat() if self._last_record else None,
            "records": self._records,
            "skipped": self._skipped,
            "uptime_seconds": int(time.time() - self._start_time),
        }

    def stop(self) -> None:
        """End the sequence before the next tick."""
        self._running = False

    def __aiter__(self) -> AsyncIterator[Optional[WeatherRecord]]:
        if self._started:
            raise RuntimeError("RecordStream can only be iterated once")
        self._started = True
        return self._run()

    async def _run(self) -> AsyncIterator[Optional[WeatherRecord]]:
        self._running = True
        self._start_time = time.time()
        loop = asyncio.get_event_loop()
        next_tick = loop.time()
        logger.info("Polling console every %gs", self.poll_interval)

        while self._running:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            if not self._running:
                break
            # A cycle that overruns the interval delays the next tick
            # rather than queueing missed ones.
            next_tick = max(next_tick + self.poll_interval, loop.time())

            try:
                record = await self.session.next_record()
            except WS1001Error as exc:
                logger.error("Polling stopped: %s", exc)
                raise

            if record is None:
                self._skipped += 1
                logger.warning("No frame from console (skipped tick #%d)", self._skipped)
            else:
                self._records += 1
                self._last_record = datetime.now(timezone.utc)
            yield record


async def stream_records(
    poll_interval: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> AsyncIterator[Optional[WeatherRecord]]:
    """Discover a console and yield its records until failure or close.

    The console link is closed when the generator finishes, raises, is
    cancelled, or is closed by the consumer (use contextlib.aclosing to
    close it deterministically when breaking out early).
    """
    session = await open_session(poll_interval, settings)
    try:
        async for record in RecordStream(session):
            yield record
    finally:
        await session.close()
