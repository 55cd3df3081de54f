#!/usr/bin/env python3
"""Print live records, or the daemon status, from a running daemon.

Usage:
    ws1001-watch             one line per record until Ctrl-C
    ws1001-watch --status    print the daemon status and exit
"""

import argparse
import asyncio
import logging
import sys
from typing import Any

from .config import settings
from .ipc.client import DaemonError, IPCClient
from .schemas.record import WeatherRecordData

logger = logging.getLogger("ws1001.watch")


def format_record(record: WeatherRecordData) -> str:
    """One console line per record."""
    return (
        f"{record.device}: out {record.outside.temperature:.1f} {record.outside.humidity}%  "
        f"in {record.inside.temperature:.1f} {record.inside.humidity}%  "
        f"wind {record.wind.speed:.1f} gust {record.wind.gust:.1f} @ {record.wind.direction}  "
        f"baro {record.barometer:.1f}  rain {record.rain.rate:.1f}/{record.rain.daily:.1f}  "
        f"uv {record.uv_index}"
    )


def format_status(status: dict[str, Any]) -> str:
    peer = status.get("peer")
    lines = [
        f"state:          {status['state']}",
        f"console:        {':'.join(map(str, peer)) if peer else '-'}",
        f"poll interval:  {status['poll_interval']:g}s",
        f"subscribers:    {status['subscribers']}",
        f"published:      {status['published']}",
    ]
    if "records" in status:
        lines.append(f"records:        {status['records']} ({status['skipped']} skipped)")
        lines.append(f"last record:    {status['last_record'] or '-'}")
    return "\n".join(lines)


async def watch(client: IPCClient) -> None:
    async for record in client.records():
        print(format_record(record), flush=True)


async def show_status(client: IPCClient) -> None:
    print(format_status(await client.status()))


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="ws1001-watch",
        description="Show live records from the WS-1001 daemon",
    )
    parser.add_argument("--status", action="store_true", help="print daemon status and exit")
    parser.add_argument("--port", type=int, default=settings.ipc_port, help="daemon IPC port")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s:     %(name)s - %(message)s",
    )
    client = IPCClient(args.port)
    try:
        asyncio.run(show_status(client) if args.status else watch(client))
    except KeyboardInterrupt:
        pass
    except (OSError, asyncio.TimeoutError) as exc:
        logger.error("Cannot reach daemon on port %d: %s", args.port, exc)
        sys.exit(1)
    except DaemonError as exc:
        logger.error("Daemon error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
