"""IPC wire protocol: JSON-over-newline on TCP localhost.

Every message is a single JSON object followed by a newline character.
Requests include a "cmd" field; responses include "ok" and optionally
"data" or "error". Subscribers additionally receive one
{"type": "weather_record", "data": {...}} message per record.
"""

import json
from typing import Any

# --- Command constants ---

CMD_STATUS = "status"
CMD_SUBSCRIBE = "subscribe"
CMD_UNSUBSCRIBE = "unsubscribe"

# --- Broadcast message types ---

MSG_WEATHER_RECORD = "weather_record"

# --- Wire helpers ---

IPC_HOST = "127.0.0.1"


def encode_message(msg: dict[str, Any]) -> bytes:
    """Serialize a message dict to JSON bytes + newline."""
    return json.dumps(msg, separators=(",", ":"), default=str).encode() + b"\n"


def decode_message(line: bytes) -> dict[str, Any]:
    """Deserialize a JSON newline-delimited message."""
    return json.loads(line.decode().strip())
