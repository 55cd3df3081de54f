"""Typed records carried by the WS-1001 PC link.

The same 32-byte record header opens every frame in both directions.
Requests from the PC use READ/SEARCH, the console answers with WRITE.
Telemetry values are kept exactly as the console reports them, in the
units configured on the console itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .constants import DEVICE_NAME


class CommandKind(Enum):
    """Header command token."""
    UNKNOWN = "UNKNOWN"
    READ = "READ"
    SEARCH = "SEARCH"
    WRITE = "WRITE"

    @classmethod
    def _missing_(cls, value):
        # Any other token, including an empty field
        if isinstance(value, str):
            return cls.UNKNOWN
        return None


class ArgumentKind(Enum):
    """Header argument token. NONE is an all-NUL field on the wire."""
    UNKNOWN = "UNKNOWN"
    NONE = ""
    QUERY = "QUERY"
    SEARCH = "SEARCH"
    NOWRECORD = "NOWRECORD"
    HISTORY_DATA = "HISTORY_DATA"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.UNKNOWN
        return None


@dataclass(frozen=True)
class RecordHeader:
    """Identifies what a frame means: who sent it, the command and its argument."""
    device_name: str
    command: CommandKind
    argument: ArgumentKind


@dataclass(frozen=True)
class Command:
    """Outbound request. Built right before it is encoded and sent."""
    header: RecordHeader

    @classmethod
    def search(cls, device_name: str = DEVICE_NAME) -> "Command":
        """Discovery broadcast asking consoles on the LAN to connect back."""
        return cls(RecordHeader(device_name, CommandKind.SEARCH, ArgumentKind.NONE))

    @classmethod
    def read(cls, argument: ArgumentKind, device_name: str = DEVICE_NAME) -> "Command":
        return cls(RecordHeader(device_name, CommandKind.READ, argument))

    @classmethod
    def query(cls, device_name: str = DEVICE_NAME) -> "Command":
        """Request for the current conditions (NOWRECORD)."""
        return cls.read(ArgumentKind.NOWRECORD, device_name)


@dataclass(frozen=True)
class Wind:
    direction: int  # degrees from north, signed 16-bit on the wire
    wind_chill: float
    wind_speed: float
    wind_gust: float


@dataclass(frozen=True)
class TemperatureAndHumidity:
    temperature: float
    humidity_percent: int


@dataclass(frozen=True)
class Rain:
    rain_rate: float
    daily_rain: float
    weekly_rain: float
    yearly_rain: float


@dataclass(frozen=True)
class WeatherRecord:
    """Current conditions decoded from a NOWRECORD frame.

    Monthly rain is on the wire but not carried here.
    """
    record_header: RecordHeader
    wind: Wind
    inside: TemperatureAndHumidity
    outside: TemperatureAndHumidity
    pressure: float
    barometer: float
    dewpoint: float
    rain: Rain
    radiation: float
    uv_index: int
    heat_index: int


# Payload kinds decode_response() can produce
Response = Union[WeatherRecord]
