"""Shared fixtures: synthetic WS-1001 frames."""

import struct

import pytest


def _field(text: bytes, width: int) -> bytes:
    return text.ljust(width, b"\x00")


def build_now_record(
    wind_direction: int = 180,
    inside_humidity: int = 45,
    outside_humidity: int = 78,
    inside_temp: float = 22.25,
    pressure: float = 1013.5,
    barometer: float = 1009.25,
    outside_temp: float = 21.5,
    dewpoint: float = 12.75,
    wind_chill: float = 21.0,
    wind_speed: float = 3.5,
    wind_gust: float = 6.25,
    rain_rate: float = 0.0,
    daily_rain: float = 1.5,
    weekly_rain: float = 4.25,
    monthly_rain: float = 12.5,
    yearly_rain: float = 250.75,
    radiation: float = 432.5,
    uv_index: int = 3,
    heat_index: int = 22,
    device_name: bytes = b"HP2000",
    command: bytes = b"WRITE",
    argument: bytes = b"NOWRECORD",
    trailer: bytes = b"",
) -> bytes:
    """Build a NOWRECORD frame laid out as the console sends it."""
    data = _field(device_name, 8) + _field(command, 8) + _field(argument, 16)
    data += bytes(8)                                                  # 0x20 undeciphered
    data += struct.pack("<hBB", wind_direction, inside_humidity, outside_humidity)
    data += struct.pack(
        "<14f",
        inside_temp, pressure, barometer, outside_temp, dewpoint,
        wind_chill, wind_speed, wind_gust,
        rain_rate, daily_rain, weekly_rain, monthly_rain, yearly_rain,
        radiation,
    )
    data += bytes([uv_index, heat_index])
    assert len(data) == 102
    return data + trailer


@pytest.fixture
def make_now_record():
    return build_now_record
