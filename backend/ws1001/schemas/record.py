"""Pydantic schemas for weather records sent to IPC subscribers."""

from typing import Any

from pydantic import BaseModel

from ..protocol.records import WeatherRecord


class WindData(BaseModel):
    direction: int
    speed: float
    gust: float
    chill: float


class TemperatureHumidityData(BaseModel):
    temperature: float
    humidity: int


class RainData(BaseModel):
    rate: float
    daily: float
    weekly: float
    yearly: float


class WeatherRecordData(BaseModel):
    device: str
    inside: TemperatureHumidityData
    outside: TemperatureHumidityData
    wind: WindData
    pressure: float
    barometer: float
    dewpoint: float
    rain: RainData
    solar_radiation: float
    uv_index: int
    heat_index: int

    @classmethod
    def from_record(cls, record: WeatherRecord) -> "WeatherRecordData":
        return cls(
            device=record.record_header.device_name,
            inside=TemperatureHumidityData(
                temperature=record.inside.temperature,
                humidity=record.inside.humidity_percent,
            ),
            outside=TemperatureHumidityData(
                temperature=record.outside.temperature,
                humidity=record.outside.humidity_percent,
            ),
            wind=WindData(
                direction=record.wind.direction,
                speed=record.wind.wind_speed,
                gust=record.wind.wind_gust,
                chill=record.wind.wind_chill,
            ),
            pressure=record.pressure,
            barometer=record.barometer,
            dewpoint=record.dewpoint,
            rain=RainData(
                rate=record.rain.rain_rate,
                daily=record.rain.daily_rain,
                weekly=record.rain.weekly_rain,
                yearly=record.rain.yearly_rain,
            ),
            solar_radiation=record.radiation,
            uv_index=record.uv_index,
            heat_index=record.heat_index,
        )


class IPCMessage(BaseModel):
    type: str
    data: Any = None
