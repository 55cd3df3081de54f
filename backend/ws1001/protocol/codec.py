"""Binary codec for WS-1001 PC link frames.

Frames are packed C structures: little-endian, unaligned, fixed offsets,
text fields NUL-terminated and NUL-padded to their width. There is no
length field or checksum, so decoding checks the buffer length up front
and then reads every field explicitly at its offset.

Record header (all frames):
    0x00  device name   8 byte string   e.g. PC2000 / HP2000
    0x08  command       8 byte string   READ, SEARCH, WRITE
    0x10  argument     16 byte string   NOWRECORD, HISTORY_DATA, ...
"""

import logging
import struct
from typing import Callable, Optional

from .constants import (
    ARGUMENT_WIDTH,
    COMMAND_RESERVED_SIZE,
    COMMAND_WIDTH,
    DEVICE_NAME_WIDTH,
    HEADER_SIZE,
    NOW_RECORD_MIN_SIZE,
)
from .records import (
    ArgumentKind,
    Command,
    CommandKind,
    Rain,
    RecordHeader,
    Response,
    TemperatureAndHumidity,
    WeatherRecord,
    Wind,
)
from ..errors import EncodingError, FieldTooLong, FrameTooShort, InvalidText, UnimplementedResponse

logger = logging.getLogger(__name__)

NUL = b"\x00"


def _unpack_u8(data: bytes, offset: int) -> int:
    """Unpack unsigned 8-bit value."""
    return data[offset]


def _unpack_i16(data: bytes, offset: int) -> int:
    """Unpack signed 16-bit little-endian value."""
    return struct.unpack_from("<h", data, offset)[0]


def _unpack_f32(data: bytes, offset: int) -> float:
    """Unpack 32-bit little-endian float."""
    return struct.unpack_from("<f", data, offset)[0]


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise FrameTooShort(what, len(data), size)


def _pad_text(text: str, width: int) -> bytes:
    """Encode text into a NUL-padded field. The terminator must always fit."""
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"'{text}' is not ASCII") from exc
    if len(raw) >= width:
        raise FieldTooLong(text, width)
    return raw.ljust(width, NUL)


def _read_text(data: bytes, offset: int, width: int) -> str:
    """Read a NUL-terminated field. A field without a NUL reads as empty."""
    field = bytes(data[offset:offset + width])
    end = field.find(NUL)
    if end < 0:
        end = 0
    try:
        return field[:end].decode("ascii")
    except UnicodeDecodeError as exc:
        raise InvalidText(
            f"Header field at 0x{offset:02X} is not ASCII: {field[:end]!r}"
        ) from exc


def encode_header(header: RecordHeader) -> bytes:
    """Encode a record header into its 32-byte wire form."""
    return (
        _pad_text(header.device_name, DEVICE_NAME_WIDTH)
        + _pad_text(header.command.value, COMMAND_WIDTH)
        + _pad_text(header.argument.value, ARGUMENT_WIDTH)
    )


def encode_command(command: Command) -> bytes:
    """Encode a command frame: header + 8 reserved bytes.

    The reserved bytes are undeciphered; captures show varying content
    which the console ignores, so they are sent as zero.
    """
    return encode_header(command.header) + NUL * COMMAND_RESERVED_SIZE


def decode_header(data: bytes) -> RecordHeader:
    """Decode the record header from the first 32 bytes of a frame."""
    _require(data, HEADER_SIZE, "Record header")
    return RecordHeader(
        device_name=_read_text(data, 0x00, DEVICE_NAME_WIDTH),
        command=CommandKind(_read_text(data, 0x08, COMMAND_WIDTH)),
        argument=ArgumentKind(_read_text(data, 0x10, ARGUMENT_WIDTH)),
    )


def decode_now_record(data: bytes) -> WeatherRecord:
    """Decode a NOWRECORD frame (current conditions).

    Offsets from the start of the frame:
    0x00-0x1F: record header
    0x20-0x27: undeciphered
    0x28: wind direction (i16, degrees)
    0x2A: inside humidity (u8, percent)
    0x2B: outside humidity (u8, percent)
    0x2C: inside temperature    0x30: pressure (relative)
    0x34: barometer (absolute)  0x38: outside temperature
    0x3C: dew point             0x40: wind chill
    0x44: wind speed            0x48: wind gust
    0x4C: rain rate             0x50: daily rain
    0x54: weekly rain           0x58: monthly rain (not kept)
    0x5C: yearly rain           0x60: solar radiation
    (all f32)
    0x64: UV index (u8)
    0x65: heat index (u8)
    0x66-0x67: undeciphered
    """
    _require(data, NOW_RECORD_MIN_SIZE, "NOWRECORD frame")
    return WeatherRecord(
        record_header=decode_header(data),
        wind=Wind(
            direction=_unpack_i16(data, 0x28),
            wind_chill=_unpack_f32(data, 0x40),
            wind_speed=_unpack_f32(data, 0x44),
            wind_gust=_unpack_f32(data, 0x48),
        ),
        inside=TemperatureAndHumidity(
            temperature=_unpack_f32(data, 0x2C),
            humidity_percent=_unpack_u8(data, 0x2A),
        ),
        outside=TemperatureAndHumidity(
            temperature=_unpack_f32(data, 0x38),
            humidity_percent=_unpack_u8(data, 0x2B),
        ),
        pressure=_unpack_f32(data, 0x30),
        barometer=_unpack_f32(data, 0x34),
        dewpoint=_unpack_f32(data, 0x3C),
        rain=Rain(
            rain_rate=_unpack_f32(data, 0x4C),
            daily_rain=_unpack_f32(data, 0x50),
            weekly_rain=_unpack_f32(data, 0x54),
            yearly_rain=_unpack_f32(data, 0x5C),
        ),
        radiation=_unpack_f32(data, 0x60),
        uv_index=_unpack_u8(data, 0x64),
        heat_index=_unpack_u8(data, 0x65),
    )


_RESPONSE_DECODERS: dict[ArgumentKind, Callable[[bytes], Response]] = {
    ArgumentKind.NOWRECORD: decode_now_record,
}

_FRAME_SIZES: dict[ArgumentKind, int] = {
    ArgumentKind.NOWRECORD: NOW_RECORD_MIN_SIZE,
}


def expected_frame_size(header: RecordHeader) -> Optional[int]:
    """Minimum size of the frame announced by header, or None if unknown."""
    return _FRAME_SIZES.get(header.argument)


def decode_response(data: bytes) -> Response:
    """Decode a response frame, dispatching on the header argument.

    Raises:
        UnimplementedResponse: the argument names a payload with no decoder.
    """
    header = decode_header(data)
    decoder = _RESPONSE_DECODERS.get(header.argument)
    if decoder is None:
        logger.warning(
            "Unsupported response %s/%s from %s (%d bytes)",
            header.command.name, header.argument.name, header.device_name, len(data),
        )
        raise UnimplementedResponse(header.argument)
    return decoder(data)
