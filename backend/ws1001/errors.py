"""Exception types raised by the codec, the session and the stream driver."""


class WS1001Error(Exception):
    """Base class for all driver errors."""


class EncodingError(WS1001Error):
    """A record could not be written to its wire form."""


class FieldTooLong(EncodingError):
    """Text does not fit its fixed-width field with a NUL terminator."""

    def __init__(self, value: str, width: int):
        super().__init__(f"'{value}' does not fit a {width}-byte field (max {width - 1} bytes)")
        self.value = value
        self.width = width


class DecodingError(WS1001Error):
    """A received frame could not be decoded."""


class FrameTooShort(DecodingError):
    """Buffer is shorter than the structure being decoded."""

    def __init__(self, what: str, size: int, expected: int):
        super().__init__(f"{what} too short: {size} bytes, expected at least {expected}")
        self.size = size
        self.expected = expected


class InvalidText(DecodingError):
    """A header text field is not ASCII."""


class UnimplementedResponse(DecodingError):
    """The header names a payload kind this driver does not decode."""

    def __init__(self, argument):
        super().__init__(f"No decoder for response argument {argument.name}")
        self.argument = argument


class TransportError(WS1001Error):
    """Socket bind, send, accept, read or write failed."""


class DiscoveryTimeout(TransportError):
    """No device connected back within the discovery timeout."""


class SessionClosed(TransportError):
    """The session was used after it was closed or failed."""


__all__ = [
    "WS1001Error",
    "EncodingError",
    "FieldTooLong",
    "DecodingError",
    "FrameTooShort",
    "InvalidText",
    "UnimplementedResponse",
    "TransportError",
    "DiscoveryTimeout",
    "SessionClosed",
]
