"""Error taxonomy and byte-level read helpers for hdlcd-client.

All multi-byte integers on the wire are big-endian (network byte order).
Reads never return short: a stream that ends early raises StreamEOFError.
"""

from typing import Literal

from common.protocol import ByteStream

UINT16_SIZE = 2
BYTE_ORDER: Literal["little", "big"] = "big"


class TransportError(Exception):
    """Raised when the underlying stream fails (closed, truncated, unreachable)."""

    pass


class StreamEOFError(TransportError, EOFError):
    """Raised when the stream ends before a complete field could be read."""

    pass


class DaemonConnectionError(TransportError):
    """Raised when the TCP connection to the daemon cannot be established."""

    pass


class EncodingError(Exception):
    """Raised when decoding fails due to invalid message format."""

    pass


class UnknownContentIdError(EncodingError):
    """Raised by strict decoding when a packet has no registered variant."""

    pass


class InvalidArgumentError(ValueError):
    """Raised when a message is constructed from invalid caller input."""

    pass


class InvalidCommandError(InvalidArgumentError):
    """Raised when a control packet is built with an unknown command."""

    pass


class UnsupportedOperationError(NotImplementedError):
    """Raised when serializing a packet type this client only decodes."""

    pass


def uint16_from_bytes(data: bytes) -> int:
    """Decode big-endian bytes to unsigned 16-bit int."""
    return int.from_bytes(data, BYTE_ORDER, signed=False)


def read_exactly(stream: ByteStream, size: int, what: str = "data") -> bytes:
    """Read exactly size bytes from stream.

    Raises:
        StreamEOFError: If the stream ends before size bytes are available.
    """
    data = stream.read(size) if size > 0 else b""
    if data is None or len(data) < size:
        got = 0 if data is None else len(data)
        raise StreamEOFError(
            f"Unexpected EOF while reading {what} ({got} of {size} bytes)"
        )
    return bytes(data)


def read_byte(stream: ByteStream, what: str = "byte") -> int:
    """Read a single byte from stream as an int."""
    return read_exactly(stream, 1, what)[0]
