"""Common modules for hdlcd-client.

This package contains shared code used by both packet and client:
- protocol: enums, daemon defaults, ByteStream/Port Protocols
- encoding: error taxonomy and big-endian read helpers
- connection: TCP connection to the daemon via pyserial's socket:// handler
"""

from common.connection import Connection, open_connection
from common.encoding import (
    DaemonConnectionError,
    EncodingError,
    InvalidArgumentError,
    InvalidCommandError,
    StreamEOFError,
    TransportError,
    UnknownContentIdError,
    UnsupportedOperationError,
)
from common.protocol import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ByteStream,
    Command,
    ContentId,
    Indication,
    Port,
    TypeOfData,
)

__all__ = [
    # Protocol
    "TypeOfData",
    "ContentId",
    "Command",
    "Indication",
    "ByteStream",
    "Port",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    # Connection
    "Connection",
    "open_connection",
    # Exceptions
    "DaemonConnectionError",
    "EncodingError",
    "InvalidArgumentError",
    "InvalidCommandError",
    "StreamEOFError",
    "TransportError",
    "UnknownContentIdError",
    "UnsupportedOperationError",
]
