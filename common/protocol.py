"""Protocol definitions for hdlcd-client.

Contains:
- TypeOfData, ContentId, Command, Indication enums
- ByteStream and Port Protocols for type checking
- Daemon defaults and status reader timing (configurable via envvars)
- Logging configuration
"""

import logging
import os
from enum import IntEnum
from typing import Protocol

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Daemon endpoint defaults (configurable via envvar)
DEFAULT_HOST = os.environ.get("HDLCD_HOST", "localhost")
DEFAULT_PORT = int(os.environ.get("HDLCD_PORT", "36962"))

# How often the background status reader checks for input or a stop request
STATUS_POLL_INTERVAL_S = float(os.environ.get("HDLCD_STATUS_POLL_S", "0.05"))

# Session header
SESSION_HEADER_VERSION = 0
MAX_PORT_NAME_LENGTH = 255

# Keys of the port status mapping carried by port_status indications
STATUS_ALIVE = "alive"
STATUS_LOCKED_BY_OTHERS = "locked_by_others"
STATUS_LOCKED_BY_ME = "locked_by_me"


class TypeOfData(IntEnum):
    """Data representation a connection subscribes to (SAP upper nibble)."""

    PAYLOAD = 0
    PORT_STATUS_ONLY = 1
    PAYLOAD_RAW = 2
    HDLC_RAW = 3
    HDLC_DISSECTED = 4


class ContentId(IntEnum):
    """Packet variant identifiers (type field upper nibble)."""

    DATA = 0
    CONTROL = 1


class Command(IntEnum):
    """Outbound control packet commands."""

    RELEASE = 0x00
    LOCK = 0x01
    ECHO = 0x10
    KEEP_ALIVE = 0x20
    PORT_KILL_REQUEST = 0x30


class Indication(IntEnum):
    """Inbound control packet indications and confirmations (upper nibble)."""

    PORT_STATUS = 0x00
    ECHO = 0x10
    KEEP_ALIVE = 0x20


class ByteStream(Protocol):
    """Protocol for objects packets can be decoded from."""

    def read(self, size: int = ..., /) -> bytes: ...


class Port(Protocol):
    """Protocol for a daemon connection as used by a device session."""

    def write(self, data: bytes, /) -> int | None: ...
    def read(self, size: int = ..., /) -> bytes: ...
    @property
    def in_waiting(self) -> int: ...
    def close(self) -> None: ...
