"""Session header handshake for hdlcd-client.

The session header is the first thing written on every new daemon
connection, exactly once. It tells the daemon which serial port the
connection is for and which packet classes it subscribes to:

  [version][SAP][port name length][port name]

SAP (service access point) byte:
  Bits 7..4: type of data (TypeOfData)
  Bit 2: deliver invalid packets
  Bit 1: deliver packets sent to the device (tx)
  Bit 0: deliver packets received from the device (rx)
"""

import logging
from dataclasses import dataclass, fields

from common.encoding import InvalidArgumentError, read_exactly
from common.protocol import (
    MAX_PORT_NAME_LENGTH,
    SESSION_HEADER_VERSION,
    ByteStream,
    Port,
    TypeOfData,
)

logger = logging.getLogger(__name__)

_RX_BIT = 0x01
_TX_BIT = 0x02
_INVALIDS_BIT = 0x04

# version + SAP + name length
HEADER_PREFIX_SIZE = 3


def parse_type_of_data(value: TypeOfData | int | str) -> TypeOfData:
    """Return the TypeOfData for a member, code or name ("payload_raw")."""
    try:
        if isinstance(value, str):
            return TypeOfData[value.upper()]
        return TypeOfData(value)
    except (KeyError, ValueError):
        raise InvalidArgumentError(f"Invalid type of data: {value!r}") from None


@dataclass(frozen=True)
class SessionHeader:
    """Handshake message selecting port and subscription for a connection."""

    port_name: bytes
    version: int = SESSION_HEADER_VERSION
    type_of_data: TypeOfData = TypeOfData.PAYLOAD
    invalids: bool = False
    tx_data: bool = False
    rx_data: bool = True

    def __post_init__(self) -> None:
        name = self.port_name
        if isinstance(name, str):
            name = name.encode("utf-8")
        if len(name) > MAX_PORT_NAME_LENGTH:
            raise InvalidArgumentError(
                f"Port name too long: {len(name)} bytes, max {MAX_PORT_NAME_LENGTH}"
            )
        if not 0 <= self.version <= 0xFF:
            raise InvalidArgumentError(f"Invalid header version: {self.version}")
        object.__setattr__(self, "port_name", bytes(name))
        object.__setattr__(self, "type_of_data", parse_type_of_data(self.type_of_data))

    @property
    def sap(self) -> int:
        sap = self.type_of_data << 4
        if self.rx_data:
            sap |= _RX_BIT
        if self.tx_data:
            sap |= _TX_BIT
        if self.invalids:
            sap |= _INVALIDS_BIT
        return sap

    def serialize(self) -> bytes:
        return bytes([self.version, self.sap, len(self.port_name)]) + self.port_name

    @classmethod
    def parse(cls, data: bytes) -> "SessionHeader":
        """Parse a complete serialized header.

        Raises:
            InvalidArgumentError: If data is not exactly one valid header.
        """
        if len(data) < HEADER_PREFIX_SIZE:
            raise InvalidArgumentError(f"Session header too short: {len(data)} bytes")
        version, sap, length = data[0], data[1], data[2]
        name = data[HEADER_PREFIX_SIZE:]
        if len(name) != length:
            raise InvalidArgumentError(
                f"Session header name length mismatch: declared {length}, got {len(name)}"
            )
        return cls(
            port_name=name,
            version=version,
            type_of_data=parse_type_of_data(sap >> 4),
            invalids=bool(sap & _INVALIDS_BIT),
            tx_data=bool(sap & _TX_BIT),
            rx_data=bool(sap & _RX_BIT),
        )


# Keys accepted in an options mapping
OPTION_NAMES = frozenset(f.name for f in fields(SessionHeader) if f.name != "port_name")


def header_from_options(port_name: str | bytes, options: dict | None = None) -> SessionHeader:
    """Build the header for port_name from an options mapping.

    options may contain version, type_of_data, invalids, tx_data, rx_data;
    anything not given takes the SessionHeader default.

    Raises:
        InvalidArgumentError: On unknown option names or invalid values.
    """
    options = options or {}
    unknown = sorted(str(key) for key in set(options) - OPTION_NAMES)
    if unknown:
        raise InvalidArgumentError(f"Unknown session header options: {', '.join(unknown)}")
    return SessionHeader(port_name, **options)  # type: ignore[arg-type]


def encode_session_header(port_name: str | bytes, options: dict | None = None) -> bytes:
    """Serialize a session header for port_name. See header_from_options."""
    return header_from_options(port_name, options).serialize()


def decode_session_header(stream: ByteStream) -> SessionHeader:
    """Read one session header from stream."""
    prefix = read_exactly(stream, HEADER_PREFIX_SIZE, "session header")
    name = read_exactly(stream, prefix[2], "session header port name")
    return SessionHeader.parse(prefix + name)


def send_session_header(port: Port, header: SessionHeader) -> None:
    """Write the session header. Must be the first write on a new connection."""
    port.write(header.serialize())
    logger.debug(
        f"Sent session header (port={header.port_name!r}, "
        f"type_of_data={header.type_of_data.name}, sap=0x{header.sap:02x})"
    )
