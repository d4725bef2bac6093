"""Data packets: payload bytes relayed from or to the serial device.

Body: [2-byte big-endian length][payload]
"""

from dataclasses import dataclass, field
from typing import ClassVar

from common.encoding import UINT16_SIZE, read_exactly, uint16_from_bytes
from common.protocol import ByteStream, ContentId
from packet.base import Packet


@dataclass
class DataPacket(Packet):
    """Packet carrying a payload. This client decodes but never encodes these."""

    CONTENT_ID: ClassVar[int] = ContentId.DATA

    payload: bytes = b""
    content_id: int = field(default=ContentId.DATA, init=False, kw_only=True)
    reliable: bool = field(default=True, kw_only=True)

    @property
    def contains_data(self) -> bool:
        return len(self.payload) > 0

    @classmethod
    def decode_body(cls, stream: ByteStream) -> "DataPacket":
        length = uint16_from_bytes(read_exactly(stream, UINT16_SIZE, "DataPacket length"))
        payload = read_exactly(stream, length, "DataPacket payload")
        return cls(payload)

    def describe(self) -> str:
        if not self.payload:
            return "0 bytes"
        return f"{len(self.payload)} bytes: {self.payload.hex(' ')}"
