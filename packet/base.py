"""Packet base type for hdlcd-client.

Every packet starts with a one-byte type field:
  Bits 7..4: content_id (selects the variant)
  Bit 2: reliable flag (payload was or should be transmitted reliably via HDLC)
  Bit 1: invalid flag (the packet is damaged)
  Bit 0: was_sent flag (packet was transmitted to the serial device;
         must be 0 for packets sent to the daemon)

Variant bodies follow the type field and are decoded by the variant itself.
"""

from dataclasses import dataclass, field
from typing import ClassVar

from common.encoding import UnsupportedOperationError
from common.protocol import ByteStream

_RELIABLE_BIT = 0x04
_INVALID_BIT = 0x02
_WAS_SENT_BIT = 0x01


@dataclass(frozen=True)
class TypeField:
    """Decoded packet type field."""

    content_id: int
    reliable: bool
    invalid: bool
    was_sent: bool

    @classmethod
    def from_byte(cls, value: int) -> "TypeField":
        return cls(
            content_id=value >> 4,
            reliable=bool(value & _RELIABLE_BIT),
            invalid=bool(value & _INVALID_BIT),
            was_sent=bool(value & _WAS_SENT_BIT),
        )

    def to_byte(self) -> int:
        value = (self.content_id & 0x0F) << 4
        if self.reliable:
            value |= _RELIABLE_BIT
        if self.invalid:
            value |= _INVALID_BIT
        if self.was_sent:
            value |= _WAS_SENT_BIT
        return value


@dataclass
class Packet:
    """A message exchanged with the daemon.

    A bare Packet is only produced when decoding a content id that has no
    registered variant; it carries the shared flags and nothing else.
    """

    CONTENT_ID: ClassVar[int | None] = None

    content_id: int = field(default=0, kw_only=True)
    reliable: bool = field(default=False, kw_only=True)
    invalid: bool = field(default=False, kw_only=True)
    was_sent: bool = field(default=False, kw_only=True)

    @property
    def valid(self) -> bool:
        return not self.invalid

    @property
    def contains_data(self) -> bool:
        return False

    @property
    def type_field(self) -> TypeField:
        return TypeField(self.content_id, self.reliable, self.invalid, self.was_sent)

    def set_fields(self, type_field: TypeField) -> None:
        """Overwrite the shared flags with those read from the wire."""
        self.content_id = type_field.content_id
        self.reliable = type_field.reliable
        self.invalid = type_field.invalid
        self.was_sent = type_field.was_sent

    @classmethod
    def decode_body(cls, stream: ByteStream) -> "Packet":
        """Decode the bytes following the type field. Bare packets have none."""
        return cls()

    def serialize(self) -> bytes:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support serialization"
        )

    def describe(self) -> str:
        """Variant-specific part of the debug rendering."""
        return f"content_id={self.content_id}"

    def __str__(self) -> str:
        direction = "->" if self.was_sent else "<-"
        reliability = "reliable" if self.reliable else "unreliable"
        validity = "valid" if self.valid else "invalid"
        text = f"{direction} {type(self).__name__} [{reliability}, {validity}]"
        detail = self.describe()
        return f"{text} {detail}" if detail else text
