"""Control packets: lock/release/echo/keep-alive commands and port status.

Body: one byte. The upper nibble selects the command (outbound) or the
indication (inbound). For port_status indications the lower nibble carries:
  Bit 2: alive
  Bit 1: locked_by_others
  Bit 0: locked_by_me
"""

from dataclasses import dataclass, field
from typing import ClassVar

from common.encoding import (
    InvalidCommandError,
    UnsupportedOperationError,
    read_byte,
)
from common.protocol import (
    STATUS_ALIVE,
    STATUS_LOCKED_BY_ME,
    STATUS_LOCKED_BY_OTHERS,
    ByteStream,
    Command,
    ContentId,
    Indication,
)
from packet.base import Packet


def parse_command(command: Command | int | str) -> Command:
    """Return the Command for a member, wire code or name ("lock").

    Indication members share codes with commands but are inbound only.

    Raises:
        InvalidCommandError: If command is not in the outbound vocabulary.
    """
    if isinstance(command, str):
        try:
            return Command[command.upper()]
        except KeyError:
            pass
    elif isinstance(command, int) and not isinstance(command, (bool, Indication)):
        try:
            return Command(command)
        except ValueError:
            pass
    raise InvalidCommandError(f"Invalid command: {command!r}")


def parse_port_status(value: int) -> dict[str, bool]:
    """Decode the port status bits of a control packet body."""
    return {
        STATUS_ALIVE: bool(value & 0x04),
        STATUS_LOCKED_BY_OTHERS: bool(value & 0x02),
        STATUS_LOCKED_BY_ME: bool(value & 0x01),
    }


@dataclass
class ControlPacket(Packet):
    """Packet carrying a command to, or an indication from, the daemon.

    Control packets built by the client always have all flags cleared. The
    information mapping is only populated on decoded port_status indications.
    """

    CONTENT_ID: ClassVar[int] = ContentId.CONTROL

    command: Command | Indication | None = Command.RELEASE
    information: dict[str, bool] = field(default_factory=dict)
    content_id: int = field(default=ContentId.CONTROL, init=False, kw_only=True)
    reliable: bool = field(default=False, init=False, kw_only=True)
    invalid: bool = field(default=False, init=False, kw_only=True)
    was_sent: bool = field(default=False, init=False, kw_only=True)

    def __post_init__(self) -> None:
        self.command = parse_command(self.command)  # type: ignore[arg-type]

    @property
    def is_port_status(self) -> bool:
        return self.command is Indication.PORT_STATUS

    @classmethod
    def decode_body(cls, stream: ByteStream) -> "ControlPacket":
        data = read_byte(stream, "ControlPacket body")
        try:
            indication: Indication | None = Indication(data & 0xF0)
        except ValueError:
            indication = None

        information: dict[str, bool] = {}
        if indication is Indication.PORT_STATUS:
            information = parse_port_status(data)

        # Indications are not commands, so bypass construction-time validation
        packet = cls()
        packet.command = indication
        packet.information = information
        return packet

    def serialize(self) -> bytes:
        if not isinstance(self.command, Command):
            raise UnsupportedOperationError(
                f"Cannot serialize inbound indication {self.command!r}"
            )
        return bytes([self.type_field.to_byte(), self.command])

    def describe(self) -> str:
        name = "unknown" if self.command is None else self.command.name.lower()
        if not self.information:
            return name
        flags = ", ".join(f"{key}={value}" for key, value in self.information.items())
        return f"{name} ({flags})"
