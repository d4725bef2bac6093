"""Packet protocol for hdlcd-client.

This package implements the framing used on both daemon connections:
- base: Packet and its one-byte TypeField
- data: DataPacket (length-prefixed payload)
- control: ControlPacket (commands and port status indications)
- codec: content id dispatch and decode_one
- stream: iter_packets / for_each over a byte stream
"""

from packet.base import Packet, TypeField
from packet.codec import DECODERS, decode_one
from packet.control import ControlPacket, parse_command, parse_port_status
from packet.data import DataPacket
from packet.stream import for_each, iter_packets

__all__ = [
    "Packet",
    "TypeField",
    "DataPacket",
    "ControlPacket",
    "DECODERS",
    "decode_one",
    "for_each",
    "iter_packets",
    "parse_command",
    "parse_port_status",
]
