"""Packet stream reading for hdlcd-client.

Contains:
- iter_packets: Lazy, endless, non-restartable packet sequence from a stream
- for_each: Callback form of iter_packets
"""

import logging
from collections.abc import Callable, Iterator
from typing import TypeVar

from common.protocol import TRACE, ByteStream
from packet.base import Packet
from packet.codec import decode_one

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Packet)


def iter_packets(
    stream: ByteStream,
    packet_type: type[P] = Packet,  # type: ignore[assignment]
    strict: bool = False,
) -> Iterator[P]:
    """Yield packets from stream, one at a time, as they arrive.

    Packets that are not instances of packet_type are decoded and dropped,
    so the stream stays aligned. The sequence only ends by raising the
    stream error that stopped it (typically StreamEOFError).
    """
    while True:
        packet = decode_one(stream, strict=strict)
        if isinstance(packet, packet_type):
            yield packet
        else:
            logger.log(TRACE, f"Skipped {type(packet).__name__} (want {packet_type.__name__})")


def for_each(
    stream: ByteStream,
    callback: Callable[[P], object],
    packet_type: type[P] = Packet,  # type: ignore[assignment]
    strict: bool = False,
) -> None:
    """Invoke callback for every packet of packet_type until the stream fails."""
    for packet in iter_packets(stream, packet_type, strict=strict):
        callback(packet)
