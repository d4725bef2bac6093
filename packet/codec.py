"""Packet decoding for hdlcd-client.

The decoder table maps each content id to the variant that decodes its body.
It is fixed at import time; there is no runtime registration.
"""

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType

from common.encoding import UnknownContentIdError, read_byte
from common.protocol import TRACE, ByteStream
from packet.base import Packet, TypeField
from packet.control import ControlPacket
from packet.data import DataPacket

logger = logging.getLogger(__name__)

DECODERS: Mapping[int, Callable[[ByteStream], Packet]] = MappingProxyType(
    {
        DataPacket.CONTENT_ID: DataPacket.decode_body,
        ControlPacket.CONTENT_ID: ControlPacket.decode_body,
    }
)


def decode_one(stream: ByteStream, strict: bool = False) -> Packet:
    """Decode one packet from stream.

    Reads the type field, lets the variant registered for its content id
    decode the body, then applies the type field flags to the result.

    A content id without a registered variant yields a bare Packet, which
    keeps the stream aligned only if that packet has no body. With
    strict=True it raises UnknownContentIdError instead.

    Raises:
        StreamEOFError: If the stream ends before a complete packet.
        UnknownContentIdError: In strict mode, for unregistered content ids.
    """
    type_field = TypeField.from_byte(read_byte(stream, "packet type field"))

    decoder = DECODERS.get(type_field.content_id)
    if decoder is None:
        if strict:
            raise UnknownContentIdError(
                f"No packet variant registered for content id {type_field.content_id}"
            )
        logger.warning(
            f"Unknown content id {type_field.content_id}, assuming empty packet body"
        )
        packet = Packet()
    else:
        packet = decoder(stream)

    packet.set_fields(type_field)
    logger.log(TRACE, f"Decoded {packet}")
    return packet
