"""Client package for hdlcd-client.

Contains the client side of a daemon session:
- handshake: SessionHeader, header_from_options, encode/decode/send_session_header
- status: StatusReader (background port status updates)
- device: DeviceSession, open_device, SessionClosedError
"""

from client.device import DeviceSession, SessionClosedError, open_device
from client.handshake import (
    SessionHeader,
    decode_session_header,
    encode_session_header,
    header_from_options,
    send_session_header,
)
from client.status import StatusReader

__all__ = [
    "DeviceSession",
    "SessionClosedError",
    "open_device",
    "SessionHeader",
    "decode_session_header",
    "encode_session_header",
    "header_from_options",
    "send_session_header",
    "StatusReader",
]
