"""TCP connection to the daemon for hdlcd-client.

Contains:
- Connection: Port implementation over pyserial's socket:// URL handler
- open_connection: Connect to a daemon and return a Connection
"""

import logging

import serial

from common.encoding import DaemonConnectionError, StreamEOFError

logger = logging.getLogger(__name__)


class Connection:
    """Byte stream to the daemon.

    Reads block without timeout until the requested number of bytes has
    arrived. Every read failure, including a read interrupted by close()
    from another thread, is raised as StreamEOFError.
    """

    def __init__(self, port: serial.SerialBase, name: str) -> None:
        self._port = port
        self.name = name
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and self._port.is_open

    @property
    def in_waiting(self) -> int:
        try:
            return self._port.in_waiting
        except serial.SerialException as e:
            raise StreamEOFError(f"{self.name}: {e}") from e
        except (AttributeError, TypeError, ValueError) as e:
            # pyserial drops its socket reference on close()
            if self._closed:
                raise StreamEOFError(f"{self.name}: connection closed") from e
            raise

    def read(self, size: int = 1, /) -> bytes:
        try:
            return self._port.read(size)
        except serial.SerialException as e:
            raise StreamEOFError(f"{self.name}: {e}") from e
        except (AttributeError, TypeError, ValueError) as e:
            if self._closed:
                raise StreamEOFError(f"{self.name}: connection closed") from e
            raise

    def write(self, data: bytes, /) -> int | None:
        try:
            return self._port.write(data)
        except serial.SerialException as e:
            raise StreamEOFError(f"{self.name}: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._port.close()
        logger.debug(f"Closed {self.name}")


def open_connection(host: str, port: int) -> Connection:
    """Open a TCP connection to the daemon at host:port."""
    url = f"socket://{host}:{port}"
    try:
        ser = serial.serial_for_url(url, timeout=None)
    except (serial.SerialException, ValueError) as e:
        raise DaemonConnectionError(f"Failed to connect to {host}:{port}: {e}") from e
    logger.debug(f"Connected to {url}")
    return Connection(ser, name=f"{host}:{port}")
