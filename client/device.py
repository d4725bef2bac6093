"""Device session for hdlcd-client.

A DeviceSession gives access to one serial port behind the daemon over two
independent TCP connections, each opened on first use and never reopened:

- data connection: payload packets, driven entirely by caller iteration
- control connection: lock/release/echo/keep-alive commands and port status

Port status indications on the control connection are cached. When the
caller is not iterating the control connection, a background StatusReader
keeps the cache current.
"""

import logging
import threading
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager

from common.connection import open_connection
from common.encoding import StreamEOFError, TransportError
from common.protocol import DEFAULT_HOST, DEFAULT_PORT, Command, Port, TypeOfData
from client.handshake import SessionHeader, header_from_options, send_session_header
from client.status import StatusReader
from packet.base import Packet
from packet.control import ControlPacket, parse_command
from packet.data import DataPacket
from packet.stream import iter_packets

logger = logging.getLogger(__name__)

Connector = Callable[[str, int], Port]

# Upper bound on waiting for the status reader to exit once its socket is closed
STATUS_READER_JOIN_TIMEOUT_S = 2.0


class SessionClosedError(StreamEOFError):
    """Raised when a closed device session is used."""

    pass


class DeviceSession:
    """Client side of one serial port shared through the daemon."""

    def __init__(
        self,
        port_name: str | bytes,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        options: dict | None = None,
        connector: Connector = open_connection,
    ) -> None:
        self.port_name = port_name
        self.host = host
        self.port = port
        self._connector = connector

        # Built up front so invalid names or options fail before connecting
        self._data_header = header_from_options(port_name, options)
        self._control_header = SessionHeader(
            port_name,  # type: ignore[arg-type]
            type_of_data=TypeOfData.PORT_STATUS_ONLY,
            rx_data=False,
        )

        self._data_port: Port | None = None
        self._control_port: Port | None = None
        self._status_reader: StatusReader | None = None
        self._caller_reads_control = False
        self._control_failed = False
        self._closed = False

        self._status: dict[str, bool] = {}
        self._status_lock = threading.Lock()
        # Guards connection setup, reader ownership and the closed flag
        self._lock = threading.Lock()

    def __enter__(self) -> "DeviceSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def status_reader_running(self) -> bool:
        """True while the background status reader owns the control connection."""
        return self._status_reader is not None and self._status_reader.running

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Session for {self.port_name!r} is closed")

    def _connect(self, header: SessionHeader, role: str) -> Port:
        port = self._connector(self.host, self.port)
        try:
            send_session_header(port, header)
        except Exception:
            port.close()
            raise
        logger.info(f"Opened {role} connection to {self.host}:{self.port} for {self.port_name!r}")
        return port

    def _data_connection(self) -> Port:
        with self._lock:
            self._check_open()
            if self._data_port is None:
                self._data_port = self._connect(self._data_header, "data")
            return self._data_port

    def _control_connection(self, read: bool = False) -> Port:
        """Return the control connection, opening it on first use.

        With read=True the caller is about to iterate the connection: it is
        marked as caller-owned and the background status reader is stopped
        before returning. Otherwise the background reader is started unless
        something is already reading. Ownership only changes under the
        session lock.
        """
        reader = None
        with self._lock:
            self._check_open()
            if self._control_port is None:
                self._control_port = self._connect(self._control_header, "control")
            if read:
                self._caller_reads_control = True
                reader = self._detach_status_reader()
            elif not self._caller_reads_control and not self._control_failed:
                self._start_status_reader(self._control_port)
            port = self._control_port
        # Joined outside the lock so close() can still unblock the reader
        if reader is not None:
            reader.stop()
        return port

    def _release_control(self, failed: bool) -> None:
        with self._lock:
            self._caller_reads_control = False
            if failed:
                self._control_failed = True

    def _start_status_reader(self, port: Port) -> None:
        if self._status_reader is not None and self._status_reader.running:
            return
        self._status_reader = StatusReader(port, self._record_status)
        self._status_reader.start()

    def _detach_status_reader(self) -> StatusReader | None:
        reader = self._status_reader
        self._status_reader = None
        if reader is not None:
            reader.request_stop()
        return reader

    # -------------------------------------------------------------------------
    # Port status
    # -------------------------------------------------------------------------

    def _record_status(self, information: dict[str, bool]) -> None:
        snapshot = dict(information)
        with self._status_lock:
            changed = snapshot != self._status
            self._status = snapshot
        if changed:
            logger.debug(f"Port status: {snapshot}")

    def port_status(self) -> dict[str, bool]:
        """Return a copy of the last port status seen (empty if none yet)."""
        with self._status_lock:
            return dict(self._status)

    def monitor_status(self) -> None:
        """Open the control connection so port_status() is kept current."""
        self._control_connection()

    def port_status_changed(self, callback: Callable[[dict[str, bool]], object]) -> None:
        """Invoke callback with each port status that differs from the previous one.

        Blocks iterating the control connection until it fails.
        """
        last: dict[str, bool] | None = None
        for packet in self.control_packets():
            if not packet.is_port_status or packet.information == last:
                continue
            last = dict(packet.information)
            callback(dict(last))

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def send_command(self, command: Command | int | str) -> None:
        """Send a control command. No response is awaited."""
        packet = ControlPacket(parse_command(command))
        port = self._control_connection()
        port.write(packet.serialize())
        logger.debug(f"Sent {packet.command.name.lower()} for {self.port_name!r}")  # type: ignore[union-attr]

    def lock(self) -> None:
        self.send_command(Command.LOCK)

    def release(self) -> None:
        self.send_command(Command.RELEASE)

    def echo(self) -> None:
        self.send_command(Command.ECHO)

    def keep_alive(self) -> None:
        self.send_command(Command.KEEP_ALIVE)

    def kill_port(self) -> None:
        self.send_command(Command.PORT_KILL_REQUEST)

    # -------------------------------------------------------------------------
    # Packet iteration
    # -------------------------------------------------------------------------

    def packets(self) -> Iterator[Packet]:
        """Iterate all packets on the data connection."""
        return iter_packets(self._data_connection())

    def data_packets(self) -> Iterator[DataPacket]:
        """Iterate data packets on the data connection."""
        return iter_packets(self._data_connection(), DataPacket)

    def control_packets(self) -> Iterator[ControlPacket]:
        """Iterate control packets, taking the control connection over from
        the background status reader for as long as iteration lasts."""
        port = self._control_connection(read=True)
        failed = False
        try:
            for packet in iter_packets(port, ControlPacket):
                if packet.is_port_status:
                    self._record_status(packet.information)
                yield packet
        except TransportError:
            failed = True
            raise
        finally:
            self._release_control(failed)

    def each_packet(self, callback: Callable[[Packet], object]) -> None:
        for packet in self.packets():
            callback(packet)

    def each_data_packet(self, callback: Callable[[DataPacket], object]) -> None:
        for packet in self.data_packets():
            callback(packet)

    def each_control_packet(self, callback: Callable[[ControlPacket], object]) -> None:
        for packet in self.control_packets():
            callback(packet)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close both connections and stop the status reader.

        Closing unblocks any read in progress with a stream error. The
        session cannot be used afterwards.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            reader = self._detach_status_reader()

        for port in (self._data_port, self._control_port):
            if port is not None:
                port.close()

        if reader is not None:
            reader.join(STATUS_READER_JOIN_TIMEOUT_S)
        logger.info(f"Closed session for {self.port_name!r}")


@contextmanager
def open_device(
    port_name: str | bytes,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    options: dict | None = None,
    connector: Connector = open_connection,
) -> Generator[DeviceSession, None, None]:
    """Open a device session that is closed when the block exits, however it exits."""
    session = DeviceSession(port_name, host, port, options, connector=connector)
    try:
        yield session
    finally:
        session.close()
