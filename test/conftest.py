"""pytest configuration and fixtures for hdlcd-client tests.

Provides:
- MockPort: In-memory daemon connection with separate inbound/outbound buffers
- MockDaemon: Connector handing out MockPorts that answer the session header
  with a scripted packet stream
- FakeDaemon: Threaded TCP listener speaking the daemon side of the protocol
- wait_until: Poll helper for background-thread assertions
- Markers for unit vs integration tests
"""

import io
import socket
import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from client.handshake import SessionHeader, decode_session_header
from common.encoding import StreamEOFError
from common.protocol import TypeOfData


def wait_until(predicate: Callable[[], object], timeout_s: float = 5.0) -> bool:
    """Poll predicate until it is truthy or timeout_s elapses."""
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return bool(predicate())


class MockPort:
    """Mock daemon connection for unit testing.

    Bytes passed to inject() are what the daemon sent; bytes passed to
    write() are collected in sent. Non-blocking ports return short reads
    when the inbound buffer runs dry, which the decoder reports as EOF.
    Blocking ports wait for data until close() is called.
    """

    def __init__(self, blocking: bool = False) -> None:
        self._inbound = bytearray()
        self._read_pos = 0
        self._blocking = blocking
        self._cond = threading.Condition()
        self.sent = bytearray()
        self.closed = False

    def _available(self) -> int:
        return len(self._inbound) - self._read_pos

    def write(self, data: bytes, /) -> int:
        with self._cond:
            if self.closed:
                raise StreamEOFError("mock port closed")
            self.sent.extend(data)
            return len(data)

    def read(self, size: int = 1, /) -> bytes:
        with self._cond:
            if self._blocking:
                self._cond.wait_for(lambda: self.closed or self._available() >= size)
            if self.closed:
                return b""
            end = self._read_pos + min(size, self._available())
            data = bytes(self._inbound[self._read_pos : end])
            self._read_pos = end
            return data

    @property
    def in_waiting(self) -> int:
        with self._cond:
            if self.closed:
                raise StreamEOFError("mock port closed")
            return self._available()

    def inject(self, data: bytes) -> None:
        """Inject data as if it came from the daemon."""
        with self._cond:
            self._inbound.extend(data)
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()


class MockDaemon:
    """Connector returning MockPorts that behave like daemon connections.

    When the session header arrives on a port, the script for its type of
    data is injected: the control script for port_status_only connections,
    the data script for everything else.
    """

    def __init__(self, data: bytes = b"", control: bytes = b"", blocking: bool = False) -> None:
        self.scripts = {"data": data, "control": control}
        self.blocking = blocking
        self.ports: dict[str, MockPort] = {}
        self.headers: list[SessionHeader] = []
        self.connects: list[tuple[str, int]] = []

    def __call__(self, host: str, port: int) -> MockPort:
        self.connects.append((host, port))
        daemon = self

        class _Port(MockPort):
            def write(self, data: bytes, /) -> int:
                written = super().write(data)
                if not hasattr(self, "role"):
                    header = decode_session_header(io.BytesIO(bytes(self.sent)))
                    del self.sent[:]
                    self.role = (
                        "control" if header.type_of_data is TypeOfData.PORT_STATUS_ONLY else "data"
                    )
                    daemon.headers.append(header)
                    daemon.ports[self.role] = self
                    self.inject(daemon.scripts[self.role])
                return written

        return _Port(blocking=self.blocking)


class _SocketReader:
    """Unbuffered read(size) over a socket, so nothing past the header is consumed."""

    def __init__(self, conn: socket.socket) -> None:
        self._conn = conn

    def read(self, size: int = 1, /) -> bytes:
        data = bytearray()
        while len(data) < size:
            chunk = self._conn.recv(size - len(data))
            if not chunk:
                break
            data.extend(chunk)
        return bytes(data)


class FakeDaemon:
    """Daemon stand-in listening on localhost.

    Each accepted connection has its session header recorded, receives the
    script for its type of data, and is then either closed (hold_open=False)
    or kept open while incoming bytes are recorded until the client leaves.
    """

    def __init__(
        self,
        data: bytes = b"",
        control: bytes = b"",
        hold_open: bool = True,
    ) -> None:
        self.scripts = {"data": data, "control": control}
        self.hold_open = hold_open
        self.headers: list[SessionHeader] = []
        self.received: dict[str, bytearray] = {"data": bytearray(), "control": bytearray()}
        self._lock = threading.Lock()
        self._running = True
        self._conns: list[socket.socket] = []
        self._threads: list[threading.Thread] = []

        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen()
        self._server.settimeout(0.1)
        self.host = "127.0.0.1"
        self.port = self._server.getsockname()[1]

        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()

    def _accept_loop(self) -> None:
        while self._running:
            try:
                conn, _ = self._server.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with self._lock:
                self._conns.append(conn)
            thread = threading.Thread(target=self._serve, args=(conn,), daemon=True)
            self._threads.append(thread)
            thread.start()

    def _serve(self, conn: socket.socket) -> None:
        try:
            header = decode_session_header(_SocketReader(conn))
            role = "control" if header.type_of_data is TypeOfData.PORT_STATUS_ONLY else "data"
            with self._lock:
                self.headers.append(header)
            conn.sendall(self.scripts[role])
            if not self.hold_open:
                conn.shutdown(socket.SHUT_RDWR)
                return
            while True:
                chunk = conn.recv(1024)
                if not chunk:
                    break
                with self._lock:
                    self.received[role].extend(chunk)
        except (OSError, EOFError):
            pass
        finally:
            conn.close()

    def header_for(self, type_of_data: TypeOfData) -> SessionHeader | None:
        with self._lock:
            for header in self.headers:
                if header.type_of_data is type_of_data:
                    return header
        return None

    def stop(self) -> None:
        self._running = False
        self._server.close()
        with self._lock:
            conns = list(self._conns)
        for conn in conns:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self._accept_thread.join(timeout=2)
        for thread in self._threads:
            thread.join(timeout=2)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (uses localhost TCP)")


@pytest.fixture
def mock_port() -> MockPort:
    return MockPort()


@pytest.fixture
def blocking_port() -> Generator[MockPort, None, None]:
    port = MockPort(blocking=True)
    yield port
    port.close()


@pytest.fixture
def fake_daemon_factory() -> Generator[Callable[..., FakeDaemon], None, None]:
    """Return a factory for FakeDaemons that are stopped after the test."""
    daemons: list[FakeDaemon] = []

    def make(**kwargs: object) -> FakeDaemon:
        daemon = FakeDaemon(**kwargs)  # type: ignore[arg-type]
        daemons.append(daemon)
        return daemon

    yield make

    for daemon in daemons:
        daemon.stop()


@pytest.fixture
def script_dir() -> Path:
    """Return path to the repository root."""
    return Path(__file__).parent.parent


@pytest.fixture
def print_raw_path(script_dir: Path) -> Path:
    """Return path to print_raw.py."""
    return script_dir / "print_raw.py"
