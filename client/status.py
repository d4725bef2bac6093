"""Background port status reader for hdlcd-client.

Contains:
- StatusReader: Thread that consumes the control connection and reports
  port_status indications until stopped or the connection fails
"""

import logging
import threading
from collections.abc import Callable

from common.encoding import EncodingError, TransportError
from common.protocol import STATUS_POLL_INTERVAL_S, TRACE, Port
from packet.codec import decode_one
from packet.control import ControlPacket

logger = logging.getLogger(__name__)


class StatusReader:
    """Sole background reader of a control connection.

    The reader only checks for a stop request between packets, so stopping
    it never leaves a packet half-consumed and the connection can be handed
    over to another reader. Stopping does not close the connection.
    """

    def __init__(
        self,
        port: Port,
        on_status: Callable[[dict[str, bool]], None],
        poll_interval_s: float = STATUS_POLL_INTERVAL_S,
    ) -> None:
        self._port = port
        self._on_status = on_status
        self._poll_interval_s = poll_interval_s
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="hdlcd-status", daemon=True)
        self.error: Exception | None = None

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()
        logger.debug("Status reader started")

    def request_stop(self) -> None:
        self._stop.set()

    def join(self, timeout_s: float | None = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout_s)

    def stop(self, timeout_s: float | None = None) -> None:
        """Request the reader to stop and wait for it to exit."""
        self.request_stop()
        self.join(timeout_s)
        logger.debug("Status reader stopped")

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                if not self._port.in_waiting:
                    self._stop.wait(self._poll_interval_s)
                    continue
                packet = decode_one(self._port)
                if isinstance(packet, ControlPacket) and packet.is_port_status:
                    self._on_status(packet.information)
                else:
                    logger.log(TRACE, f"Status reader ignored {packet}")
        except (TransportError, EncodingError) as e:
            self.error = e
            if self._stop.is_set():
                logger.debug(f"Status reader ended on close: {e}")
            else:
                logger.warning(f"Status reader stopped: {e}")
