#!/usr/bin/env python3
"""Print packets of a serial port shared through the daemon.

Runs until the connection drops or Ctrl-C is pressed.
"""

import argparse
import logging
import sys
from enum import IntEnum

from client.device import open_device
from common.encoding import DaemonConnectionError, InvalidArgumentError, TransportError
from common.protocol import DEFAULT_HOST, DEFAULT_PORT, TRACE, TypeOfData

logger = logging.getLogger(__name__)

DEFAULT_SERIAL_PORT = "/dev/ttyUSB0"

# port_status_only is what the control connection uses; not a data mode
DATA_MODES = [t.name.lower() for t in TypeOfData if t is not TypeOfData.PORT_STATUS_ONLY]


class ExitCode(IntEnum):
    """Exit codes for print_raw."""

    SUCCESS = 0  # Stopped by user
    CONNECT_FAILED = 1  # Daemon unreachable
    CONNECTION_LOST = 2  # Connection dropped while reading
    INVALID_ARGUMENT = 3  # Bad port name or options


def format_status(status: dict[str, bool]) -> str:
    flags = ", ".join(f"{key}={value}" for key, value in status.items())
    return f"Port status: {flags}"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print packets of a serial port served by the daemon")
    parser.add_argument(
        "serial_port", nargs="?", default=DEFAULT_SERIAL_PORT,
        help=f"Serial port name on the daemon host (default: {DEFAULT_SERIAL_PORT})")
    parser.add_argument(
        "-H", "--host", default=DEFAULT_HOST,
        help=f"Daemon host (default: {DEFAULT_HOST}, env HDLCD_HOST)")
    parser.add_argument(
        "-p", "--port", type=int, default=DEFAULT_PORT,
        help=f"Daemon TCP port (default: {DEFAULT_PORT}, env HDLCD_PORT)")
    parser.add_argument(
        "-m", "--mode", choices=DATA_MODES, default="payload",
        help="Type of data to subscribe to (default: payload)")
    parser.add_argument(
        "--invalids", action="store_true", help="Also deliver invalid packets")
    parser.add_argument(
        "--tx", action="store_true", help="Also deliver packets sent to the device")
    parser.add_argument(
        "--no-rx", action="store_true", help="Do not deliver packets received from the device")
    parser.add_argument(
        "-l", "--lock", action="store_true", help="Lock the serial port before reading")
    parser.add_argument(
        "-s", "--status", action="store_true",
        help="Print port status changes instead of packets")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v debug, -vv trace)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.verbose >= 2:
        level = TRACE
    elif args.verbose == 1:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    options = {
        "type_of_data": args.mode,
        "invalids": args.invalids,
        "tx_data": args.tx,
        "rx_data": not args.no_rx,
    }

    try:
        with open_device(args.serial_port, args.host, args.port, options) as device:
            if args.lock:
                device.lock()
            if args.status:
                device.port_status_changed(lambda status: print(format_status(status), flush=True))
            else:
                device.each_packet(lambda packet: print(packet, flush=True))
    except InvalidArgumentError as e:
        logger.error(f"Invalid argument: {e}")
        return ExitCode.INVALID_ARGUMENT
    except DaemonConnectionError as e:
        logger.error(str(e))
        return ExitCode.CONNECT_FAILED
    except TransportError as e:
        logger.error(f"Connection lost: {e}")
        return ExitCode.CONNECTION_LOST
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
