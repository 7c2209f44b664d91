"""Command-line front end: connect to the ECU and log readings periodically."""

from __future__ import annotations

import argparse
import sys
import threading
import time

import serial

from .logfile import SessionLog
from .protocol import BAUD_RATE, READ_TIMEOUT_SECONDS, KWLink, ProtocolError
from .session import Session, read_port_config

DEFAULT_PORT = "COM9:"
DEFAULT_LOG = "OBDPlot.log"
DEFAULT_CONFIG = "OBDPlot.cfg"
SAMPLE_INTERVAL_SECONDS = 0.5


def open_port(name: str):
    """Open the serial port, accepting ``COM9:``-style names and pyserial URLs."""
    if "://" not in name:
        name = name.rstrip(":")
    return serial.serial_for_url(name, baudrate=BAUD_RATE, timeout=READ_TIMEOUT_SECONDS)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obdplot", description="Poll engine parameters from the ECU and log them."
    )
    parser.add_argument("--port", help="serial port; overrides the configuration file")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="file naming the port")
    parser.add_argument("--log", default=DEFAULT_LOG, help="session log file")
    parser.add_argument(
        "--interval", type=float, default=SAMPLE_INTERVAL_SECONDS,
        help="seconds between samples",
    )
    parser.add_argument(
        "--attempts", type=int, default=0,
        help="connection attempts before giving up (0 means keep trying)",
    )
    parser.add_argument(
        "--samples", type=int, default=0,
        help="samples to take before stopping (0 means run until interrupted)",
    )
    parser.add_argument("--quiet", action="store_true", help="do not log every block")
    return parser


def _connect(session: Session, attempts: int, interval: float) -> bool:
    tried = 0
    while True:
        try:
            session.initialise()
            return True
        except ProtocolError:
            print("Waiting to connect to ECU", flush=True)
        tried += 1
        if attempts and tried >= attempts:
            return False
        time.sleep(interval)


def _start_reader(session: Session, log: SessionLog) -> tuple[threading.Thread, threading.Event]:
    stop = threading.Event()
    thread = threading.Thread(target=session.run, args=(stop,), daemon=True)
    thread.start()
    log.append("\r\nReader Thread Started")
    return thread, stop


def _poll(session: Session, log: SessionLog, args: argparse.Namespace) -> int:
    if not _connect(session, args.attempts, args.interval):
        return 1
    thread, stop = _start_reader(session, log)
    taken = 0
    try:
        while not args.samples or taken < args.samples:
            time.sleep(args.interval)
            if not session.initialised:
                stop.set()
                thread.join()
                if not _connect(session, args.attempts, args.interval):
                    return 1
                thread, stop = _start_reader(session, log)
            print(session.status_line(int(time.monotonic() * 1000)), flush=True)
            line = session.sample_line()
            if line is not None:
                print(line, flush=True)
                taken += 1
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        thread.join(timeout=5)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the logger; returns the process exit status."""
    args = _parser().parse_args(argv)
    with SessionLog(args.log) as log:
        log.append("Starting ...\r\n")
        port_name = args.port
        if port_name is not None:
            log.append("Command line port: ")
        else:
            port_name = read_port_config(args.config)
            if port_name is None:
                log.append("Default port: ")
                port_name = DEFAULT_PORT
            else:
                log.append("Read Config file: ")
        log.append(port_name)
        log.append("\r\n")
        log.append("\r\n")
        try:
            port = open_port(port_name)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.append("\r\nCannot open COM port")
            print(f"Cannot open COM port {port_name}: {exc}", file=sys.stderr)
            return 1
        log.append("COM Opened\r\n")
        session = Session(KWLink(port, log), log)
        session.debug = not args.quiet
        try:
            return _poll(session, log, args)
        finally:
            session.close()
            port.close()


if __name__ == "__main__":
    sys.exit(main())