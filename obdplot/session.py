"""The polling session: start-up sequence, parameter rotation and logging."""

from __future__ import annotations

import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from .parameters import Parameter, ParameterKind, default_parameters
from .protocol import Block, KWLink, ProtocolError, decode_value

ERROR_REQUEST = 0x07
CONFIG_READ_LIMIT = 200

# Blocks exchanged right after the handshake, in order: True means "receive".
_START_UP = (
    (1, "get"),
    (2, "ack"),
    (3, "get"),
    (4, "ack"),
    (5, "get"),
    (6, "ack"),
    (7, "get"),
    (8, "ack"),
    (9, "get"),
    (10, "error_request"),
    (11, "get"),
    (12, "ack"),
    (13, "get"),
)


def _clock_text(now: datetime) -> str:
    """Time of day in the US English short form, e.g. ``3:04:05 PM``."""
    hour = now.hour % 12 or 12
    suffix = "AM" if now.hour < 12 else "PM"
    return f"{hour}:{now:%M:%S} {suffix}"


def _ticks_ms() -> int:
    return int(time.monotonic() * 1000)


def _block_text(data: bytes) -> str:
    return data.split(b"\x00", 1)[0].decode("latin-1")


def read_port_config(path: str | os.PathLike[str]) -> str | None:
    """The serial port named in the configuration file, or None if there is none."""
    try:
        with open(path, "rb") as handle:
            raw = handle.read(CONFIG_READ_LIMIT)
    except FileNotFoundError:
        return None
    name = raw.decode("latin-1").strip()
    return name or None


class Session:
    """Polls the ECU for each selected parameter in turn and logs the readings."""

    def __init__(
        self,
        link: KWLink,
        log,
        parameters: Sequence[Parameter] | None = None,
    ) -> None:
        self.link = link
        self.log = log
        self.parameters = list(parameters) if parameters is not None else default_parameters()
        self.selected = [True] * len(self.parameters)
        self.values = [0] * len(self.parameters)
        self.block_number = 0
        self.current = 0
        self.initialised = False
        self.paused = False
        self.debug = True
        self.baud_rate = 0
        self.history = 0
        self.history_limit: int | None = None
        self.error: ProtocolError | None = None
        self.clock: Callable[[], int] = _ticks_ms
        self.now: Callable[[], datetime] = datetime.now

    def _log(self, text: str) -> None:
        if self.log is not None:
            self.log.append(text)

    def _next_block_number(self) -> int:
        self.block_number = (self.block_number + 1) % 256
        return self.block_number

    def _receive(self) -> Block:
        block = self.link.get_block()
        self.values[self.current] = decode_value(block)
        return block

    def initialise(self) -> None:
        """Wake the ECU and run the start-up block exchange.

        Raises ProtocolError if the ECU does not answer as expected.
        """
        self.initialised = False
        self.history = 0
        self.error = None
        self.link.wake_up()
        self.link.handshake()
        for number, step in _START_UP:
            self.block_number = number
            if step == "get":
                block = self.link.get_block()
                self.values[0] = decode_value(block)
                self._log(
                    f"\r\nblockNumber {number} Type = {block.block_type:2X} "
                    f"Length = {block.length} data {_block_text(block.data)}"
                )
            elif step == "ack":
                self.link.send_ack_block(number)
            else:
                self.link.send_block_type(number, ERROR_REQUEST)
        self._log("\r\nInitialised OK!\r\n")
        self.initialised = True
        self._log(_clock_text(self.now()))
        for parameter in self.parameters:
            self._log("," + parameter.name)

    def poll_once(self) -> Block:
        """Request the current parameter, read the reply and move to the next one."""
        started = self.clock()
        parameter = self.parameters[self.current]
        try:
            number = self._next_block_number()
            if self.debug:
                a, b, c = parameter.request
                self._log(
                    f"\r\nRequest Block {number} Parameter = {self.current} "
                    f"vals {a:x} {b:x} {c:x}\r\n"
                )
            if parameter.kind is ParameterKind.ACTUAL_VALUE:
                self.link.send_value_request(number, *parameter.request)
                baud_count = 20
            else:
                self.link.send_adc_channel_read(number, parameter.request[0])
                baud_count = 14
            number = self._next_block_number()
            block = self._receive()
        except ProtocolError:
            self.initialised = False
            raise
        baud_count += 10 + 3 * block.length
        if self.debug:
            self._log(
                f"\r\nGetBlock returned block {block.number} blockNumber {number} "
                f"Type {block.block_type:2X}\r\n"
            )
        self.current = (self.current + 1) % len(self.parameters)
        elapsed = self.clock() - started
        if elapsed > 0:
            self.baud_rate = int(8000.0 * baud_count / elapsed)
        if block.number != number:
            self.initialised = False
        return block

    def run(self, stop_event: threading.Event) -> None:
        """Poll until stopped, or until the conversation fails or loses sync."""
        while self.initialised and not stop_event.is_set():
            try:
                self.poll_once()
            except ProtocolError as exc:
                self.error = exc
                break

    def status_line(self, timestamp: int) -> str:
        """One-line summary of the link state."""
        state = "Paused" if self.paused else "Running"
        return (
            f"{state}: SysTime {timestamp:10d}ms Effective Baud Rate {self.baud_rate} "
            f"BlockNumber {self.block_number:3d} History {self.history:5d}"
        )

    def toggle_parameter(self, index: int) -> bool:
        """Switch a parameter on or off; returns whether it is now on."""
        self.selected[index] = not self.selected[index]
        return self.selected[index]

    def toggle_pause(self) -> bool:
        """Pause or resume; when not connected, try to connect instead.

        Returns whether the session is now paused.
        """
        if self.initialised:
            self.paused = not self.paused
            return self.paused
        try:
            self.initialise()
        except ProtocolError:
            return self.paused
        self.paused = False
        return self.paused

    def sample_line(self) -> str | None:
        """Log the current readings of the selected parameters.

        Returns the logged line, or None while paused.
        """
        if self.paused:
            return None
        self.history += 1
        if self.history_limit is not None:
            self.history = min(self.history, self.history_limit)
        last = len(self.parameters) - 1
        parts = [_clock_text(self.now()), " "]
        for index, (parameter, raw) in enumerate(zip(self.parameters, self.values)):
            if not self.selected[index]:
                continue
            parts.append(parameter.format(parameter.convert(raw)))
            if index != last:
                parts.append(",")
        line = "".join(parts)
        self._log(line + "\r\n")
        return line

    def close(self) -> None:
        """Tell the ECU the diagnosis is over and mark the end of the log."""
        try:
            self.link.send_end_block(self.block_number)
        except (ProtocolError, OSError):
            pass
        self.initialised = False
        self._log("Session ended")


__all__ = ["Session", "read_port_config", "Path"]