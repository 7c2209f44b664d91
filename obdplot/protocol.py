"""Byte-level KW1281-style conversation with the engine control unit.

Every byte the tester sends is echoed back by the line adapter. The ECU then
answers every byte except a block's closing 0x03 with its complement. In the
other direction the tester complements every byte the ECU sends.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

import serial

BAUD_RATE = 9600
READ_TIMEOUT_SECONDS = 1.5
PULSE_SECONDS = 0.2
HANDSHAKE_DELAY_SECONDS = 0.01

SYNC_BYTE = 0x55
KEYWORD_LOW = 0x0B
KEYWORD_HIGH = 0x02
START_DIAGNOSIS = 0xFD
BLOCK_END = 0x03

# RTS levels driven during the slow wake-up, each held for PULSE_SECONDS.
WAKE_UP_PATTERN = (True, True, True, True, True, False, True, True, True, False)


class BlockTitle(enum.IntEnum):
    """Block identifiers used in the conversation."""

    VALUE_REQUEST = 0x01
    END_DIAGNOSIS = 0x06
    ERROR_REQUEST = 0x07
    ADC_CHANNEL_READ = 0x08
    ACK = 0x09
    WRONG_TITLE = 0x0A
    ADC_REPLY = 0xFB
    ACTUAL_VALUE_REPLY = 0xFE


class ProtocolError(Exception):
    """The ECU did not answer as the protocol requires."""


class _Log(Protocol):
    def append(self, text: str) -> None: ...


@dataclass(frozen=True)
class Block:
    """A block received from the ECU."""

    number: int
    block_type: int
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


def decode_value(block: Block) -> int:
    """The reading carried by a reply block, or 0 if it carries none.

    Two-byte ADC readings are big-endian and held as a signed 16-bit value.
    """
    data = block.data
    if block.block_type == BlockTitle.ACTUAL_VALUE_REPLY and len(data) > 0:
        return data[0]
    if block.block_type == BlockTitle.ADC_REPLY and len(data) > 1:
        value = (data[0] << 8) | data[1]
        return value - 0x10000 if value >= 0x8000 else value
    return 0


class KWLink:
    """The tester side of the serial line to the ECU."""

    def __init__(self, port, log: _Log | None) -> None:
        self.port = port
        self.log = log
        self.sleep: Callable[[float], None] = time.sleep

    def _log(self, text: str) -> None:
        if self.log is not None:
            self.log.append(text)

    def _read_byte(self) -> int:
        chunk = self.port.read(1)
        if not chunk:
            raise ProtocolError("Device not responding")
        return chunk[0]

    def _write_byte(self, value: int) -> None:
        self.port.write(bytes([value & 0xFF]))

    def _complement(self, value: int) -> int:
        return 0xFF - (value & 0xFF)

    def wake_up(self) -> None:
        """Configure the port and clock out the slow wake-up on RTS."""
        try:
            self.port.timeout = READ_TIMEOUT_SECONDS
            self.port.write_timeout = None
        except (ValueError, OSError) as exc:
            self._log("\r\nCannot Set Timeouts")
            self.port.close()
            raise ProtocolError("Cannot Set Timeouts") from exc
        try:
            self.port.baudrate = BAUD_RATE
            self.port.bytesize = serial.EIGHTBITS
            self.port.parity = serial.PARITY_NONE
            self.port.stopbits = serial.STOPBITS_ONE
            self.port.xonxoff = False
            self.port.rtscts = False
            self.port.dsrdtr = False
            self.port.dtr = True
            self.port.rts = False
        except (ValueError, OSError) as exc:
            self._log("\r\nCannot Set State")
            self.port.close()
            raise ProtocolError("Cannot Set State") from exc
        for level in WAKE_UP_PATTERN:
            self.port.rts = level
            self.sleep(PULSE_SECONDS)
        self.port.reset_input_buffer()
        self.port.reset_output_buffer()

    def _expect(self, expected: int, message: str) -> None:
        try:
            value = self._read_byte()
        except ProtocolError:
            self._log("\r\nDevice not responding")
            raise
        if value != expected:
            text = message.format(value=value)
            self._log("\r\n" + text)
            raise ProtocolError(text)

    def handshake(self) -> None:
        """Read sync and keyword bytes, then start the diagnostic session."""
        self._expect(SYNC_BYTE, "Incorrect baudrate = {value:02X}h")
        self._expect(KEYWORD_LOW, "Answer not 0x0B")
        self._expect(KEYWORD_HIGH, "Answer not 0x02")
        self.sleep(HANDSHAKE_DELAY_SECONDS)
        self._write_byte(START_DIAGNOSIS)
        try:
            echo = self._read_byte()
        except ProtocolError:
            echo = None
        if echo != START_DIAGNOSIS:
            self._log("\r\nIncorrect echo")
            raise ProtocolError("Incorrect echo")

    def _receive_byte(self) -> int:
        value = self._read_byte()
        self._write_byte(self._complement(value))
        self._read_byte()  # adapter echo of the complement
        return value

    def get_block(self) -> Block:
        """Receive one block from the ECU, acknowledging each byte."""
        length = self._receive_byte() - 3
        number = self._receive_byte()
        block_type = self._receive_byte()
        if block_type == BlockTitle.WRONG_TITLE:
            self._log("\r\nWrong title!")
            raise ProtocolError("Wrong title")
        data = bytes(self._receive_byte() for _ in range(max(length, 0)))
        self._read_byte()  # closing 0x03, not complemented
        return Block(number, block_type, data)

    def _send_byte(self, value: int) -> int:
        self._write_byte(value)
        echo = self._read_byte()
        self._read_byte()  # ECU complement
        return echo

    def _send_block(self, number: int, block_type: int, payload: Iterable[int] = ()) -> None:
        payload = [value & 0xFF for value in payload]
        self._send_byte(len(payload) + 3)
        number &= 0xFF
        self._write_byte(number)
        echo = self._read_byte()
        if echo != number:
            raise ProtocolError(
                f"block number echo {echo:02X} does not match {number:02X}"
            )
        self._read_byte()  # ECU complement of the block number
        self._send_byte(block_type)
        for value in payload:
            self._send_byte(value)
        self._write_byte(BLOCK_END)
        self._read_byte()

    def send_ack_block(self, number: int) -> None:
        """Send an acknowledge block."""
        self._send_block(number, BlockTitle.ACK)

    def send_end_block(self, number: int) -> None:
        """Send the block that ends the diagnostic session."""
        self._send_block(number, BlockTitle.END_DIAGNOSIS)

    def send_block_type(self, number: int, block_type: int) -> None:
        """Send an empty block with the given identifier."""
        self._send_block(number, block_type)

    def send_value_request(self, number: int, value1: int, value2: int, value3: int) -> None:
        """Ask the ECU for an actual value."""
        self._send_block(number, BlockTitle.VALUE_REQUEST, (value1, value2, value3))

    def send_adc_channel_read(self, number: int, channel: int) -> None:
        """Ask the ECU to read an ADC channel."""
        self._send_block(number, BlockTitle.ADC_CHANNEL_READ, (channel,))