import threading
from datetime import datetime

import pytest

from obdplot.parameters import default_parameters
from obdplot.protocol import Block, ProtocolError
from obdplot.session import Session, read_port_config


class FakeLink:
    def __init__(self, blocks=()):
        self.calls = []
        self.blocks = list(blocks)
        self.fail_handshake = False

    def wake_up(self):
        self.calls.append(("wake_up",))

    def handshake(self):
        self.calls.append(("handshake",))
        if self.fail_handshake:
            raise ProtocolError("Answer not 0x0B")

    def get_block(self):
        self.calls.append(("get_block",))
        if not self.blocks:
            raise ProtocolError("Device not responding")
        return self.blocks.pop(0)

    def send_ack_block(self, number):
        self.calls.append(("ack", number))

    def send_end_block(self, number):
        self.calls.append(("end", number))

    def send_block_type(self, number, block_type):
        self.calls.append(("type", number, block_type))

    def send_value_request(self, number, value1, value2, value3):
        self.calls.append(("value", number, value1, value2, value3))

    def send_adc_channel_read(self, number, channel):
        self.calls.append(("adc", number, channel))


class ListLog:
    def __init__(self):
        self.entries = []

    def append(self, text):
        self.entries.append(text)

    @property
    def text(self):
        return "".join(self.entries)


def start_up_blocks():
    return [Block(n, 0xF6, b"ECU") for n in (1, 3, 5, 7, 9, 11, 13)]


@pytest.fixture
def ready():
    link = FakeLink(start_up_blocks())
    log = ListLog()
    session = Session(link, log)
    session.now = lambda: datetime(2013, 2, 6, 15, 4, 5)
    session.initialise()
    link.calls.clear()
    return session, link, log


def test_initialise_runs_start_up_exchange():
    link = FakeLink(start_up_blocks())
    session = Session(link, ListLog())
    session.initialise()
    assert link.calls == [
        ("wake_up",), ("handshake",),
        ("get_block",), ("ack", 2),
        ("get_block",), ("ack", 4),
        ("get_block",), ("ack", 6),
        ("get_block",), ("ack", 8),
        ("get_block",), ("type", 10, 0x07),
        ("get_block",), ("ack", 12),
        ("get_block",),
    ]
    assert session.initialised
    assert session.block_number == 13


def test_initialise_logs_blocks_and_header(ready):
    session, _, log = ready
    assert "\r\nblockNumber 1 Type = F6 Length = 3 data ECU" in log.text
    assert "Initialised OK!" in log.text
    assert log.text.endswith(",".join(p.name for p in session.parameters))


def test_initialise_failure_raises_and_stays_down():
    link = FakeLink(start_up_blocks())
    link.fail_handshake = True
    session = Session(link, ListLog())
    with pytest.raises(ProtocolError):
        session.initialise()
    assert not session.initialised


def test_poll_actual_value(ready):
    session, link, _ = ready
    link.blocks.append(Block(15, 0xFE, b"\x64"))
    block = session.poll_once()
    assert link.calls == [("value", 14, 0x01, 0x00, 0x37), ("get_block",)]
    assert block.number == 15
    assert session.values[0] == 100
    assert session.current == 1
    assert session.initialised


def test_poll_adc_channel(ready):
    session, link, _ = ready
    session.current = 6
    link.blocks.append(Block(15, 0xFB, b"\x01\x02"))
    session.poll_once()
    assert link.calls[0] == ("adc", 14, 0)
    assert session.values[6] == (1 << 8) | 2
    assert session.current == 7


def test_poll_rotates_back_to_first(ready):
    session, link, _ = ready
    session.current = len(session.parameters) - 1
    link.blocks.append(Block(15, 0xFB, b"\x00\x10"))
    session.poll_once()
    assert session.current == 0


def test_block_number_wraps(ready):
    session, link, _ = ready
    session.block_number = 254
    link.blocks.append(Block(0, 0xFE, b"\x01"))
    session.poll_once()
    assert link.calls[0][1] == 255
    assert session.block_number == 0
    assert session.initialised


def test_block_number_mismatch_drops_connection(ready):
    session, link, _ = ready
    link.blocks.append(Block(99, 0xFE, b"\x01"))
    session.poll_once()
    assert not session.initialised


def test_poll_failure_raises_and_drops_connection(ready):
    session, _, _ = ready
    with pytest.raises(ProtocolError):
        session.poll_once()
    assert not session.initialised


def test_debug_logging_can_be_switched_off(ready):
    session, link, log = ready
    session.debug = False
    before = log.text
    link.blocks.append(Block(15, 0xFE, b"\x01"))
    session.poll_once()
    assert log.text == before


def test_zero_elapsed_keeps_baud_rate(ready):
    session, link, _ = ready
    session.clock = lambda: 1000
    link.blocks.append(Block(15, 0xFE, b"\x01"))
    session.poll_once()
    assert session.baud_rate == 0


def test_run_stops_on_error(ready):
    session, link, _ = ready
    link.blocks.extend([Block(15, 0xFE, b"\x01"), Block(17, 0xFE, b"\x02")])
    session.run(threading.Event())
    assert isinstance(session.error, ProtocolError)
    assert not session.initialised
    assert session.values[:2] == [1, 2]


def test_run_honours_stop_event(ready):
    session, link, _ = ready
    stop = threading.Event()
    stop.set()
    session.run(stop)
    assert link.calls == []


def test_status_line_reflects_pause(ready):
    session, _, _ = ready
    assert session.status_line(42).startswith("Running: SysTime")
    assert session.toggle_pause() is True
    assert session.status_line(42).startswith("Paused: SysTime")
    assert session.toggle_pause() is False


def test_toggle_pause_connects_when_down():
    link = FakeLink(start_up_blocks())
    session = Session(link, ListLog())
    assert session.toggle_pause() is False
    assert session.initialised


def test_toggle_pause_stays_down_on_failure():
    link = FakeLink()
    link.fail_handshake = True
    session = Session(link, ListLog())
    assert session.toggle_pause() is False
    assert not session.initialised


def test_toggle_parameter():
    session = Session(FakeLink(), ListLog())
    assert session.toggle_parameter(3) is False
    assert session.selected[3] is False
    assert session.toggle_parameter(3) is True


def test_sample_line_formats_selected_values(ready):
    session, _, log = ready
    session.values = [100, 120, 255, 20, 40, 104, 1000, 2000]
    line = session.sample_line()
    assert line.startswith("3:04:05 PM ")
    expected = ",".join(
        p.format(p.convert(raw)) for p, raw in zip(session.parameters, session.values)
    )
    assert line.endswith(expected)
    assert log.entries[-1] == line + "\r\n"
    assert session.history == 1


def test_sample_line_skips_deselected(ready):
    session, _, _ = ready
    full = session.sample_line().count(",")
    session.toggle_parameter(2)
    assert session.sample_line().count(",") == full - 1


def test_sample_line_paused(ready):
    session, _, _ = ready
    session.toggle_pause()
    assert session.sample_line() is None
    assert session.history == 0


def test_history_is_clamped(ready):
    session, _, _ = ready
    session.history_limit = 2
    for _ in range(5):
        session.sample_line()
    assert session.history == 2


def test_close_sends_end_block_and_logs(ready):
    session, link, log = ready
    session.close()
    assert link.calls == [("end", 13)]
    assert log.entries[-1] == "Session ended"
    assert not session.initialised


def test_custom_parameters_are_used():
    params = default_parameters()[:2]
    session = Session(FakeLink(), ListLog(), params)
    assert session.parameters == params
    assert session.values == [0, 0]


def test_read_port_config_missing(tmp_path):
    assert read_port_config(tmp_path / "absent.cfg") is None


def test_read_port_config_strips(tmp_path):
    path = tmp_path / "OBDPlot.cfg"
    path.write_bytes(b"COM3:\r\n")
    assert read_port_config(path) == "COM3:"


def test_read_port_config_empty(tmp_path):
    path = tmp_path / "OBDPlot.cfg"
    path.write_bytes(b"  \n")
    assert read_port_config(path) is None