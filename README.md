# obdplot

`obdplot` talks to an engine control unit over a K-line serial adapter at
9600 baud (8 data bits, no parity, one stop bit), polls a fixed set of live
engine parameters one after another, and writes every sample to a
comma-separated session log. It also keeps a scrolling per-parameter history
and works out the geometry of a strip chart for it.

## Installing

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Running

```
obdplot
```

The serial port is chosen in this order:

1. `--port NAME` on the command line;
2. the port name held in the configuration file (`OBDPlot.cfg` in the working
   directory, or the file given with `--config`);
3. the default, `COM9:`.

A trailing colon on a name such as `COM9:` is dropped before opening. Names
containing `://` are passed to pyserial as URLs, so `--port loop://` and the
like work too.

On start the program wakes the ECU by toggling RTS, checks its sync byte
(`0x55`) and key bytes (`0x0B`, `0x02`), starts the diagnostic session, and
exchanges the start-up blocks (identification blocks, acknowledgements and an
error request). A reader thread then cycles through the parameters, requesting
one value per exchange. While the ECU does not answer, `Waiting to connect to
ECU` is printed and the connection is retried; if the link fails or loses
block-number sync later, it reconnects.

Every interval the program prints a status line (running or paused, system
time, effective baud rate, block number, history length) and a sample line,
and appends the sample line to the log. A sample line starts with the time of
day followed by the formatted values of the selected parameters.

The session log (`OBDPlot.log` by default) is truncated at start. Unless
`--quiet` is given, every request and reply block is logged too. On exit the
program sends the end-of-diagnosis block and writes `Session ended` to the log.

Options:

| Option           | Meaning                                                   | Default       |
|------------------|-----------------------------------------------------------|---------------|
| `--port NAME`    | serial port; overrides the configuration file             |               |
| `--config PATH`  | file naming the port                                      | `OBDPlot.cfg` |
| `--log PATH`     | session log file                                          | `OBDPlot.log` |
| `--interval SEC` | seconds between samples and between connection attempts  | `0.5`         |
| `--attempts N`   | connection attempts before giving up; 0 keeps trying      | `0`           |
| `--samples N`    | samples to take before stopping; 0 runs until interrupted | `0`           |
| `--quiet`        | do not log every block                                    |               |

The command exits with status 1 if the port cannot be opened or the ECU cannot
be reached within `--attempts`, and with 0 otherwise.

## Parameters

`obdplot.parameters.default_parameters()` returns, in polling order:

| Parameter          | Shown as | Axis    |
|--------------------|----------|---------|
| Intake Air Temp    | F        | `Fahr`  |
| Cylinder Head Temp | F        | `Fahr`  |
| AFM Voltage        | Volts    | `Volts` |
| RPM                | RPM      | `RPM`   |
| Injector Time      | ms       | `ms`    |
| Ignition Advance   | deg      | `Angle` |
| MAF Sensor         | Volts    | `Volts` |
| Battery            | Volts    | `Volts` |

The first six are read with "actual value" requests
(`ParameterKind.ACTUAL_VALUE`); the last two from ADC channels
(`ParameterKind.ADC_CHANNEL`). `Parameter.convert(raw)` turns the raw reading
into its unit and `Parameter.format(value)` renders it (`"%5.2f unit"`, or a
whole number for RPM). Every parameter has an `Axis` with a fixed range;
`Axis.scale(height)` gives pixels per unit and `Axis.tick_labels()` the nine
grid labels.

## Using it from Python

```python
from obdplot.cli import open_port
from obdplot.logfile import SessionLog
from obdplot.parameters import default_parameters
from obdplot.protocol import KWLink
from obdplot.session import Session

with SessionLog("OBDPlot.log") as log:
    link = KWLink(open_port("/dev/ttyUSB0"), log)
    session = Session(link, log, default_parameters())
    session.initialise()
    session.poll_once()
    print(session.sample_line())
    session.close()
```

- `Session.initialise()` wakes the ECU and runs the start-up exchange.
- `Session.poll_once()` requests the current parameter, reads the reply and
  moves on to the next one.
- `Session.run(stop_event)` polls until the given `threading.Event` is set or
  the link fails; the failure is kept in `Session.error`.
- `Session.toggle_parameter(index)` switches a parameter on or off; switched-off
  parameters are left out of sample lines.
- `Session.toggle_pause()` pauses or resumes sampling (polling goes on), or
  tries to connect when not connected. While paused, `sample_line()` returns
  `None`.
- `Session.status_line(timestamp)` gives the one-line status text.
- `read_port_config(path)` returns the port named in a configuration file, or
  `None`.

`obdplot.protocol.KWLink` does the byte-level exchange: `wake_up`,
`handshake`, `get_block`, `send_ack_block`, `send_end_block`,
`send_block_type`, `send_value_request` and `send_adc_channel_read`.
`decode_value(block)` extracts the reading from a reply `Block`. Protocol
failures are raised as `ProtocolError`.

`SessionLog` is a thread-safe log file; `SessionLog.save_copy(destination)`
copies what has been logged so far and carries on logging.

### Chart geometry

`obdplot.chart` keeps the history for plotting. A `Chart` is built from a
`PlotArea` (left, top, right, bottom in pixels), the number of parameters and a
pen width (10 by default).

- `Chart.tick(values, timestamp)` scrolls one column and records one value per
  parameter; `None` keeps a switched-off parameter's last value.
- `Chart.points(index, axis)` gives the polyline for a parameter, newest first.
- `Chart.markers()` gives the vertical time marks, one about every 30 seconds
  back, labelled `-30s`, `-60s`, ...
- `Chart.pointer(value, axis)` gives the triangle pointing at the current value.
- `Chart.grid_lines()` gives the heights of the nine horizontal grid lines.
- `PlotArea.y_for(value, axis)` maps a value to a clamped pixel row.

## What it does not do

There is no graphical window: the `obdplot` command prints status and sample
lines to the terminal and writes the log file, but draws no chart. The
`obdplot.chart` module only computes coordinates and labels; drawing them is
left to whatever display the caller uses. The command has no option for
saving a copy of the log; use `SessionLog.save_copy` from Python.