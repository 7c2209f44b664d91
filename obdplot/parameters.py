"""Engine parameters read from the ECU and the axes they are plotted against."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable


class ParameterKind(enum.Enum):
    """How a parameter is requested from the ECU."""

    ACTUAL_VALUE = 0
    ADC_CHANNEL = 1


@dataclass(frozen=True)
class Axis:
    """A vertical value range shared by parameters of the same unit."""

    label: str
    minimum: float
    maximum: float

    def scale(self, height: float) -> float:
        """Pixels per unit when the axis spans ``height`` pixels."""
        return height / (self.maximum - self.minimum)

    def tick_labels(self) -> list[str]:
        """Labels for the nine inner grid lines, bottom to top."""
        step = (self.maximum - self.minimum) / 10
        return [str(int(step * i + self.minimum)) for i in range(1, 10)]


TEMPERATURE = Axis("Fahr", -50.0, 450.0)
VOLTS = Axis("Volts", -2.0, 20.0)
RPM = Axis("RPM", -1000.0, 9000.0)
TIME = Axis("ms", -10.0, 90.0)
DEGREES = Axis("Angle", -10.0, 290.0)

RED = (255, 0, 0)
ORANGE = (200, 100, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (240, 240, 50)
GREY = (180, 180, 180)
PURPLE = (250, 0, 250)
PINK = (255, 200, 200)


def _fahrenheit(raw: float) -> float:
    return raw * 1.15 - 26.0


def _sensor_volts(raw: float) -> float:
    return raw * 500.0 / 25500.0


def _rpm(raw: float) -> float:
    return raw * 40.0


def _injector_ms(raw: float) -> float:
    return raw * 0.05


def _advance_degrees(raw: float) -> float:
    return (104.0 - raw) * 207.5 / 255.0


def _battery_volts(raw: float) -> float:
    return raw * 682.0 / 1000000.0


@dataclass(frozen=True)
class Parameter:
    """One engine value: how to request it, convert it and show it."""

    name: str
    kind: ParameterKind
    request: tuple[int, int, int]
    control_id: int
    axis: Axis
    unit: str
    colour: tuple[int, int, int]
    converter: Callable[[float], float] = field(compare=False, repr=False)
    integer: bool = False

    def convert(self, raw: int | float) -> float:
        """Turn the raw ECU reading into engineering units."""
        return self.converter(float(raw))

    def format(self, value: float) -> str:
        """Render a converted value with its unit."""
        if self.integer:
            return f"{int(value)} {self.unit}"
        return f"{value:5.2f} {self.unit}"


def default_parameters() -> list[Parameter]:
    """The eight parameters polled in turn, in polling order."""
    actual = ParameterKind.ACTUAL_VALUE
    adc = ParameterKind.ADC_CHANNEL
    return [
        Parameter("Intake Air Temp", actual, (0x01, 0x00, 0x37), 10101,
                  TEMPERATURE, "F", RED, _fahrenheit),
        Parameter("Cylinder Head Temp", actual, (0x01, 0x00, 0x38), 10102,
                  TEMPERATURE, "F", ORANGE, _fahrenheit),
        Parameter("AFM Voltage", actual, (0x01, 0x00, 0x45), 10103,
                  VOLTS, "Volts", GREEN, _sensor_volts),
        Parameter("RPM", actual, (0x01, 0x00, 0x3A), 10104,
                  RPM, "RPM", BLUE, _rpm, integer=True),
        Parameter("Injector Time", actual, (0x01, 0x00, 0x42), 10105,
                  TIME, "ms", YELLOW, _injector_ms),
        Parameter("Ignition Advance", actual, (0x01, 0x00, 0x5D), 10106,
                  DEGREES, "deg", GREY, _advance_degrees),
        Parameter("MAF Sensor", adc, (0x00, 0x00, 0x00), 10107,
                  VOLTS, "Volts", PURPLE, _sensor_volts),
        Parameter("Battery", adc, (0x01, 0x00, 0x00), 10108,
                  VOLTS, "Volts", PINK, _battery_volts),
    ]