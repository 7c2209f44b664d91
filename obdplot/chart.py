"""Scrolling strip-chart geometry for the plotted parameters."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Iterable

from .parameters import Axis

MARKER_INTERVAL_MS = 30000
MARKER_SECONDS = 30


@dataclass(frozen=True)
class PlotArea:
    """The rectangle the chart is drawn in, in pixels."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    def y_for(self, value: float, axis: Axis) -> int:
        """Vertical pixel for ``value`` on ``axis``, clamped to the area."""
        y = self.bottom - int((value - axis.minimum) * axis.scale(self.height))
        return min(max(y, self.top), self.bottom)


class Chart:
    """History of parameter values scrolling right to left, one column per tick."""

    def __init__(self, area: PlotArea, parameter_count: int, pen_width: int = 10) -> None:
        capacity = area.width - 1 - pen_width
        if capacity < 1:
            raise ValueError("plot area too narrow for the pen width")
        if parameter_count < 1:
            raise ValueError("at least one parameter is needed")
        self.area = area
        self.pen_width = pen_width
        self.capacity = capacity
        self.length = 0
        size = capacity + 1
        self._history = [deque([0.0] * size, maxlen=size) for _ in range(parameter_count)]
        self._times = deque([0] * size, maxlen=size)

    def tick(self, values: Iterable[float | None], timestamp: int) -> None:
        """Scroll one column and record the newest values.

        ``None`` marks a parameter that is switched off; its last value is kept.
        """
        values = list(values)
        if len(values) != len(self._history):
            raise ValueError(
                f"expected {len(self._history)} values, got {len(values)}"
            )
        self.length = min(self.length + 1, self.capacity)
        for history, value in zip(self._history, values):
            history.append(history[-1] if value is None else float(value))
        if all(value is None for value in values):
            self._times.append(self._times[-1])
        else:
            self._times.append(timestamp)

    def _columns(self) -> range:
        return range(self.length)

    def _x(self, column: int) -> int:
        return self.area.right - self.pen_width - column

    def points(self, index: int, axis: Axis) -> list[tuple[int, int]]:
        """Polyline of parameter ``index``, newest point first."""
        newest_first = islice(reversed(self._history[index]), self.length)
        return [
            (self._x(column), self.area.y_for(value, axis))
            for column, value in zip(self._columns(), newest_first)
        ]

    def markers(self) -> list[tuple[int, str]]:
        """Vertical time markers, one roughly every thirty seconds back."""
        result = []
        times = list(islice(reversed(self._times), self.length))
        if not times:
            return result
        last = times[0]
        count = 0
        for column, stamp in zip(self._columns(), times):
            if last - stamp > MARKER_INTERVAL_MS:
                last = stamp
                count += 1
                result.append((self._x(column), f"-{count * MARKER_SECONDS}s"))
        return result

    def pointer(self, value: float, axis: Axis) -> list[tuple[int, int]]:
        """Closed triangle at the right edge pointing at the current value."""
        area = self.area
        y = area.y_for(value, axis)
        tip = (area.right - self.pen_width, y)
        upper = (area.right - 1, max(y - 5, area.top))
        lower = (area.right - 1, min(y + 5, area.bottom))
        return [tip, upper, lower, tip]

    def grid_lines(self) -> list[int]:
        """Heights of the nine horizontal grid lines, bottom to top."""
        step = self.area.height // 10
        return [self.area.bottom - step * j for j in range(1, 10)]