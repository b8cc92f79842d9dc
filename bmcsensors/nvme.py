"""A collection of NVMe drive sensors behind one root bus, polled in turn."""

from __future__ import annotations

from typing import Any, Optional


class NVMeContext:
    """Holds the sensors of one root bus and a cursor over them while polling.

    The cursor stays valid when sensors are removed during a poll: removing
    the sensor under the cursor moves the cursor to the sensor after it.
    """

    def __init__(self, root_bus: int) -> None:
        if root_bus < 0:
            raise ValueError("Invalid root bus: Bus ID must not be negative")
        self.root_bus = root_bus
        self.sensors: list[Any] = []
        self.closed = False
        self._cursor: Optional[int] = None

    @property
    def polling(self) -> bool:
        """Whether a poll of the sensor list is in progress."""
        return self._cursor is not None

    @property
    def current(self) -> Optional[Any]:
        """The sensor under the poll cursor, or None when not polling."""
        return None if self._cursor is None else self.sensors[self._cursor]

    def add_sensor(self, sensor: Any) -> None:
        """Append a sensor to the poll list."""
        self.sensors.append(sensor)

    def sensor_at_path(self, path: str) -> Optional[Any]:
        """Return the sensor with the given configuration path, if any."""
        return next((s for s in self.sensors if s.configuration_path == path), None)

    def remove_sensor(self, sensor: Any) -> None:
        """Remove a sensor, keeping the poll cursor valid."""
        index = next((i for i, s in enumerate(self.sensors) if s is sensor), None)
        if index is None:
            return
        del self.sensors[index]
        if self._cursor is None:
            return
        if index < self._cursor:
            self._cursor -= 1
        elif index == self._cursor and self._cursor >= len(self.sensors):
            self._cursor = None

    def begin_poll(self) -> Optional[Any]:
        """Start a poll at the first sensor and return it, or None if there is nothing to poll."""
        if self.closed or not self.sensors:
            self._cursor = None
            return None
        self._cursor = 0
        return self.sensors[0]

    def advance_poll(self) -> Optional[Any]:
        """Move the cursor to the next sensor and return it; None ends the poll."""
        if self._cursor is None:
            return None
        self._cursor += 1
        if self._cursor >= len(self.sensors):
            self._cursor = None
            return None
        return self.sensors[self._cursor]

    def close(self) -> None:
        """Stop polling; no further polls start."""
        self.closed = True
        self._cursor = None