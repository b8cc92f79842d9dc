"""Sensor thresholds: parsing, evaluation with hysteresis, and alarm assertion."""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import os
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .files import read_file, split_file_name
from .variants import to_double, to_int, to_string, to_unsigned

_log = logging.getLogger(__name__)

THRESHOLD_INTERFACE_PREFIX = "xyz.openbmc_project.Sensor.Threshold."
THRESHOLD_ASSERTED_SIGNAL = "ThresholdAsserted"
DEFAULT_TIMER_WAIT = 5.0


class Level(enum.Enum):
    """Severity of a threshold; the value is its position in the definition table."""

    WARNING = 0
    CRITICAL = 1
    PERFORMANCELOSS = 2
    SOFTSHUTDOWN = 3
    HARDSHUTDOWN = 4
    ERROR = 5


class Direction(enum.Enum):
    """Which side of a threshold raises the alarm."""

    HIGH = 0
    LOW = 1
    ERROR = 2


@dataclass(frozen=True)
class ThresholdDefinition:
    level: Level
    severity: int
    name: str


THRESHOLD_DEFINITIONS: tuple[ThresholdDefinition, ...] = (
    ThresholdDefinition(Level.WARNING, 0, "Warning"),
    ThresholdDefinition(Level.CRITICAL, 1, "Critical"),
    ThresholdDefinition(Level.PERFORMANCELOSS, 2, "PerformanceLoss"),
    ThresholdDefinition(Level.SOFTSHUTDOWN, 3, "SoftShutdown"),
    ThresholdDefinition(Level.HARDSHUTDOWN, 4, "HardShutdown"),
)


@dataclass(eq=False)
class Threshold:
    """A limit on a sensor reading. Equality ignores hysteresis and writeability."""

    level: Level
    direction: Direction
    value: float
    hysteresis: float = math.nan
    writeable: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Threshold):
            return NotImplemented
        return (
            self.level == other.level
            and self.direction == other.direction
            and self.value == other.value
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ChangeParam:
    """A threshold whose alarm should be set to ``asserted`` for ``assert_value``."""

    threshold: Threshold
    asserted: bool
    assert_value: float


class ThresholdInterfaceLike(Protocol):
    interface_name: str

    def set_property(self, name: str, value: Any) -> bool: ...

    def emit_signal(self, name: str, *args: Any) -> None: ...


class SensorLike(Protocol):
    name: str
    value: float
    raw_value: float
    thresholds: list[Threshold]

    def threshold_interface(self, level: Level) -> Optional[ThresholdInterfaceLike]: ...

    def reading_state_good(self) -> bool: ...


def find_threshold_level(severity: int) -> Level:
    """Map a configured severity number to a Level, or Level.ERROR."""
    for definition in THRESHOLD_DEFINITIONS:
        if definition.severity == severity:
            return definition.level
    return Level.ERROR


def find_threshold_direction(text: str) -> Direction:
    """Map a configured direction phrase to a Direction, or Direction.ERROR."""
    if text == "greater than":
        return Direction.HIGH
    if text == "less than":
        return Direction.LOW
    return Direction.ERROR


def _level_name(level: Level) -> Optional[str]:
    for definition in THRESHOLD_DEFINITIONS:
        if definition.level == level:
            return definition.name
    return None


def get_interface(level: Level) -> str:
    """Return the threshold interface name for a level, or an empty string."""
    name = _level_name(level)
    return "" if name is None else THRESHOLD_INTERFACE_PREFIX + name


def _property_name(level: Level, direction: Direction, infix: str) -> str:
    name = _level_name(level)
    if name is None:
        return ""
    if direction == Direction.HIGH:
        return f"{name}{infix}High"
    if direction == Direction.LOW:
        return f"{name}{infix}Low"
    return ""


def property_level(level: Level, direction: Direction) -> str:
    """Return the property holding a threshold's value, or an empty string."""
    return _property_name(level, direction, "")


def property_alarm(level: Level, direction: Direction) -> str:
    """Return the property holding a threshold's alarm flag, or an empty string."""
    return _property_name(level, direction, "Alarm")


def parse_thresholds_from_config(
    sensor_data: Mapping[str, Mapping[str, Any]],
    match_label: Optional[str] = None,
    sensor_index: Optional[int] = None,
) -> list[Threshold]:
    """Collect thresholds from the ``*Thresholds*`` interfaces of a configuration.

    Entries can be filtered by label and by index; a missing index matches
    index 1. Entries with an unknown severity or direction are skipped.
    Raises ValueError when an entry lacks Value, Severity or Direction.
    """
    result: list[Threshold] = []
    for interface, config in sorted(sensor_data.items()):
        if "Thresholds" not in interface:
            _log.debug("No Thresholds on interface %s", interface)
            continue
        if match_label is not None:
            if "Label" not in config or to_string(config["Label"]) != match_label:
                continue
        if sensor_index is not None:
            if "Index" not in config:
                if sensor_index != 1:
                    continue
            elif to_int(config["Index"]) != sensor_index:
                continue

        hysteresis = to_double(config["Hysteresis"]) if "Hysteresis" in config else math.nan

        if not all(key in config for key in ("Value", "Severity", "Direction")):
            _log.error("Malformed threshold on configuration interface %s", interface)
            raise ValueError(f"Malformed threshold on configuration interface {interface}")

        severity = to_unsigned(config["Severity"])
        direction_text = to_string(config["Direction"])
        level = find_threshold_level(severity)
        direction = find_threshold_direction(direction_text)
        if level == Level.ERROR or direction == Direction.ERROR:
            _log.error(
                "Level or direction error on configuration interface %s: "
                "direction %s severity %s",
                interface,
                direction_text,
                severity,
            )
            continue
        result.append(Threshold(level, direction, to_double(config["Value"]), hysteresis))
    return result


def parse_thresholds_from_attr(
    input_path: str, scale_factor: float, offset: float = 0.0
) -> list[Threshold]:
    """Read thresholds from the sysfs attribute files next to a hwmon input file.

    ``offset`` is added to the critical high threshold only.
    """
    attributes: dict[str, tuple[tuple[str, Level, Direction, float], ...]] = {
        "average": (
            ("average_min", Level.WARNING, Direction.LOW, 0.0),
            ("average_max", Level.WARNING, Direction.HIGH, 0.0),
        ),
        "input": (
            ("min", Level.WARNING, Direction.LOW, 0.0),
            ("max", Level.WARNING, Direction.HIGH, 0.0),
            ("lcrit", Level.CRITICAL, Direction.LOW, 0.0),
            ("crit", Level.CRITICAL, Direction.HIGH, offset),
        ),
    }
    path = os.fspath(input_path)
    parts = split_file_name(path)
    if parts is None:
        return []
    item = parts[2]
    result: list[Threshold] = []
    for suffix, level, direction, extra in attributes.get(item, ()):
        attr_path = path.replace(item, suffix)
        value = read_file(attr_path, scale_factor)
        if value is not None:
            value += extra
            _log.debug("Threshold: %s: %s", attr_path, value)
            result.append(Threshold(level, direction, value, 0.0))
    return result


def evaluate_thresholds(thresholds: list[Threshold], value: float) -> list[ChangeParam]:
    """Decide which alarms change for a reading, using Schmitt-trigger hysteresis.

    An alarm asserts as soon as the threshold is crossed but deasserts only
    once the reading is more than the hysteresis back on the safe side.
    """
    changes: list[ChangeParam] = []
    for threshold in thresholds:
        if threshold.direction == Direction.HIGH:
            if value >= threshold.value:
                changes.append(ChangeParam(threshold, True, value))
                _log.debug("high threshold %s assert: value %s", threshold.value, value)
            elif value < threshold.value - threshold.hysteresis:
                changes.append(ChangeParam(threshold, False, value))
        elif threshold.direction == Direction.LOW:
            if value <= threshold.value:
                changes.append(ChangeParam(threshold, True, value))
                _log.debug("low threshold %s assert: value %s", threshold.value, value)
            elif value > threshold.value + threshold.hysteresis:
                changes.append(ChangeParam(threshold, False, value))
        else:
            _log.error("Error determining threshold direction")
    return changes


def assert_thresholds(
    sensor: SensorLike,
    assert_value: float,
    level: Level,
    direction: Direction,
    asserted: bool,
) -> None:
    """Set a threshold's alarm and signal the change when the alarm actually changed."""
    interface = sensor.threshold_interface(level)
    if interface is None:
        _log.info("trying to set uninitialized interface")
        return
    prop = property_alarm(level, direction)
    if not prop:
        _log.info("Alarm property is empty")
        return
    if interface.set_property(prop, asserted):
        try:
            interface.emit_signal(
                THRESHOLD_ASSERTED_SIGNAL,
                sensor.name,
                interface.interface_name,
                prop,
                asserted,
                assert_value,
            )
        except Exception:  # signal delivery failures must not stop monitoring
            _log.exception("Failed to send thresholdAsserted signal with assertValue")


def update_thresholds(sensor: SensorLike) -> None:
    """Publish each threshold's value on its level's interface."""
    for threshold in sensor.thresholds:
        interface = sensor.threshold_interface(threshold.level)
        if interface is None:
            continue
        prop = property_level(threshold.level, threshold.direction)
        if not prop:
            continue
        interface.set_property(prop, threshold.value)


def check_thresholds(sensor: SensorLike) -> bool:
    """Apply the sensor's current value to its alarms.

    Returns False if a critical threshold is asserted, True otherwise.
    """
    status = True
    for change in evaluate_thresholds(sensor.thresholds, sensor.value):
        assert_thresholds(
            sensor,
            change.assert_value,
            change.threshold.level,
            change.threshold.direction,
            change.asserted,
        )
        if change.threshold.level == Level.CRITICAL and change.asserted:
            status = False
    return status


@dataclass
class _TimerSlot:
    used: bool = False
    level: Level = Level.ERROR
    direction: Direction = Direction.ERROR
    asserted: bool = False
    handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class ThresholdTimer:
    """Delays threshold assertions so transient power-off readings can be filtered."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        wait_time: float = DEFAULT_TIMER_WAIT,
    ) -> None:
        self._loop = loop
        self.wait_time = wait_time
        self._slots: list[_TimerSlot] = []

    def _matching(self, threshold: Threshold, asserted: bool):
        return (
            slot
            for slot in self._slots
            if slot.used
            and slot.level == threshold.level
            and slot.direction == threshold.direction
            and slot.asserted == asserted
        )

    def has_active_timer(self, threshold: Threshold, asserted: bool) -> bool:
        """Return whether a pending timer exists for this threshold and assertion."""
        return any(True for _ in self._matching(threshold, asserted))

    def stop_timer(self, threshold: Threshold, asserted: bool) -> None:
        """Cancel pending timers for this threshold and assertion."""
        for slot in list(self._matching(threshold, asserted)):
            if slot.handle is not None:
                slot.handle.cancel()
                slot.handle = None
            slot.used = False

    def start_timer(
        self,
        sensor: SensorLike,
        threshold: Threshold,
        asserted: bool,
        assert_value: float,
    ) -> None:
        """Assert the threshold after the wait time if the sensor still reads validly."""
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        slot = next((s for s in self._slots if not s.used), None)
        if slot is None:
            slot = _TimerSlot()
            self._slots.append(slot)
        slot.used = True
        slot.level = threshold.level
        slot.direction = threshold.direction
        slot.asserted = asserted
        sensor_ref = weakref.ref(sensor)
        slot.handle = loop.call_later(
            self.wait_time,
            self._expire,
            slot,
            sensor_ref,
            threshold.level,
            threshold.direction,
            asserted,
            assert_value,
        )

    @staticmethod
    def _expire(
        slot: _TimerSlot,
        sensor_ref: "weakref.ref[Any]",
        level: Level,
        direction: Direction,
        asserted: bool,
        assert_value: float,
    ) -> None:
        sensor = sensor_ref()
        if sensor is None:
            return
        slot.used = False
        slot.handle = None
        if sensor.reading_state_good():
            assert_thresholds(sensor, assert_value, level, direction, asserted)


def check_thresholds_power_delay(sensor: SensorLike, timer: ThresholdTimer) -> None:
    """Apply the current value, deferring low-threshold events through ``timer``.

    Low assertions are always delayed; low deassertions are delayed only while
    an assertion timer is pending. High events are applied at once.
    """
    for change in evaluate_thresholds(sensor.thresholds, sensor.value):
        if change.threshold.direction == Direction.LOW:
            if change.asserted or timer.has_active_timer(change.threshold, not change.asserted):
                timer.start_timer(sensor, change.threshold, change.asserted, change.assert_value)
                _log.debug(
                    "defer assertThresholds for %s asserted %s assertvalue %s",
                    sensor.name,
                    change.asserted,
                    change.assert_value,
                )
                continue
        assert_thresholds(
            sensor,
            change.assert_value,
            change.threshold.level,
            change.threshold.direction,
            change.asserted,
        )