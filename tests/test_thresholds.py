import asyncio
import math

import pytest

from bmcsensors.thresholds import (
    ChangeParam,
    Direction,
    Level,
    Threshold,
    ThresholdTimer,
    assert_thresholds,
    check_thresholds,
    check_thresholds_power_delay,
    evaluate_thresholds,
    find_threshold_direction,
    find_threshold_level,
    get_interface,
    parse_thresholds_from_attr,
    parse_thresholds_from_config,
    property_alarm,
    property_level,
    update_thresholds,
)


class FakeInterface:
    def __init__(self, name):
        self.interface_name = name
        self.properties = {}
        self.signals = []

    def set_property(self, name, value):
        old = self.properties.get(name)
        self.properties[name] = value
        return old != value

    def emit_signal(self, name, *args):
        self.signals.append((name, args))


class FakeSensor:
    def __init__(self, thresholds, value=math.nan, good=True):
        self.name = "fan0"
        self.value = value
        self.raw_value = value
        self.thresholds = thresholds
        self.good = good
        self.interfaces = {
            level: FakeInterface(get_interface(level))
            for level in {t.level for t in thresholds}
        }

    def threshold_interface(self, level):
        return self.interfaces.get(level)

    def reading_state_good(self):
        return self.good


def test_find_threshold_level():
    assert find_threshold_level(0) == Level.WARNING
    assert find_threshold_level(1) == Level.CRITICAL
    assert find_threshold_level(4) == Level.HARDSHUTDOWN
    assert find_threshold_level(5) == Level.ERROR


def test_find_threshold_direction():
    assert find_threshold_direction("greater than") == Direction.HIGH
    assert find_threshold_direction("less than") == Direction.LOW
    assert find_threshold_direction("sideways") == Direction.ERROR


def test_interface_and_property_names():
    assert get_interface(Level.CRITICAL) == "xyz.openbmc_project.Sensor.Threshold.Critical"
    assert get_interface(Level.ERROR) == ""
    assert property_level(Level.WARNING, Direction.HIGH) == "WarningHigh"
    assert property_alarm(Level.WARNING, Direction.LOW) == "WarningAlarmLow"
    assert property_level(Level.WARNING, Direction.ERROR) == ""
    assert property_alarm(Level.ERROR, Direction.HIGH) == ""


def test_threshold_equality_ignores_hysteresis():
    a = Threshold(Level.WARNING, Direction.HIGH, 80.0, 1.0)
    b = Threshold(Level.WARNING, Direction.HIGH, 80.0, 5.0, False)
    assert a == b
    assert a != Threshold(Level.WARNING, Direction.LOW, 80.0)
    assert math.isnan(Threshold(Level.WARNING, Direction.HIGH, 1.0).hysteresis)


def _cfg(severity, direction, value, **extra):
    cfg = {"Severity": severity, "Direction": direction, "Value": value}
    cfg.update(extra)
    return cfg


def test_parse_config_basic():
    data = {
        "xyz.openbmc_project.Configuration.Fan.Thresholds0": _cfg(1, "greater than", 90.0, Hysteresis=2.0),
        "xyz.openbmc_project.Configuration.Fan.Thresholds1": _cfg(0, "less than", 10),
        "xyz.openbmc_project.Configuration.Fan": {"Name": "fan"},
    }
    result = parse_thresholds_from_config(data)
    assert result == [
        Threshold(Level.CRITICAL, Direction.HIGH, 90.0),
        Threshold(Level.WARNING, Direction.LOW, 10.0),
    ]
    assert result[0].hysteresis == 2.0
    assert math.isnan(result[1].hysteresis)


def test_parse_config_skips_bad_level_or_direction():
    data = {
        "A.Thresholds0": _cfg(9, "greater than", 1.0),
        "A.Thresholds1": _cfg(0, "above", 1.0),
        "A.Thresholds2": _cfg(0, "less than", 3.0),
    }
    assert parse_thresholds_from_config(data) == [Threshold(Level.WARNING, Direction.LOW, 3.0)]


def test_parse_config_malformed_raises():
    data = {"A.Thresholds0": {"Severity": 0, "Direction": "less than"}}
    with pytest.raises(ValueError):
        parse_thresholds_from_config(data)


def test_parse_config_label_filter():
    data = {
        "A.Thresholds0": _cfg(0, "less than", 1.0, Label="cpu"),
        "A.Thresholds1": _cfg(0, "less than", 2.0, Label="dimm"),
        "A.Thresholds2": _cfg(0, "less than", 3.0),
    }
    result = parse_thresholds_from_config(data, match_label="dimm")
    assert [t.value for t in result] == [2.0]


def test_parse_config_index_filter():
    data = {
        "A.Thresholds0": _cfg(0, "less than", 1.0),
        "A.Thresholds1": _cfg(0, "less than", 2.0, Index=2),
        "A.Thresholds2": _cfg(0, "less than", 3.0, Index=1),
    }
    assert [t.value for t in parse_thresholds_from_config(data, sensor_index=1)] == [1.0, 3.0]
    assert [t.value for t in parse_thresholds_from_config(data, sensor_index=2)] == [2.0]


def test_attr_thresholds_from_sysfs_files(tmp_path):
    (tmp_path / "temp1_min").write_text("10\n")
    (tmp_path / "temp1_max").write_text("80\n")
    (tmp_path / "temp1_crit").write_text("90\n")
    input_path = str(tmp_path / "temp1_input")
    plain = parse_thresholds_from_attr(input_path, 1.0)
    assert plain == [
        Threshold(Level.WARNING, Direction.LOW, 10.0),
        Threshold(Level.WARNING, Direction.HIGH, 80.0),
        Threshold(Level.CRITICAL, Direction.HIGH, 90.0),
    ]
    assert all(t.hysteresis == 0.0 for t in plain)
    shifted = parse_thresholds_from_attr(input_path, 1.0, 5.0)
    assert shifted[2].value - plain[2].value == 5.0
    assert shifted[:2] == plain[:2]


def test_attr_thresholds_unknown_item(tmp_path):
    assert parse_thresholds_from_attr(str(tmp_path / "temp1_label"), 1.0) == []
    assert parse_thresholds_from_attr(str(tmp_path / "name"), 1.0) == []


def test_evaluate_high_with_hysteresis():
    t = Threshold(Level.WARNING, Direction.HIGH, 80.0, 5.0)
    assert evaluate_thresholds([t], 80.0) == [ChangeParam(t, True, 80.0)]
    assert evaluate_thresholds([t], 77.0) == []
    assert evaluate_thresholds([t], 74.0) == [ChangeParam(t, False, 74.0)]


def test_evaluate_low_with_hysteresis():
    t = Threshold(Level.WARNING, Direction.LOW, 10.0, 5.0)
    assert evaluate_thresholds([t], 10.0) == [ChangeParam(t, True, 10.0)]
    assert evaluate_thresholds([t], 13.0) == []
    assert evaluate_thresholds([t], 16.0) == [ChangeParam(t, False, 16.0)]


def test_evaluate_nan_hysteresis_never_deasserts():
    t = Threshold(Level.WARNING, Direction.HIGH, 80.0)
    assert evaluate_thresholds([t], 0.0) == []
    assert evaluate_thresholds([], 0.0) == []


def test_assert_thresholds_signals_only_on_change():
    sensor = FakeSensor([Threshold(Level.WARNING, Direction.HIGH, 80.0)])
    iface = sensor.interfaces[Level.WARNING]
    assert_thresholds(sensor, 85.0, Level.WARNING, Direction.HIGH, True)
    assert_thresholds(sensor, 86.0, Level.WARNING, Direction.HIGH, True)
    assert iface.properties["WarningAlarmHigh"] is True
    assert iface.signals == [
        ("ThresholdAsserted", ("fan0", iface.interface_name, "WarningAlarmHigh", True, 85.0))
    ]


def test_assert_thresholds_without_interface_is_ignored():
    sensor = FakeSensor([Threshold(Level.WARNING, Direction.HIGH, 80.0)])
    assert_thresholds(sensor, 1.0, Level.CRITICAL, Direction.HIGH, True)
    assert sensor.interfaces[Level.WARNING].properties == {}


def test_update_thresholds_publishes_values():
    sensor = FakeSensor([
        Threshold(Level.WARNING, Direction.HIGH, 80.0),
        Threshold(Level.WARNING, Direction.LOW, 10.0),
    ])
    update_thresholds(sensor)
    assert sensor.interfaces[Level.WARNING].properties == {"WarningHigh": 80.0, "WarningLow": 10.0}


def test_check_thresholds_status():
    warn = FakeSensor([Threshold(Level.WARNING, Direction.HIGH, 80.0, 1.0)], value=85.0)
    assert check_thresholds(warn) is True
    assert warn.interfaces[Level.WARNING].properties["WarningAlarmHigh"] is True
    crit = FakeSensor([Threshold(Level.CRITICAL, Direction.HIGH, 80.0, 1.0)], value=85.0)
    assert check_thresholds(crit) is False
    crit.value = 50.0
    assert check_thresholds(crit) is True
    assert crit.interfaces[Level.CRITICAL].properties["CriticalAlarmHigh"] is False


@pytest.mark.asyncio
async def test_power_delay_defers_low_assertion():
    low = Threshold(Level.WARNING, Direction.LOW, 10.0, 1.0)
    sensor = FakeSensor([low], value=5.0)
    timer = ThresholdTimer(wait_time=0.01)
    check_thresholds_power_delay(sensor, timer)
    iface = sensor.interfaces[Level.WARNING]
    assert iface.properties == {}
    assert timer.has_active_timer(low, True)
    await asyncio.sleep(0.05)
    assert not timer.has_active_timer(low, True)
    assert iface.properties["WarningAlarmLow"] is True


@pytest.mark.asyncio
async def test_power_delay_high_is_immediate():
    high = Threshold(Level.WARNING, Direction.HIGH, 80.0, 1.0)
    sensor = FakeSensor([high], value=90.0)
    timer = ThresholdTimer(wait_time=10.0)
    check_thresholds_power_delay(sensor, timer)
    assert sensor.interfaces[Level.WARNING].properties["WarningAlarmHigh"] is True
    assert not timer.has_active_timer(high, True)


@pytest.mark.asyncio
async def test_stop_timer_cancels_assertion():
    low = Threshold(Level.WARNING, Direction.LOW, 10.0, 1.0)
    sensor = FakeSensor([low], value=5.0)
    timer = ThresholdTimer(wait_time=0.01)
    timer.start_timer(sensor, low, True, 5.0)
    timer.stop_timer(low, True)
    assert not timer.has_active_timer(low, True)
    await asyncio.sleep(0.05)
    assert sensor.interfaces[Level.WARNING].properties == {}


@pytest.mark.asyncio
async def test_timer_skips_assertion_when_reading_state_bad():
    low = Threshold(Level.WARNING, Direction.LOW, 10.0, 1.0)
    sensor = FakeSensor([low], value=5.0, good=False)
    timer = ThresholdTimer(wait_time=0.01)
    timer.start_timer(sensor, low, True, 5.0)
    await asyncio.sleep(0.05)
    assert not timer.has_active_timer(low, True)
    assert sensor.interfaces[Level.WARNING].properties == {}