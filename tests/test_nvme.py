from types import SimpleNamespace

import pytest

from bmcsensors.nvme import NVMeContext


def make_sensors(count):
    return [SimpleNamespace(configuration_path=f"/cfg/{i}") for i in range(count)]


def make_context(count):
    context = NVMeContext(0)
    sensors = make_sensors(count)
    for sensor in sensors:
        context.add_sensor(sensor)
    return context, sensors


def test_negative_root_bus_rejected():
    with pytest.raises(ValueError):
        NVMeContext(-1)


def test_sensor_at_path():
    context, sensors = make_context(3)
    assert context.sensor_at_path("/cfg/1") is sensors[1]
    assert context.sensor_at_path("/cfg/missing") is None


def test_poll_visits_all_in_order():
    context, sensors = make_context(3)
    seen = [context.begin_poll()]
    while (sensor := context.advance_poll()) is not None:
        seen.append(sensor)
    assert seen == sensors
    assert context.polling is False


def test_begin_poll_empty():
    context = NVMeContext(2)
    assert context.begin_poll() is None
    assert context.polling is False


def test_remove_when_not_polling():
    context, sensors = make_context(3)
    context.remove_sensor(sensors[1])
    assert context.sensors == [sensors[0], sensors[2]]
    assert context.current is None


def test_remove_unknown_is_noop():
    context, sensors = make_context(2)
    context.remove_sensor(SimpleNamespace(configuration_path="/cfg/0"))
    assert context.sensors == sensors


def test_remove_current_moves_cursor_to_next():
    context, sensors = make_context(3)
    context.begin_poll()
    context.advance_poll()
    context.remove_sensor(sensors[1])
    assert context.current is sensors[2]
    assert sensors[1] not in context.sensors


def test_remove_last_current_ends_poll():
    context, sensors = make_context(2)
    context.begin_poll()
    context.advance_poll()
    context.remove_sensor(sensors[1])
    assert context.polling is False
    assert context.current is None


def test_remove_before_cursor_keeps_current():
    context, sensors = make_context(3)
    context.begin_poll()
    context.advance_poll()
    context.advance_poll()
    context.remove_sensor(sensors[0])
    assert context.current is sensors[2]
    assert context.advance_poll() is None


def test_remove_after_cursor_keeps_current():
    context, sensors = make_context(3)
    context.begin_poll()
    context.remove_sensor(sensors[2])
    assert context.current is sensors[0]
    assert context.advance_poll() is sensors[1]


def test_close_stops_polling():
    context, sensors = make_context(2)
    context.begin_poll()
    context.close()
    assert context.polling is False
    assert context.begin_poll() is None
    assert context.closed is True