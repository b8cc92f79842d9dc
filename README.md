# bmcsensors

Building blocks for sensor daemons on a baseboard management controller:
converting configuration values, reading hwmon-style sysfs files, parsing
and evaluating warning and critical thresholds with hysteresis, and keeping
a poll list of NVMe drive sensors.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `bmcsensors.variants`: `to_float`, `to_double`, `to_int`, `to_unsigned` and
  `to_string` convert configuration values (strings, integers, floats, bools).
  Numeric conversions raise `ValueError` for non-numeric values; `to_int` and
  `to_unsigned` wrap to 32 bits.
- `bmcsensors.config`: the `PowerState` enum, `escape_name`,
  `config_interface_name`, `parse_power_state`, `get_power_state`,
  `get_poll_rate` and `load_variant`, plus the bus, path and interface name
  constants that sensor daemons share.
- `bmcsensors.files`: sysfs helpers. `find_files` walks a directory tree
  (following directory symlinks down to a given depth) against a pattern or a
  `/`-separated list of per-component patterns and raises `FileNotFoundError`
  if the directory does not exist; `open_and_read` returns a file's first
  line; `get_full_hwmon_file_path` and `get_permit_set` decide which hwmon
  inputs are permitted; `split_file_name` splits names such as `temp1_input`;
  `read_file` reads a scaled value; `get_device_bus_addr` parses device names
  such as `12-00af` and raises `ValueError` when they are malformed;
  `find_limits` applies `MinReading` and `MaxReading`.
- `bmcsensors.thresholds`: `Level`, `Direction`, `Threshold` and
  `ChangeParam`; `parse_thresholds_from_config` and
  `parse_thresholds_from_attr`; `evaluate_thresholds` with Schmitt-trigger
  hysteresis; `assert_thresholds`, `update_thresholds`, `check_thresholds`
  and `check_thresholds_power_delay`, which work on any object with `name`,
  `value`, `raw_value`, `thresholds`, `threshold_interface(level)` and
  `reading_state_good()`; `ThresholdTimer`, which defers assertions on an
  asyncio event loop; and the naming helpers `get_interface`,
  `property_level` and `property_alarm`.
- `bmcsensors.nvme`: `NVMeContext`, which keeps a list of sensors and a poll
  cursor that stays valid when sensors are removed during a poll.

## Examples

```python
from bmcsensors.files import get_device_bus_addr, split_file_name

get_device_bus_addr("12-00af")     # (12, 0xaf)
split_file_name("temp1_input")     # ("temp", "1", "input")
```

```python
from bmcsensors.thresholds import (
    Direction, Level, Threshold, evaluate_thresholds, parse_thresholds_from_config,
)

config = {
    "xyz.openbmc_project.Configuration.Fan.Thresholds0": {
        "Direction": "less than",
        "Severity": 1,
        "Value": 500,
    }
}
thresholds = parse_thresholds_from_config(config)
# [Threshold(level=Level.CRITICAL, direction=Direction.LOW, value=500.0, ...)]

high = Threshold(Level.WARNING, Direction.HIGH, 80.0, hysteresis=2.0)
evaluate_thresholds([high], 81.0)  # one change, asserted=True
evaluate_thresholds([high], 79.0)  # [] : still inside the hysteresis band
evaluate_thresholds([high], 77.0)  # one change, asserted=False
```

```python
from bmcsensors.nvme import NVMeContext

context = NVMeContext(root_bus=3)
context.add_sensor(drive_sensor)   # any object with a configuration_path
current = context.begin_poll()
while current is not None:
    ...                            # read the drive
    current = context.advance_poll()
```

## What this package does not do

It provides no sensor object of its own: there is no class that holds a
reading, counts read errors, publishes properties or tracks availability,
and no reader for fan tachometers, fan presence or fan redundancy. Nothing
here tracks host, BIOS POST or chassis power state; threshold helpers ask the
sensor object passed to them through `reading_state_good()`. There is no
message bus connection, no daemon and no command-line program.