"""Shared names, constants and helpers for reading sensor configuration."""

from __future__ import annotations

import enum
import math
import re
from collections.abc import Mapping
from typing import Any

from .variants import to_double, to_float, to_string, to_unsigned

JSON_STORE = "/var/configuration/flattened.json"
INVENTORY_PATH = "/xyz/openbmc_project/inventory"
ENTITY_MANAGER_NAME = "xyz.openbmc_project.EntityManager"
CPU_INVENTORY_PATH = "/xyz/openbmc_project/inventory/system/chassis/motherboard"
ILLEGAL_DBUS_REGEX = re.compile(r"[^A-Za-z0-9_]")

CONFIG_INTERFACE_PREFIX = "xyz.openbmc_project.Configuration."

MAPPER_BUS_NAME = "xyz.openbmc_project.ObjectMapper"
MAPPER_PATH = "/xyz/openbmc_project/object_mapper"
MAPPER_INTERFACE = "xyz.openbmc_project.ObjectMapper"
MAPPER_SUBTREE = "GetSubTree"

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
PROPERTIES_GET = "Get"
PROPERTIES_SET = "Set"

POWER_BUS_NAME = "xyz.openbmc_project.State.Host"
POWER_INTERFACE = "xyz.openbmc_project.State.Host"
POWER_PATH = "/xyz/openbmc_project/state/host0"
POWER_PROPERTY = "CurrentHostState"

CHASSIS_BUS_NAME = "xyz.openbmc_project.State.Chassis"
CHASSIS_INTERFACE = "xyz.openbmc_project.State.Chassis"
CHASSIS_PATH = "/xyz/openbmc_project/state/chassis0"
CHASSIS_PROPERTY = "CurrentPowerState"
CHASSIS_ON = "On"

POST_BUS_NAME = "xyz.openbmc_project.State.OperatingSystem"
POST_INTERFACE = "xyz.openbmc_project.State.OperatingSystem.Status"
POST_PATH = "/xyz/openbmc_project/state/os"
POST_PROPERTY = "OperatingSystemState"

ASSOCIATION_INTERFACE = "xyz.openbmc_project.Association.Definitions"


class PowerState(enum.Enum):
    """Host power condition under which a sensor reading is valid."""

    ON = "On"
    BIOS_POST = "BiosPost"
    ALWAYS = "Always"
    CHASSIS_ON = "ChassisOn"


def escape_name(sensor_name: str) -> str:
    """Replace spaces in a sensor name with underscores."""
    return sensor_name.replace(" ", "_")


def config_interface_name(sensor_type: str) -> str:
    """Return the configuration interface name for a sensor type."""
    return CONFIG_INTERFACE_PREFIX + sensor_type


def parse_power_state(text: str, default: PowerState) -> PowerState:
    """Map a configured power state name to a PowerState, or return default."""
    try:
        return PowerState(text)
    except ValueError:
        return default


def get_power_state(config: Mapping[str, Any]) -> PowerState:
    """Read the PowerState entry of a configuration, defaulting to ALWAYS."""
    if "PowerState" not in config:
        return PowerState.ALWAYS
    return parse_power_state(to_string(config["PowerState"]), PowerState.ALWAYS)


def get_poll_rate(config: Mapping[str, Any], default: float) -> float:
    """Read the PollRate entry; fall back to default when absent or not a positive finite number."""
    if "PollRate" not in config:
        return default
    rate = to_float(config["PollRate"])
    if not math.isfinite(rate) or rate <= 0.0:
        return default
    return rate


def load_variant(data: Mapping[str, Any], key: str, kind: type) -> Any:
    """Load a required configuration entry converted to float, int (unsigned) or str.

    Raises KeyError when the entry is missing and TypeError for an unsupported kind.
    """
    if kind not in (float, int, str):
        raise TypeError(f"Type not supported: {kind!r}")
    if key not in data:
        raise KeyError(f"Configuration missing {key}")
    value = data[key]
    if kind is float:
        return to_double(value)
    if kind is int:
        return to_unsigned(value)
    return to_string(value)