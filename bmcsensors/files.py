"""Helpers for locating and reading hwmon-style sysfs files."""

from __future__ import annotations

import logging
import math
import os
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .variants import to_double

_log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_SIZE_LIMIT = 1 << 64

_FLOAT_PREFIX = re.compile(
    r"""\s*(?P<number>
        [+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?\d+)?
      | [+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?
      | [+-]?(?:infinity|inf|nan)
    )""",
    re.VERBOSE | re.IGNORECASE,
)
_DECIMAL_DIGITS = re.compile(r"[0-9]+")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


def open_and_read(path: PathLike) -> Optional[str]:
    """Return the first line of a file without its newline, or None if it cannot be opened."""
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as stream:
            line = stream.readline()
    except IsADirectoryError:
        return ""
    except OSError:
        return None
    return line.rstrip("\n")


def get_full_hwmon_file_path(
    directory: str, base_name: str, permit_set: set[str]
) -> Optional[str]:
    """Return the input file path for a hwmon base name if it is permitted.

    An empty permit set permits everything. Otherwise the base name's label
    file, or the base name itself when there is no label, must be in the set.
    """
    input_path = f"{directory}/{base_name}_input"
    if not permit_set:
        return input_path
    search = open_and_read(f"{directory}/{base_name}_label")
    if search is None:
        search = base_name
    return input_path if search in permit_set else None


def get_permit_set(config: Mapping[str, Any]) -> set[str]:
    """Return the labels or base names a configuration permits; empty permits all."""
    if "Labels" not in config:
        return set()
    labels = config["Labels"]
    if not isinstance(labels, list) or not all(isinstance(item, str) for item in labels):
        _log.error("PermitList does not contain a list, wrong variant type.")
        return set()
    return set(labels)


@dataclass
class _Entry:
    path: str
    parts: tuple[str, ...]
    depth: int
    is_dir: bool
    descend: bool = True


def _walk(directory: str, parts: tuple[str, ...] = (), depth: int = 0) -> Iterator[_Entry]:
    """Pre-order walk following directory symlinks; consumers may clear ``descend``."""
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        entry = _Entry(path, parts + (name,), depth, os.path.isdir(path))
        yield entry
        if entry.is_dir and entry.descend:
            yield from _walk(path, entry.parts, depth + 1)


def find_files(dir_path: PathLike, match_string: str, symlink_depth: int = 1) -> list[Path]:
    """Find files below ``dir_path`` whose paths match ``match_string``.

    Without a '/' the pattern is searched anywhere in each file's full path.
    With '/' each piece must fully match the corresponding path component
    relative to ``dir_path``. Recursion stops at ``symlink_depth``.
    Raises FileNotFoundError if ``dir_path`` does not exist.
    """
    root = os.fspath(dir_path)
    if not os.path.exists(root):
        raise FileNotFoundError(f"No such directory: {root}")

    found: list[Path] = []
    raw_pieces = match_string.split("/")

    if len(raw_pieces) <= 1:
        search = re.compile(match_string)
        for entry in _walk(root):
            if not entry.is_dir and search.search(entry.path):
                found.append(Path(entry.path))
            if entry.depth >= symlink_depth:
                entry.descend = False
        return found

    pieces = [re.compile(piece) for piece in raw_pieces]
    for entry in _walk(root):
        consumed = 0
        for component in entry.parts:
            if consumed == len(pieces):
                entry.descend = False
                break
            if not pieces[consumed].fullmatch(component):
                entry.descend = False
                break
            consumed += 1
        if not entry.is_dir and consumed == len(pieces):
            found.append(Path(entry.path))
        if entry.depth >= symlink_depth:
            entry.descend = False
    return found


def split_file_name(file_path: PathLike) -> Optional[tuple[str, str, str]]:
    """Split a sysfs name of the form <type><number>_<item> into its three parts."""
    file_name = os.path.basename(os.fspath(file_path))
    if not file_name:
        return None
    number_pos = next((i for i, ch in enumerate(file_name) if ch.isdigit() and ch.isascii()),
                      len(file_name))
    item_pos = file_name.find("_")
    if item_pos < 0:
        item_pos = len(file_name)
    if number_pos > 0 and item_pos > number_pos and len(file_name) > item_pos:
        return (
            file_name[:number_pos],
            file_name[number_pos:item_pos],
            file_name[item_pos + 1:],
        )
    return None


def _parse_leading_float(text: str) -> Optional[float]:
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return None
    literal = match.group("number")
    lowered = literal.lower()
    if "x" in lowered:
        number = float.fromhex(literal)
    else:
        number = float(literal)
    if math.isinf(number) and "inf" not in lowered:
        raise OverflowError(f"Value out of range: {literal}")
    return number


def _divide(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    sign = math.copysign(1.0, numerator) * math.copysign(1.0, denominator)
    return math.copysign(math.inf, sign)


def read_file(path: PathLike, scale_factor: float) -> Optional[float]:
    """Read the number at the start of a file's first line, divided by ``scale_factor``.

    Returns None if the file cannot be read or does not start with a number.
    """
    line = open_and_read(path)
    if line is None:
        return None
    number = _parse_leading_float(line)
    if number is None:
        return None
    return _divide(number, scale_factor)


def get_device_bus_addr(device_name: str) -> tuple[int, int]:
    """Parse a device name of the form <bus>-<hex address> into (bus, address).

    Raises ValueError when the name is malformed.
    """
    bus_text, hyphen, addr_text = device_name.partition("-")
    if not hyphen:
        _log.error("found bad device %s", device_name)
        raise ValueError(f"found bad device {device_name}")
    if not _DECIMAL_DIGITS.fullmatch(bus_text) or int(bus_text) >= _SIZE_LIMIT:
        _log.error("Error finding bus for %s", device_name)
        raise ValueError(f"Error finding bus for {device_name}")
    if not _HEX_DIGITS.fullmatch(addr_text) or int(addr_text, 16) >= _SIZE_LIMIT:
        _log.error("Error finding addr for %s", device_name)
        raise ValueError(f"Error finding addr for {device_name}")
    return int(bus_text), int(addr_text, 16)


def find_limits(
    limits: tuple[float, float], data: Optional[Mapping[str, Any]]
) -> tuple[float, float]:
    """Return (min, max) limits, replaced by MinReading and MaxReading where configured."""
    if data is None:
        return limits
    low, high = limits
    if "MinReading" in data:
        low = to_double(data["MinReading"])
    if "MaxReading" in data:
        high = to_double(data["MaxReading"])
    return low, high