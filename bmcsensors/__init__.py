"""Configuration, hwmon file, threshold and NVMe poll-list helpers for BMC sensor daemons."""

__version__ = "0.1.0"
__all__ = ["config", "files", "nvme", "thresholds", "variants"]