[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bmcsensors"
version = "0.1.0"
description = "Configuration parsing, hwmon file helpers and threshold evaluation for BMC sensor daemons"
requires-python = ">=3.10"
dependencies = []
keywords = ["bmc", "sensors", "hwmon", "sysfs", "thresholds", "hysteresis", "nvme", "monitoring"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["bmcsensors"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
