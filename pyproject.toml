[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pktbroker"
version = "0.1.0"
description = "Building blocks for relaying framed binary packets: the packet format, an inter-thread queue, buffered output, sockets, TLS helpers, logging and PID files."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "packet",
    "framing",
    "networking",
    "tls",
    "queue",
    "logging",
    "pidfile",
]
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
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pktbroker"]

[tool.hatch.build.targets.sdist]
include = ["pktbroker", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
