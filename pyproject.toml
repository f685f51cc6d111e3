[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "z80core"
version = "0.1.0"
description = "A cycle-counting Z80 CPU core with a runner for CP/M-style instruction exercisers"
requires-python = ">=3.10"
dependencies = []
keywords = ["z80", "emulator", "cpu", "zilog", "zexall", "zexdoc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
z80core-zex = "z80core.zex:main"

[tool.hatch.build.targets.wheel]
packages = ["z80core"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
