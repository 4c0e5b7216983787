[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nachosim"
version = "0.1.0"
description = "Pieces of a teaching-kernel machine emulation: host services, linked lists, a timer, address translation, a FIFO scheduler and a mailbox post office"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "operating-systems", "education", "scheduler", "virtual-memory", "tlb", "mailbox"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nachosim"]

[tool.pytest.ini_options]
addopts = "-ra"
