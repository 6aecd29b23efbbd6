[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "serialkit"
version = "0.1.0"
description = "Serial port access, configuration and USB port discovery for Unix-like systems"
requires-python = ">=3.10"
dependencies = []
keywords = ["serial", "tty", "termios", "uart", "usb", "rs232"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: BSD :: FreeBSD",
    "Operating System :: POSIX :: BSD :: OpenBSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals :: Serial",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
serialkit-portlist = "serialkit.portlist:main"

[tool.hatch.build.targets.wheel]
packages = ["serialkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
