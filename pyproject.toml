[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "obdplot"
version = "1.3.2"
description = "Poll live engine parameters from an ECU over a K-line serial interface, log them and compute strip-chart geometry."
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["obd", "ecu", "k-line", "kw1281", "diagnostics", "serial", "automotive", "logging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
obdplot = "obdplot.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["obdplot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
