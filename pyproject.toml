[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dmrgw"
version = "0.1.0"
description = "DMR gateway building blocks: Golay, QR and Reed-Solomon codecs, the Homebrew network protocol, the MMDVM host link, routing rules and remote control"
requires-python = ">=3.10"
keywords = ["dmr", "ham radio", "amateur radio", "homebrew", "mmdvm", "golay", "reed-solomon", "mqtt"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]
dependencies = [
    "paho-mqtt",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dmrgw"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
