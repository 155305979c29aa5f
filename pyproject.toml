[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minerkit"
version = "0.1.0"
description = "Building blocks for a mining node: hex and difficulty helpers, fixed-size hashes, logging, workers and a JSON-RPC/HTTP monitoring API"
requires-python = ">=3.10"
keywords = ["mining", "json-rpc", "monitoring", "difficulty", "hashrate", "target"]
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
    "Topic :: Office/Business :: Financial",
    "Topic :: System :: Monitoring",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["minerkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
