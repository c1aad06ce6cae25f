[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "logbroker"
version = "0.1.0"
description = "Building blocks of a publish/subscribe router: commit logs, subscription tracking, request scheduling and MQTT session state"
requires-python = ">=3.11"
dependencies = []
keywords = ["mqtt", "pubsub", "router", "commitlog", "scheduler"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["logbroker"]

[tool.pytest.ini_options]
addopts = "-ra"
