[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "corelog"
version = "0.1.0"
description = "Structured, leveled logging core: typed fields, JSON and in-memory encoders, hooks, level filters and sampling."
requires-python = ">=3.11"
dependencies = [
    "pyyaml",
]
keywords = ["logging", "structured-logging", "json", "sampling", "encoder"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["corelog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
