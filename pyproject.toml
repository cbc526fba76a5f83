[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "filetable"
version = "0.1.0"
description = "A key-value table stored as one file per key, with optional snapshot history"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "table", "storage", "snapshots", "filesystem"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
filetable = "filetable.command:main"
filetable-web = "filetable.web:main"

[tool.hatch.build.targets.wheel]
packages = ["filetable"]

[tool.pytest.ini_options]
addopts = "-ra"
