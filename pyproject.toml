[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taskweave"
version = "0.1.0"
description = "A small prioritised task runtime on worker threads, with pollable futures and concurrency demonstrations"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "executor",
    "runtime",
    "futures",
    "task queue",
    "work stealing",
    "concurrency",
    "threads",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
taskweave-runtime = "taskweave.runtime:main"
taskweave-queue = "taskweave.simple_queue:main"
taskweave-labelled = "taskweave.labelled:main"
taskweave-pool = "taskweave.fixed_pool:main"
taskweave-futures = "taskweave.futures:main"
taskweave-counter = "taskweave.shared_counter:main"
taskweave-log = "taskweave.file_log:main"
taskweave-cooking = "taskweave.cooking:main"
taskweave-concurrency = "taskweave.concurrency:main"
taskweave-fetch = "taskweave.http_client:main"
taskweave-sockets = "taskweave.sockets:main"
taskweave-processes = "taskweave.processes:main"

[tool.hatch.build.targets.wheel]
packages = ["taskweave"]

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
