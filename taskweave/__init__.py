"""A prioritised task runtime on worker threads, with executors, pollable futures and concurrency demonstrations."""

__version__ = "0.1.0"