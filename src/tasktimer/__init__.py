"""tasktimer: a task time tracker with a timestamp-driven stopwatch."""

__version__ = "0.1.0"
