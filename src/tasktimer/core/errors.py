"""Exceptions raised by the task tracker outside the stopwatch core."""


class TaskTimerError(Exception):
    """Base class for errors the CLI reports to the user."""


class TaskNotFoundError(TaskTimerError):
    """Raised when a task id does not match any known task."""


class InvalidTaskError(TaskTimerError):
    """Raised when a task name is empty or otherwise unusable."""


class NoActiveTaskError(TaskTimerError):
    """Raised when the stopwatch is started without a selected task."""


class StoreCorruptError(TaskTimerError):
    """Raised when the state file cannot be parsed."""
