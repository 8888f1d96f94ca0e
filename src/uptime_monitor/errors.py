"""
Exceptions raised by the check scheduler.

Individual probe failures are not exceptions: they are recorded as 'down' or
'error' check results. Only failures that abort a whole cycle are raised.
"""


class CycleError(Exception):
    """Base class for failures that abort a check cycle."""


class RegistryReadError(CycleError):
    """The list of targets could not be read; nothing was probed or written."""


class PersistenceError(CycleError):
    """The completed batch could not be written and was dropped."""


class CycleInProgressError(CycleError):
    """A cycle was requested while another one was still running."""
