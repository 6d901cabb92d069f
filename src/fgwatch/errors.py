"""Exceptions raised while reading the process table.

PUBLIC API:
  - FgwatchError: Base exception for all fgwatch errors
  - ProcessError: A single process could not be read
  - ProcessGone: The process exited between enumeration and read
  - MalformedRecord: The stat record could not be parsed
  - EnumerationFailure: The process table itself cannot be listed
"""


class FgwatchError(Exception):
    """Base exception for all fgwatch errors."""

    pass


class ProcessError(FgwatchError):
    """Raised when a single process cannot be read.

    Per-process errors are expected while polling a live kernel table and are
    absorbed by the registry; they never abort a refresh.
    """

    def __init__(self, pid: int | None, message: str) -> None:
        super().__init__(message if pid is None else f"pid {pid}: {message}")
        self.pid = pid


class ProcessGone(ProcessError):
    """Raised when a process disappeared before its stat record was read."""

    pass


class MalformedRecord(ProcessError):
    """Raised when a stat record does not have the expected layout."""

    pass


class EnumerationFailure(FgwatchError):
    """Raised when the process table root cannot be listed at all."""

    pass
