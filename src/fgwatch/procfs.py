"""Reading and parsing process stat records from the /proc filesystem."""

import os
from typing import Protocol

from fgwatch.errors import EnumerationFailure, MalformedRecord, ProcessError, ProcessGone
from fgwatch.models import ProcessRecord

PROC_ROOT = "/proc"

# Positions in the fields following the closing parenthesis of the name.
# Position 0 is the state letter.
STAT_PPID = 1
STAT_PGRP = 2
STAT_SESSION = 3
STAT_TTY_NR = 4
STAT_TPGID = 5
STAT_STARTTIME = 19
STAT_MIN_FIELDS = STAT_STARTTIME + 1


class ProcessTable(Protocol):
    """Read-only view of the OS process table."""

    def pids(self) -> list[int]: ...

    def exists(self, pid: int) -> bool: ...

    def read_record(self, pid: int) -> ProcessRecord: ...


def parse_stat(line: str) -> ProcessRecord:
    """
    Parse one ``/proc/<pid>/stat`` line into a ProcessRecord.

    The command name sits between the first ``(`` and the last ``)``; it may
    itself contain spaces and parentheses, so the closing delimiter must be
    searched from the right.

    Raises:
        MalformedRecord: If the delimiters, field count or numeric fields
            do not match the kernel layout.
    """
    left = line.find("(")
    right = line.rfind(")")
    if left == -1 or right < left:
        raise MalformedRecord(None, f"no command name delimiters in {line[:64]!r}")

    try:
        pid = int(line[:left])
    except ValueError as exc:
        raise MalformedRecord(None, f"bad pid field {line[:left]!r}") from exc

    name = line[left + 1 : right]
    fields = line[right + 1 :].split()
    if len(fields) < STAT_MIN_FIELDS:
        raise MalformedRecord(pid, f"expected at least {STAT_MIN_FIELDS} fields, got {len(fields)}")

    try:
        return ProcessRecord(
            pid=pid,
            name=name,
            parent_pid=int(fields[STAT_PPID]),
            process_group_id=int(fields[STAT_PGRP]),
            session_id=int(fields[STAT_SESSION]),
            controlling_tty_id=int(fields[STAT_TTY_NR]),
            foreground_process_group_id=int(fields[STAT_TPGID]),
            creation_tick=int(fields[STAT_STARTTIME]),
        )
    except ValueError as exc:
        raise MalformedRecord(pid, f"non-numeric field: {exc}") from exc


class ProcfsReader:
    """
    Process table backed by a procfs mount.

    Every call hits the filesystem; nothing is cached here.
    """

    def __init__(self, root: str = PROC_ROOT) -> None:
        """
        Initialize the reader.

        Args:
            root: Mount point of the process filesystem. Default "/proc".
        """
        self._root = root

    @property
    def root(self) -> str:
        """Get the procfs mount point."""
        return self._root

    def pids(self) -> list[int]:
        """
        List every live pid.

        Raises:
            EnumerationFailure: If the root directory cannot be listed.
        """
        try:
            entries = os.listdir(self._root)
        except OSError as exc:
            raise EnumerationFailure(f"cannot list {self._root}: {exc}") from exc
        return [int(entry) for entry in entries if entry.isdigit()]

    def exists(self, pid: int) -> bool:
        """Whether the pid still has an entry under the process table root."""
        return os.path.exists(os.path.join(self._root, str(pid)))

    def read_stat(self, pid: int) -> str:
        """Read the raw stat line of a process."""
        path = os.path.join(self._root, str(pid), "stat")
        try:
            with open(path, "rb") as fh:
                raw = fh.read()
        except (FileNotFoundError, ProcessLookupError) as exc:
            raise ProcessGone(pid, "process exited") from exc
        except OSError as exc:
            raise ProcessError(pid, f"cannot read {path}: {exc}") from exc
        return raw.decode("utf-8", errors="replace").strip()

    def read_record(self, pid: int) -> ProcessRecord:
        """Read and parse the stat record of a process."""
        line = self.read_stat(pid)
        if not line:
            # Reads of an exiting process can come back empty
            raise ProcessGone(pid, "empty stat record")
        try:
            return parse_stat(line)
        except MalformedRecord as exc:
            if exc.pid is not None:
                raise
            raise MalformedRecord(pid, str(exc)) from exc
