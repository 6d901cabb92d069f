"""Process registry and foreground session index."""

import logging

from fgwatch.errors import MalformedRecord, ProcessError, ProcessGone
from fgwatch.models import ProcessRecord
from fgwatch.procfs import ProcessTable, ProcfsReader
from fgwatch.resolver import foreground_children, resolve_active

logger = logging.getLogger(__name__)


def _identity(record: ProcessRecord) -> tuple:
    """Fields that change only on pid reuse, exec or setsid."""
    return (record.creation_tick, record.name, record.parent_pid, record.session_id)


class ProcessRegistry:
    """
    Cache of parsed processes plus an index of foreground processes per session.

    Identity fields (name, parent, session, creation tick) are cached per pid
    until the pid leaves the process table. Terminal and foreground fields are
    re-read for every live pid on every refresh, and the session index only
    holds those fresh records. A fresh read with different identity (pid
    reuse, exec, or a child that has just called setsid) replaces the cache entry.

    Not thread-safe; callers must serialize access.
    """

    def __init__(self, table: ProcessTable | None = None) -> None:
        """
        Initialize an empty registry.

        Args:
            table: Process table to read from. Defaults to the live /proc.
        """
        self._table = table if table is not None else ProcfsReader()
        self.by_pid: dict[int, ProcessRecord] = {}
        self.by_session: dict[int, list[ProcessRecord]] = {}

    def refresh(self) -> None:
        """
        Reconcile the cache with the live process table and rebuild the
        foreground session index.

        Raises:
            EnumerationFailure: If the process table cannot be listed.
        """
        live = sorted(self._table.pids())

        for pid in sorted(self.by_pid.keys() - set(live)):
            del self.by_pid[pid]

        # The index is a view of this cycle only; never patch the previous one
        by_session: dict[int, list[ProcessRecord]] = {}

        for pid in live:
            record = self.by_pid.get(pid)
            fresh = record is None
            if fresh:
                record = self._load(pid)
                if record is None:
                    continue
                self.by_pid[pid] = record

            # Terminal and group fields change far more often than identity;
            # every live pid gets one fresh read per cycle.
            current = record if fresh else self._load(pid)
            if current is None:
                continue

            if _identity(current) != _identity(record):
                logger.debug("pid %d replaced (%s -> %s)", pid, record.name, current.name)
                self.by_pid[pid] = current

            if current.is_foreground:
                by_session.setdefault(current.session_id, []).append(current)

        self.by_session = by_session

    def _load(self, pid: int) -> ProcessRecord | None:
        """Read a fresh record, or None if the pid must be skipped this cycle."""
        try:
            if not self._table.exists(pid):
                return None
            return self._table.read_record(pid)
        except ProcessGone:
            logger.debug("pid %d exited before it could be read", pid)
        except MalformedRecord as exc:
            logger.warning("Skipping malformed stat record: %s", exc)
        except ProcessError as exc:
            logger.warning("Skipping unreadable process: %s", exc)
        return None

    def foreground_children(self, record: ProcessRecord) -> list[ProcessRecord]:
        """Return the foreground children of a record from the current index."""
        return foreground_children(record, self.by_session)

    def get_active_processes(self, full_scan: bool = False) -> dict[int, ProcessRecord]:
        """
        Refresh and return the active process of every terminal session.

        Args:
            full_scan: Walk all foreground candidates backward instead of
                only the last one. See ``resolve_active``.

        Returns:
            Mapping from session id (the shell pid) to its active process.
        """
        self.refresh()
        return resolve_active(self.by_session, full_scan=full_scan)
