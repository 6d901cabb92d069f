"""Background polling of active terminal processes."""

import logging
import threading
import time
from dataclasses import dataclass, field
from queue import Queue

from fgwatch.errors import EnumerationFailure
from fgwatch.models import ProcessRecord
from fgwatch.registry import ProcessRegistry

logger = logging.getLogger(__name__)

MIN_POLL_RATE = 0.1


@dataclass(slots=True)
class ActiveSnapshot:
    """Result of one poll cycle."""

    captured_at: float
    active: dict[int, ProcessRecord] = field(default_factory=dict)
    available: bool = True
    error: str | None = None


class ActiveProcessMonitor:
    """
    Monitor that resolves the active process of every terminal session.

    Runs in a separate daemon thread and pushes updates to a thread-safe Queue.
    The registry is only ever touched from that thread.
    """

    def __init__(
        self,
        update_queue: Queue[ActiveSnapshot],
        poll_rate: float = 1.0,
        registry: ProcessRegistry | None = None,
        full_scan: bool = False,
    ) -> None:
        """
        Initialize the ActiveProcessMonitor.

        Args:
            update_queue: Thread-safe queue to push updates to.
            poll_rate: Seconds between polls, at least MIN_POLL_RATE. Default 1.0s.
            registry: Registry to refresh. A registry over /proc by default.
            full_scan: Passed through to the active process resolution.
        """
        self._queue = update_queue
        self.poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._registry = registry if registry is not None else ProcessRegistry()
        self._full_scan = full_scan
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ActiveProcessMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self._collect_snapshot())
            except Exception:
                logger.exception("Unexpected error while polling active processes")

            self._stop_event.wait(timeout=self.poll_rate)

    def _collect_snapshot(self) -> ActiveSnapshot:
        """Refresh the registry and resolve active processes."""
        captured_at = time.time()
        try:
            active = self._registry.get_active_processes(full_scan=self._full_scan)
        except EnumerationFailure as exc:
            logger.error("Active process tracking unavailable: %s", exc)
            return ActiveSnapshot(captured_at=captured_at, available=False, error=str(exc))
        return ActiveSnapshot(captured_at=captured_at, active=active)
