"""fgwatch - Main Textual application."""

import os
import time
from enum import Enum
from queue import Empty, Queue

import psutil
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from fgwatch.models import ProcessRecord
from fgwatch.monitor import ActiveProcessMonitor, ActiveSnapshot
from fgwatch.registry import ProcessRegistry

COLUMN_KEYS = ("session", "tty", "pid", "name", "start", "command")


class SortKey(Enum):
    """Sort keys for the session table."""

    SESSION = "session"
    PID = "pid"
    NAME = "name"


def format_started(creation_tick: int, boot_time: float, clock_ticks: int) -> str:
    """Format a creation tick as local wall-clock time."""
    started = boot_time + creation_tick / clock_ticks
    return time.strftime("%H:%M:%S", time.localtime(started))


def command_line(record: ProcessRecord) -> str:
    """Get the full command line of a process, falling back to its name."""
    try:
        cmdline = psutil.Process(record.pid).cmdline()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return record.name
    return " ".join(cmdline) if cmdline else record.name


class StatusBar(Static):
    """Status line showing how many sessions are tracked."""

    DEFAULT_CSS = """
    StatusBar {
        height: auto;
        padding: 0 1;
        background: $surface;
    }

    StatusBar.-unavailable {
        color: $error;
    }
    """

    status_text: str = ""

    def update_status(self, snapshot: ActiveSnapshot) -> None:
        """Update the status line from a poll result."""
        if not snapshot.available:
            self.status_text = f"Active-process tracking unavailable: {snapshot.error}"
            self.add_class("-unavailable")
            self.update(self.status_text)
            return
        self.remove_class("-unavailable")
        captured = time.strftime("%H:%M:%S", time.localtime(snapshot.captured_at))
        self.status_text = f"Sessions: {len(snapshot.active)}  Updated: {captured}"
        self.update(self.status_text)


class SessionTable(Container):
    """Container for the per-session active process table."""

    DEFAULT_CSS = """
    SessionTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SessionTable."""
        super().__init__(*args, **kwargs)
        self._current_sessions: set[int] = set()
        self._sort_key: SortKey = SortKey.SESSION
        self._boot_time: float = psutil.boot_time()
        self._clock_ticks: int = os.sysconf("SC_CLK_TCK")

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the session table."""
        yield DataTable(id="session-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#session-table", DataTable)
        table.cursor_type = "row"

        table.add_column("SESSION", key="session", width=8)
        table.add_column("TTY", key="tty", width=8)
        table.add_column("PID", key="pid", width=8)
        table.add_column("NAME", key="name", width=16)
        table.add_column("START", key="start", width=9)
        table.add_column("Command", key="command")

    def update_sessions(self, active: dict[int, ProcessRecord]) -> None:
        """
        Update the table with the active process of every session.

        Rows are keyed by session id; existing rows are updated in place.
        """
        table = self.query_one("#session-table", DataTable)

        new_sessions = set(active)

        for session_id in self._current_sessions - new_sessions:
            try:
                table.remove_row(str(session_id))
            except Exception:
                pass  # Row may not exist

        for session_id, record in self._sort_records(active):
            row_key = str(session_id)
            cells = self._cells(session_id, record)
            if session_id in self._current_sessions:
                try:
                    for column, value in zip(COLUMN_KEYS, cells):
                        table.update_cell(row_key, column, value)
                except Exception:
                    pass  # Row may have been removed
            else:
                try:
                    table.add_row(*cells, key=row_key)
                except Exception:
                    pass  # Row may already exist

        self._current_sessions = new_sessions

    def _sort_records(self, active: dict[int, ProcessRecord]) -> list[tuple[int, ProcessRecord]]:
        """Sort session rows based on the current sort key."""
        key_func = {
            SortKey.SESSION: lambda item: item[0],
            SortKey.PID: lambda item: item[1].pid,
            SortKey.NAME: lambda item: item[1].name.lower(),
        }
        return sorted(active.items(), key=key_func[self._sort_key])

    def _cells(self, session_id: int, record: ProcessRecord) -> tuple[str | Text, ...]:
        # Process names are arbitrary text, never markup
        return (
            str(session_id),
            record.tty_name,
            str(record.pid),
            Text(record.name[:16]),
            format_started(record.creation_tick, self._boot_time, self._clock_ticks),
            Text(command_line(record)[:60]),
        )


class FgwatchApp(App):
    """Main fgwatch application."""

    TITLE = "fgwatch"
    SUB_TITLE = "Active Terminal Processes"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, registry: ProcessRegistry | None = None, poll_rate: float = 1.0) -> None:
        """Initialize the FgwatchApp."""
        super().__init__()
        self._update_queue: Queue[ActiveSnapshot] = Queue()
        self._monitor = ActiveProcessMonitor(self._update_queue, poll_rate=poll_rate, registry=registry)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusBar("Loading sessions...", id="status-bar", markup=False)
        yield SessionTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: ActiveSnapshot) -> None:
        """Update the UI with a new poll result."""
        self.query_one("#status-bar", StatusBar).update_status(snapshot)
        if snapshot.available:
            self.query_one(SessionTable).update_sessions(snapshot.active)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        session_table = self.query_one(SessionTable)
        new_sort_key = session_table.cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def main() -> None:
    """Entry point for fgwatch application."""
    app = FgwatchApp()
    app.run()


if __name__ == "__main__":
    main()
