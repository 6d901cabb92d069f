"""Data models for fgwatch."""

from dataclasses import dataclass

# Unix98 pseudo terminal slaves use majors 136-143
PTY_MAJOR_FIRST = 136
PTY_MAJOR_LAST = 143
VT_MAJOR = 4


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable view of one process as parsed from its stat record."""

    pid: int
    name: str
    parent_pid: int
    process_group_id: int
    session_id: int  # equals the pid of the shell that started the session
    controlling_tty_id: int  # kernel device number, <= 0 means no terminal
    foreground_process_group_id: int
    creation_tick: int  # clock ticks since boot

    @property
    def has_tty(self) -> bool:
        """Whether the process has a controlling terminal."""
        return self.controlling_tty_id > 0

    @property
    def is_foreground(self) -> bool:
        """
        Whether the process group owns its controlling terminal.

        Only meaningful on a freshly read record: the terminal's foreground
        group changes every time a shell starts or reaps a job.
        """
        return self.has_tty and self.process_group_id == self.foreground_process_group_id

    @property
    def tty_name(self) -> str:
        """Decode the controlling terminal device number into a short name."""
        if not self.has_tty:
            return "?"
        tty = self.controlling_tty_id
        major = (tty & 0xFFF00) >> 8
        minor = (tty & 0x000FF) | ((tty >> 12) & 0xFFF00)
        if PTY_MAJOR_FIRST <= major <= PTY_MAJOR_LAST:
            return f"pts/{(major - PTY_MAJOR_FIRST) * 256 + minor}"
        if major == VT_MAJOR:
            return f"tty{minor}"
        return f"{major}:{minor}"
