"""Shared fixtures: an in-memory process table."""

import pytest

from fgwatch.errors import EnumerationFailure, ProcessGone
from fgwatch.models import ProcessRecord
from fgwatch.procfs import parse_stat

PTS_0 = 136 << 8


def stat_line(
    pid: int,
    name: str,
    ppid: int = 1,
    pgrp: int | None = None,
    session: int | None = None,
    tty: int = PTS_0,
    tpgid: int | None = None,
    start: int = 100,
    state: str = "S",
) -> str:
    """Build a stat line with the full kernel field layout."""
    pgrp = pid if pgrp is None else pgrp
    session = pid if session is None else session
    tpgid = pgrp if tpgid is None else tpgid
    # flags minflt cminflt majflt cmajflt utime stime cutime cstime prio nice threads itrealvalue
    middle = "4194560 120 0 0 0 1 0 0 0 20 0 1 0"
    tail = " ".join(["0"] * 32)
    return f"{pid} ({name}) {state} {ppid} {pgrp} {session} {tty} {tpgid} {middle} {start} {tail}"


class FakeProcessTable:
    """Process table backed by a dict of pid -> stat line."""

    def __init__(self) -> None:
        self.lines: dict[int, str] = {}
        self.vanishing: set[int] = set()
        self.reads: list[int] = []
        self.unavailable = False

    def add(self, pid: int, name: str, **kwargs) -> None:
        self.lines[pid] = stat_line(pid, name, **kwargs)

    def remove(self, pid: int) -> None:
        del self.lines[pid]

    def pids(self) -> list[int]:
        if self.unavailable:
            raise EnumerationFailure("cannot list /proc: permission denied")
        return list(self.lines)

    def exists(self, pid: int) -> bool:
        return pid in self.lines

    def read_record(self, pid: int) -> ProcessRecord:
        self.reads.append(pid)
        if pid in self.vanishing or pid not in self.lines:
            raise ProcessGone(pid, "process exited")
        return parse_stat(self.lines[pid])


@pytest.fixture
def table() -> FakeProcessTable:
    return FakeProcessTable()


@pytest.fixture
def terminal_session(table: FakeProcessTable) -> FakeProcessTable:
    """
    A bash session (pid 100) running vim, which runs ``:!make`` through sh.

    vim, sh and make share vim's process group, which owns the terminal.
    """
    table.add(1, "systemd", ppid=0, tty=0, tpgid=-1, start=1)
    table.add(50, "sshd", tty=0, tpgid=-1, start=10)
    table.add(100, "bash", ppid=50, tpgid=200, start=1000)
    table.add(200, "vim", ppid=100, session=100, start=2000)
    table.add(210, "sh", ppid=200, pgrp=200, session=100, start=2100)
    table.add(220, "make", ppid=210, pgrp=200, session=100, start=2200)
    return table
