"""Active process resolution over the foreground session index."""

from collections.abc import Mapping, Sequence

from fgwatch.models import ProcessRecord


def foreground_children(
    record: ProcessRecord,
    by_session: Mapping[int, Sequence[ProcessRecord]],
) -> list[ProcessRecord]:
    """
    Return the foreground children of a process within its session.

    A child started before its parent was reparented onto it and is not
    counted.
    """
    return [
        child
        for child in by_session.get(record.session_id, ())
        if child.parent_pid == record.pid and record.creation_tick <= child.creation_tick
    ]


def resolve_active(
    by_session: Mapping[int, Sequence[ProcessRecord]],
    full_scan: bool = False,
) -> dict[int, ProcessRecord]:
    """
    Pick the active process of every session.

    A session with a single foreground process resolves to it. With several,
    the candidates are examined from the end of the sequence and the first one
    without foreground children wins. By default only the last entry is a
    candidate; if it still has foreground children the session is left out.

    Args:
        by_session: Foreground processes per session id, in pid order.
        full_scan: Walk every entry backward instead of only the last one.

    Returns:
        Mapping from session id to its active process.
    """
    active: dict[int, ProcessRecord] = {}

    for session_id, foreground in by_session.items():
        if not foreground:
            continue

        if len(foreground) == 1:
            active[session_id] = foreground[0]
            continue

        candidates = reversed(foreground) if full_scan else foreground[-1:]
        for record in candidates:
            if not foreground_children(record, by_session):
                active[session_id] = record
                break

    return active
