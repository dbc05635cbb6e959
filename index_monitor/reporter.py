"""Print record-count changes and log entries as human-readable lines."""
import json
import sys
from typing import Iterable, Optional, TextIO

from .log_entries import BATCH, LogEntry


def format_summary(index_name: str, old_count: int, new_count: int) -> str:
    delta = new_count - old_count
    return f"Record count changed on {index_name}: {old_count} -> {new_count} ({delta:+d})"


def _ids(ids: Iterable[str]) -> str:
    joined = ",".join(ids)
    return joined or "-"


def format_entry(entry: LogEntry, raw: bool = False) -> str:
    """One line per log entry; batches list each action kind with its object IDs."""
    if raw:
        return json.dumps(entry.raw, separators=(",", ":"), sort_keys=True)
    if entry.kind == BATCH and entry.actions:
        detail = " ".join(f"{kind}={_ids(ids)}" for kind, ids in entry.actions)
    else:
        detail = _ids(entry.object_ids)
    return " | ".join([entry.timestamp or "-", entry.kind, detail])


def print_entries(entries: Iterable[LogEntry], raw: bool = False, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    n = 0
    for entry in entries:
        print(format_entry(entry, raw=raw), file=out)
        n += 1
    out.flush()
    return n


def report_change(
    index_name: str,
    old_count: int,
    new_count: int,
    entries: Iterable[LogEntry],
    raw: bool = False,
    out: Optional[TextIO] = None,
) -> None:
    """Summary line, then the entries (if any)."""
    out = out or sys.stdout
    print(format_summary(index_name, old_count, new_count), file=out)
    print_entries(entries, raw=raw, out=out)
