"""Poll loop: watch an index's record count and print build logs when it moves."""
import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, TextIO

from .algolia_client import TransientRemoteError
from .log_entries import LogEntry, newer_than, newest_timestamp, parse_logs
from .reporter import print_entries, report_change

logger = logging.getLogger(__name__)


class IndexSource(Protocol):
    """What the loop needs from the index service."""

    def total_records(self) -> int:
        ...

    def get_logs(self) -> List[dict]:
        ...


@dataclass(frozen=True)
class MonitorConfig:
    app_id: str
    api_key: str = field(repr=False)
    index_name: str = ""
    expected_records: int = 0
    delay: int = 30
    delta: int = 1000
    all_logs: bool = False
    raw: bool = False


@dataclass
class IndexSnapshot:
    # None until a baseline count is known
    count: Optional[int] = None
    # timestamp of the newest log entry already printed
    log_cursor: Optional[str] = None


class IndexMonitor:
    def __init__(
        self,
        source: IndexSource,
        config: MonitorConfig,
        stop_event: Optional[threading.Event] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.source = source
        self.config = config
        self.stop_event = stop_event or threading.Event()
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.snapshot = IndexSnapshot(count=config.expected_records or None)

    def _announce(self, count: int) -> None:
        print(
            f"Monitoring {self.config.index_name} for record count changes, "
            f"started with expected value of {count}",
            file=self.err,
        )

    def fetch_new_entries(self) -> List[LogEntry]:
        """Log entries newer than the cursor, oldest first. Advances the cursor.

        A transient failure yields an empty list and leaves the cursor alone."""
        try:
            logs = self.source.get_logs()
        except TransientRemoteError as e:
            logger.warning("Log fetch for %s failed: %s", self.config.index_name, e)
            return []
        entries = newer_than(parse_logs(logs, self.config.index_name), self.snapshot.log_cursor)
        self.snapshot.log_cursor = newest_timestamp(entries, self.snapshot.log_cursor)
        return entries

    def poll_once(self) -> bool:
        """One count comparison. Returns True when a change was reported.

        The snapshot follows every successful poll, so each comparison is
        against the previous observation rather than the last report."""
        try:
            current = self.source.total_records()
        except TransientRemoteError as e:
            logger.warning(
                "Record count query for %s failed, keeping snapshot %s: %s",
                self.config.index_name, self.snapshot.count, e,
            )
            return False

        previous = self.snapshot.count
        self.snapshot.count = current
        if previous is None:
            self._announce(current)
            return False

        diff = current - previous
        if abs(diff) < self.config.delta:
            logger.debug("count=%s diff=%+d below delta %s", current, diff, self.config.delta)
            return False

        logger.info(
            "Records count difference is at least %s (%+d), fetching logs...",
            self.config.delta, diff,
        )
        entries = self.fetch_new_entries()
        report_change(self.config.index_name, previous, current, entries, raw=self.config.raw, out=self.out)
        return True

    def print_new_logs(self) -> int:
        """All-logs mode: print every entry not printed before."""
        return print_entries(self.fetch_new_entries(), raw=self.config.raw, out=self.out)

    def step(self) -> None:
        if self.config.all_logs:
            self.print_new_logs()
        else:
            self.poll_once()

    def run(self) -> None:
        """Poll until stop_event is set. Fatal remote errors propagate."""
        if not self.config.all_logs and self.snapshot.count is not None:
            self._announce(self.snapshot.count)
        while not self.stop_event.is_set():
            self.step()
            if self.stop_event.wait(self.config.delay):
                break
        logger.info("Stopped monitoring %s", self.config.index_name)
