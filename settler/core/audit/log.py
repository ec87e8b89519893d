from __future__ import annotations

import logging
import threading
from typing import Callable, Iterator, List, Optional, Tuple

AuditSink = Callable[[str], None]

# Entry prefixes whose remainder names the account the entry is about.
SUBJECT_PREFIXES = (
    "FAIL bad-password:",
    "FAIL unknown-user:",
    "FAIL expired:",
    "FAIL locked:",
    "LOCKED:",
    "SUCCESS:",
)


class AuditLog:
    """
    Append-only, insertion-ordered sequence of authentication event lines.

    Entries are never rewritten or removed. An optional sink (for example an
    AuditJsonlStore) receives every line after it is appended, under the same
    lock, so the sink sees the exact in-memory order. The in-memory entries are
    authoritative: a sink that fails with OSError is logged and the entry kept.
    """

    def __init__(self, *, sink: Optional[AuditSink] = None, logger: Optional[logging.Logger] = None):
        self._lock = threading.Lock()
        self._entries: List[str] = []
        self._sink = sink
        self.logger = logger or logging.getLogger("settler.audit")
        self.sink_failures = 0

    def append(self, entry: str) -> None:
        line = str(entry)
        with self._lock:
            self._entries.append(line)
            if self._sink is None:
                return
            try:
                self._sink(line)
            except OSError as e:
                self.sink_failures += 1
                self.logger.error("audit sink write failed (entry %d kept in memory): %s", len(self._entries), e)

    def entries(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._entries)

    def entries_for(self, username: str) -> Tuple[str, ...]:
        """Entries about `username` (display name, or normalized key for unknown-user entries)."""
        return tuple(e for e in self.entries() if subject_of(e) == username)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries())


def subject_of(entry: str) -> Optional[str]:
    for prefix in SUBJECT_PREFIXES:
        if entry.startswith(prefix):
            rest = entry[len(prefix):]
            if prefix == "FAIL bad-password:":
                # the attempt suffix is always last; usernames may contain ':'
                rest, sep, count = rest.rpartition(":attempt=")
                if not sep or not count.isdigit():
                    return None
            return rest
    return None
