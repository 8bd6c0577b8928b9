import threading
from typing import Iterable, List, Optional, Union

from .severity import Severity, severity_priority
from .types import ParsedLogRecord


class LogAggregator:
    """
    Collects parsed records from any number of services and hands out
    chronologically merged views.

    Not thread-safe. Meant to be owned by a single request / job; use
    LockedLogAggregator when an instance has to be shared.
    """

    def __init__(self):
        self._records: List[ParsedLogRecord] = []

    # ---------- Write API ----------

    def add(self, records: Iterable[ParsedLogRecord]):
        self._records.extend(records)

    def clear(self):
        self._records = []

    # ---------- Read APIs ----------

    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return self.count()

    def services(self) -> List[str]:
        """Distinct service names, in the order first seen."""
        return list(dict.fromkeys(r.service_name for r in self._records))

    def merged(self) -> List[ParsedLogRecord]:
        """
        All records sorted by timestamp, oldest first.

        sorted() is stable: records with equal (or unknown) timestamps
        keep their insertion order. The internal store is not touched.
        """
        return sorted(self._records, key=lambda r: r.timestamp)

    def merged_filtered(
        self,
        min_severity: Union[Severity, str, None] = None,
        services: Optional[Iterable[str]] = None,
    ) -> List[ParsedLogRecord]:
        """
        merged(), then keep records that are at least min_severity AND
        belong to one of services. Either filter may be omitted.
        """
        merged = self.merged()

        allowed = set(services) if services else set()
        if not min_severity and not allowed:
            return merged

        min_priority = severity_priority(min_severity)

        filtered = []
        for record in merged:
            if min_severity and severity_priority(record.severity) < min_priority:
                continue
            if allowed and record.service_name not in allowed:
                continue
            filtered.append(record)

        return filtered


class LockedLogAggregator(LogAggregator):
    """LogAggregator guarded by a mutex, for instances shared across threads."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()

    def add(self, records: Iterable[ParsedLogRecord]):
        batch = list(records)
        with self._lock:
            super().add(batch)

    def clear(self):
        with self._lock:
            super().clear()

    def count(self) -> int:
        with self._lock:
            return super().count()

    def services(self) -> List[str]:
        with self._lock:
            return super().services()

    def merged(self) -> List[ParsedLogRecord]:
        with self._lock:
            return super().merged()
