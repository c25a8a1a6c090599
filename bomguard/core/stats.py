import threading
import time
from dataclasses import dataclass
from dataclasses import field


@dataclass
class BaseStats:
    total: int = 0
    skipped: int = 0
    failed: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False,
    )

    def inc_total(self, count: int = 1):
        with self._lock:
            self.total += count

    def inc_skipped(self, count: int = 1):
        with self._lock:
            self.skipped += count

    def inc_failed(self, count: int = 1):
        with self._lock:
            self.failed += count

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


@dataclass
class InspectionStats(BaseStats):
    """Counters for delta inspection and storage-event passes."""
    inspected: int = 0
    identified: int = 0
    unresolved: int = 0

    def inc_inspected(self, count: int = 1):
        with self._lock:
            self.inspected += count

    def inc_identified(self, count: int = 1):
        with self._lock:
            self.identified += count

    def inc_unresolved(self, count: int = 1):
        with self._lock:
            self.unresolved += count


@dataclass
class UpdateStats(BaseStats):
    """Counters for notification reconciliation passes."""
    notifications: int = 0
    ignored_notifications: int = 0
    artifacts_updated: int = 0

    def inc_notifications(self, count: int = 1):
        with self._lock:
            self.notifications += count

    def inc_ignored(self, count: int = 1):
        with self._lock:
            self.ignored_notifications += count

    def inc_artifacts_updated(self, count: int = 1):
        with self._lock:
            self.artifacts_updated += count
