"""Thread-safe counters shared by the pipeline stages."""

from collections import Counter
from collections.abc import Mapping
import logging
import threading

from ..errors import SustainityError

logger = logging.getLogger(__name__)

DEFAULT_ISSUE_LEVELS = {"merge_conflict": logging.DEBUG}


class RunStats:
    """Accumulates counters and issue samples across worker threads.

    Issues are logged at warning level unless ``issue_levels`` names another
    level for their kind.
    """

    def __init__(
        self, max_samples: int = 20, issue_levels: Mapping[str, int] | None = None
    ):
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter()
        self._samples: dict[str, list[str]] = {}
        self.max_samples = max_samples
        self.issue_levels = dict(
            DEFAULT_ISSUE_LEVELS if issue_levels is None else issue_levels
        )
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def record(self, issue: SustainityError) -> None:
        """Count a non-fatal issue, log it and keep a bounded sample."""
        with self._lock:
            self._counts[issue.kind] += 1
            samples = self._samples.setdefault(issue.kind, [])
            if len(samples) < self.max_samples:
                samples.append(str(issue))

        self.logger.log(self.issue_levels.get(issue.kind, logging.WARNING), str(issue))

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def samples(self, kind: str) -> list[str]:
        with self._lock:
            return list(self._samples.get(kind, []))
