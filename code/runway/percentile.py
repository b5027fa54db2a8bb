import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import List, Optional, Sequence

from .simulator_core import rank_days
from .utils import round_half_up

logger = logging.getLogger(__name__)

PERCENTILE_TIMEOUT = float(os.getenv("PERCENTILE_TIMEOUT", "0.25"))

STORE_UNAVAILABLE_NOTICE = (
    "The results store is unreachable. Your runs will not be saved or compared "
    "with other users, but the calculator still works."
)


class StoreUnavailableError(Exception):
    pass


def compute_percentile(days: float, prior_days: Sequence[float]) -> int:
    """Share of prior runs that lasted strictly fewer days, as 0-100.

    With no prior runs every result beats everyone, so the rank is 100.
    """
    total = len(prior_days)
    if total == 0:
        return 100
    lower = sum(1 for d in prior_days if d < days)
    return round_half_up(lower / total * 100)


class RunStore:
    """Storage of past runs. Implementations raise StoreUnavailableError."""

    def ping(self) -> None:
        raise NotImplementedError

    def insert_run(self, label: str, days: int) -> None:
        raise NotImplementedError

    def fetch_days(self) -> List[int]:
        raise NotImplementedError


class InMemoryRunStore(RunStore):
    def __init__(self, days: Optional[Sequence[int]] = None):
        self._lock = threading.Lock()
        self._runs = [("", d) for d in (days or [])]

    def ping(self) -> None:
        return None

    def insert_run(self, label: str, days: int) -> None:
        with self._lock:
            self._runs.append((label, days))

    def fetch_days(self) -> List[int]:
        with self._lock:
            return sorted(d for _, d in self._runs)


class PercentileService:
    """Ranks and records runs without ever failing the caller.

    The first store failure disables saving and ranking for the rest of the
    session and sets ``advisory`` to a notice suitable for display.

    Store calls made through ``get_percentile_within`` and ``save_run_async``
    run one at a time on a private worker thread, in submission order, so a
    rank requested before a save never sees that save.
    """

    def __init__(self, store: Optional[RunStore]):
        self.store = store
        self.advisory: Optional[str] = None
        self._enabled = store is not None
        self._checked = False
        if store is None:
            self.advisory = STORE_UNAVAILABLE_NOTICE
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="percentile")

    @property
    def available(self) -> bool:
        return self._enabled

    def _disable(self) -> None:
        self._enabled = False
        self.advisory = STORE_UNAVAILABLE_NOTICE

    def check_connection(self) -> bool:
        if self._checked or not self._enabled:
            return self._enabled
        self._checked = True
        try:
            self.store.ping()
        except Exception:
            logger.exception("results store connection check failed")
            self._disable()
        return self._enabled

    def get_percentile(self, days: Optional[int]) -> Optional[int]:
        if not self.check_connection():
            return None
        try:
            prior = self.store.fetch_days()
        except Exception:
            logger.exception("failed to fetch stored runs for ranking")
            self._disable()
            return None
        return compute_percentile(rank_days(days), prior)

    def save_run(self, label: str, days: Optional[int]) -> bool:
        if not self.check_connection():
            logger.warning("results store unavailable, run for %s not saved", label)
            return False
        try:
            self.store.insert_run(label, rank_days(days))
        except Exception:
            logger.exception("failed to save run for %s", label)
            self._disable()
            return False
        return True

    def get_percentile_within(self, days: Optional[int], timeout: Optional[float] = None) -> Optional[int]:
        """Rank off the caller's thread, giving up after ``timeout`` seconds.

        A rank that is not ready in time is reported as None (pending); the
        lookup still finishes in the background.
        """
        timeout = PERCENTILE_TIMEOUT if timeout is None else timeout
        future = self._executor.submit(self.get_percentile, days)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            logger.info("percentile lookup for %s days not ready after %.2fs", days, timeout)
            return None

    def save_run_async(self, label: str, days: Optional[int]) -> "Future[bool]":
        return self._executor.submit(self.save_run, label, days)
