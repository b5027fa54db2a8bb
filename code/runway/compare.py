import logging
import queue
import threading
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

from .cost_data import CostDataProvider, default_provider, fetch_or_fallback
from .schemas import (
    CancelledMessage,
    ExpenseOverrides,
    FailedMessage,
    ProgressMessage,
    ResultMessage,
    SimulationResult,
)
from .simulator_core import resolve_monthly_expenses, simulate_days

logger = logging.getLogger(__name__)

WorkerMessage = Union[ProgressMessage, ResultMessage, CancelledMessage, FailedMessage]


class ComparisonCancelled(Exception):
    def __init__(self, completed: int):
        super().__init__(f"comparison cancelled after {completed} cities")
        self.completed = completed


def _sort_key(result: SimulationResult) -> float:
    return float("inf") if result.days is None else result.days


def rank_results(results: Sequence[SimulationResult]) -> List[SimulationResult]:
    # sorted() stays stable with reverse=True, so ties keep completion order
    return sorted(results, key=_sort_key, reverse=True)


def run_comparison(
    cities: Sequence[str],
    savings: float,
    annual_return_rate: float,
    annual_inflation_rate: float,
    overrides_by_city: Optional[Dict[str, ExpenseOverrides]] = None,
    provider: Optional[CostDataProvider] = None,
    on_progress: Optional[Callable[[float], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> List[SimulationResult]:
    """Simulate every city in order and return the results ranked by days.

    A city whose cost data cannot be fetched is simulated against
    FALLBACK_COST_DATA instead. ``on_progress`` receives the completed share
    (0-100] after each city; ``should_stop`` is polled around each fetch.
    """
    provider = provider or default_provider()
    overrides_by_city = overrides_by_city or {}
    total = len(cities)
    results: List[SimulationResult] = []

    for i, city in enumerate(cities):
        if should_stop is not None and should_stop():
            raise ComparisonCancelled(i)

        data, used_fallback, error = fetch_or_fallback(provider, city)

        # a fetch that finishes after cancellation is discarded
        if should_stop is not None and should_stop():
            raise ComparisonCancelled(i)

        monthly_expenses = resolve_monthly_expenses(overrides_by_city.get(city), data)
        days = simulate_days(savings, monthly_expenses, annual_return_rate, annual_inflation_rate)
        results.append(SimulationResult(
            city=city,
            days=days,
            cost_of_living_data=data,
            used_fallback=used_fallback,
            error=error,
        ))

        if on_progress is not None:
            on_progress((i + 1) / total * 100)

    return rank_results(results)


class ComparisonWorker:
    """Runs one comparison on a background thread.

    The worker keeps its state to itself and reports through ``messages``:
    a ProgressMessage per finished city, then exactly one terminal message
    (ResultMessage, CancelledMessage or FailedMessage).
    """

    def __init__(
        self,
        cities: Sequence[str],
        savings: float,
        annual_return_rate: float,
        annual_inflation_rate: float,
        overrides_by_city: Optional[Dict[str, ExpenseOverrides]] = None,
        provider: Optional[CostDataProvider] = None,
    ):
        self._cities = list(cities)
        self._savings = savings
        self._annual_return_rate = annual_return_rate
        self._annual_inflation_rate = annual_inflation_rate
        self._overrides_by_city = dict(overrides_by_city or {})
        self._provider = provider
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="comparison-worker", daemon=True)
        self.messages: "queue.Queue[WorkerMessage]" = queue.Queue()

    @property
    def city_count(self) -> int:
        return len(self._cities)

    def start(self) -> "ComparisonWorker":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def iter_messages(self, timeout: Optional[float] = None) -> Iterator[WorkerMessage]:
        while True:
            message = self.messages.get(timeout=timeout)
            yield message
            if not isinstance(message, ProgressMessage):
                return

    def _run(self) -> None:
        try:
            results = run_comparison(
                self._cities,
                self._savings,
                self._annual_return_rate,
                self._annual_inflation_rate,
                overrides_by_city=self._overrides_by_city,
                provider=self._provider,
                on_progress=lambda progress: self.messages.put(ProgressMessage(progress=progress)),
                should_stop=self._stop.is_set,
            )
        except ComparisonCancelled as exc:
            logger.info("comparison cancelled after %d of %d cities", exc.completed, len(self._cities))
            self.messages.put(CancelledMessage(completed=exc.completed))
        except Exception as exc:
            logger.exception("comparison worker failed")
            self.messages.put(FailedMessage(error=str(exc)))
        else:
            self.messages.put(ResultMessage(results=results))
