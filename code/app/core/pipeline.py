import logging
import queue
import threading
import uuid
from typing import Dict, List, Optional

from runway.compare import ComparisonWorker, run_comparison
from runway.cost_data import CostDataProvider, default_provider, fetch_or_fallback
from runway.percentile import PercentileService
from runway.schemas import (
    CancelledMessage,
    CostOfLivingData,
    ExpenseOverrides,
    FailedMessage,
    ProgressMessage,
    ResultMessage,
    SimulationParameters,
    SimulationResult,
)
from runway.simulator import run_simulation
from runway.simulator_core import resolve_monthly_expenses

from app.storage.supabase_client import build_run_store
from .models import (
    CityResult,
    CompareRequest,
    CompareResponse,
    ComparisonJob,
    CostOfLiving,
    ExpenseOverridesModel,
    SimulateRequest,
    SimulateResponse,
    TimelinePoint,
)

logger = logging.getLogger(__name__)

MAX_FINISHED_JOBS = 50
MAX_RUNNING_JOBS = 8

_provider: CostDataProvider = default_provider()
_percentile_service = PercentileService(build_run_store())


def get_percentile_service() -> PercentileService:
    return _percentile_service


def _money(value: float) -> str:
    return f"{value:,.0f}"


def _to_overrides(model: Optional[ExpenseOverridesModel]) -> ExpenseOverrides:
    if model is None:
        return ExpenseOverrides()
    return ExpenseOverrides(
        housing=model.housing,
        food=model.food,
        entertainment=model.entertainment,
        other=0.0 if model.other is None else model.other,
    )


def _cost_model(data: CostOfLivingData) -> CostOfLiving:
    return CostOfLiving(
        total_monthly_expenses=data.total_monthly_expenses,
        housing_expenses=data.housing_expenses,
        food_expenses=data.food_expenses,
        entertainment_expenses=data.entertainment_expenses,
    )


def _city_result(result: SimulationResult) -> CityResult:
    return CityResult(
        city=result.city,
        days=result.days,
        unlimited=result.unlimited,
        cost_of_living=_cost_model(result.cost_of_living_data),
        used_fallback=result.used_fallback,
        error=result.error,
    )


def build_summary(city: str, days: Optional[int], monthly_expenses: float, percentile: Optional[int]) -> str:
    place = city or "this city"
    if days is None:
        lines = [
            f"- At {_money(monthly_expenses)}/mo in {place}, returns keep pace with spending: savings never run out.",
        ]
    elif days == 0:
        lines = ["- There are no savings to draw on, so the runway is zero days."]
    else:
        span = f"{days} days"
        if days >= 365:
            span += f" (about {days / 365:.1f} years)"
        lines = [f"- At {_money(monthly_expenses)}/mo in {place}, savings last {span}."]
    if percentile is None:
        lines.append("- Ranking against other runs is pending or unavailable.")
    else:
        lines.append(f"- This run lasts longer than {percentile}% of recorded runs.")
    return "\n".join(["Summary:"] + lines)


def run_single_city(
    payload: SimulateRequest,
    provider: Optional[CostDataProvider] = None,
    service: Optional[PercentileService] = None,
    rank_timeout: Optional[float] = None,
) -> SimulateResponse:
    provider = provider or _provider
    service = service or _percentile_service

    data, used_fallback, _ = fetch_or_fallback(provider, payload.city)
    monthly_expenses = resolve_monthly_expenses(_to_overrides(payload.expenses), data)
    params = SimulationParameters(
        initial_savings=payload.savings,
        monthly_expenses=monthly_expenses,
        annual_return_rate=payload.annual_return_rate,
        annual_inflation_rate=payload.annual_inflation_rate,
    )
    report = run_simulation(params)
    metrics = report["metrics"]

    # ranked against prior runs off this thread; a slow store leaves it pending
    percentile = service.get_percentile_within(metrics["days"], rank_timeout)

    return SimulateResponse(
        city=payload.city,
        days=metrics["days"],
        unlimited=metrics["unlimited"],
        months=metrics["months"],
        monthly_expenses=monthly_expenses,
        cost_of_living=_cost_model(data),
        used_fallback=used_fallback,
        percentile=percentile,
        advisory=service.advisory,
        timeline=[TimelinePoint(**point) for point in report["timeline"]],
        summary=build_summary(payload.city, metrics["days"], monthly_expenses, percentile),
    )


def save_run(label: str, days: Optional[int], service: Optional[PercentileService] = None) -> None:
    (service or _percentile_service).save_run_async(label, days)


def _overrides_by_city(payload: CompareRequest) -> Dict[str, ExpenseOverrides]:
    return {city: _to_overrides(model) for city, model in payload.per_city_overrides.items()}


def run_city_comparison(payload: CompareRequest, provider: Optional[CostDataProvider] = None) -> CompareResponse:
    progress: List[float] = [0.0]
    results = run_comparison(
        payload.cities,
        payload.savings,
        payload.annual_return_rate,
        payload.annual_inflation_rate,
        overrides_by_city=_overrides_by_city(payload),
        provider=provider or _provider,
        on_progress=progress.append,
    )
    return CompareResponse(progress=progress[-1], results=[_city_result(r) for r in results])


class _JobHandle:
    """Caller-side view of a running worker, built only from its messages."""

    def __init__(self, job_id: str, worker: ComparisonWorker):
        self.job_id = job_id
        self.worker = worker
        self.status = "running"
        self.progress = 0.0
        self.results: Optional[List[SimulationResult]] = None
        self.error: Optional[str] = None
        self._lock = threading.Lock()

    def poll(self) -> None:
        with self._lock:
            while self.status == "running":
                try:
                    message = self.worker.messages.get_nowait()
                except queue.Empty:
                    return
                if isinstance(message, ProgressMessage):
                    self.progress = message.progress
                elif isinstance(message, ResultMessage):
                    self.results = message.results
                    self.status = "completed"
                elif isinstance(message, CancelledMessage):
                    self.status = "cancelled"
                elif isinstance(message, FailedMessage):
                    self.error = message.error
                    self.status = "failed"

    def snapshot(self) -> ComparisonJob:
        self.poll()
        results = None
        if self.results is not None:
            results = [_city_result(r) for r in self.results]
        return ComparisonJob(
            job_id=self.job_id,
            status=self.status,
            progress=self.progress,
            city_count=self.worker.city_count,
            results=results,
            error=self.error,
        )


class TooManyJobsError(Exception):
    pass


_jobs: Dict[str, _JobHandle] = {}
_jobs_lock = threading.Lock()


def _prune_jobs() -> None:
    finished = [job_id for job_id, handle in _jobs.items() if handle.status != "running"]
    excess = len(finished) - MAX_FINISHED_JOBS
    for job_id in finished[:max(excess, 0)]:
        del _jobs[job_id]


def start_comparison_job(payload: CompareRequest, provider: Optional[CostDataProvider] = None) -> ComparisonJob:
    """Start a comparison on a background worker.

    Raises TooManyJobsError when MAX_RUNNING_JOBS comparisons are already
    running.
    """
    worker = ComparisonWorker(
        payload.cities,
        payload.savings,
        payload.annual_return_rate,
        payload.annual_inflation_rate,
        overrides_by_city=_overrides_by_city(payload),
        provider=provider or _provider,
    )
    handle = _JobHandle(uuid.uuid4().hex, worker)
    with _jobs_lock:
        for existing in _jobs.values():
            existing.poll()
        running = sum(1 for existing in _jobs.values() if existing.status == "running")
        if running >= MAX_RUNNING_JOBS:
            raise TooManyJobsError(f"{running} comparisons already running")
        _prune_jobs()
        _jobs[handle.job_id] = handle
    worker.start()
    logger.info("started comparison job %s for %d cities", handle.job_id, worker.city_count)
    return handle.snapshot()


def get_comparison_job(job_id: str) -> Optional[ComparisonJob]:
    with _jobs_lock:
        handle = _jobs.get(job_id)
    if handle is None:
        return None
    return handle.snapshot()


def cancel_comparison_job(job_id: str) -> Optional[ComparisonJob]:
    with _jobs_lock:
        handle = _jobs.get(job_id)
    if handle is None:
        return None
    handle.worker.cancel()
    return handle.snapshot()
