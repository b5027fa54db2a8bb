import threading
import time

from fastapi.testclient import TestClient

from app.core import pipeline
from app.core.models import CompareRequest, SimulateRequest
from app.core.pipeline import (
    build_summary,
    cancel_comparison_job,
    get_comparison_job,
    run_single_city,
    start_comparison_job,
)
from app.core.sample_payloads import SAMPLE_COMPARE_REQUEST, SAMPLE_SIMULATE_REQUEST
from app.main import app
from runway.cost_data import CostDataProvider
from runway.percentile import InMemoryRunStore, PercentileService
from runway.schemas import CostOfLivingData

client = TestClient(app)


class FailingProvider(CostDataProvider):
    def fetch(self, city):
        raise ConnectionError("dataset offline")


class GarbledProvider(CostDataProvider):
    def fetch(self, city):
        return CostOfLivingData(0, "n/a", 0, 0)


class GatedProvider(CostDataProvider):
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch(self, city):
        self.entered.set()
        self.release.wait(5)
        return CostOfLivingData(1000, 500, 300, 200)


class SlowStore(InMemoryRunStore):
    def __init__(self, days=None):
        super().__init__(days)
        self.release = threading.Event()

    def fetch_days(self):
        self.release.wait(5)
        return super().fetch_days()


def _wait_for_job(job_id, timeout=10):
    deadline = time.time() + timeout
    job = get_comparison_job(job_id)
    while job.status == "running" and time.time() < deadline:
        time.sleep(0.05)
        job = get_comparison_job(job_id)
    return job


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cities_lists_sample_dataset():
    assert "Chengdu" in client.get("/cities").json()["cities"]


def test_simulate_sample_request():
    resp = client.post("/simulate", json=SAMPLE_SIMULATE_REQUEST)
    assert resp.status_code == 200
    body = resp.json()
    # housing 2500 + food 1500 overrides, Chengdu entertainment 1000
    assert body["monthly_expenses"] == 5000
    assert body["days"] == 6600
    assert body["months"] == 220
    assert body["unlimited"] is False
    assert body["used_fallback"] is False
    assert body["timeline"][0]["balance"] == 1000000
    assert body["summary"].startswith("Summary:")


def test_simulate_negative_savings_is_zero_days():
    resp = client.post("/simulate", json={"city": "Dali", "savings": -5000})
    assert resp.status_code == 200
    assert resp.json()["days"] == 0


def test_simulate_rejects_non_numeric_input():
    resp = client.post("/simulate", json={"city": "Dali", "savings": "a lot"})
    assert resp.status_code == 422


def test_single_city_percentile_and_fallback():
    service = PercentileService(InMemoryRunStore([100, 200, 300, 100000]))
    payload = SimulateRequest(city="Nowhere", savings=500000, annual_return_rate=0, annual_inflation_rate=0)
    out = run_single_city(payload, provider=FailingProvider(), service=service, rank_timeout=5)
    assert out.used_fallback is True
    assert out.cost_of_living.housing_expenses == 2500
    assert out.days == 3000
    assert out.percentile == 75
    assert out.advisory is None


def test_compare_sample_request():
    resp = client.post("/compare", json=SAMPLE_COMPARE_REQUEST)
    assert resp.status_code == 200
    body = resp.json()
    assert body["progress"] == 100
    assert len(body["results"]) == 4
    days = [r["days"] for r in body["results"]]
    assert days == sorted(days, reverse=True)
    assert body["results"][0]["city"] == "Hegang"


def test_compare_requires_cities():
    assert client.post("/compare", json={"cities": []}).status_code == 422


def test_comparison_job_completes():
    resp = client.post("/compare/jobs", json=SAMPLE_COMPARE_REQUEST)
    assert resp.status_code == 202
    job_id = resp.json()["job_id"]

    deadline = time.time() + 10
    job = resp.json()
    while job["status"] == "running" and time.time() < deadline:
        time.sleep(0.05)
        job = client.get(f"/compare/jobs/{job_id}").json()

    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["city_count"] == 4
    assert len(job["results"]) == 4


def test_unknown_job_is_404():
    assert client.get("/compare/jobs/missing").status_code == 404
    assert client.delete("/compare/jobs/missing").status_code == 404


def test_percentile_endpoint():
    resp = client.get("/percentile", params={"days": 100})
    assert resp.status_code == 200
    assert resp.json()["days"] == 100


def test_summary_mentions_pending_rank():
    text = build_summary("Wuhan", 400, 5000, None)
    assert "400 days (about 1.1 years)" in text
    assert "pending or unavailable" in text
    assert "never run out" in build_summary("Wuhan", None, 0, 90)


def test_slow_store_does_not_hold_up_simulation():
    store = SlowStore([100, 200])
    service = PercentileService(store)
    try:
        started = time.monotonic()
        out = run_single_city(SimulateRequest(city="Dali", savings=500000), service=service, rank_timeout=0.05)
        assert time.monotonic() - started < 1
        assert out.days == 4740
        assert out.percentile is None
        assert "pending or unavailable" in out.summary
    finally:
        store.release.set()


def test_simulate_accepts_null_other_expense():
    payload = {"city": "Dali", "savings": 500000, "expenses": {"other": None}}
    resp = client.post("/simulate", json=payload)
    assert resp.status_code == 200
    assert resp.json()["monthly_expenses"] == 3400
    assert resp.json()["days"] == 4740


def test_comparison_job_reports_failure():
    job = start_comparison_job(CompareRequest(cities=["Dali"]), provider=GarbledProvider())
    job = _wait_for_job(job.job_id)
    assert job.status == "failed"
    assert job.error
    assert job.results is None


def test_cancelled_job_has_no_results():
    provider = GatedProvider()
    job = start_comparison_job(CompareRequest(cities=["Dali", "Hegang", "Wuhan"]), provider=provider)
    try:
        assert provider.entered.wait(5)
        resp = client.delete(f"/compare/jobs/{job.job_id}")
        assert resp.status_code == 200
    finally:
        provider.release.set()
    job = _wait_for_job(job.job_id)
    assert job.status == "cancelled"
    assert job.results is None


def test_cancel_unknown_job_through_pipeline():
    assert cancel_comparison_job("missing") is None


def test_too_many_running_jobs_is_429(monkeypatch):
    monkeypatch.setattr(pipeline, "MAX_RUNNING_JOBS", 0)
    resp = client.post("/compare/jobs", json=SAMPLE_COMPARE_REQUEST)
    assert resp.status_code == 429
