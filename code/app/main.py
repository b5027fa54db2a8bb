import logging
import os

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query

from runway.sample_data import SAMPLE_CITIES

from app.core.models import (
    CompareRequest,
    CompareResponse,
    ComparisonJob,
    PercentileResponse,
    SimulateRequest,
    SimulateResponse,
)
from app.core.pipeline import (
    TooManyJobsError,
    cancel_comparison_job,
    get_comparison_job,
    get_percentile_service,
    run_city_comparison,
    run_single_city,
    save_run,
    start_comparison_job,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Runway Calculator API")


@app.get("/health")
def health():
    service = get_percentile_service()
    return {"status": "ok", "store_available": service.available, "advisory": service.advisory}


@app.get("/cities")
def cities():
    return {"cities": SAMPLE_CITIES}


@app.post("/simulate", response_model=SimulateResponse)
def simulate(payload: SimulateRequest, background_tasks: BackgroundTasks):
    result = run_single_city(payload)
    background_tasks.add_task(save_run, payload.city, result.days)
    return result


@app.post("/compare", response_model=CompareResponse)
def compare(payload: CompareRequest):
    return run_city_comparison(payload)


@app.post("/compare/jobs", response_model=ComparisonJob, status_code=202)
def create_comparison_job(payload: CompareRequest):
    try:
        return start_comparison_job(payload)
    except TooManyJobsError as exc:
        raise HTTPException(status_code=429, detail=str(exc))


@app.get("/compare/jobs/{job_id}", response_model=ComparisonJob)
def read_comparison_job(job_id: str):
    job = get_comparison_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Unknown comparison job")
    return job


@app.delete("/compare/jobs/{job_id}", response_model=ComparisonJob)
def delete_comparison_job(job_id: str):
    job = cancel_comparison_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Unknown comparison job")
    return job


@app.get("/percentile", response_model=PercentileResponse)
def percentile(days: int = Query(ge=0)):
    service = get_percentile_service()
    return PercentileResponse(days=days, percentile=service.get_percentile(days), advisory=service.advisory)
