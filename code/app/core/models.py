from typing import Dict, List, Optional, Literal

from pydantic import BaseModel, Field


class ExpenseOverridesModel(BaseModel):
    housing: Optional[float] = Field(default=None, allow_inf_nan=False)
    food: Optional[float] = Field(default=None, allow_inf_nan=False)
    entertainment: Optional[float] = Field(default=None, allow_inf_nan=False)
    other: Optional[float] = Field(default=0.0, allow_inf_nan=False)


class CostOfLiving(BaseModel):
    total_monthly_expenses: float
    housing_expenses: float
    food_expenses: float
    entertainment_expenses: float


class SimulateRequest(BaseModel):
    city: str = ""
    # negative savings are accepted and simply last zero days
    savings: float = Field(default=1000000.0, allow_inf_nan=False)
    annual_return_rate: float = Field(default=0.03, ge=-1, le=1, allow_inf_nan=False)
    annual_inflation_rate: float = Field(default=0.02, ge=-1, le=1, allow_inf_nan=False)
    expenses: ExpenseOverridesModel = ExpenseOverridesModel()


class TimelinePoint(BaseModel):
    month: int
    balance: float
    cumulative_expenses: float


class SimulateResponse(BaseModel):
    city: str
    days: Optional[int]
    unlimited: bool
    months: Optional[int]
    monthly_expenses: float
    cost_of_living: CostOfLiving
    used_fallback: bool
    percentile: Optional[int] = None
    advisory: Optional[str] = None
    timeline: List[TimelinePoint]
    summary: str


class CompareRequest(BaseModel):
    cities: List[str] = Field(min_length=1, max_length=500)
    savings: float = Field(default=1000000.0, allow_inf_nan=False)
    annual_return_rate: float = Field(default=0.03, ge=-1, le=1, allow_inf_nan=False)
    annual_inflation_rate: float = Field(default=0.02, ge=-1, le=1, allow_inf_nan=False)
    per_city_overrides: Dict[str, ExpenseOverridesModel] = {}


class CityResult(BaseModel):
    city: str
    days: Optional[int]
    unlimited: bool
    cost_of_living: CostOfLiving
    used_fallback: bool = False
    error: Optional[str] = None


class CompareResponse(BaseModel):
    progress: float
    results: List[CityResult]


class ComparisonJob(BaseModel):
    job_id: str
    status: Literal["running", "completed", "cancelled", "failed"]
    progress: float
    city_count: int
    results: Optional[List[CityResult]] = None
    error: Optional[str] = None


class PercentileResponse(BaseModel):
    days: int
    percentile: Optional[int]
    advisory: Optional[str] = None
