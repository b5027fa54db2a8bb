import math
from typing import Optional

from .schemas import CostOfLivingData, ExpenseOverrides

DAYS_PER_MONTH = 30
MAX_SIMULATION_MONTHS = 1200
UNLIMITED_RANK_DAYS = MAX_SIMULATION_MONTHS * DAYS_PER_MONTH


def _pick(override: Optional[float], baseline: float) -> float:
    return baseline if override is None else override


def resolve_monthly_expenses(overrides: Optional[ExpenseOverrides], baseline: CostOfLivingData) -> float:
    """Merge per-category overrides with the dataset baseline.

    An override of ``None`` falls back to the matching baseline figure; any
    other value, including 0, wins. Values are not clamped, so negative
    overrides flow straight into the simulation.
    """
    if overrides is None:
        overrides = ExpenseOverrides()
    other = overrides.other if overrides.other is not None else 0.0
    return (
        _pick(overrides.housing, baseline.housing_expenses)
        + _pick(overrides.food, baseline.food_expenses)
        + _pick(overrides.entertainment, baseline.entertainment_expenses)
        + other
    )


def simulate_months(
    savings: float,
    monthly_expenses: float,
    annual_return_rate: float,
    annual_inflation_rate: float,
    max_months: int = MAX_SIMULATION_MONTHS,
) -> Optional[int]:
    """Count whole months until the balance reaches zero or below.

    Each month the balance first grows by ``annual_return_rate / 12`` and then
    pays ``monthly_expenses * (1 + annual_inflation_rate / 12) ** month``,
    where ``month`` is the number of months already elapsed. Inflation is
    always recomputed from the base expense figure, not chained from the
    previous month's inflated value.

    Returns None when the balance never runs out within ``max_months``.
    """
    if savings <= 0:
        return 0
    if monthly_expenses <= 0 and annual_return_rate >= 0:
        return None

    monthly_return = annual_return_rate / 12
    monthly_inflation = annual_inflation_rate / 12
    remaining = savings
    months = 0
    while remaining > 0:
        if months >= max_months:
            return None
        remaining = remaining + remaining * monthly_return
        remaining = remaining - monthly_expenses * (1 + monthly_inflation) ** months
        months += 1
    return months


def months_to_days(months: int) -> int:
    return int(math.floor(months * DAYS_PER_MONTH))


def simulate_days(
    savings: float,
    monthly_expenses: float,
    annual_return_rate: float,
    annual_inflation_rate: float,
) -> Optional[int]:
    months = simulate_months(savings, monthly_expenses, annual_return_rate, annual_inflation_rate)
    if months is None:
        return None
    return months_to_days(months)


def rank_days(days: Optional[int]) -> int:
    # unlimited runs are ranked as if they lasted the whole horizon
    return UNLIMITED_RANK_DAYS if days is None else days
