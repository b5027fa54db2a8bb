# runway/simulator.py
import math
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

from .schemas import SimulationParameters
from .simulator_core import (
    DAYS_PER_MONTH,
    MAX_SIMULATION_MONTHS,
    months_to_days,
    simulate_months,
)
from .utils import round_or_none


def build_timeline(
    savings: float,
    monthly_expenses: float,
    annual_return_rate: float,
    annual_inflation_rate: float,
    months: int,
) -> List[Dict[str, float]]:
    """Month-by-month balance and cumulative spending, month 0 included.

    Uses the same growth-then-expense order as the simulator. Balances are
    clamped at zero for display.
    """
    monthly_return = annual_return_rate / 12
    monthly_inflation = annual_inflation_rate / 12
    balance = savings
    spent = 0.0
    timeline = []
    for month in range(months + 1):
        timeline.append({
            "month": month,
            "balance": round(max(balance, 0.0), 2),
            "cumulative_expenses": round(spent, 2),
        })
        inflated = monthly_expenses * (1 + monthly_inflation) ** month
        balance = balance + balance * monthly_return - inflated
        spent += inflated
    return timeline


def run_simulation(params: SimulationParameters, timeline_months: Optional[int] = None) -> Dict[str, Any]:
    months = simulate_months(
        params.initial_savings,
        params.monthly_expenses,
        params.annual_return_rate,
        params.annual_inflation_rate,
    )
    unlimited = months is None
    days = None if unlimited else months_to_days(months)

    if timeline_months is None:
        timeline_months = MAX_SIMULATION_MONTHS if unlimited else int(math.ceil(days / DAYS_PER_MONTH))
    timeline = build_timeline(
        params.initial_savings,
        params.monthly_expenses,
        params.annual_return_rate,
        params.annual_inflation_rate,
        timeline_months,
    )

    return {
        "metrics": {
            "days": days,
            "months": months,
            "years": None if unlimited else round_or_none(days / 365, 1),
            "unlimited": unlimited,
            "monthly_expenses": round(params.monthly_expenses, 2),
            "monthly_return_rate": params.annual_return_rate / 12,
            "monthly_inflation_rate": params.annual_inflation_rate / 12,
        },
        "timeline": timeline,
        "input": asdict(params),
        "metadata": {"timestamp": datetime.now(timezone.utc).isoformat()},
    }
