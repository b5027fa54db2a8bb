from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class CostOfLivingData:
    total_monthly_expenses: float
    housing_expenses: float
    food_expenses: float
    entertainment_expenses: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CostOfLivingData":
        # dataset JSON files use camelCase keys
        return cls(
            total_monthly_expenses=data["totalMonthlyExpenses"],
            housing_expenses=data["housingExpenses"],
            food_expenses=data["foodExpenses"],
            entertainment_expenses=data["entertainmentExpenses"],
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalMonthlyExpenses": self.total_monthly_expenses,
            "housingExpenses": self.housing_expenses,
            "foodExpenses": self.food_expenses,
            "entertainmentExpenses": self.entertainment_expenses,
        }


@dataclass(frozen=True)
class ExpenseOverrides:
    housing: Optional[float] = None
    food: Optional[float] = None
    entertainment: Optional[float] = None
    other: float = 0.0


@dataclass(frozen=True)
class SimulationParameters:
    initial_savings: float
    monthly_expenses: float
    annual_return_rate: float = 0.03
    annual_inflation_rate: float = 0.02


@dataclass(frozen=True)
class SimulationResult:
    city: str
    days: Optional[int]
    cost_of_living_data: CostOfLivingData
    used_fallback: bool = False
    error: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return self.days is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "city": self.city,
            "days": self.days,
            "unlimited": self.unlimited,
            "costOfLivingData": self.cost_of_living_data.to_dict(),
            "used_fallback": self.used_fallback,
            "error": self.error,
        }


# Messages sent from a comparison worker to whoever started it.

@dataclass(frozen=True)
class ProgressMessage:
    progress: float
    type: str = "progress"


@dataclass(frozen=True)
class ResultMessage:
    results: List[SimulationResult] = field(default_factory=list)
    type: str = "result"


@dataclass(frozen=True)
class CancelledMessage:
    completed: int = 0
    type: str = "cancelled"


@dataclass(frozen=True)
class FailedMessage:
    error: str
    type: str = "failed"
