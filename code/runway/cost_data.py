import json
import logging
import math
import os
import random
import time
from typing import Dict, Optional, Any, Tuple

from .sample_data import SAMPLE_COST_OF_LIVING
from .schemas import CostOfLivingData
from .utils import to_number

logger = logging.getLogger(__name__)

COST_DATA_PATH = os.getenv("COST_DATA_PATH", "")
COST_DATA_LATENCY = float(os.getenv("COST_DATA_LATENCY", "0"))

SYNTHETIC_TOTAL_MIN = 5000
SYNTHETIC_TOTAL_MAX = 10000
SYNTHETIC_HOUSING_SHARE = 0.4
SYNTHETIC_FOOD_SHARE = 0.3

# Substituted by the comparison engine when a provider cannot answer.
FALLBACK_COST_DATA = CostOfLivingData(
    total_monthly_expenses=5000,
    housing_expenses=2500,
    food_expenses=1500,
    entertainment_expenses=1000,
)

_FIELDS = ("totalMonthlyExpenses", "housingExpenses", "foodExpenses", "entertainmentExpenses")


class CostDataProvider:
    """Source of baseline monthly costs for a city. ``fetch`` may raise."""

    def fetch(self, city: str) -> CostOfLivingData:
        raise NotImplementedError


def synthesize_cost_data(rng: Optional[random.Random] = None) -> CostOfLivingData:
    """Invent a plausible cost profile for a city with no dataset entry.

    Unlike real entries, the categories always add up to the total: the
    entertainment share absorbs the rounding remainder.
    """
    rng = rng or random.Random()
    total = rng.randrange(SYNTHETIC_TOTAL_MIN, SYNTHETIC_TOTAL_MAX)
    housing = int(math.floor(total * SYNTHETIC_HOUSING_SHARE))
    food = int(math.floor(total * SYNTHETIC_FOOD_SHARE))
    return CostOfLivingData(
        total_monthly_expenses=total,
        housing_expenses=housing,
        food_expenses=food,
        entertainment_expenses=total - housing - food,
    )


def parse_dataset(raw: Dict[str, Any]) -> Dict[str, CostOfLivingData]:
    if not isinstance(raw, dict):
        raise ValueError("cost dataset must be a JSON object keyed by city")
    dataset: Dict[str, CostOfLivingData] = {}
    for city, entry in raw.items():
        if not isinstance(entry, dict):
            raise ValueError(f"{city}: entry must be an object")
        values = {}
        for key in _FIELDS:
            if key not in entry:
                raise ValueError(f"{city}: missing {key}")
            number = to_number(entry[key], f"{city}.{key}")
            if number < 0:
                raise ValueError(f"{city}.{key} must be non-negative")
            values[key] = number
        dataset[city] = CostOfLivingData.from_dict(values)
    return dataset


def load_dataset(path: str) -> Dict[str, CostOfLivingData]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return parse_dataset(raw)


class LocalCostDataProvider(CostDataProvider):
    def __init__(
        self,
        dataset: Optional[Dict[str, CostOfLivingData]] = None,
        rng: Optional[random.Random] = None,
        latency: float = 0.0,
    ):
        self.dataset = dict(dataset) if dataset is not None else parse_dataset(SAMPLE_COST_OF_LIVING)
        self.rng = rng or random.Random()
        self.latency = latency

    def fetch(self, city: str) -> CostOfLivingData:
        if self.latency > 0:
            time.sleep(self.latency)
        data = self.dataset.get(city)
        if data is not None:
            logger.debug("using dataset entry for %s", city)
            return data
        logger.debug("no dataset entry for %s, generating synthetic costs", city)
        return synthesize_cost_data(self.rng)


def default_provider() -> LocalCostDataProvider:
    dataset = load_dataset(COST_DATA_PATH) if COST_DATA_PATH else None
    return LocalCostDataProvider(dataset=dataset, latency=COST_DATA_LATENCY)


def fetch_or_fallback(provider: CostDataProvider, city: str) -> Tuple[CostOfLivingData, bool, Optional[str]]:
    """Fetch a city's costs, substituting FALLBACK_COST_DATA on any failure.

    Returns ``(data, used_fallback, error)``.
    """
    try:
        return provider.fetch(city), False, None
    except Exception as exc:
        logger.warning("cost data for %s unavailable, using fallback: %s", city, exc)
        return FALLBACK_COST_DATA, True, str(exc) or exc.__class__.__name__
