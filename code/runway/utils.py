import math


def round_or_none(v, ndigits=2):
    if v is None:
        return None
    return round(v, ndigits)


def round_half_up(v: float) -> int:
    # Python's round() is banker's rounding; percentiles round .5 upwards
    return int(math.floor(v + 0.5))


def to_number(value, name: str = "value") -> float:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number
