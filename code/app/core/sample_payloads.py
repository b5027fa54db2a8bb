SAMPLE_SIMULATE_REQUEST = {
    "city": "Chengdu",
    "savings": 1000000,
    "annual_return_rate": 0.03,
    "annual_inflation_rate": 0.02,
    "expenses": {
        "housing": 2500,
        "food": 1500,
        "entertainment": None,
        "other": 0,
    },
}

SAMPLE_COMPARE_REQUEST = {
    "cities": ["Beijing", "Chengdu", "Dali", "Hegang"],
    "savings": 1000000,
    "annual_return_rate": 0.03,
    "annual_inflation_rate": 0.02,
    "per_city_overrides": {
        "Beijing": {"housing": 3000, "other": 500},
    },
}
