SAMPLE_COST_OF_LIVING = {
    "Beijing": {
        "totalMonthlyExpenses": 9800,
        "housingExpenses": 5200,
        "foodExpenses": 2600,
        "entertainmentExpenses": 1500,
    },
    "Shanghai": {
        "totalMonthlyExpenses": 10200,
        "housingExpenses": 5500,
        "foodExpenses": 2700,
        "entertainmentExpenses": 1600,
    },
    "Shenzhen": {
        "totalMonthlyExpenses": 9200,
        "housingExpenses": 4800,
        "foodExpenses": 2500,
        "entertainmentExpenses": 1400,
    },
    "Guangzhou": {
        "totalMonthlyExpenses": 7600,
        "housingExpenses": 3600,
        "foodExpenses": 2300,
        "entertainmentExpenses": 1200,
    },
    "Hangzhou": {
        "totalMonthlyExpenses": 7900,
        "housingExpenses": 3900,
        "foodExpenses": 2200,
        "entertainmentExpenses": 1300,
    },
    "Chengdu": {
        "totalMonthlyExpenses": 5600,
        "housingExpenses": 2200,
        "foodExpenses": 1900,
        "entertainmentExpenses": 1000,
    },
    "Wuhan": {
        "totalMonthlyExpenses": 5400,
        "housingExpenses": 2100,
        "foodExpenses": 1800,
        "entertainmentExpenses": 900,
    },
    "Xi'an": {
        "totalMonthlyExpenses": 4900,
        "housingExpenses": 1800,
        "foodExpenses": 1700,
        "entertainmentExpenses": 900,
    },
    "Dali": {
        "totalMonthlyExpenses": 3800,
        "housingExpenses": 1300,
        "foodExpenses": 1400,
        "entertainmentExpenses": 700,
    },
    "Hegang": {
        "totalMonthlyExpenses": 2600,
        "housingExpenses": 600,
        "foodExpenses": 1200,
        "entertainmentExpenses": 500,
    },
}

SAMPLE_CITIES = sorted(SAMPLE_COST_OF_LIVING)
