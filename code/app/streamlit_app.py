# streamlit_app.py
import os
import sys

import streamlit as st

# Ensure the code/ directory is on sys.path so `runway` imports work when Streamlit runs.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from runway.compare import ComparisonWorker  # noqa: E402
from runway.cost_data import FALLBACK_COST_DATA, default_provider  # noqa: E402
from runway.percentile import PercentileService  # noqa: E402
from runway.sample_data import SAMPLE_CITIES  # noqa: E402
from runway.schemas import (  # noqa: E402
    ExpenseOverrides,
    FailedMessage,
    ProgressMessage,
    ResultMessage,
    SimulationParameters,
)
from runway.simulator import run_simulation  # noqa: E402
from runway.simulator_core import resolve_monthly_expenses  # noqa: E402
from app.storage.supabase_client import build_run_store  # noqa: E402


@st.cache_resource
def _services():
    service = PercentileService(build_run_store())
    service.check_connection()
    return default_provider(), service


st.set_page_config(page_title="Runway Calculator", layout="wide")
provider, percentile_service = _services()

st.title("Runway Calculator")

if percentile_service.advisory:
    st.warning(percentile_service.advisory)

with st.sidebar:
    st.header("Parameters")
    savings = st.number_input("Savings", value=1000000.0, step=10000.0)
    annual_return_pct = st.number_input("Annual return (%)", value=3.0, min_value=0.0, max_value=100.0, step=0.1)
    inflation_pct = st.number_input("Inflation (%)", value=2.0, min_value=0.0, max_value=100.0, step=0.1)

annual_return_rate = annual_return_pct / 100
annual_inflation_rate = inflation_pct / 100

single_tab, compare_tab = st.tabs(["Single city", "Compare cities"])

with single_tab:
    city = st.selectbox("City", SAMPLE_CITIES)
    try:
        baseline = provider.fetch(city)
    except Exception as e:
        st.caption(f"Cost data unavailable ({e}); using fallback figures.")
        baseline = FALLBACK_COST_DATA

    cols = st.columns(4)
    housing = cols[0].number_input("Housing", value=float(baseline.housing_expenses), step=100.0)
    food = cols[1].number_input("Food", value=float(baseline.food_expenses), step=100.0)
    entertainment = cols[2].number_input("Entertainment", value=float(baseline.entertainment_expenses), step=100.0)
    other = cols[3].number_input("Other", value=0.0, step=100.0)

    if st.button("Calculate"):
        overrides = ExpenseOverrides(housing=housing, food=food, entertainment=entertainment, other=other)
        monthly_expenses = resolve_monthly_expenses(overrides, baseline)
        report = run_simulation(SimulationParameters(savings, monthly_expenses, annual_return_rate, annual_inflation_rate))
        days = report["metrics"]["days"]
        rank = percentile_service.get_percentile_within(days)
        percentile_service.save_run_async(city, days)

        left, right = st.columns(2)
        left.metric("Runway", "unlimited" if days is None else f"{days} days")
        right.metric("Longer than", "pending" if rank is None else f"{rank}% of runs")
        st.dataframe(report["timeline"], use_container_width=True)

with compare_tab:
    selected = st.multiselect("Cities to compare", SAMPLE_CITIES, default=SAMPLE_CITIES[:3])
    extra = st.text_input("Other cities (comma separated)")
    cities = selected + [c.strip() for c in extra.split(",") if c.strip()]

    if st.button("Compare", disabled=not cities):
        worker = ComparisonWorker(cities, savings, annual_return_rate, annual_inflation_rate, provider=provider).start()
        bar = st.progress(0, text="Comparing cities...")
        # a rerun interrupts this loop; the worker must not outlive it
        try:
            for message in worker.iter_messages():
                if isinstance(message, ProgressMessage):
                    bar.progress(int(message.progress), text=f"{message.progress:.0f}%")
                elif isinstance(message, ResultMessage):
                    st.dataframe([r.to_dict() for r in message.results], use_container_width=True)
                elif isinstance(message, FailedMessage):
                    st.error(f"Comparison failed: {message.error}")
        finally:
            worker.cancel()
