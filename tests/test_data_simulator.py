"""
test_data_simulator.py — Unit tests for the synthetic metric generators.

Tests cover:
    - Derived-field identities (profit, margin, conversion, retention)
    - Exact component sums (expense categories, departments, regions)
    - Clamped score and rate bounds
    - Series shape: ids, ordering, counts, empty series
    - DashboardDataset assembly
"""

import sys
from datetime import date
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from execview.data_simulator import (
    DOMAINS,
    ID_PREFIXES,
    PRODUCTS,
    SYNTHESIZERS,
    generate_customer_data,
    generate_employee_data,
    generate_financial_data,
    generate_initial_data,
    generate_operations_data,
    generate_sales_data,
)
from execview.periods import GRANULARITIES

TODAY = date(2026, 10, 19)
COUNTS = {"daily": 60, "weekly": 26, "monthly": 12, "quarterly": 8, "annually": 5}


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def _all_granularities(generator, rng):
    for granularity in GRANULARITIES:
        yield from generator(granularity, COUNTS[granularity], rng, TODAY)


# ---------------------------------------------------------------------------
# Financial
# ---------------------------------------------------------------------------

class TestFinancialData:
    """Tests for generate_financial_data."""

    def test_profit_is_revenue_minus_expenses(self, rng):
        for record in _all_granularities(generate_financial_data, rng):
            assert record["profit"] == record["revenue"] - record["expenses"]

    def test_profit_margin_matches_profit_over_revenue(self, rng):
        for record in _all_granularities(generate_financial_data, rng):
            expected = round(record["profit"] / record["revenue"] * 100, 2)
            assert record["profit_margin"] == expected

    def test_cost_categories_sum_to_expenses(self, rng):
        for record in _all_granularities(generate_financial_data, rng):
            parts = (record["operating_costs"] + record["marketing_costs"]
                     + record["rd_costs"] + record["admin_costs"])
            assert parts == record["expenses"]
            assert record["admin_costs"] > 0

    def test_monthly_twelve_records_within_band(self, rng):
        base_revenue = 2_500_000
        records = generate_financial_data("monthly", 12, rng, TODAY)
        assert len(records) == 12
        # lowest: Q2 season x low variation; highest: Q4 x high variation x full growth
        lower = base_revenue * 0.85 * 0.92
        upper = base_revenue * 1.25 * 1.08 * 1.08
        assert lower >= base_revenue * 0.7
        for record in records:
            assert lower - 1 <= record["revenue"] <= upper + 1

    def test_monthly_dates_span_trailing_year(self, rng):
        records = generate_financial_data("monthly", 12, rng, TODAY)
        assert records[0]["date"] == "2025-11-19"
        assert records[-1]["date"] == TODAY.isoformat()

    def test_ids_are_prefixed_dates(self, rng):
        records = generate_financial_data("weekly", 5, rng, TODAY)
        assert [r["id"] for r in records] == [f"fin-{r['date']}" for r in records]

    def test_daily_values_scaled_down(self, rng):
        daily = generate_financial_data("daily", 30, rng, TODAY)
        assert all(r["revenue"] < 2_500_000 / 10 for r in daily)

    def test_zero_count_is_empty(self, rng):
        assert generate_financial_data("monthly", 0, rng, TODAY) == []

    def test_seeded_generation_is_reproducible(self):
        a = generate_financial_data("monthly", 12, np.random.default_rng(3), TODAY)
        b = generate_financial_data("monthly", 12, np.random.default_rng(3), TODAY)
        assert a == b


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

class TestSalesData:
    """Tests for generate_sales_data."""

    def test_regions_sum_to_one_hundred(self, rng):
        for record in _all_granularities(generate_sales_data, rng):
            regions = record["region_data"]
            total = (regions["north_america"] + regions["europe"]
                     + regions["asia_pacific"] + regions["latin_america"])
            assert total == pytest.approx(100.0, abs=0.05)
            assert regions["latin_america"] > 0

    def test_conversion_rate_derived_from_deals(self, rng):
        for record in _all_granularities(generate_sales_data, rng):
            if record["new_deals"]:
                expected = round(record["closed_deals"] / record["new_deals"] * 100, 1)
            else:
                expected = 0.0
            assert record["conversion_rate"] == expected

    def test_top_products_sorted_and_distinct(self, rng):
        for record in generate_sales_data("monthly", 12, rng, TODAY):
            products = record["top_products"]
            assert len(products) == 5
            names = [p["name"] for p in products]
            assert len(set(names)) == 5
            assert set(names) <= set(PRODUCTS)
            revenues = [p["revenue"] for p in products]
            assert revenues == sorted(revenues, reverse=True)

    def test_sales_cycle_in_range(self, rng):
        for record in generate_sales_data("monthly", 12, rng, TODAY):
            assert 28 <= record["sales_cycle"] <= 42


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

class TestOperationsData:
    """Tests for generate_operations_data."""

    def test_percentages_clamped(self, rng):
        for record in _all_granularities(generate_operations_data, rng):
            assert record["production_efficiency"] <= 98
            assert record["delivery_on_time"] <= 99
            assert record["quality_score"] <= 99
            assert record["capacity_utilization"] <= 95
            assert record["defect_rate"] >= 0.5

    def test_cost_fields_are_integers(self, rng):
        for record in generate_operations_data("quarterly", 8, rng, TODAY):
            assert isinstance(record["inventory_level"], int)
            assert isinstance(record["maintenance_cost"], int)


# ---------------------------------------------------------------------------
# Customer
# ---------------------------------------------------------------------------

class TestCustomerData:
    """Tests for generate_customer_data."""

    def test_scores_clamped(self, rng):
        for record in _all_granularities(generate_customer_data, rng):
            assert record["satisfaction_score"] <= 9.5
            assert record["nps"] <= 70
            assert record["churn_rate"] >= 0.8

    def test_active_customers_not_scaled_by_period(self, rng):
        annual = generate_customer_data("annually", 5, rng, TODAY)
        daily = generate_customer_data("daily", 5, rng, TODAY)
        for record in annual + daily:
            assert 1_100 <= record["active_customers"] <= 1_450


# ---------------------------------------------------------------------------
# Employee
# ---------------------------------------------------------------------------

class TestEmployeeData:
    """Tests for generate_employee_data."""

    def test_departments_sum_to_headcount(self, rng):
        for record in _all_granularities(generate_employee_data, rng):
            assert sum(record["department_data"].values()) == record["headcount"]

    def test_departments_complete(self, rng):
        record = generate_employee_data("monthly", 1, rng, TODAY)[0]
        assert set(record["department_data"]) == {
            "engineering", "sales", "marketing", "operations", "support", "admin",
        }

    def test_scores_clamped(self, rng):
        for record in _all_granularities(generate_employee_data, rng):
            assert record["turnover_rate"] >= 0.9
            assert record["productivity_score"] <= 9.0
            assert record["engagement_score"] <= 9.0

    def test_retention_derived_from_turnover(self, rng):
        for record in generate_employee_data("monthly", 12, rng, TODAY):
            assert record["retention_rate"] == pytest.approx(100 - record["turnover_rate"] * 12, abs=0.051)


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

class TestSynthesizers:
    """Tests shared by all five domain generators."""

    @pytest.mark.parametrize("domain", DOMAINS)
    @pytest.mark.parametrize("granularity", GRANULARITIES)
    def test_series_shape(self, domain, granularity, rng):
        records = SYNTHESIZERS[domain](granularity, 7, rng, TODAY)
        assert len(records) == 7
        dates = [r["date"] for r in records]
        assert dates == sorted(set(dates))
        assert dates[-1] == TODAY.isoformat()
        assert all(r["id"] == f"{ID_PREFIXES[domain]}-{r['date']}" for r in records)


class TestGenerateInitialData:
    """Tests for generate_initial_data."""

    def test_every_domain_and_granularity_present(self, rng):
        dataset = generate_initial_data(COUNTS, rng, TODAY)
        for domain in DOMAINS:
            for granularity in GRANULARITIES:
                assert len(dataset.series(domain, granularity)) == COUNTS[granularity]

    def test_seeded_reference_records(self, rng):
        dataset = generate_initial_data(COUNTS, rng, TODAY)
        assert len(dataset.notifications) == 7
        assert len(dataset.users) == 4
        assert [s["id"] for s in dataset.settings] == [u["id"] for u in dataset.users]

    def test_record_count(self, rng):
        dataset = generate_initial_data(COUNTS, rng, TODAY)
        assert dataset.record_count() == 5 * sum(COUNTS.values()) + 7 + 4 + 4
