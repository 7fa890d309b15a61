"""
test_metrics.py — Unit tests for the KPI summary engine.

Tests cover:
    - Percent change and trend helpers (boundary values)
    - Per-domain summaries built from generated series
    - DashboardSummary assembly and unread count
    - Headline flattening used by summary exports
"""

import sys
from datetime import date
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from execview.data_simulator import (
    SYNTHESIZERS,
    generate_employee_data,
    generate_financial_data,
    generate_sales_data,
)
from execview.metrics import (
    DomainSummary,
    FinancialSummary,
    MetricWithTrend,
    calculate_percent_change,
    determine_trend,
    headline,
    summarize,
    summarize_domain,
)

TODAY = date(2026, 10, 19)


@pytest.fixture
def financial():
    return generate_financial_data("monthly", 12, np.random.default_rng(11), TODAY)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestPercentChange:
    """Tests for calculate_percent_change."""

    def test_increase(self):
        assert calculate_percent_change(110, 100) == 10.0

    def test_decrease(self):
        assert calculate_percent_change(75, 100) == -25.0

    def test_rounded_to_one_decimal(self):
        assert calculate_percent_change(1, 3) == -66.7

    def test_zero_previous_returns_zero(self):
        assert calculate_percent_change(500, 0) == 0.0


class TestDetermineTrend:
    """Tests for determine_trend."""

    @pytest.mark.parametrize("change,expected", [(0.1, "up"), (-0.1, "down"), (0.0, "neutral")])
    def test_trend(self, change, expected):
        assert determine_trend(change) == expected


# ---------------------------------------------------------------------------
# Domain summaries
# ---------------------------------------------------------------------------

class TestSummarizeDomain:
    """Tests for summarize_domain."""

    def test_financial_latest_against_previous(self, financial):
        summary = summarize_domain("financial", financial)
        assert isinstance(summary, FinancialSummary)
        assert summary.period == TODAY.isoformat()
        assert summary.revenue.value == financial[-1]["revenue"]
        assert summary.revenue.previous_value == financial[-2]["revenue"]
        assert summary.revenue.change_percentage == calculate_percent_change(
            financial[-1]["revenue"], financial[-2]["revenue"]
        )
        assert summary.revenue.format == "currency"
        assert len(summary.revenue_trend) == 12
        assert sum(summary.expenses_by_category.values()) == financial[-1]["expenses"]

    def test_order_of_input_records_irrelevant(self, financial):
        forward = summarize_domain("financial", financial)
        backward = summarize_domain("financial", list(reversed(financial)))
        assert forward.revenue == backward.revenue

    def test_single_record_is_neutral(self, financial):
        summary = summarize_domain("financial", financial[:1])
        assert summary.revenue.change_percentage == 0.0
        assert summary.revenue.trend == "neutral"

    def test_empty_series_returns_none(self):
        assert summarize_domain("sales", []) is None

    @pytest.mark.parametrize("domain", sorted(SYNTHESIZERS))
    def test_every_domain_yields_a_domain_summary(self, domain):
        records = SYNTHESIZERS[domain]("monthly", 3, np.random.default_rng(5), TODAY)
        summary = summarize_domain(domain, records)
        assert isinstance(summary, DomainSummary)
        assert headline(summary)["period"] == TODAY.isoformat()

    def test_sales_breakdowns_from_latest_period(self):
        records = generate_sales_data("weekly", 6, np.random.default_rng(2), TODAY)
        summary = summarize_domain("sales", records)
        assert summary.sales_by_region == records[-1]["region_data"]
        assert summary.top_products == records[-1]["top_products"]

    def test_employee_department_split(self):
        records = generate_employee_data("quarterly", 4, np.random.default_rng(3), TODAY)
        summary = summarize_domain("employee", records)
        assert sum(summary.headcount_by_department.values()) == summary.headcount.value


class TestSummarize:
    """Tests for the full dashboard summary."""

    def test_missing_domains_are_none(self, financial):
        notifications = [{"id": "a", "read": False}, {"id": "b", "read": True}, {"id": "c", "read": False}]
        summary = summarize({"financial": financial}, notifications, "monthly", "2026-10-19T00:00:00.000Z")
        assert summary.financial is not None
        assert summary.sales is None
        assert summary.employee is None
        assert summary.unread_notifications == 2
        assert summary.last_updated == "2026-10-19T00:00:00.000Z"


class TestHeadline:
    """Tests for headline flattening."""

    def test_financial_headline_row(self, financial):
        row = headline(summarize_domain("financial", financial))
        assert row["period"] == TODAY.isoformat()
        assert row["revenue"] == financial[-1]["revenue"]
        assert "revenue_change_pct" in row
        assert row["admin_costs"] == financial[-1]["admin_costs"]
        assert "revenue_trend" not in row
        assert all(not isinstance(v, (list, dict, MetricWithTrend)) for v in row.values())
