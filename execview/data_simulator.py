"""
data_simulator.py — Synthetic Business Metrics Generator.

Generates five interconnected metric series that mirror what an executive
dashboard would pull from finance, CRM, ERP, support and HR systems:

    1. financial   — Revenue, expenses, profit, cash flow, cost breakdown
    2. sales       — Deals, pipeline, conversion, regional mix, top products
    3. operations  — Efficiency, inventory, delivery, quality, maintenance
    4. customer    — Satisfaction, NPS, churn, CLV, support load
    5. employee    — Headcount by department, hiring, turnover, engagement

Every domain follows the same recipe per record:

    base value × period multiplier × seasonal effect × trend × variation

Dependent fields (profit, margins, conversion, retention) are derived from
already-computed values, percentage and score fields are clamped after the
factors are composed, and component breakdowns are normalised last so they
sum exactly to their totals.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

import numpy as np

from execview.periods import (
    GRANULARITIES,
    generate_dates,
    period_multiplier,
    quarter_index,
    time_progress,
)
from execview.seed_data import default_user_settings, default_users, generate_notifications

logger = logging.getLogger(__name__)

DOMAINS = ("financial", "sales", "operations", "customer", "employee")

# Seasonal effects by quarter (Q1..Q4)
SEASONAL_EFFECTS = {
    "financial":  (1.0, 0.85, 0.9, 1.25),
    "sales":      (0.9, 0.85, 0.95, 1.3),
    "operations": (1.0, 0.95, 0.98, 1.05),
    "customer":   (1.0, 0.98, 0.95, 1.08),
    "employee":   (1.2, 0.8, 1.1, 0.9),   # hiring seasonality
}

# Per-record multiplicative noise band
VARIATION_BANDS = {
    "financial":  (0.92, 1.08),
    "sales":      (0.90, 1.10),
    "operations": (0.97, 1.03),
    "customer":   (0.96, 1.04),
    "employee":   (0.97, 1.03),
}

ID_PREFIXES = {
    "financial":  "fin",
    "sales":      "sales",
    "operations": "ops",
    "customer":   "cust",
    "employee":   "emp",
}

PRODUCTS = (
    "Enterprise Platform",
    "Cloud Storage",
    "Analytics Suite",
    "Security Pro",
    "API Services",
    "Mobile SDK",
    "IoT Gateway",
    "ML Toolkit",
)

BASE_DEPARTMENTS = {
    "engineering": 70,
    "sales":       35,
    "marketing":   20,
    "operations":  25,
    "support":     20,
    "admin":       10,
}

# Per-department spread around the company-wide headcount growth
DEPARTMENT_SPREAD = {
    "engineering": (0.95, 1.05),
    "sales":       (0.98, 1.02),
    "marketing":   (0.97, 1.03),
    "operations":  (0.93, 1.07),
    "support":     (0.96, 1.04),
    "admin":       (0.90, 1.10),
}


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _uniform(rng: np.random.Generator, lo: float, hi: float) -> float:
    return float(rng.uniform(lo, hi))


def _growth(rng: np.random.Generator, progress: float, lo: float, hi: float) -> float:
    """Linear long-run growth factor: 1 + progress × U(lo, hi)."""
    return 1 + progress * _uniform(rng, lo, hi)


def _decline(rng: np.random.Generator, progress: float, lo: float, hi: float) -> float:
    """Linear long-run decline factor: 1 - progress × U(lo, hi)."""
    return 1 - progress * _uniform(rng, lo, hi)


def _series_frame(
    domain: str,
    granularity: str,
    count: int,
    today: date | None,
) -> list[tuple[int, str, float, float]]:
    """Resolve dates and the seasonal / progress inputs common to every domain.

    Returns:
        One (index, iso_date, seasonal_effect, time_progress) tuple per record.
    """
    seasonal = SEASONAL_EFFECTS[domain]
    return [
        (i, d.isoformat(), seasonal[quarter_index(d)], time_progress(i, count))
        for i, d in enumerate(generate_dates(granularity, count, today))
    ]


def _record_id(domain: str, iso_date: str) -> str:
    return f"{ID_PREFIXES[domain]}-{iso_date}"


def _split_total(
    total: int,
    shares: dict[str, float],
    remainder_key: str,
) -> dict[str, int]:
    """Split an integer total by relative shares; rounding remainder goes to one key.

    Args:
        total: Integer total that the parts must sum to exactly.
        shares: Relative (unnormalised) share per component.
        remainder_key: Component that absorbs the rounding difference.

    Returns:
        Dict of integer parts in the same key order as `shares`.
    """
    share_sum = sum(shares.values())
    parts = {
        key: int(round(total * share / share_sum)) if share_sum else 0
        for key, share in shares.items()
    }
    parts[remainder_key] += total - sum(parts.values())
    return parts


def _generator(rng: np.random.Generator | None) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


# ---------------------------------------------------------------------------
# Financial
# ---------------------------------------------------------------------------

def generate_financial_data(
    granularity: str,
    count: int,
    rng: np.random.Generator | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate revenue, expenses and cost breakdown for a mid-sized tech company.

    Revenue grows 5-8% over the series; expenses follow the same factors at
    97% efficiency so margins improve slightly.

    Args:
        granularity: Reporting granularity.
        count: Number of records.
        rng: NumPy random generator (unseeded if omitted).
        today: Anchor date for the series.

    Returns:
        List of financial records, oldest first.
    """
    rng = _generator(rng)
    base_revenue = 2_500_000
    base_expenses = 1_800_000
    expense_efficiency = 0.97
    multiplier = period_multiplier(granularity)
    var_lo, var_hi = VARIATION_BANDS["financial"]

    records = []
    for _, iso_date, seasonal, progress in _series_frame("financial", granularity, count, today):
        growth = _growth(rng, progress, 0.05, 0.08)
        variation = _uniform(rng, var_lo, var_hi)
        adjusted = multiplier * seasonal * growth * variation

        revenue = int(round(base_revenue * adjusted))
        expenses = int(round(base_expenses * adjusted * expense_efficiency))

        profit = revenue - expenses
        profit_margin = round(profit / revenue * 100, 2) if revenue else 0.0

        costs = _split_total(
            expenses,
            {
                "operating_costs": _uniform(rng, 0.55, 0.65),
                "marketing_costs": _uniform(rng, 0.15, 0.25),
                "rd_costs":        _uniform(rng, 0.15, 0.20),
                "admin_costs":     _uniform(rng, 0.05, 0.10),
            },
            remainder_key="admin_costs",
        )

        # Non-cash items (depreciation etc.) lift cash flow above profit
        cash_flow = int(round(profit * _uniform(rng, 1.1, 1.3)))

        records.append({
            "id": _record_id("financial", iso_date),
            "date": iso_date,
            "revenue": revenue,
            "expenses": expenses,
            "profit": profit,
            "profit_margin": profit_margin,
            "cash_flow": cash_flow,
            **costs,
        })

    logger.debug("Generated financial: %d %s records", len(records), granularity)
    return records


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

def _region_mix(rng: np.random.Generator) -> dict[str, float]:
    """Regional share of sales in percent, one decimal, summing to 100."""
    raw = {
        "north_america": _uniform(rng, 45, 55),
        "europe":        _uniform(rng, 20, 30),
        "asia_pacific":  _uniform(rng, 15, 25),
        "latin_america": _uniform(rng, 5, 10),
    }
    total = sum(raw.values())
    mix = {key: round(value / total * 100, 1) for key, value in raw.items()}
    mix["latin_america"] = round(
        100 - mix["north_america"] - mix["europe"] - mix["asia_pacific"], 1
    )
    return mix


def _top_products(
    rng: np.random.Generator,
    pipeline_base: float,
    average_deal_size: int,
) -> list[dict[str, Any]]:
    picked = [str(name) for name in rng.permutation(PRODUCTS)[:5]]
    products = []
    for name in picked:
        revenue = int(round(pipeline_base * _uniform(rng, 0.05, 0.3)))
        quantity = (
            int(round(revenue / average_deal_size * _uniform(rng, 0.8, 1.2)))
            if average_deal_size else 0
        )
        products.append({"name": name, "revenue": revenue, "quantity": quantity})
    products.sort(key=lambda p: p["revenue"], reverse=True)
    return products


def generate_sales_data(
    granularity: str,
    count: int,
    rng: np.random.Generator | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate deal flow, pipeline, regional mix and top products.

    Sales carry the strongest Q4 peak and 7-10% growth over the series.

    Args:
        granularity: Reporting granularity.
        count: Number of records.
        rng: NumPy random generator.
        today: Anchor date for the series.

    Returns:
        List of sales records, oldest first.
    """
    rng = _generator(rng)
    base_new_deals = 45
    base_closed_deals = 35
    base_pipeline = 1_500_000
    base_avg_deal_size = 42_000
    multiplier = period_multiplier(granularity)
    var_lo, var_hi = VARIATION_BANDS["sales"]

    records = []
    for _, iso_date, seasonal, progress in _series_frame("sales", granularity, count, today):
        growth = _growth(rng, progress, 0.07, 0.10)
        variation = _uniform(rng, var_lo, var_hi)
        adjusted = multiplier * seasonal * growth * variation

        new_deals = int(round(base_new_deals * adjusted))
        closed_deals = int(round(base_closed_deals * adjusted))
        pipeline = int(round(base_pipeline * adjusted * _uniform(rng, 0.95, 1.05)))
        average_deal_size = int(round(base_avg_deal_size * adjusted * _uniform(rng, 0.97, 1.03)))

        conversion_rate = round(closed_deals / new_deals * 100, 1) if new_deals else 0.0
        sales_cycle = int(round(_uniform(rng, 28, 42)))  # days

        records.append({
            "id": _record_id("sales", iso_date),
            "date": iso_date,
            "new_deals": new_deals,
            "closed_deals": closed_deals,
            "pipeline": pipeline,
            "conversion_rate": conversion_rate,
            "average_deal_size": average_deal_size,
            "sales_cycle": sales_cycle,
            "region_data": _region_mix(rng),
            "top_products": _top_products(rng, base_pipeline * adjusted, average_deal_size),
        })

    logger.debug("Generated sales: %d %s records", len(records), granularity)
    return records


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def generate_operations_data(
    granularity: str,
    count: int,
    rng: np.random.Generator | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate production, inventory, delivery and quality metrics.

    Efficiency improves 3-5% and quality 2-4% over the series while the
    defect rate falls 4-7%. Operations are the least seasonal domain.

    Args:
        granularity: Reporting granularity.
        count: Number of records.
        rng: NumPy random generator.
        today: Anchor date for the series.

    Returns:
        List of operations records, oldest first.
    """
    rng = _generator(rng)
    base_efficiency = 87.0
    base_inventory_level = 450_000
    base_inventory_turnover = 5.2
    base_on_time = 92.0
    base_delivery_time = 3.5
    base_quality = 94.0
    base_defect_rate = 2.8
    base_capacity = 82.0
    base_maintenance = 85_000
    multiplier = period_multiplier(granularity)
    var_lo, var_hi = VARIATION_BANDS["operations"]

    records = []
    for _, iso_date, seasonal, progress in _series_frame("operations", granularity, count, today):
        efficiency_gain = _growth(rng, progress, 0.03, 0.05)
        quality_gain = _growth(rng, progress, 0.02, 0.04)
        defect_drop = _decline(rng, progress, 0.04, 0.07)
        variation = _uniform(rng, var_lo, var_hi)

        cost_multiplier = multiplier * seasonal * variation

        production_efficiency = min(98.0, base_efficiency * efficiency_gain * variation)
        delivery_on_time = min(99.0, base_on_time * efficiency_gain * variation)
        quality_score = min(99.0, base_quality * quality_gain * variation)
        defect_rate = max(0.5, base_defect_rate * defect_drop * variation)
        capacity_utilization = min(95.0, base_capacity * efficiency_gain * variation)

        inventory_turnover = base_inventory_turnover * efficiency_gain * variation
        average_delivery_time = base_delivery_time / efficiency_gain * variation

        records.append({
            "id": _record_id("operations", iso_date),
            "date": iso_date,
            "production_efficiency": round(production_efficiency, 1),
            "inventory_level": int(round(base_inventory_level * cost_multiplier)),
            "inventory_turnover": round(inventory_turnover, 2),
            "delivery_on_time": round(delivery_on_time, 1),
            "average_delivery_time": round(average_delivery_time, 1),
            "quality_score": round(quality_score, 1),
            "defect_rate": round(defect_rate, 1),
            "capacity_utilization": round(capacity_utilization, 1),
            "maintenance_cost": int(round(base_maintenance * cost_multiplier)),
        })

    logger.debug("Generated operations: %d %s records", len(records), granularity)
    return records


# ---------------------------------------------------------------------------
# Customer
# ---------------------------------------------------------------------------

def generate_customer_data(
    granularity: str,
    count: int,
    rng: np.random.Generator | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate satisfaction, churn, lifetime value and support metrics.

    Args:
        granularity: Reporting granularity.
        count: Number of records.
        rng: NumPy random generator.
        today: Anchor date for the series.

    Returns:
        List of customer records, oldest first.
    """
    rng = _generator(rng)
    base_satisfaction = 7.8          # 1-10 scale
    base_nps = 42
    base_churn_rate = 2.2            # % per month
    base_lifetime_value = 24_000
    base_active_customers = 1_250
    base_new_customers = 85
    base_support_tickets = 320
    base_response_time = 6.5         # hours
    base_acquisition_cost = 2_800
    multiplier = period_multiplier(granularity)
    var_lo, var_hi = VARIATION_BANDS["customer"]

    records = []
    for _, iso_date, seasonal, progress in _series_frame("customer", granularity, count, today):
        customers_growth = _growth(rng, progress, 0.06, 0.09)
        satisfaction_gain = _growth(rng, progress, 0.01, 0.03)
        churn_drop = _decline(rng, progress, 0.03, 0.05)
        response_drop = _decline(rng, progress, 0.05, 0.08)
        variation = _uniform(rng, var_lo, var_hi)

        count_multiplier = multiplier * seasonal * customers_growth * variation

        satisfaction_score = min(9.5, base_satisfaction * satisfaction_gain * variation)
        nps = min(70.0, base_nps * satisfaction_gain * variation)
        churn_rate = max(0.8, base_churn_rate * churn_drop * variation)

        lifetime_value = base_lifetime_value * satisfaction_gain / churn_drop * variation
        acquisition_cost = base_acquisition_cost * (1 - progress * 0.02) * variation
        response_time = base_response_time * response_drop * variation

        records.append({
            "id": _record_id("customer", iso_date),
            "date": iso_date,
            "satisfaction_score": round(satisfaction_score, 1),
            "nps": int(round(nps)),
            "churn_rate": round(churn_rate, 1),
            "customer_lifetime_value": int(round(lifetime_value)),
            "active_customers": int(round(base_active_customers * customers_growth * variation)),
            "new_customers": int(round(base_new_customers * count_multiplier)),
            "support_tickets": int(round(base_support_tickets * count_multiplier)),
            "support_response_time": round(response_time, 1),
            "customer_acquisition_cost": int(round(acquisition_cost)),
        })

    logger.debug("Generated customer: %d %s records", len(records), granularity)
    return records


# ---------------------------------------------------------------------------
# Employee
# ---------------------------------------------------------------------------

def _department_headcount(
    rng: np.random.Generator,
    headcount: int,
    headcount_growth: float,
    variation: float,
) -> dict[str, int]:
    """Department split whose values sum exactly to `headcount`."""
    shares = {
        dept: base * headcount_growth * _uniform(rng, *DEPARTMENT_SPREAD[dept]) * variation
        for dept, base in BASE_DEPARTMENTS.items()
    }
    return _split_total(headcount, shares, remainder_key="operations")


def generate_employee_data(
    granularity: str,
    count: int,
    rng: np.random.Generator | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate headcount, hiring, turnover and engagement metrics.

    Headcount is a stock (not scaled by period length); hiring and training
    cost are flows and are scaled. Department headcounts always sum to the
    total headcount.

    Args:
        granularity: Reporting granularity.
        count: Number of records.
        rng: NumPy random generator.
        today: Anchor date for the series.

    Returns:
        List of employee records, oldest first.
    """
    rng = _generator(rng)
    base_headcount = 180
    base_new_hires = 6
    base_turnover_rate = 1.8         # % per month
    base_productivity = 7.4          # out of 10
    base_engagement = 7.2            # out of 10
    base_training_cost = 35_000
    base_tenure = 22                 # months
    multiplier = period_multiplier(granularity)
    var_lo, var_hi = VARIATION_BANDS["employee"]

    records = []
    for _, iso_date, seasonal, progress in _series_frame("employee", granularity, count, today):
        headcount_growth = _growth(rng, progress, 0.05, 0.08)
        productivity_gain = _growth(rng, progress, 0.02, 0.04)
        engagement_gain = _growth(rng, progress, 0.01, 0.03)
        turnover_drop = _decline(rng, progress, 0.02, 0.04)
        variation = _uniform(rng, var_lo, var_hi)

        headcount = int(round(base_headcount * headcount_growth * variation))
        hiring_multiplier = multiplier * seasonal * headcount_growth * variation

        turnover_rate = max(0.9, base_turnover_rate * turnover_drop * variation)
        productivity_score = min(9.0, base_productivity * productivity_gain * variation)
        engagement_score = min(9.0, base_engagement * engagement_gain * variation)

        # Annualised retention derived from the clamped monthly turnover
        retention_rate = 100 - round(turnover_rate, 1) * 12

        training_cost = base_training_cost * multiplier * headcount_growth * variation
        average_tenure = base_tenure * (1 + progress * 0.1) * variation

        records.append({
            "id": _record_id("employee", iso_date),
            "date": iso_date,
            "headcount": headcount,
            "new_hires": int(round(base_new_hires * hiring_multiplier)),
            "turnover_rate": round(turnover_rate, 1),
            "productivity_score": round(productivity_score, 1),
            "engagement_score": round(engagement_score, 1),
            "retention_rate": round(retention_rate, 1),
            "training_cost": int(round(training_cost)),
            "average_tenure": round(average_tenure, 1),
            "department_data": _department_headcount(rng, headcount, headcount_growth, variation),
        })

    logger.debug("Generated employee: %d %s records", len(records), granularity)
    return records


SYNTHESIZERS: dict[str, Callable[..., list[dict[str, Any]]]] = {
    "financial":  generate_financial_data,
    "sales":      generate_sales_data,
    "operations": generate_operations_data,
    "customer":   generate_customer_data,
    "employee":   generate_employee_data,
}


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

@dataclass
class DashboardDataset:
    """All pre-generated series plus the seeded reference records."""
    financial: dict[str, list[dict]] = field(default_factory=dict)
    sales: dict[str, list[dict]] = field(default_factory=dict)
    operations: dict[str, list[dict]] = field(default_factory=dict)
    customer: dict[str, list[dict]] = field(default_factory=dict)
    employee: dict[str, list[dict]] = field(default_factory=dict)
    notifications: list[dict] = field(default_factory=list)
    users: list[dict] = field(default_factory=list)
    settings: list[dict] = field(default_factory=list)

    def series(self, domain: str, granularity: str) -> list[dict]:
        return getattr(self, domain)[granularity]

    def record_count(self) -> int:
        series_total = sum(
            len(records)
            for domain in DOMAINS
            for records in getattr(self, domain).values()
        )
        return series_total + len(self.notifications) + len(self.users) + len(self.settings)


def generate_initial_data(
    series_counts: dict[str, int],
    rng: np.random.Generator | None = None,
    today: date | None = None,
    now: datetime | None = None,
) -> DashboardDataset:
    """Generate every domain at every granularity plus the seeded records.

    Args:
        series_counts: Number of records per granularity.
        rng: NumPy random generator shared across all series.
        today: Anchor date for every series.
        now: Anchor instant for notification timestamps.

    Returns:
        A fully populated DashboardDataset.
    """
    rng = _generator(rng)
    dataset = DashboardDataset()

    for domain in DOMAINS:
        synthesize = SYNTHESIZERS[domain]
        setattr(dataset, domain, {
            granularity: synthesize(granularity, series_counts[granularity], rng, today)
            for granularity in GRANULARITIES
        })

    dataset.notifications = generate_notifications(now)
    dataset.users = default_users()
    dataset.settings = default_user_settings(dataset.users)

    logger.info(
        "Generated dashboard dataset: %d records across %d domains x %d granularities",
        dataset.record_count(), len(DOMAINS), len(GRANULARITIES),
    )
    return dataset
