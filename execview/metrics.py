"""
metrics.py — KPI Summary Engine.

Turns a dashboard snapshot (raw metric series) into headline KPIs for the
most recent period plus the previous-period comparator.

Returns a structured `DashboardSummary` dataclass consumed by the CLI and by
summary exports.

KPIs computed:
    Financial:   Revenue, Expenses, Profit Margin, Cash Flow, expense mix
    Sales:       Pipeline, Conversion Rate, Average Deal Size, regional mix, top products
    Operations:  Production Efficiency, Inventory, On-time Delivery, Quality
    Customer:    Satisfaction, Churn, Lifetime Value, Ticket Volume
    Employee:    Headcount, Productivity, Engagement, Retention, department split
    Trend:       up / down / neutral from the period-on-period change
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class MetricWithTrend:
    """A KPI value with its previous-period comparator."""
    id: str
    name: str
    value: float
    previous_value: float
    change_percentage: float
    trend: str        # 'up', 'down', 'neutral'
    format: str | None = None


@dataclass
class FinancialSummary:
    period: str
    revenue: MetricWithTrend
    expenses: MetricWithTrend
    profit_margin: MetricWithTrend
    cash_flow: MetricWithTrend
    expenses_by_category: dict = field(default_factory=dict)
    revenue_trend: list = field(default_factory=list)


@dataclass
class SalesSummary:
    period: str
    pipeline: MetricWithTrend
    conversion_rate: MetricWithTrend
    average_deal_size: MetricWithTrend
    sales_by_region: dict = field(default_factory=dict)
    top_products: list = field(default_factory=list)
    pipeline_trend: list = field(default_factory=list)


@dataclass
class OperationsSummary:
    period: str
    production_efficiency: MetricWithTrend
    inventory_level: MetricWithTrend
    delivery_performance: MetricWithTrend
    quality_score: MetricWithTrend
    inventory_trend: list = field(default_factory=list)


@dataclass
class CustomerSummary:
    period: str
    satisfaction_score: MetricWithTrend
    churn_rate: MetricWithTrend
    lifetime_value: MetricWithTrend
    ticket_volume: MetricWithTrend
    satisfaction_trend: list = field(default_factory=list)


@dataclass
class EmployeeSummary:
    period: str
    headcount: MetricWithTrend
    productivity: MetricWithTrend
    engagement_score: MetricWithTrend
    retention_rate: MetricWithTrend
    headcount_by_department: dict = field(default_factory=dict)
    engagement_trend: list = field(default_factory=list)


@dataclass
class DashboardSummary:
    """Headline KPIs for every domain of one snapshot."""
    granularity: str
    last_updated: str | None
    financial: FinancialSummary | None
    sales: SalesSummary | None
    operations: OperationsSummary | None
    customer: CustomerSummary | None
    employee: EmployeeSummary | None
    unread_notifications: int = 0


DomainSummary = FinancialSummary | SalesSummary | OperationsSummary | CustomerSummary | EmployeeSummary


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def calculate_percent_change(current: float, previous: float) -> float:
    """Period-on-period change in percent, one decimal; 0 when previous is 0."""
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def determine_trend(change_percentage: float) -> str:
    if change_percentage > 0:
        return "up"
    if change_percentage < 0:
        return "down"
    return "neutral"


def _native(value: Any) -> Any:
    return value.item() if hasattr(value, "item") else value


def _frame(records: list[dict]) -> pd.DataFrame:
    df = pd.DataFrame(records)
    df["date"] = pd.to_datetime(df["date"])
    return df.sort_values("date").reset_index(drop=True)


def _metric(
    df: pd.DataFrame,
    column: str,
    name: str,
    fmt: str | None = None,
) -> MetricWithTrend:
    """Latest value of `column` against the one before it."""
    current = _native(df[column].iloc[-1])
    previous = _native(df[column].iloc[-2]) if len(df) > 1 else current
    change = calculate_percent_change(current, previous)
    return MetricWithTrend(
        id=column,
        name=name,
        value=current,
        previous_value=previous,
        change_percentage=change,
        trend=determine_trend(change),
        format=fmt,
    )


def _chart(df: pd.DataFrame, column: str) -> list[dict]:
    return [
        {"date": day.strftime("%Y-%m-%d"), "value": _native(value)}
        for day, value in zip(df["date"], df[column])
    ]


def _period(df: pd.DataFrame) -> str:
    return df["date"].iloc[-1].strftime("%Y-%m-%d")


# ---------------------------------------------------------------------------
# KPI calculators
# ---------------------------------------------------------------------------

def _calc_financial(df: pd.DataFrame) -> FinancialSummary:
    latest = df.iloc[-1]
    categories = ["operating_costs", "marketing_costs", "rd_costs", "admin_costs"]
    return FinancialSummary(
        period=_period(df),
        revenue=_metric(df, "revenue", "Revenue", "currency"),
        expenses=_metric(df, "expenses", "Expenses", "currency"),
        profit_margin=_metric(df, "profit_margin", "Profit Margin", "percentage"),
        cash_flow=_metric(df, "cash_flow", "Cash Flow", "currency"),
        expenses_by_category={c: _native(latest[c]) for c in categories},
        revenue_trend=_chart(df, "revenue"),
    )


def _calc_sales(df: pd.DataFrame) -> SalesSummary:
    latest = df.iloc[-1]
    return SalesSummary(
        period=_period(df),
        pipeline=_metric(df, "pipeline", "Sales Pipeline", "currency"),
        conversion_rate=_metric(df, "conversion_rate", "Conversion Rate", "percentage"),
        average_deal_size=_metric(df, "average_deal_size", "Average Deal Size", "currency"),
        sales_by_region=dict(latest["region_data"]),
        top_products=list(latest["top_products"]),
        pipeline_trend=_chart(df, "pipeline"),
    )


def _calc_operations(df: pd.DataFrame) -> OperationsSummary:
    return OperationsSummary(
        period=_period(df),
        production_efficiency=_metric(df, "production_efficiency", "Production Efficiency", "percentage"),
        inventory_level=_metric(df, "inventory_level", "Inventory Level", "currency"),
        delivery_performance=_metric(df, "delivery_on_time", "On-time Delivery", "percentage"),
        quality_score=_metric(df, "quality_score", "Quality Score", "percentage"),
        inventory_trend=_chart(df, "inventory_level"),
    )


def _calc_customer(df: pd.DataFrame) -> CustomerSummary:
    return CustomerSummary(
        period=_period(df),
        satisfaction_score=_metric(df, "satisfaction_score", "Satisfaction Score"),
        churn_rate=_metric(df, "churn_rate", "Churn Rate", "percentage"),
        lifetime_value=_metric(df, "customer_lifetime_value", "Customer Lifetime Value", "currency"),
        ticket_volume=_metric(df, "support_tickets", "Support Tickets"),
        satisfaction_trend=_chart(df, "satisfaction_score"),
    )


def _calc_employee(df: pd.DataFrame) -> EmployeeSummary:
    latest = df.iloc[-1]
    return EmployeeSummary(
        period=_period(df),
        headcount=_metric(df, "headcount", "Headcount"),
        productivity=_metric(df, "productivity_score", "Productivity"),
        engagement_score=_metric(df, "engagement_score", "Engagement Score"),
        retention_rate=_metric(df, "retention_rate", "Retention Rate", "percentage"),
        headcount_by_department=dict(latest["department_data"]),
        engagement_trend=_chart(df, "engagement_score"),
    )


_CALCULATORS = {
    "financial":  _calc_financial,
    "sales":      _calc_sales,
    "operations": _calc_operations,
    "customer":   _calc_customer,
    "employee":   _calc_employee,
}


def summarize_domain(domain: str, records: list[dict]) -> DomainSummary | None:
    """Summarise one domain series; None for an empty series."""
    if not records:
        return None
    return _CALCULATORS[domain](_frame(records))


def summarize(
    series: dict[str, list[dict]],
    notifications: list[dict],
    granularity: str,
    last_updated: str | None = None,
) -> DashboardSummary:
    """Compute the full dashboard summary.

    Args:
        series: Domain name -> records for one granularity.
        notifications: Current notification feed.
        granularity: Granularity of `series`.
        last_updated: Snapshot timestamp.

    Returns:
        DashboardSummary with one summary per domain (None where empty).
    """
    summaries = {
        domain: summarize_domain(domain, series.get(domain, []))
        for domain in _CALCULATORS
    }
    summary = DashboardSummary(
        granularity=granularity,
        last_updated=last_updated,
        unread_notifications=sum(1 for n in notifications if not n.get("read")),
        **summaries,
    )

    if summary.financial:
        logger.info(
            "Summary (%s, %s) -- Revenue: $%.0f (%+.1f%%) | Margin: %.1f%% | Unread alerts: %d",
            granularity,
            summary.financial.period,
            summary.financial.revenue.value,
            summary.financial.revenue.change_percentage,
            summary.financial.profit_margin.value,
            summary.unread_notifications,
        )
    return summary


def headline(domain_summary: DomainSummary) -> dict[str, Any]:
    """Flatten a domain summary into one row of scalar KPI values.

    Each MetricWithTrend contributes `<field>` and `<field>_change_pct`;
    dict breakdowns contribute one column per key.
    """
    row: dict[str, Any] = {}
    for f in fields(domain_summary):
        value = getattr(domain_summary, f.name)
        if isinstance(value, MetricWithTrend):
            row[f.name] = value.value
            row[f"{f.name}_change_pct"] = value.change_percentage
        elif isinstance(value, dict):
            row.update(value)
        elif isinstance(value, list):
            continue
        else:
            row[f.name] = value
    return row
