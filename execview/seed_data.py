"""
seed_data.py — Reference records seeded alongside the metric series.

    notifications — the fixed feed of 7 alerts, timestamps relative to "now"
    users         — demo accounts (mock login only, no credentials)
    settings      — one default settings record per user
"""

import json
from datetime import datetime, timedelta, timezone

NOTIFICATION_CATEGORIES = ("financial", "sales", "operations", "customer", "employee", "system")
NOTIFICATION_TYPES = ("info", "success", "warning", "error")

USER_ROLES = ("admin", "executive", "manager", "analyst", "viewer")

_AVATAR = "https://images.unsplash.com/photo-{}?auto=format&fit=crop&w=256&h=256&q=80"

DEFAULT_USERS = [
    {
        "id": "admin",
        "email": "admin@execview.com",
        "name": "Admin User",
        "role": "admin",
        "avatar": _AVATAR.format("1560250097-0b93528c311a"),
        "department": "Executive",
    },
    {
        "id": "executive",
        "email": "exec@execview.com",
        "name": "Jane Executive",
        "role": "executive",
        "avatar": _AVATAR.format("1573496359142-b8d87734a5a2"),
        "department": "C-Suite",
    },
    {
        "id": "manager",
        "email": "manager@execview.com",
        "name": "Mark Manager",
        "role": "manager",
        "avatar": _AVATAR.format("1507003211169-0a1dd7228f2d"),
        "department": "Sales",
    },
    {
        "id": "viewer",
        "email": "viewer@execview.com",
        "name": "Vicky Viewer",
        "role": "viewer",
        "avatar": _AVATAR.format("1580489944761-15a19d654956"),
        "department": "Marketing",
    },
]

DEFAULT_SETTINGS = {
    "theme": "light",
    "dashboard_layout": json.dumps({}),
    "default_time_period": "monthly",
    "notifications_enabled": True,
}

# (id, type, category, read, minutes ago, title, message)
_NOTIFICATIONS = [
    ("notif-1", "warning", "financial", False, 30,
     "Cash Flow Alert",
     "Q3 cash flow projections below target by 12%. Review financial dashboard."),
    ("notif-2", "success", "sales", True, 120,
     "Sales Target Achieved",
     "APAC region has exceeded Q3 sales targets by 8%. Congratulations to the team!"),
    ("notif-3", "info", "customer", False, 60 * 5,
     "New Customer Insights",
     "Customer satisfaction score increased by 0.5 points this month."),
    ("notif-4", "error", "operations", False, 60 * 8,
     "Inventory Alert",
     "Product X inventory levels critically low. Expected stockout in 5 days."),
    ("notif-5", "warning", "employee", True, 60 * 24,
     "Employee Turnover Increase",
     "Engineering department turnover rate increased by 2.5% this month."),
    ("notif-6", "info", "operations", False, 60 * 36,
     "Operations Update",
     "Production efficiency improved by 3% over the last quarter."),
    ("notif-7", "success", "financial", True, 60 * 48,
     "Budget Approval",
     "Q4 marketing budget has been approved."),
]


def iso_instant(moment: datetime) -> str:
    """UTC ISO-8601 instant with millisecond precision, e.g. 2026-10-19T08:30:00.000Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_notifications(now: datetime | None = None) -> list[dict]:
    """Build the fixed notification feed.

    Content and read flags are fixed; only timestamps move with `now`.
    """
    now = now or datetime.now(timezone.utc)
    return [
        {
            "id": notif_id,
            "type": notif_type,
            "title": title,
            "message": message,
            "timestamp": iso_instant(now - timedelta(minutes=minutes_ago)),
            "read": read,
            "category": category,
        }
        for notif_id, notif_type, category, read, minutes_ago, title, message in _NOTIFICATIONS
    ]


def default_users() -> list[dict]:
    return [dict(user) for user in DEFAULT_USERS]


def default_user_settings(users: list[dict]) -> list[dict]:
    return [{"id": user["id"], **DEFAULT_SETTINGS} for user in users]
