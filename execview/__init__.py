"""
execview-core — Source package.

Modules:
    periods         — Date sequences and period multipliers per granularity
    data_simulator  — Five-domain synthetic metric series (financial, sales, operations, customer, employee)
    seed_data       — Notifications, users and settings seeded with the dataset
    storage         — Versioned aiosqlite collection store + scalar preference store
    service         — Simulated remote service (latency + transient failures)
    orchestrator    — Dataset lifecycle: initialise, load, mark-read, reset, export
    metrics         — Latest-vs-previous KPI summaries per domain
    export          — Delimited-text (CSV) export of snapshots and summaries
    session         — Mock login session, theme and settings helpers
"""

__version__ = "1.0.0"
