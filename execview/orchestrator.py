"""
orchestrator.py — Dashboard Dataset Orchestrator.

Owns the lifecycle of one dashboard dataset on top of an explicitly passed
CollectionStore and SimulatedService:

    UNINITIALIZED --ensure_initialized()--> READY
    READY: load(granularity) | mark_read(id) | reset()

Boundary contract for presentation collaborators:

    get_dataset(granularity)      -> DashboardSnapshot
    mark_notification_read(id)    -> OperationResult
    reset_dataset()               -> OperationResult
    export_collection(name)       -> CSV text
    export_summary(domain)        -> CSV text
    summarize()                   -> DashboardSummary

The boundary methods never raise ExecViewError: failures come back as an
OperationResult carrying a generic, non-technical message.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import numpy as np

from execview.data_simulator import DOMAINS, DashboardDataset, generate_initial_data
from execview.exceptions import ExecViewError, TransactionFailed
from execview.export import to_delimited_text
from execview.metrics import DashboardSummary, headline, summarize, summarize_domain
from execview.periods import DEFAULT_GRANULARITY, GRANULARITIES, validate_granularity
from execview.seed_data import iso_instant
from execview.service import SimulatedService
from execview.storage import CollectionStore, series_collection

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"
USERS = "users"
SETTINGS = "settings"


class State(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass
class OperationResult:
    """Typed outcome of a boundary mutation."""
    ok: bool
    message: str = ""
    error: str | None = None     # exception class name on failure

    @classmethod
    def success(cls, message: str = "") -> "OperationResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, exc: ExecViewError) -> "OperationResult":
        return cls(ok=False, message=exc.user_message, error=type(exc).__name__)


@dataclass
class DashboardSnapshot:
    """A private, in-memory copy of one granularity of the dataset."""
    granularity: str
    financial: list[dict] = field(default_factory=list)
    sales: list[dict] = field(default_factory=list)
    operations: list[dict] = field(default_factory=list)
    customer: list[dict] = field(default_factory=list)
    employee: list[dict] = field(default_factory=list)
    notifications: list[dict] = field(default_factory=list)
    last_updated: str | None = None

    def collection(self, name: str) -> list[dict]:
        if name not in (*DOMAINS, NOTIFICATIONS):
            raise ValueError(f"Snapshot has no collection {name!r}")
        return getattr(self, name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "financial": self.financial,
            "sales": self.sales,
            "operations": self.operations,
            "customer": self.customer,
            "employee": self.employee,
            "notifications": self.notifications,
            "last_updated": self.last_updated,
        }


def dataset_collections(dataset: DashboardDataset, include_reference: bool) -> dict[str, list[dict]]:
    """Map a generated dataset onto store collection names.

    Args:
        dataset: Generated dataset.
        include_reference: Whether users/settings are included (first run only).
    """
    data = {
        series_collection(domain, granularity): dataset.series(domain, granularity)
        for domain in DOMAINS
        for granularity in GRANULARITIES
    }
    data[NOTIFICATIONS] = dataset.notifications
    if include_reference:
        data[USERS] = dataset.users
        data[SETTINGS] = dataset.settings
    return data


class DashboardOrchestrator:
    """Initialises, serves, mutates and resets one dashboard dataset."""

    def __init__(
        self,
        store: CollectionStore,
        service: SimulatedService,
        series_counts: dict[str, int],
        rng: np.random.Generator | None = None,
        today: date | None = None,
    ) -> None:
        self.store = store
        self.service = service
        self.series_counts = dict(series_counts)
        self._rng = rng if rng is not None else np.random.default_rng()
        self._today = today
        self.state = State.UNINITIALIZED
        self.snapshot: DashboardSnapshot | None = None

    @classmethod
    def from_config(cls, cfg: dict[str, Any], store: CollectionStore | None = None) -> "DashboardOrchestrator":
        """Build store, service and orchestrator from a configuration dict."""
        store = store or CollectionStore(cfg["storage"]["database_path"])
        seed = cfg["data_generation"]["seed"]
        rng = np.random.default_rng(seed)
        service = SimulatedService.from_config(store, cfg, rng=rng.spawn(1)[0])
        return cls(store, service, cfg["data_generation"]["series_counts"], rng=rng)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _generate(self) -> DashboardDataset:
        return generate_initial_data(self.series_counts, rng=self._rng, today=self._today)

    async def ensure_initialized(self) -> bool:
        """Open the store and seed it on first run.

        Returns:
            True if data was generated, False if existing data was kept.
        """
        await self.store.open()

        if await self.store.count(series_collection("financial")) > 0:
            logger.info("Data already exists in the database")
            self.state = State.READY
            return False

        logger.info("No existing data found. Initializing with generated data...")
        dataset = self._generate()
        await self.store.bulk_replace_many(dataset_collections(dataset, include_reference=True))
        self.state = State.READY
        logger.info("Generated data initialized successfully (%d records)", dataset.record_count())
        return True

    async def load(self, granularity: str = DEFAULT_GRANULARITY) -> DashboardSnapshot:
        """Fetch the five domain series at `granularity` plus notifications."""
        validate_granularity(granularity)
        if self.state is not State.READY:
            await self.ensure_initialized()

        snapshot = DashboardSnapshot(granularity=granularity)
        for domain in DOMAINS:
            setattr(snapshot, domain, await self.service.fetch(series_collection(domain, granularity)))
        snapshot.notifications = await self.service.fetch(NOTIFICATIONS)
        snapshot.last_updated = iso_instant(datetime.now(timezone.utc))

        self.snapshot = snapshot
        logger.info(
            "Loaded %s dataset: %d periods, %d notifications",
            granularity, len(snapshot.financial), len(snapshot.notifications),
        )
        return snapshot

    async def mark_read(self, notification_id: str) -> dict[str, Any] | None:
        """Persist read=True for one notification.

        The in-memory snapshot only changes after the update succeeded.

        Returns:
            The updated notification, or None when no notification has that
            id (nothing is written).

        Raises:
            SimulatedTransientFailure: Injected service failure; nothing written.
        """
        notification = await self.store.get_by_id(NOTIFICATIONS, notification_id)
        if notification is None:
            logger.info("Notification %s not found; nothing to mark", notification_id)
            return None

        updated = {**notification, "read": True}
        await self.service.update(NOTIFICATIONS, updated)

        if self.snapshot is not None:
            self.snapshot.notifications = [
                dict(updated) if n["id"] == notification_id else n
                for n in self.snapshot.notifications
            ]
        return updated

    async def reset(self) -> DashboardSnapshot:
        """Regenerate every domain series and the notifications; keep users/settings."""
        logger.info("Resetting all data to initial state...")
        await self.store.open()
        dataset = self._generate()
        await self.store.bulk_replace_many(dataset_collections(dataset, include_reference=False))
        self.state = State.READY
        logger.info("Data reset completed successfully")

        granularity = self.snapshot.granularity if self.snapshot else DEFAULT_GRANULARITY
        return await self.load(granularity)

    # ------------------------------------------------------------------
    # Boundary contract
    # ------------------------------------------------------------------

    async def get_dataset(self, granularity: str = DEFAULT_GRANULARITY) -> DashboardSnapshot:
        return copy.deepcopy(await self.load(granularity))

    async def mark_notification_read(self, notification_id: str) -> OperationResult:
        try:
            updated = await self.mark_read(notification_id)
        except ExecViewError as exc:
            logger.error("Failed to mark notification %s as read: %s", notification_id, exc)
            return OperationResult.failure(exc)
        if updated is None:
            return OperationResult.success("Notification not found")
        return OperationResult.success("Notification marked as read")

    async def reset_dataset(self) -> OperationResult:
        try:
            await self.reset()
        except ExecViewError as exc:
            logger.error(
                "Failed to reset data: %s", exc,
                exc_info=isinstance(exc, TransactionFailed),
            )
            return OperationResult.failure(exc)
        return OperationResult.success("Dashboard data reset")

    def _current_snapshot(self) -> DashboardSnapshot:
        if self.snapshot is None:
            raise RuntimeError("No dataset loaded; call load() first")
        return self.snapshot

    def export_collection(self, collection: str) -> str:
        """CSV text of one collection of the current in-memory snapshot."""
        records = self._current_snapshot().collection(collection)
        logger.debug("Exporting %s: %d records", collection, len(records))
        return to_delimited_text(records)

    def export_summary(self, domain: str) -> str:
        """CSV text of one domain's headline KPIs (a single row)."""
        snapshot = self._current_snapshot()
        domain_summary = summarize_domain(domain, snapshot.collection(domain))
        if domain_summary is None:
            return ""
        return to_delimited_text(headline(domain_summary))

    def summarize(self) -> DashboardSummary:
        snapshot = self._current_snapshot()
        return summarize(
            {domain: snapshot.collection(domain) for domain in DOMAINS},
            snapshot.notifications,
            snapshot.granularity,
            snapshot.last_updated,
        )
