"""
service.py — Simulated Remote Data Service.

Wraps the CollectionStore in an API shaped like a remote service so callers
exercise their loading and error-handling paths:

    fetch / fetch_one  — uniform random delay (default 300-800 ms), never fail
    update             — shorter delay (default 300-600 ms); fails with
                         SimulatedTransientFailure at a fixed rate (default 5%)
                         before the store is touched

No retries and no idempotency tokens: one successful update() is exactly one
store write, and a retry after a failure is a brand-new call.
"""

import asyncio
import logging
from typing import Any

import numpy as np

from execview.exceptions import SimulatedTransientFailure
from execview.storage import CollectionStore

logger = logging.getLogger(__name__)


class SimulatedService:
    """Latency- and failure-injecting facade over a CollectionStore."""

    def __init__(
        self,
        store: CollectionStore,
        fetch_delay_ms: tuple[float, float] = (300, 800),
        update_delay_ms: tuple[float, float] = (300, 600),
        failure_rate: float = 0.05,
        rng: np.random.Generator | None = None,
    ) -> None:
        if not 0 <= failure_rate <= 1:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self.store = store
        self.fetch_delay_ms = tuple(fetch_delay_ms)
        self.update_delay_ms = tuple(update_delay_ms)
        self.failure_rate = failure_rate
        self._rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def from_config(
        cls,
        store: CollectionStore,
        cfg: dict[str, Any],
        rng: np.random.Generator | None = None,
    ) -> "SimulatedService":
        svc = cfg["service"]
        return cls(
            store,
            fetch_delay_ms=tuple(svc["fetch_delay_ms"]),
            update_delay_ms=tuple(svc["update_delay_ms"]),
            failure_rate=float(svc["failure_rate"]),
            rng=rng,
        )

    async def _delay(self, band: tuple[float, float]) -> None:
        lo, hi = band
        delay_ms = float(self._rng.uniform(lo, hi)) if hi > lo else float(lo)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    async def fetch(self, collection: str) -> list[dict[str, Any]]:
        """Return every record of a collection after a simulated round-trip."""
        await self._delay(self.fetch_delay_ms)
        return await self.store.get_all(collection)

    async def fetch_one(self, collection: str, record_id: str) -> dict[str, Any] | None:
        await self._delay(self.fetch_delay_ms)
        return await self.store.get_by_id(collection, record_id)

    async def update(self, collection: str, record: dict[str, Any]) -> None:
        """Upsert one record after a simulated round-trip.

        Raises:
            SimulatedTransientFailure: Injected failure; the store is untouched.
        """
        failed = float(self._rng.random()) < self.failure_rate
        await self._delay(self.update_delay_ms)
        if failed:
            logger.warning("Simulated API failure updating %s/%s", collection, record.get("id"))
            raise SimulatedTransientFailure("Simulated API failure")
        await self.store.put(collection, record)
