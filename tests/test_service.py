"""
test_service.py — Unit tests for the simulated remote data service.

Tests cover:
    - Reads always succeed, whatever the failure rate
    - Injected update failures leave the store untouched
    - Observed failure frequency close to the configured rate
    - Construction from config and argument validation
"""

import asyncio
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from execview.config import DEFAULT_CONFIG
from execview.exceptions import SimulatedTransientFailure
from execview.service import SimulatedService
from execview.storage import CollectionStore

NOTIFICATION = {"id": "notif-1", "title": "Cash Flow Alert", "read": False}


def _service(store, failure_rate, seed=0):
    return SimulatedService(
        store,
        fetch_delay_ms=(0, 0),
        update_delay_ms=(0, 0),
        failure_rate=failure_rate,
        rng=np.random.default_rng(seed),
    )


def _run(scenario):
    async def _main():
        store = CollectionStore(":memory:")
        await store.open()
        try:
            return await scenario(store)
        finally:
            await store.close()
    return asyncio.run(_main())


class TestReads:
    """fetch and fetch_one are never subject to failure injection."""

    def test_fetch_succeeds_at_full_failure_rate(self):
        async def scenario(store):
            await store.bulk_replace("notifications", [NOTIFICATION])
            service = _service(store, failure_rate=1.0)
            return (
                await service.fetch("notifications"),
                await service.fetch_one("notifications", "notif-1"),
                await service.fetch_one("notifications", "missing"),
            )

        records, one, missing = _run(scenario)
        assert records == [NOTIFICATION]
        assert one == NOTIFICATION
        assert missing is None

    def test_fetch_applies_delay(self):
        async def scenario(store):
            service = SimulatedService(store, fetch_delay_ms=(20, 30), failure_rate=0.0)
            loop = asyncio.get_running_loop()
            start = loop.time()
            await service.fetch("users")
            return loop.time() - start

        assert _run(scenario) >= 0.015


class TestUpdates:
    """update() writes through or fails before touching the store."""

    def test_successful_update_writes_record(self):
        async def scenario(store):
            await store.bulk_replace("notifications", [NOTIFICATION])
            await _service(store, failure_rate=0.0).update("notifications", {**NOTIFICATION, "read": True})
            return await store.get_by_id("notifications", "notif-1")

        assert _run(scenario)["read"] is True

    def test_failed_update_leaves_store_untouched(self):
        async def scenario(store):
            await store.bulk_replace("notifications", [NOTIFICATION])
            service = _service(store, failure_rate=1.0)
            with pytest.raises(SimulatedTransientFailure):
                await service.update("notifications", {**NOTIFICATION, "read": True})
            return await store.get_all("notifications")

        assert _run(scenario) == [NOTIFICATION]

    def test_failure_frequency_tracks_rate(self):
        async def scenario(store):
            service = _service(store, failure_rate=0.05, seed=7)
            failures = 0
            for i in range(1000):
                try:
                    await service.update("notifications", {"id": f"n-{i}", "read": True})
                except SimulatedTransientFailure:
                    failures += 1
            return failures, await store.count("notifications")

        failures, written = _run(scenario)
        assert 20 <= failures <= 80
        assert written == 1000 - failures


class TestConstruction:
    """Tests for argument validation and from_config."""

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_invalid_failure_rate_rejected(self, rate):
        with pytest.raises(ValueError):
            SimulatedService(CollectionStore(":memory:"), failure_rate=rate)

    def test_from_config_uses_service_section(self):
        service = SimulatedService.from_config(CollectionStore(":memory:"), DEFAULT_CONFIG)
        assert service.fetch_delay_ms == (300, 800)
        assert service.update_delay_ms == (300, 600)
        assert service.failure_rate == pytest.approx(0.05)
