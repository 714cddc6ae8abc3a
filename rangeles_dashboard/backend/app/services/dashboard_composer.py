# backend/app/services/dashboard_composer.py
from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Protocol

from ..auth import Identity
from ..config import settings
from ..domain.metrics import (
    RecentPayment,
    occupancy_rate,
    overdue_tenants,
    partition_maintenance,
    recent_feed,
    recent_payments,
)
from .verification_gate import GateState

log = logging.getLogger(__name__)

TENANTS = "tenants"
PAYMENTS = "payments"
UNITS = "units"
MAINTENANCES = "maintenances"
COLLECTIONS = (TENANTS, PAYMENTS, UNITS, MAINTENANCES)


class CollectionSource(Protocol):
    async def fetch_tenants(self) -> list[Any]: ...

    async def fetch_payments(self) -> list[Any]: ...

    async def fetch_units(self) -> list[Any]: ...

    async def fetch_maintenances(self) -> list[Any]: ...


@dataclass(frozen=True)
class DashboardView:
    loading: bool = True
    tenant_count: int = 0
    overdue_tenants: tuple[Any, ...] = ()
    occupancy_rate: int = 0
    recent_payments: tuple[RecentPayment, ...] = ()
    recent_feed: tuple[RecentPayment, ...] = ()
    pending_maintenance: tuple[Any, ...] = ()
    completed_maintenance: tuple[Any, ...] = ()
    identity: Optional[Identity] = None
    gate_state: GateState = GateState.IDLE

    @property
    def overdue_count(self) -> int:
        return len(self.overdue_tenants)


class DashboardComposer:
    """
    Runs the four collection fetchers concurrently and folds each one into an
    immutable DashboardView as it settles.

    - loading stays True until all four collections have settled
    - a settlement only recomputes the metrics that read that collection
    - the payment/tenant join uses whatever tenants have settled so far
      (none -> empty) and is redone when tenants arrive
    - after close() (or cancellation of load()) late results are dropped
    """

    def __init__(
        self,
        source: CollectionSource,
        *,
        now: datetime,
        identity: Optional[Identity] = None,
        gate_state: GateState = GateState.IDLE,
        window_days: Optional[int] = None,
        feed_limit: Optional[int] = None,
        on_update: Optional[Callable[[DashboardView], None]] = None,
    ) -> None:
        self._source = source
        self._now = now
        self._window_days = window_days if window_days is not None else settings.recent_payments_window_days
        self._feed_limit = feed_limit if feed_limit is not None else settings.recent_payments_display_limit
        self._on_update = on_update

        self._collections: dict[str, list[Any]] = {c: [] for c in COLLECTIONS}
        self._settled: set[str] = set()
        self._tasks: list[asyncio.Task] = []
        self._closed = False

        self._view = DashboardView(identity=identity, gate_state=gate_state)

    @property
    def view(self) -> DashboardView:
        return self._view

    @property
    def closed(self) -> bool:
        return self._closed

    def _fetchers(self) -> dict[str, Callable[[], Awaitable[list[Any]]]]:
        return {
            TENANTS: self._source.fetch_tenants,
            PAYMENTS: self._source.fetch_payments,
            UNITS: self._source.fetch_units,
            MAINTENANCES: self._source.fetch_maintenances,
        }

    async def load(self) -> DashboardView:
        if self._closed:
            return self._view

        fetchers = self._fetchers()
        self._tasks = [
            asyncio.create_task(self._run(name, fetch), name=f"dashboard-fetch-{name}")
            for name, fetch in fetchers.items()
        ]
        try:
            # return_exceptions: tasks cancelled by close() must not fail load()
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
        except asyncio.CancelledError:
            self.close()
            raise

        for name, res in zip(fetchers, results):
            if isinstance(res, BaseException) and not isinstance(res, asyncio.CancelledError):
                log.error(
                    "failed to fold %s into the dashboard view",
                    name,
                    exc_info=(type(res), res, res.__traceback__),
                    extra={"collection": name},
                )
        return self._view

    async def _run(self, name: str, fetch: Callable[[], Awaitable[list[Any]]]) -> None:
        try:
            rows = await fetch()
        except asyncio.CancelledError:
            raise
        except Exception:
            # Fetchers are expected to degrade on their own; a source that
            # still raises gets the same empty-collection treatment.
            log.exception("collection fetch raised; using empty collection", extra={"collection": name})
            rows = []
        self.settle(name, rows)

    def settle(self, collection: str, rows: Optional[list[Any]]) -> None:
        if collection not in COLLECTIONS:
            raise ValueError(f"unknown collection: {collection}")
        if self._closed:
            log.debug("dropping late %s result after close", collection, extra={"collection": collection})
            return

        self._collections[collection] = list(rows or [])
        self._settled.add(collection)

        changes = self._recompute(collection)
        changes["loading"] = len(self._settled) < len(COLLECTIONS)
        self._view = dataclasses.replace(self._view, **changes)

        if self._on_update is not None:
            self._on_update(self._view)

    def _recompute(self, collection: str) -> dict[str, Any]:
        if collection == UNITS:
            return {"occupancy_rate": occupancy_rate(self._collections[UNITS])}

        if collection == MAINTENANCES:
            part = partition_maintenance(self._collections[MAINTENANCES])
            return {"pending_maintenance": part.pending, "completed_maintenance": part.completed}

        changes: dict[str, Any] = {}
        if collection == TENANTS:
            tenants = self._collections[TENANTS]
            changes["tenant_count"] = len(tenants)
            changes["overdue_tenants"] = tuple(overdue_tenants(tenants))

        # tenants or payments: redo the join
        recent = recent_payments(
            self._collections[PAYMENTS],
            self._collections[TENANTS],
            now=self._now,
            days=self._window_days,
        )
        changes["recent_payments"] = tuple(recent)
        changes["recent_feed"] = tuple(recent_feed(recent, self._feed_limit))
        return changes

    def close(self) -> None:
        """Abandon in-flight fetches; the view is frozen from here on."""
        if self._closed:
            return
        self._closed = True
        for t in self._tasks:
            if not t.done():
                t.cancel()
