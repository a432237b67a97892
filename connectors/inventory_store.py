"""
Module: connectors.inventory_store

Inventory-store contract consumed by the expiry automation runners, plus an
in-memory implementation used for tests, demos and local development.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Protocol, runtime_checkable

from models.batch import MedicineBatch, days_until_expiry

logger = logging.getLogger(__name__)


@runtime_checkable
class InventoryStore(Protocol):
    """Batch queries and the single promotion mutation the engine relies on."""

    async def get_expiring_batches(self, max_days: int) -> list[MedicineBatch]:
        """Non-expired, non-promotional batches expiring within [0, max_days] days, earliest first."""
        ...

    async def get_rotation_needed_batches(
        self, min_days: int, max_days: int
    ) -> list[MedicineBatch]:
        """Batches expiring within [min_days, max_days] days, earliest first."""
        ...

    async def update_batch_for_promotion(
        self, batch_id: str, *, is_promotional: bool, selling_price: Decimal
    ) -> MedicineBatch | None:
        """Persist the promotion flag and price; None when the batch no longer exists."""
        ...


def check_window(min_days: int, max_days: int) -> None:
    if min_days < 0:
        raise ValueError(f"min_days must be >= 0, got {min_days}")
    if max_days < min_days:
        raise ValueError(f"Empty expiry window [{min_days}, {max_days}]")


def fefo_order(batches: Iterable[MedicineBatch]) -> list[MedicineBatch]:
    """First-expiry-first-out order; ties broken by store id so repeated queries agree."""
    return sorted(batches, key=lambda b: (b.expiry_date, b.id))


def local_today(tz: tzinfo | None = None) -> date:
    return datetime.now(tz).date()


class InMemoryInventoryStore:
    """
    List-backed inventory store.
    Queries return copies, so callers never mutate stored state outside
    update_batch_for_promotion.
    """

    def __init__(
        self,
        batches: Iterable[MedicineBatch] = (),
        *,
        timezone: tzinfo | None = None,
        today: Callable[[], date] | None = None,
    ):
        self._batches: dict[str, MedicineBatch] = {}
        self._today = today or (lambda: local_today(timezone))
        for batch in batches:
            self.add_batch(batch)

    def add_batch(self, batch: MedicineBatch) -> None:
        if batch.id in self._batches:
            raise ValueError(f"Duplicate batch id: {batch.id}")
        self._batches[batch.id] = batch.model_copy()

    def get_batch(self, batch_id: str) -> MedicineBatch | None:
        batch = self._batches.get(batch_id)
        return batch.model_copy() if batch else None

    def all_batches(self) -> list[MedicineBatch]:
        return [b.model_copy() for b in fefo_order(self._batches.values())]

    def _in_window(self, min_days: int, max_days: int) -> list[MedicineBatch]:
        today = self._today()
        selected = [
            b
            for b in self._batches.values()
            if min_days <= days_until_expiry(b.expiry_date, today) <= max_days
        ]
        return [b.model_copy() for b in fefo_order(selected)]

    async def get_expiring_batches(self, max_days: int) -> list[MedicineBatch]:
        check_window(0, max_days)
        await asyncio.sleep(0)
        return [b for b in self._in_window(0, max_days) if not b.is_promotional]

    async def get_rotation_needed_batches(
        self, min_days: int, max_days: int
    ) -> list[MedicineBatch]:
        check_window(min_days, max_days)
        await asyncio.sleep(0)
        return self._in_window(min_days, max_days)

    async def update_batch_for_promotion(
        self, batch_id: str, *, is_promotional: bool, selling_price: Decimal
    ) -> MedicineBatch | None:
        await asyncio.sleep(0)
        current = self._batches.get(batch_id)
        if current is None:
            logger.warning(f"Promotion update for unknown batch id {batch_id}")
            return None
        updated = current.model_copy(
            update={"is_promotional": is_promotional, "selling_price": Decimal(selling_price)}
        )
        self._batches[batch_id] = updated
        return updated.model_copy()


def seed_demo_batches(today: date) -> list[MedicineBatch]:
    """Sample stock covering every tier, relative to ``today``."""

    def batch(id_, gtin, batch_id, name, days, stock, cost, price, location):
        return MedicineBatch(
            id=id_,
            gtin=gtin,
            batch_id=batch_id,
            medicine_name=name,
            expiry_date=today + timedelta(days=days),
            stock_count=stock,
            cost_price=Decimal(cost),
            selling_price=Decimal(price),
            location=location,
        )

    return [
        batch("batch_001", "67890123456789", "EXP001", "Expired Med A", -10, 50, 80, 100, "Shelf C-1"),
        batch("batch_002", "78901234567890", "NEAR_EXP002", "Amlodipine 5mg", 30, 120, 150, 180, "Shelf B-4"),
        batch("batch_003", "89012345678901", "GOOD_EXP003", "Metformin 500mg", 90, 300, 50, 60, "Shelf A-1"),
        batch("batch_004", "90123456789012", "NEAR_EXP004", "Paracetamol 500mg", 45, 500, 20, 25, "Shelf D-8"),
        batch("batch_005", "12345678901234", "ROTATE_ME_005", "Lisinopril 10mg", 75, 250, 90, 110, "Shelf F-2"),
    ]
