"""
Expiry automation runners.

Two independent daily workflows over the pharmacy's medicine batches:

* FlashSaleRunner: batches expiring within the flash-sale window are marked
  promotional at a capped discount, listed on the nearby-pharmacy map and
  handed to the pharmacist for front-shelf placement.
* StockRotationRunner: batches in the rotation window get a FEFO rotation
  task for the pharmacist. Prices are left untouched.

Batches are processed one at a time in the order the store returns them
(earliest expiry first). Failures are contained at the run boundary (candidate
query) or the batch boundary (mutation, listing, task) and only ever logged.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime

from agents.pricing import compute_promotional_price, discount_amount
from config.config import ExpiryAutomationConfig
from connectors.inventory_store import InventoryStore
from connectors.notifications import NotificationDispatcher, describe_error
from models.automation import RunSummary
from models.batch import MedicineBatch
from models.enums import AutomationRule, NotificationChannel
from models.notifications import ListingDeal, ListingPayload

logger = logging.getLogger(__name__)


class ExpiryAutomationRunner(ABC):
    """Run skeleton shared by both rules: overlap guard, deadline, logging, summary."""

    rule: AutomationRule
    title: str = "Expiry Automation"

    def __init__(
        self,
        store: InventoryStore,
        dispatcher: NotificationDispatcher,
        config: ExpiryAutomationConfig,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.config = config
        self._running = False
        self.last_summary: RunSummary | None = None

    @property
    def name(self) -> str:
        return self.rule.value

    @property
    def is_running(self) -> bool:
        return self._running

    def _now(self) -> datetime:
        return datetime.now(self.config.tzinfo)

    @abstractmethod
    async def fetch_candidates(self) -> list[MedicineBatch]:
        """Query the store for this rule's batches, earliest expiry first."""

    @abstractmethod
    async def process_batch(
        self, batch: MedicineBatch, summary: RunSummary, deadline: float
    ) -> None:
        """Apply the rule to one batch, recording outcomes on ``summary``."""

    async def run(self) -> RunSummary:
        """Execute one invocation of the rule. Never raises for store or channel failures."""
        summary = RunSummary(rule=self.name, started_at=self._now())
        # The flag is checked and set without an await in between, so two
        # invocations on the same loop cannot both pass.
        if self._running:
            logger.warning(f"{self.title} is still running; skipping overlapping invocation")
            summary.skipped = True
            summary.finished_at = self._now()
            return summary

        self._running = True
        try:
            await self._execute(summary)
        finally:
            self._running = False
            summary.finished_at = self._now()
            self.last_summary = summary
        return summary

    def _call_timeout(self, deadline: float) -> float:
        remaining = deadline - asyncio.get_running_loop().time()
        return max(0.0, min(self.config.call_timeout_seconds, remaining))

    async def _execute(self, summary: RunSummary) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.run_deadline_seconds
        logger.info(f"[{summary.started_at.isoformat()}] Running {self.title} job...")

        try:
            batches = await asyncio.wait_for(
                self.fetch_candidates(), timeout=self._call_timeout(deadline)
            )
        except Exception as e:
            summary.aborted = True
            summary.abort_reason = f"candidate query failed: {describe_error(e)}"
            logger.error(f"Error during {self.title} job: candidate query failed", exc_info=True)
            return

        summary.candidates = len(batches)
        if not batches:
            logger.info(f"No batches found for {self.title}. Job finished.")
            return

        logger.info(f"Found {len(batches)} batches for {self.title}. Processing...")
        for index, batch in enumerate(batches):
            if loop.time() >= deadline:
                left = len(batches) - index
                summary.aborted = True
                summary.abort_reason = f"run deadline exceeded with {left} batches left"
                logger.error(
                    f"{self.title} exceeded its {self.config.run_deadline_seconds}s deadline; "
                    f"abandoning {left} remaining batches"
                )
                break
            try:
                await self.process_batch(batch, summary, deadline)
            except Exception:
                summary.batch_errors += 1
                logger.error(
                    f"Unexpected error while processing batch {batch.describe()}", exc_info=True
                )
            summary.processed += 1

        if summary.aborted:
            logger.warning(f"{self.title} job stopped early: {summary.describe()}")
        else:
            logger.info(f"{self.title} job finished successfully: {summary.describe()}")

    async def _notify_pharmacist(
        self, batch: MedicineBatch, message: str, summary: RunSummary, deadline: float
    ) -> bool:
        result = await self.dispatcher.send_pharmacist_task(
            self.config.pharmacist_id, message, timeout=self._call_timeout(deadline)
        )
        if result.success:
            summary.tasks_sent += 1
            return True
        summary.notification_failures += 1
        logger.warning(
            f"Pharmacist task not delivered for batch {batch.describe()} "
            f"via '{NotificationChannel.PHARMACIST_TASK.value}': {result.error}"
        )
        return False


class FlashSaleRunner(ExpiryAutomationRunner):
    rule = AutomationRule.FLASH_SALE
    title = "Flash Sale Automation"

    async def fetch_candidates(self) -> list[MedicineBatch]:
        return await self.store.get_expiring_batches(self.config.flash_sale_max_days)

    @staticmethod
    def task_message(batch: MedicineBatch) -> str:
        return (
            "Task: Move medicine batch to the front shelf for the flash sale. "
            f"Details: {batch.medicine_name}, Batch ID: {batch.batch_id}, Location: {batch.location}."
        )

    def listing_for(self, batch: MedicineBatch, sale_price) -> ListingPayload:
        return ListingPayload(
            gtin=batch.gtin,
            pharmacy_id=self.config.pharmacy_id,
            deal=ListingDeal(
                original_price=batch.selling_price,
                sale_price=sale_price,
                expiry=batch.expiry_date,
            ),
        )

    async def process_batch(
        self, batch: MedicineBatch, summary: RunSummary, deadline: float
    ) -> None:
        sale_price = compute_promotional_price(batch.selling_price)
        if sale_price < batch.cost_price:
            # Margin rule is not enforced here; surface it for review.
            logger.warning(
                f"Flash sale price {sale_price} for batch {batch.describe()} is below cost {batch.cost_price}"
            )

        try:
            updated = await asyncio.wait_for(
                self.store.update_batch_for_promotion(
                    batch.id, is_promotional=True, selling_price=sale_price
                ),
                timeout=self._call_timeout(deadline),
            )
        except Exception as e:
            summary.mutation_failures += 1
            logger.error(
                f"Failed to persist promotion for batch {batch.describe()}: {describe_error(e)}; "
                "skipping listing and task"
            )
            return
        if updated is None:
            summary.mutation_failures += 1
            logger.error(
                f"Batch {batch.describe()} no longer exists in the store; skipping listing and task"
            )
            return

        summary.promoted += 1
        logger.info(
            f"Batch {batch.batch_id} for {batch.medicine_name} is now promotional at price {sale_price} "
            f"({discount_amount(batch.selling_price)} off {batch.selling_price})."
        )

        listing = await self.dispatcher.publish_market_listing(
            self.listing_for(batch, sale_price), timeout=self._call_timeout(deadline)
        )
        if listing.success:
            summary.listings_published += 1
        else:
            summary.notification_failures += 1
            logger.warning(
                f"Market listing not published for batch {batch.describe()} "
                f"via '{NotificationChannel.MARKET_LISTING.value}': {listing.error}"
            )

        await self._notify_pharmacist(batch, self.task_message(batch), summary, deadline)


class StockRotationRunner(ExpiryAutomationRunner):
    rule = AutomationRule.STOCK_ROTATION
    title = "Stock Rotation (FEFO)"

    async def fetch_candidates(self) -> list[MedicineBatch]:
        return await self.store.get_rotation_needed_batches(
            self.config.rotation_min_days, self.config.rotation_max_days
        )

    @staticmethod
    def task_message(batch: MedicineBatch) -> str:
        return (
            "Task: Rotate stock (FEFO). Medicine is nearing expiry. "
            f"Details: {batch.medicine_name}, Batch ID: {batch.batch_id}, "
            f"Expiry: {batch.expiry_date.isoformat()}, Location: {batch.location}."
        )

    async def process_batch(
        self, batch: MedicineBatch, summary: RunSummary, deadline: float
    ) -> None:
        await self._notify_pharmacist(batch, self.task_message(batch), summary, deadline)
