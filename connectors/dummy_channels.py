"""
Module: connectors.dummy_channels

In-process stand-ins for the WhatsApp pharmacist-task provider and the
nearby-pharmacy map API. They log and record what would have been sent.
"""

import asyncio
import logging
import time

from models.notifications import ListingPayload, ListingResult, TaskResult

logger = logging.getLogger(__name__)


class LoggingTaskChannel:
    """Records pharmacist tasks instead of delivering them."""

    name = "logging-whatsapp"

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send_task(self, pharmacist_id: str, message: str) -> TaskResult:
        await asyncio.sleep(0)
        self.sent.append((pharmacist_id, message))
        logger.info(f"[LoggingTaskChannel] Task for pharmacist {pharmacist_id}: {message}")
        return TaskResult(success=True, message_id=f"wha_{int(time.time() * 1000)}")


class LoggingListingChannel:
    """Records market listings instead of publishing them."""

    name = "logging-map-api"

    def __init__(self):
        self.published: list[ListingPayload] = []

    async def publish(self, payload: ListingPayload) -> ListingResult:
        await asyncio.sleep(0)
        self.published.append(payload)
        logger.info(f"[LoggingListingChannel] Listing: {payload.model_dump(mode='json')}")
        return ListingResult(success=True)
