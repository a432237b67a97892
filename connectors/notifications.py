"""
Module: connectors.notifications

Notification dispatcher for the expiry automation runners. Calls are
best-effort: every channel call is bounded by a timeout and any failure is
logged and returned as an unsuccessful result, never raised.
"""

import asyncio
import logging
from typing import Protocol, runtime_checkable

import httpx

from config.config import ExpiryAutomationConfig
from connectors.dummy_channels import LoggingListingChannel, LoggingTaskChannel
from connectors.http_channels import MapListingChannel, WhatsAppTaskChannel
from models.enums import NotificationChannel
from models.notifications import ListingPayload, ListingResult, TaskResult

logger = logging.getLogger(__name__)


@runtime_checkable
class PharmacistTaskChannel(Protocol):
    async def send_task(self, pharmacist_id: str, message: str) -> TaskResult: ...


@runtime_checkable
class MarketListingChannel(Protocol):
    async def publish(self, payload: ListingPayload) -> ListingResult: ...


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return f"{type(exc).__name__}: {exc}"


class NotificationDispatcher:
    """Fans automation output out to pharmacists and the public listing map."""

    def __init__(
        self,
        task_channel: PharmacistTaskChannel,
        listing_channel: MarketListingChannel,
        call_timeout: float = 10.0,
    ):
        if call_timeout <= 0:
            raise ValueError("call_timeout must be positive")
        self.task_channel = task_channel
        self.listing_channel = listing_channel
        self.call_timeout = call_timeout

    def _timeout(self, override: float | None) -> float:
        if override is None:
            return self.call_timeout
        return max(0.0, min(self.call_timeout, override))

    async def send_pharmacist_task(
        self, pharmacist_id: str, message: str, timeout: float | None = None
    ) -> TaskResult:
        channel = NotificationChannel.PHARMACIST_TASK.value
        try:
            result = await asyncio.wait_for(
                self.task_channel.send_task(pharmacist_id, message),
                timeout=self._timeout(timeout),
            )
        except Exception as e:
            error = describe_error(e)
            logger.error(f"Channel '{channel}' failed for pharmacist {pharmacist_id}: {error}")
            return TaskResult(success=False, error=error)
        if not result.success:
            logger.warning(
                f"Channel '{channel}' rejected task for pharmacist {pharmacist_id}: {result.error}"
            )
        return result

    async def publish_market_listing(
        self, payload: ListingPayload, timeout: float | None = None
    ) -> ListingResult:
        channel = NotificationChannel.MARKET_LISTING.value
        try:
            result = await asyncio.wait_for(
                self.listing_channel.publish(payload), timeout=self._timeout(timeout)
            )
        except Exception as e:
            error = describe_error(e)
            logger.error(f"Channel '{channel}' failed for GTIN {payload.gtin}: {error}")
            return ListingResult(success=False, error=error)
        if not result.success:
            logger.warning(f"Channel '{channel}' rejected listing for GTIN {payload.gtin}: {result.error}")
        return result


def build_dispatcher(
    config: ExpiryAutomationConfig, client: httpx.AsyncClient | None = None
) -> NotificationDispatcher:
    """HTTP channels where a URL is configured, logging stand-ins otherwise."""
    if (config.whatsapp_api_url or config.map_api_url) and client is None:
        raise ValueError("An httpx.AsyncClient is required when an HTTP channel URL is configured")

    if config.whatsapp_api_url:
        task_channel: PharmacistTaskChannel = WhatsAppTaskChannel(
            client, config.whatsapp_api_url, config.whatsapp_api_token
        )
    else:
        logger.warning("WHATSAPP_API_URL not set; pharmacist tasks will only be logged")
        task_channel = LoggingTaskChannel()

    if config.map_api_url:
        listing_channel: MarketListingChannel = MapListingChannel(
            client, config.map_api_url, config.map_api_token
        )
    else:
        logger.warning("MAP_API_URL not set; market listings will only be logged")
        listing_channel = LoggingListingChannel()

    return NotificationDispatcher(task_channel, listing_channel, config.call_timeout_seconds)
