import asyncio
import logging
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from config.config import ExpiryAutomationConfig
from connectors.dummy_channels import LoggingListingChannel, LoggingTaskChannel
from connectors.http_channels import MapListingChannel, WhatsAppTaskChannel
from connectors.notifications import (
    MarketListingChannel,
    NotificationDispatcher,
    PharmacistTaskChannel,
    build_dispatcher,
    describe_error,
)
from models.notifications import ListingDeal, ListingPayload, ListingResult, TaskResult
from tests.mocks import RecordingListingChannel, RecordingTaskChannel


@pytest.fixture
def payload():
    return ListingPayload(
        gtin="78901234567890",
        pharmacy_id="PHARMACY_001",
        deal=ListingDeal(
            original_price=Decimal("180"), sale_price=Decimal("153"), expiry=date(2026, 3, 31)
        ),
    )


class RaisingListingChannel:
    async def publish(self, payload):
        raise RuntimeError("map API down")


def test_channels_satisfy_protocols():
    assert isinstance(LoggingTaskChannel(), PharmacistTaskChannel)
    assert isinstance(LoggingListingChannel(), MarketListingChannel)
    assert isinstance(RecordingTaskChannel(), PharmacistTaskChannel)


def test_non_positive_timeout_rejected():
    with pytest.raises(ValueError):
        NotificationDispatcher(RecordingTaskChannel(), RecordingListingChannel(), call_timeout=0)


def test_describe_error():
    assert describe_error(asyncio.TimeoutError()) == "timed out"
    assert describe_error(ConnectionError("refused")) == "ConnectionError: refused"


@pytest.mark.asyncio
async def test_send_task_success():
    tasks = RecordingTaskChannel()
    dispatcher = NotificationDispatcher(tasks, RecordingListingChannel())
    result = await dispatcher.send_pharmacist_task("PHARMACIST_001", "Rotate stock")
    assert result.success is True
    assert result.message_id == "wha_1"
    assert tasks.calls == [("PHARMACIST_001", "Rotate stock")]


@pytest.mark.asyncio
async def test_send_task_exception_becomes_failed_result(caplog):
    dispatcher = NotificationDispatcher(RecordingTaskChannel(fail_on={1}), RecordingListingChannel())
    with caplog.at_level(logging.ERROR):
        result = await dispatcher.send_pharmacist_task("PHARMACIST_001", "msg")
    assert result.success is False
    assert "ConnectionError" in result.error
    assert "pharmacist_task" in caplog.text


@pytest.mark.asyncio
async def test_send_task_times_out():
    dispatcher = NotificationDispatcher(
        RecordingTaskChannel(delay=1.0), RecordingListingChannel(), call_timeout=0.05
    )
    result = await dispatcher.send_pharmacist_task("PHARMACIST_001", "msg")
    assert result.success is False
    assert result.error == "timed out"


@pytest.mark.asyncio
async def test_timeout_override_is_clipped_to_call_timeout():
    dispatcher = NotificationDispatcher(
        RecordingTaskChannel(delay=1.0), RecordingListingChannel(), call_timeout=0.05
    )
    # A larger override never extends the configured per-call timeout
    result = await dispatcher.send_pharmacist_task("PHARMACIST_001", "msg", timeout=30)
    assert result.error == "timed out"
    assert dispatcher._timeout(-3) == 0.0
    assert dispatcher._timeout(0.01) == 0.01


@pytest.mark.asyncio
async def test_publish_listing_success_and_rejection(payload, caplog):
    listings = RecordingListingChannel(fail_on={2})
    dispatcher = NotificationDispatcher(RecordingTaskChannel(), listings)
    first = await dispatcher.publish_market_listing(payload)
    with caplog.at_level(logging.WARNING):
        second = await dispatcher.publish_market_listing(payload)
    assert first == ListingResult(success=True)
    assert second.success is False
    assert "503" in caplog.text
    assert listings.calls == [payload, payload]


@pytest.mark.asyncio
async def test_publish_listing_exception_isolated(payload):
    dispatcher = NotificationDispatcher(RecordingTaskChannel(), RaisingListingChannel())
    result = await dispatcher.publish_market_listing(payload)
    assert result.success is False
    assert result.error == "RuntimeError: map API down"


def test_build_dispatcher_falls_back_to_logging_channels(caplog):
    with caplog.at_level(logging.WARNING):
        dispatcher = build_dispatcher(ExpiryAutomationConfig())
    assert isinstance(dispatcher.task_channel, LoggingTaskChannel)
    assert isinstance(dispatcher.listing_channel, LoggingListingChannel)
    assert dispatcher.call_timeout == 10.0
    assert "WHATSAPP_API_URL not set" in caplog.text


@pytest.mark.asyncio
async def test_build_dispatcher_uses_http_channels_when_configured():
    config = ExpiryAutomationConfig(
        whatsapp_api_url="https://wa.example.com", map_api_url="https://map.example.com"
    )
    async with httpx.AsyncClient() as client:
        dispatcher = build_dispatcher(config, client)
    assert isinstance(dispatcher.task_channel, WhatsAppTaskChannel)
    assert isinstance(dispatcher.listing_channel, MapListingChannel)


def test_build_dispatcher_requires_client_for_http_channels():
    config = ExpiryAutomationConfig(map_api_url="https://map.example.com")
    with pytest.raises(ValueError):
        build_dispatcher(config)


@pytest.mark.asyncio
async def test_rejected_task_result_is_returned_and_logged(caplog):
    task_channel = AsyncMock()
    task_channel.send_task.return_value = TaskResult(success=False, error="recipient not opted in")
    dispatcher = NotificationDispatcher(task_channel, RecordingListingChannel())

    with caplog.at_level(logging.WARNING):
        result = await dispatcher.send_pharmacist_task("PHARMACIST_001", "msg")

    task_channel.send_task.assert_awaited_once_with("PHARMACIST_001", "msg")
    assert result.success is False
    assert "recipient not opted in" in caplog.text
