"""
Module: connectors.http_channels

HTTP clients for the outbound channels: a WhatsApp Business style messaging
endpoint for pharmacist tasks and the nearby-pharmacy map API for listings.
"""

import logging
from typing import Any

import httpx

from models.notifications import ListingPayload, ListingResult, TaskResult

logger = logging.getLogger(__name__)


def _auth_headers(token: str) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class WhatsAppTaskChannel:
    """
    Sends a pharmacist task as a text message.
    Non-2xx responses raise httpx.HTTPStatusError; the dispatcher turns that into a failed result.
    """

    name = "whatsapp"

    def __init__(self, client: httpx.AsyncClient, api_url: str, token: str = ""):
        self.client = client
        self.url = f"{api_url.rstrip('/')}/messages"
        self.headers = _auth_headers(token)

    async def send_task(self, pharmacist_id: str, message: str) -> TaskResult:
        body = {"to": pharmacist_id, "type": "text", "text": {"body": message}}
        response = await self.client.post(self.url, json=body, headers=self.headers)
        response.raise_for_status()
        message_id = None
        try:
            data: dict[str, Any] = response.json()
        except ValueError:
            data = {}
        messages = data.get("messages") or []
        if messages and isinstance(messages[0], dict):
            message_id = messages[0].get("id")
        message_id = message_id or data.get("id")
        logger.debug(f"WhatsApp task accepted for {pharmacist_id} (message id {message_id})")
        return TaskResult(success=True, message_id=message_id)


class MapListingChannel:
    """Publishes a limited-stock deal to the nearby-pharmacy map."""

    name = "map-api"

    def __init__(self, client: httpx.AsyncClient, api_url: str, token: str = ""):
        self.client = client
        self.url = f"{api_url.rstrip('/')}/notifications"
        self.headers = _auth_headers(token)

    async def publish(self, payload: ListingPayload) -> ListingResult:
        response = await self.client.post(
            self.url, json=payload.model_dump(mode="json"), headers=self.headers
        )
        response.raise_for_status()
        return ListingResult(success=True)
