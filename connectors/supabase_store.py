"""
Module: connectors.supabase_store

Inventory store backed by the Supabase REST (PostgREST) API of the
pharmacy's ``medicine_batches`` table.
"""

import logging
from collections.abc import Callable
from datetime import date, timedelta, tzinfo
from decimal import Decimal
from typing import Any

import httpx

from connectors.inventory_store import check_window, local_today
from models.batch import MedicineBatch

logger = logging.getLogger(__name__)


class SupabaseInventoryStore:
    """
    Reads expiry windows and writes the promotion mutation over PostgREST.
    The caller owns the httpx.AsyncClient and closes it. HTTP failures propagate
    as httpx.HTTPError so the runner can abort or skip as appropriate.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        *,
        table: str = "medicine_batches",
        timezone: tzinfo | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.client = client
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Accept": "application/json",
        }
        self._today = today or (lambda: local_today(timezone))

    async def _select(self, params: list[tuple[str, str]]) -> list[MedicineBatch]:
        response = await self.client.get(self.endpoint, params=params, headers=self._headers)
        response.raise_for_status()
        rows: list[dict[str, Any]] = response.json()
        return [MedicineBatch.model_validate(row) for row in rows]

    def _window_params(self, min_days: int, max_days: int) -> list[tuple[str, str]]:
        today = self._today()
        return [
            ("select", "*"),
            ("expiry_date", f"gte.{(today + timedelta(days=min_days)).isoformat()}"),
            ("expiry_date", f"lte.{(today + timedelta(days=max_days)).isoformat()}"),
            ("order", "expiry_date.asc,id.asc"),
        ]

    async def get_expiring_batches(self, max_days: int) -> list[MedicineBatch]:
        check_window(0, max_days)
        params = self._window_params(0, max_days) + [("is_promotional", "is.false")]
        return await self._select(params)

    async def get_rotation_needed_batches(
        self, min_days: int, max_days: int
    ) -> list[MedicineBatch]:
        check_window(min_days, max_days)
        return await self._select(self._window_params(min_days, max_days))

    async def update_batch_for_promotion(
        self, batch_id: str, *, is_promotional: bool, selling_price: Decimal
    ) -> MedicineBatch | None:
        response = await self.client.patch(
            self.endpoint,
            params=[("id", f"eq.{batch_id}")],
            json={"is_promotional": is_promotional, "selling_price": str(selling_price)},
            headers={**self._headers, "Prefer": "return=representation"},
        )
        response.raise_for_status()
        rows = response.json()
        if not rows:
            logger.warning(f"Supabase returned no row for promotion update of batch {batch_id}")
            return None
        return MedicineBatch.model_validate(rows[0])
