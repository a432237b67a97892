"""
Payload and result models for pharmacist tasks and public market listings.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, field_serializer

from .enums import ListingType


class ListingDeal(BaseModel):
    original_price: Decimal
    sale_price: Decimal
    expiry: date  # date only, serialized as YYYY-MM-DD

    @field_serializer("original_price", "sale_price", when_used="json")
    def _price_as_number(self, value: Decimal) -> float:
        return float(value)


class ListingPayload(BaseModel):
    """Promotional listing published to the nearby-pharmacy map."""

    type: ListingType = ListingType.LIMITED_STOCK_DEAL
    gtin: str
    pharmacy_id: str
    deal: ListingDeal


class TaskResult(BaseModel):
    success: bool
    message_id: str | None = None
    error: str | None = None


class ListingResult(BaseModel):
    success: bool
    error: str | None = None
