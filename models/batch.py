"""
Data models for trackable medicine stock and its expiry classification.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from .enums import ExpiryTier

# Inclusive day bounds of the automation windows
FLASH_SALE_MAX_DAYS = 60
ROTATION_MIN_DAYS = 61
ROTATION_MAX_DAYS = 90


class MedicineBatch(BaseModel):
    """A lot of a medicine product held at one shelf location."""

    id: str  # store-assigned, opaque
    gtin: str
    batch_id: str
    medicine_name: str
    location: str
    expiry_date: date
    stock_count: int = Field(default=0, ge=0)
    cost_price: Decimal = Field(ge=0)
    selling_price: Decimal = Field(ge=0)
    is_promotional: bool = False

    def days_until_expiry(self, today: date) -> int:
        return days_until_expiry(self.expiry_date, today)

    def tier(self, today: date) -> ExpiryTier:
        return classify_expiry(self.days_until_expiry(today))

    def describe(self) -> str:
        """Short identity used in log lines."""
        return f"{self.batch_id} ({self.medicine_name}, id={self.id})"


def days_until_expiry(expiry_date: date, today: date) -> int:
    """Whole calendar days from ``today`` to ``expiry_date`` (negative once expired)."""
    return (expiry_date - today).days


def classify_expiry(days: int) -> ExpiryTier:
    """Map a days-to-expiry count onto exactly one tier."""
    if days < 0:
        return ExpiryTier.EXPIRED
    if days <= FLASH_SALE_MAX_DAYS:
        return ExpiryTier.FLASH_SALE
    if days <= ROTATION_MAX_DAYS:
        return ExpiryTier.ROTATION
    return ExpiryTier.NORMAL
