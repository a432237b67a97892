"""
Centralized Enum definitions for the expiry automation engine.
"""

from enum import Enum


class ExpiryTier(str, Enum):
    """Disjoint days-to-expiry windows driving which automation rule applies"""

    EXPIRED = "expired"
    FLASH_SALE = "flash_sale"
    ROTATION = "rotation"
    NORMAL = "normal"


class ListingType(str, Enum):
    """Kinds of public listings pushed to the nearby-pharmacy map"""

    LIMITED_STOCK_DEAL = "LIMITED_STOCK_DEAL"


class NotificationChannel(str, Enum):
    """Outbound channels used by the notification dispatcher"""

    PHARMACIST_TASK = "pharmacist_task"
    MARKET_LISTING = "market_listing"


class AutomationRule(str, Enum):
    """Scheduled automation rules"""

    FLASH_SALE = "flash_sale_automation"
    STOCK_ROTATION = "stock_rotation_automation"
