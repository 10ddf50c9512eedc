"""Enumerations shared by flash deal models, schemas and services."""

from enum import Enum


class DealStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class DealKind(str, Enum):
    FLASH = "flash-deal"
    LIGHTNING = "lightning-deal"


class DiscountMode(str, Enum):
    FLAT_PRICE = "flat-price"
    PERCENTAGE = "percentage"


class EligibleSection(str, Enum):
    HOMEPAGE = "homepage"
    CATEGORY = "category"
    SEARCH = "search"


# Statuses that still claim their products' time windows.
RESERVING_STATUSES = (DealStatus.SCHEDULED, DealStatus.ACTIVE)
