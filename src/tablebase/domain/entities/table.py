"""Enumerations describing user-defined tables."""

from enum import Enum


class Visibility(str, Enum):
    """Tiered visibility of a table."""

    PRIVATE = "private"
    PUBLIC = "public"
    SHARED = "shared"


class TableType(str, Enum):
    """Table type; sale and rent tables carry protected columns."""

    DEFAULT = "default"
    SALE = "sale"
    RENT = "rent"


class RentalPeriod(str, Enum):
    """Billing period for rent tables."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


DEFAULT_RENTAL_PERIOD = RentalPeriod.MONTH
