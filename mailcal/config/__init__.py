"""Configuration package for mailcal."""

from mailcal.config.constants import (
    DEFAULT_TIMEZONE,
    DESCRIPTION_SEPARATOR,
    PRODUCT_ID,
)
from mailcal.config.settings import Settings, load_settings

__all__ = [
    "DEFAULT_TIMEZONE",
    "DESCRIPTION_SEPARATOR",
    "PRODUCT_ID",
    "Settings",
    "load_settings",
]
