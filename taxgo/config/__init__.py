"""Configuration package."""

from taxgo.config.settings import (
    AppSettings,
    GeminiSettings,
    Settings,
    TaxpayerSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "TaxpayerSettings",
    "get_settings",
    "validate_all_settings",
]
