"""Configuration package."""

from bill_tracker.config.settings import (
    CloudinarySettings,
    FirebaseSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "CloudinarySettings",
    "FirebaseSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
