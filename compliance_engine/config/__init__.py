"""
Compliance Engine - Configuration Package

Settings (environment driven) and versioned rate tables (data driven).
"""

from compliance_engine.config.settings import Settings, get_settings
from compliance_engine.config.rate_tables import (
    DEFAULT_RATE_TABLES,
    GUYANA_2024,
    PenaltyTerms,
    RateTableRegistry,
    RateTables,
    TaxBracket,
    WageLimits,
    get_rate_tables,
)

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_RATE_TABLES",
    "GUYANA_2024",
    "PenaltyTerms",
    "RateTableRegistry",
    "RateTables",
    "TaxBracket",
    "WageLimits",
    "get_rate_tables",
]
