"""
LedgerDAO Configuration

Loads ledgerdao.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    GovernanceConfig,
    GovernanceSectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "GovernanceConfig",
    "GovernanceSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
