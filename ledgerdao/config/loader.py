"""
LedgerDAO TOML Configuration Loader

Loads ledgerdao.toml with environment variable overrides.
Each section is a dataclass with from_dict / apply_env; the root
GovernanceConfig adds from_file / validate / to_dict.

Environment variable mapping:
    [governance] quorum           → LEDGERDAO_QUORUM
    [governance] voting_delay_ms  → LEDGERDAO_VOTING_DELAY_MS
    [governance] voting_period_ms → LEDGERDAO_VOTING_PERIOD_MS
    [governance] creation_policy  → LEDGERDAO_CREATION_POLICY
    [governance] admins           → LEDGERDAO_ADMINS (comma separated)
    [logging] level               → LEDGERDAO_LOG_LEVEL
    [logging] file                → LEDGERDAO_LOG_FILE
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    try:
        import tomli  # type: ignore[no-redef]
    except ImportError:
        tomli = None  # type: ignore[assignment]

from ..constants import (
    CREATION_POLICIES,
    DEFAULT_CREATION_POLICY,
    DEFAULT_QUORUM,
    DEFAULT_VOTING_DELAY_MS,
    DEFAULT_VOTING_PERIOD_MS,
    LOG_LEVEL,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _int_setting(value: Any, name: str) -> int:
    """int() for config values, raising ConfigurationError on bad input."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer (got {value!r})")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer (got {value!r})") from None


def _bool_setting(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"{name} must be true or false (got {value!r})")


def _list_setting(value: Any, name: str) -> List[str]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{name} must be a list (got {value!r})")
    return [str(item) for item in value]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{name}] must be a table")
    return section


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class GovernanceSectionConfig:
    """[governance] section."""
    quorum: int = DEFAULT_QUORUM
    voting_delay_ms: int = DEFAULT_VOTING_DELAY_MS
    voting_period_ms: int = DEFAULT_VOTING_PERIOD_MS
    creation_policy: str = DEFAULT_CREATION_POLICY
    admins: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceSectionConfig":
        return cls(
            quorum=_int_setting(data.get("quorum", DEFAULT_QUORUM), "quorum"),
            voting_delay_ms=_int_setting(
                data.get("voting_delay_ms", DEFAULT_VOTING_DELAY_MS), "voting_delay_ms"
            ),
            voting_period_ms=_int_setting(
                data.get("voting_period_ms", DEFAULT_VOTING_PERIOD_MS), "voting_period_ms"
            ),
            creation_policy=str(data.get("creation_policy", DEFAULT_CREATION_POLICY)),
            admins=_list_setting(data.get("admins", []), "admins"),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("LEDGERDAO_QUORUM"):
            self.quorum = _int_setting(v, "LEDGERDAO_QUORUM")
        if v := os.environ.get("LEDGERDAO_VOTING_DELAY_MS"):
            self.voting_delay_ms = _int_setting(v, "LEDGERDAO_VOTING_DELAY_MS")
        if v := os.environ.get("LEDGERDAO_VOTING_PERIOD_MS"):
            self.voting_period_ms = _int_setting(v, "LEDGERDAO_VOTING_PERIOD_MS")
        if v := os.environ.get("LEDGERDAO_CREATION_POLICY"):
            self.creation_policy = v
        if v := os.environ.get("LEDGERDAO_ADMINS"):
            self.admins = [a.strip() for a in v.split(",") if a.strip()]

    def validate(self) -> None:
        if self.quorum < 0:
            raise ConfigurationError("quorum must be >= 0")
        if self.voting_delay_ms < 0:
            raise ConfigurationError("voting_delay_ms must be >= 0")
        if self.voting_period_ms <= 0:
            raise ConfigurationError("voting_period_ms must be > 0")
        if self.creation_policy not in CREATION_POLICIES:
            raise ConfigurationError(
                f"Invalid creation_policy: {self.creation_policy}"
            )


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = str(LOG_LEVEL)
    file: Optional[str] = None
    console_output: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", LOG_LEVEL)).upper(),
            file=data.get("file"),
            console_output=_bool_setting(data.get("console_output", True), "console_output"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LEDGERDAO_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("LEDGERDAO_LOG_FILE"):
            self.file = v

    def validate(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


@dataclass
class GovernanceConfig:
    """Complete ledgerdao.toml configuration."""
    governance: GovernanceSectionConfig = field(default_factory=GovernanceSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        return cls(
            governance=GovernanceSectionConfig.from_dict(_section(data, "governance")),
            logging=LoggingSectionConfig.from_dict(_section(data, "logging")),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "GovernanceConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides applied).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        if tomli is None:
            raise ImportError(
                "tomli is required for TOML config loading on Python < 3.11. "
                "Install it: pip install tomli"
            )

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.governance.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.governance.validate()
        self.logging.validate()
        return True

    def organization_kwargs(self) -> Dict[str, int]:
        """Keyword arguments for Organization / create_organization."""
        return {
            "quorum": self.governance.quorum,
            "voting_delay": self.governance.voting_delay_ms,
            "voting_period": self.governance.voting_period_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "governance": {
                "quorum": self.governance.quorum,
                "voting_delay_ms": self.governance.voting_delay_ms,
                "voting_period_ms": self.governance.voting_period_ms,
                "creation_policy": self.governance.creation_policy,
                "admins": list(self.governance.admins),
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "console_output": self.logging.console_output,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> GovernanceConfig:
    """
    Load governance configuration.

    Resolution order:
        1. Explicit *path* argument
        2. LEDGERDAO_CONFIG env var
        3. ./ledgerdao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("LEDGERDAO_CONFIG", "ledgerdao.toml")

    cfg = GovernanceConfig.from_file(path)
    cfg.validate()
    return cfg
