"""
LedgerDAO Constants

This module consolidates all global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

GOVERNANCE_DEFAULTS = {
    'GOVERNANCE_QUORUM':               '3',
    'GOVERNANCE_VOTING_DELAY_MS':      '86400000',     # 1 day
    'GOVERNANCE_VOTING_PERIOD_MS':     '604800000',    # 7 days
    'GOVERNANCE_CREATION_POLICY':      'open',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# GOVERNANCE PROTOCOL CONSTANTS
# ==================================================================================
# Version tag stamped on every organization. Mutating calls refuse organizations
# carrying any other tag until they are migrated.
GOVERNANCE_VERSION = 1

# Vote types, as stored on the ledger
GOVERNANCE_VOTE_FOR = 0
GOVERNANCE_VOTE_AGAINST = 1
GOVERNANCE_VOTE_ABSTAIN = 2

# Organization creation policies
CREATION_POLICY_OPEN = 'open'     # anyone presenting a qualifying token
CREATION_POLICY_ADMIN = 'admin'   # only configured admin identities
CREATION_POLICIES = (CREATION_POLICY_OPEN, CREATION_POLICY_ADMIN)


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = GOVERNANCE_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)


# Integer views of the governance defaults, used by the config loader
DEFAULT_QUORUM = int(namespace['GOVERNANCE_QUORUM'])
DEFAULT_VOTING_DELAY_MS = int(namespace['GOVERNANCE_VOTING_DELAY_MS'])
DEFAULT_VOTING_PERIOD_MS = int(namespace['GOVERNANCE_VOTING_PERIOD_MS'])
DEFAULT_CREATION_POLICY = str(namespace['GOVERNANCE_CREATION_POLICY'])
