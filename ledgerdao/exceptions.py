"""
LedgerDAO Exceptions

Package-wide exception base classes. Governance-specific errors live
beside the code that raises them (see ``ledgerdao.governance``).
"""


class LedgerDAOException(Exception):
    """Base exception for LedgerDAO."""
    pass


class ConfigurationError(LedgerDAOException):
    """Configuration error."""
    pass
