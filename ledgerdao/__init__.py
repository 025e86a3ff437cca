"""
LedgerDAO Package

On-ledger governance: organizations, membership-gated proposals,
token-counted voting and treasury disbursement.

Core imports are lazily loaded. For direct module access, import from
submodules:

    from ledgerdao.governance import GovernanceController, MembershipToken
    from ledgerdao.config import load_config
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceController':
        from .governance import GovernanceController
        return GovernanceController
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'LedgerDAOException':
        from .exceptions import LedgerDAOException
        return LedgerDAOException
    raise AttributeError(f"module 'ledgerdao' has no attribute {name!r}")

__all__ = ['GovernanceController', 'load_config', 'LedgerDAOException']
