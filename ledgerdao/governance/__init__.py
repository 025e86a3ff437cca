"""
LedgerDAO Governance

Provides:
  - MembershipToken / BaseMembership / ScopedMembership       (membership.py)
  - ProposalKind / ProposalStatus / VoteType / Proposal        (proposals.py)
  - VotingEngine                                               (voting.py)
  - Treasury / PayoutLedger                                    (treasury.py)
  - Organization / ScopedOrganization / OrganizationRegistry   (organization.py)
  - GovernanceController                                       (execution.py)
  - Event records / EventLog                                   (events.py)
"""

from .proposals import (
    AuthorizationError,
    ConsistencyError,
    GovernanceError,
    InvalidProposalShapeError,
    InvalidVoteTypeError,
    Proposal,
    ProposalKind,
    ProposalLifecycleError,
    ProposalNotFoundError,
    ProposalStatus,
    ResourceError,
    ShapeError,
    StateError,
    TimingError,
    VoteType,
    WrongStatusError,
)
from .membership import (
    BaseMembership,
    MembershipPredicate,
    MembershipToken,
    NotMemberError,
    ScopedMembership,
    ScopeMismatchError,
)
from .treasury import (
    InsufficientFundsError,
    InvalidAmountError,
    PayoutLedger,
    Treasury,
)
from .events import (
    EventLog,
    ProposalCanceledEvent,
    ProposalCreatedEvent,
    ProposalResolvedEvent,
    TreasuryDepositEvent,
    VoteCastEvent,
)
from .organization import (
    InvalidConfigurationError,
    Organization,
    OrganizationRegistry,
    ScopedOrganization,
    VersionMismatchError,
)
from .voting import (
    AlreadyVotedError,
    ConflictingVoteDirectionError,
    VotingEndedError,
    VotingEngine,
    VotingNotStartedError,
)
from .execution import (
    GovernanceController,
    NotAuthorizedError,
    NotCreatorError,
    VotingAlreadyStartedError,
    VotingNotEndedError,
)

__all__ = [
    # Errors
    "AlreadyVotedError",
    "AuthorizationError",
    "ConflictingVoteDirectionError",
    "ConsistencyError",
    "GovernanceError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "InvalidConfigurationError",
    "InvalidProposalShapeError",
    "InvalidVoteTypeError",
    "NotAuthorizedError",
    "NotCreatorError",
    "NotMemberError",
    "ProposalLifecycleError",
    "ProposalNotFoundError",
    "ResourceError",
    "ScopeMismatchError",
    "ShapeError",
    "StateError",
    "TimingError",
    "VersionMismatchError",
    "VotingAlreadyStartedError",
    "VotingEndedError",
    "VotingNotEndedError",
    "VotingNotStartedError",
    "WrongStatusError",
    # Membership
    "BaseMembership",
    "MembershipPredicate",
    "MembershipToken",
    "ScopedMembership",
    # Proposals
    "Proposal",
    "ProposalKind",
    "ProposalStatus",
    "VoteType",
    # Treasury
    "PayoutLedger",
    "Treasury",
    # Events
    "EventLog",
    "ProposalCanceledEvent",
    "ProposalCreatedEvent",
    "ProposalResolvedEvent",
    "TreasuryDepositEvent",
    "VoteCastEvent",
    # Organizations
    "Organization",
    "OrganizationRegistry",
    "ScopedOrganization",
    # Engines
    "GovernanceController",
    "VotingEngine",
]
