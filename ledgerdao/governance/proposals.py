"""
Governance Proposals

Defines proposal kinds, vote types, lifecycle states, the governance
exception hierarchy, and the Proposal dataclass that holds an individual
proposal's tally and per-token / per-identity ballot bookkeeping.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any, Dict, List, Optional, Set, Union

from ..exceptions import LedgerDAOException
from ..logger import get_logger
from ..constants import (
    GOVERNANCE_VOTE_ABSTAIN,
    GOVERNANCE_VOTE_AGAINST,
    GOVERNANCE_VOTE_FOR,
)

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class GovernanceError(LedgerDAOException):
    """Base governance exception."""


class ShapeError(GovernanceError):
    """Malformed input: bad proposal kind/field combination, bad vote type."""


class AuthorizationError(GovernanceError):
    """Caller is not allowed to perform the operation."""


class TimingError(GovernanceError):
    """Operation attempted outside its time window."""


class StateError(GovernanceError):
    """Proposal is not in a state that permits the operation."""


class ConsistencyError(GovernanceError):
    """Vote would break per-token or per-identity ballot rules."""


class ResourceError(GovernanceError):
    """A required resource (treasury funds) is insufficient."""


class InvalidProposalShapeError(ShapeError):
    """Raised when proposal kind and payout fields disagree."""


class InvalidVoteTypeError(ShapeError):
    """Raised when a vote type is not FOR / AGAINST / ABSTAIN."""


class WrongStatusError(StateError):
    """Raised when a proposal is not ACTIVE."""


class ProposalNotFoundError(StateError):
    """Raised when a proposal id is unknown to the organization."""


class ProposalLifecycleError(StateError):
    """Raised on illegal state transitions."""


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class VoteType(IntEnum):
    """Direction of a single unit vote."""
    FOR = GOVERNANCE_VOTE_FOR
    AGAINST = GOVERNANCE_VOTE_AGAINST
    ABSTAIN = GOVERNANCE_VOTE_ABSTAIN

    @classmethod
    def parse(cls, value: Union["VoteType", int, str]) -> "VoteType":
        """
        Coerce *value* into a VoteType.

        Accepts members, their integer codes, and case-insensitive names.
        Raises InvalidVoteTypeError for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidVoteTypeError(f"Invalid vote type: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidVoteTypeError(f"Invalid vote type: {value!r}") from None
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        raise InvalidVoteTypeError(f"Invalid vote type: {value!r}")


class ProposalKind(IntEnum):
    """What a proposal does when executed."""
    VOTING = 1      # Signalling only, no payout
    FUNDING = 2     # Pays a fixed amount to a fixed recipient from the treasury

    @classmethod
    def parse(cls, value: Union["ProposalKind", int, str]) -> "ProposalKind":
        """Coerce a member, integer code or case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        elif isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        raise InvalidProposalShapeError(f"Invalid proposal kind: {value!r}")


class ProposalStatus(IntEnum):
    """Lifecycle stage."""
    ACTIVE = 0
    CANCELED = 1
    DEFEATED = 2
    EXECUTED = 3


TERMINAL_STATUSES = frozenset({
    ProposalStatus.CANCELED,
    ProposalStatus.DEFEATED,
    ProposalStatus.EXECUTED,
})

# Valid forward transitions
_VALID_TRANSITIONS: Dict[ProposalStatus, set] = {
    ProposalStatus.ACTIVE:   {ProposalStatus.CANCELED, ProposalStatus.DEFEATED,
                              ProposalStatus.EXECUTED},
    # Terminal states: no further transitions
    ProposalStatus.CANCELED: set(),
    ProposalStatus.DEFEATED: set(),
    ProposalStatus.EXECUTED: set(),
}


def _empty_tally() -> Dict[VoteType, int]:
    return {vote_type: 0 for vote_type in VoteType}


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Time-boxed governance proposal owned by one organization.

    Fields:
        id:                Unique identifier within the organization
        organization_id:   Owning organization
        name:              Short title
        description:       Rationale
        kind:              VOTING or FUNDING
        creator:           Identity that created the proposal
        created_at:        Creation timestamp (ms)
        start_time:        Voting opens at this timestamp (ms)
        end_time:          Voting closes after this timestamp (ms)
        recipient:         FUNDING only, payout address
        amount:            FUNDING only, payout amount
        status:            Current lifecycle stage
        tally:             Unit votes per VoteType
        ballots:           Token ids that have voted
        vote_counts:       Votes cast per identity (informational)
        locked_direction:  First vote type per identity
    """
    id: int
    organization_id: str
    name: str
    kind: ProposalKind
    creator: str
    created_at: int
    start_time: int
    end_time: int
    description: str = ""
    recipient: Optional[str] = None
    amount: Optional[Decimal] = None
    status: ProposalStatus = ProposalStatus.ACTIVE
    tally: Dict[VoteType, int] = field(default_factory=_empty_tally)
    ballots: Set[str] = field(default_factory=set)
    vote_counts: Dict[str, int] = field(default_factory=dict)
    locked_direction: Dict[str, VoteType] = field(default_factory=dict)
    resolved_at: Optional[int] = None
    _history: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.name:
            raise InvalidProposalShapeError("Proposal name cannot be empty")
        if not self.creator:
            raise InvalidProposalShapeError("Proposal creator is required")
        self.kind = ProposalKind.parse(self.kind)

        if self.kind == ProposalKind.FUNDING:
            if not self.recipient or self.amount is None:
                raise InvalidProposalShapeError(
                    "FUNDING proposals require both recipient and amount"
                )
            try:
                self.amount = Decimal(str(self.amount))
            except InvalidOperation:
                raise InvalidProposalShapeError(
                    f"Invalid funding amount: {self.amount!r}"
                ) from None
            # NaN and Infinity would pass creation but never debit
            if not self.amount.is_finite() or self.amount <= 0:
                raise InvalidProposalShapeError(
                    f"Funding amount must be positive (got {self.amount})"
                )
        elif self.recipient is not None or self.amount is not None:
            raise InvalidProposalShapeError(
                "VOTING proposals cannot carry a recipient or amount"
            )

        if self.start_time >= self.end_time:
            raise InvalidProposalShapeError(
                f"start_time {self.start_time} must precede end_time {self.end_time}"
            )
        self._record_transition(ProposalStatus.ACTIVE, self.created_at, "created")

    # ── Properties ────────────────────────────────────────────────────

    @property
    def votes_for(self) -> int:
        return self.tally[VoteType.FOR]

    @property
    def votes_against(self) -> int:
        return self.tally[VoteType.AGAINST]

    @property
    def votes_abstain(self) -> int:
        return self.tally[VoteType.ABSTAIN]

    @property
    def total_votes(self) -> int:
        """All unit votes, abstentions included."""
        return sum(self.tally.values())

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_funding(self) -> bool:
        return self.kind == ProposalKind.FUNDING

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def is_open(self, now: int) -> bool:
        """True while ACTIVE and *now* lies inside [start_time, end_time]."""
        return (
            self.status == ProposalStatus.ACTIVE
            and self.start_time <= now <= self.end_time
        )

    def has_ballot(self, token_id: str) -> bool:
        return token_id in self.ballots

    def locked_direction_of(self, identity: str) -> Optional[VoteType]:
        return self.locked_direction.get(identity)

    def vote_count_of(self, identity: str) -> int:
        return self.vote_counts.get(identity, 0)

    # ── State transitions ─────────────────────────────────────────────

    def _record_transition(self, new_status: ProposalStatus, now: int, reason: str):
        self._history.append({
            "from": self.status.name if self._history else "INIT",
            "to": new_status.name,
            "reason": reason,
            "timestamp": now,
        })

    def transition_to(self, new_status: ProposalStatus, now: int, reason: str = ""):
        """
        Advance proposal to *new_status*.

        Raises ProposalLifecycleError on invalid transitions.
        """
        allowed = _VALID_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise ProposalLifecycleError(
                f"Cannot transition from {self.status.name} → {new_status.name}. "
                f"Allowed: {[s.name for s in allowed]}"
            )
        old = self.status
        self._record_transition(new_status, now, reason)
        self.status = new_status
        if new_status in TERMINAL_STATUSES:
            self.resolved_at = now
        logger.info(
            f"Proposal #{self.id} ({self.name}): "
            f"{old.name} → {new_status.name} | {reason}"
        )

    def mark_executed(self, now: int):
        """ACTIVE → EXECUTED."""
        self.transition_to(ProposalStatus.EXECUTED, now, "Quorum met and FOR exceeds AGAINST")

    def mark_defeated(self, now: int, reason: str = "Vote did not pass"):
        """ACTIVE → DEFEATED."""
        self.transition_to(ProposalStatus.DEFEATED, now, reason)

    def cancel(self, now: int, reason: str = "Canceled by creator"):
        """ACTIVE → CANCELED."""
        self.transition_to(ProposalStatus.CANCELED, now, reason)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "name": self.name,
            "description": self.description,
            "kind": self.kind.name,
            "creator": self.creator,
            "status": self.status.name,
            "recipient": self.recipient,
            "amount": str(self.amount) if self.amount is not None else None,
            "createdAt": self.created_at,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "resolvedAt": self.resolved_at,
            "tally": {vote_type.name: count for vote_type, count in self.tally.items()},
            "totalVotes": self.total_votes,
            "ballotCount": len(self.ballots),
            "voteCounts": dict(self.vote_counts),
            "lockedDirection": {
                identity: vote_type.name
                for identity, vote_type in self.locked_direction.items()
            },
            "historyLength": len(self._history),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} '{self.name}' "
            f"kind={self.kind.name} status={self.status.name}>"
        )
