"""
Governance Events

Immutable notification records for external observers and indexers.
Events are fire-and-forget: a failing subscriber is logged and skipped,
never allowed to affect the operation that emitted the event.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from ..logger import get_logger
from .proposals import ProposalStatus, VoteType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProposalCreatedEvent:
    """Emitted when a proposal is stored."""
    organization_id: str
    proposal_id: int
    name: str
    creator: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCreated",
            "organizationId": self.organization_id,
            "proposalId": self.proposal_id,
            "name": self.name,
            "creator": self.creator,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteCastEvent:
    """Emitted on every counted vote."""
    organization_id: str
    proposal_id: int
    voter: str
    vote_type: VoteType
    token_id: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteCast",
            "organizationId": self.organization_id,
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "voteType": self.vote_type.name,
            "tokenId": self.token_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalCanceledEvent:
    """Emitted when the creator cancels before voting opens."""
    organization_id: str
    proposal_id: int
    name: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCanceled",
            "organizationId": self.organization_id,
            "proposalId": self.proposal_id,
            "name": self.name,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalResolvedEvent:
    """Emitted when a proposal reaches DEFEATED or EXECUTED."""
    organization_id: str
    proposal_id: int
    name: str
    status: ProposalStatus
    timestamp: int
    payout: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalResolved",
            "organizationId": self.organization_id,
            "proposalId": self.proposal_id,
            "name": self.name,
            "status": self.status.name,
            "payout": str(self.payout) if self.payout is not None else None,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TreasuryDepositEvent:
    """Emitted when funds are merged into a treasury."""
    organization_id: str
    sender: str
    amount: Decimal
    balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TreasuryDeposit",
            "organizationId": self.organization_id,
            "sender": self.sender,
            "amount": str(self.amount),
            "balance": str(self.balance),
        }


class EventLog:
    """Append-only event sink with optional subscribers."""

    def __init__(self):
        self._events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []

    def subscribe(self, callback: Callable[[Any], None]):
        self._subscribers.append(callback)

    def emit(self, event: Any):
        self._events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Event subscriber {callback!r} failed on {type(event).__name__}"
                )

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def events_for(self, organization_id: str, proposal_id: int) -> List[Any]:
        return [
            e for e in self._events
            if getattr(e, "organization_id", None) == organization_id
            and getattr(e, "proposal_id", None) == proposal_id
        ]

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]
