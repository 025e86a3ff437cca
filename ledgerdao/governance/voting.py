"""
Token-Counted Voting Engine

Implements:
  - 1 membership token = 1 unit vote, counted at most once per proposal
  - Vote types: For / Against / Abstain (abstain counts toward quorum)
  - Direction lock: an identity's first vote type binds every later vote
    it casts on the same proposal, whichever token it uses
  - Strict [start_time, end_time] window taken from the caller's clock

Counting is per token while the direction lock is per identity, so an
identity holding N tokens adds up to N votes, all in one direction.
"""

from typing import Any, Dict, Optional, Union

from ..logger import get_logger
from .events import EventLog, VoteCastEvent
from .membership import MembershipToken
from .organization import Organization
from .proposals import (
    ConsistencyError,
    Proposal,
    ProposalStatus,
    TimingError,
    VoteType,
    WrongStatusError,
)

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class VotingNotStartedError(TimingError):
    """Vote cast before start_time."""


class VotingEndedError(TimingError):
    """Vote cast after end_time."""


class AlreadyVotedError(ConsistencyError):
    """Token already has a ballot on this proposal."""


class ConflictingVoteDirectionError(ConsistencyError):
    """Identity tried to vote against its locked direction."""


# ══════════════════════════════════════════════════════════════════════
#  VOTING ENGINE
# ══════════════════════════════════════════════════════════════════════

class VotingEngine:
    """
    Validates and applies single votes.

    Every check runs before any mutation, so a rejected vote leaves the
    proposal exactly as it was.
    """

    def __init__(self, event_log: Optional[EventLog] = None):
        self.events = event_log if event_log is not None else EventLog()

    # ── Cast vote ─────────────────────────────────────────────────────

    def cast_vote(
        self,
        organization: Organization,
        proposal_id: int,
        token: MembershipToken,
        vote_type: Union[VoteType, int, str],
        now: int,
    ) -> VoteCastEvent:
        """
        Cast one unit vote with *token* on a proposal.

        Args:
            organization: Organization owning the proposal
            proposal_id:  Target proposal
            token:        Presented membership token (not consumed)
            vote_type:    FOR / AGAINST / ABSTAIN (member, code or name)
            now:          Current timestamp in ms
        """
        organization.require_version()
        organization.membership.check(token)
        proposal = organization.get_proposal(proposal_id)
        identity = token.owner

        direction = self._validate(proposal, token, vote_type, now)

        proposal.tally[direction] += 1
        proposal.ballots.add(token.token_id)
        proposal.vote_counts[identity] = proposal.vote_counts.get(identity, 0) + 1
        if identity not in proposal.locked_direction:
            proposal.locked_direction[identity] = direction

        event = VoteCastEvent(
            organization_id=organization.id,
            proposal_id=proposal.id,
            voter=identity,
            vote_type=direction,
            token_id=token.token_id,
            timestamp=now,
        )
        self.events.emit(event)
        logger.info(
            f"Vote: {identity} → {direction.name} on proposal #{proposal.id} "
            f"(token={token.token_id}, total={proposal.total_votes})"
        )
        return event

    def _validate(
        self,
        proposal: Proposal,
        token: MembershipToken,
        vote_type: Union[VoteType, int, str],
        now: int,
    ) -> VoteType:
        pid = proposal.id
        if proposal.status != ProposalStatus.ACTIVE:
            raise WrongStatusError(
                f"Proposal #{pid} is not votable (status={proposal.status.name})"
            )
        if now < proposal.start_time:
            raise VotingNotStartedError(
                f"Voting on proposal #{pid} opens at {proposal.start_time} (now={now})"
            )
        if now > proposal.end_time:
            raise VotingEndedError(
                f"Voting on proposal #{pid} closed at {proposal.end_time} (now={now})"
            )
        if proposal.has_ballot(token.token_id):
            raise AlreadyVotedError(
                f"Token {token.token_id} has already voted on proposal #{pid}"
            )

        direction = VoteType.parse(vote_type)

        locked = proposal.locked_direction_of(token.owner)
        if locked is not None and locked != direction:
            logger.debug(
                f"Rejected vote by {token.owner} on proposal #{pid}: "
                f"{direction.name} conflicts with locked {locked.name}"
            )
            raise ConflictingVoteDirectionError(
                f"{token.owner} is locked to {locked.name} on proposal #{pid}, "
                f"cannot vote {direction.name}"
            )
        return direction

    # ── Queries ───────────────────────────────────────────────────────

    @staticmethod
    def has_voted(proposal: Proposal, token_id: str) -> bool:
        return proposal.has_ballot(token_id)

    @staticmethod
    def locked_direction_of(proposal: Proposal, identity: str) -> Optional[VoteType]:
        return proposal.locked_direction_of(identity)

    @staticmethod
    def vote_count_of(proposal: Proposal, identity: str) -> int:
        return proposal.vote_count_of(identity)

    def to_dict(self) -> Dict[str, Any]:
        return {"votesCast": len(self.events.of_type(VoteCastEvent))}

    def __repr__(self) -> str:
        return f"<VotingEngine events={len(self.events)}>"
