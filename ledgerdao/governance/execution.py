"""
Proposal Lifecycle Controller

Implements:
  - Organization / scoped organization creation (open or admin policy)
  - Proposal creation behind the organization's membership predicate
  - Creator cancellation before voting opens
  - Permissionless, at-most-once resolution after voting closes, with
    treasury disbursement for executed FUNDING proposals

Resolution debits the treasury before the status transition; if the debit
raises, nothing has changed and the proposal stays ACTIVE so it can be
resolved again once the treasury is topped up.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Union

from ..constants import (
    CREATION_POLICIES,
    CREATION_POLICY_ADMIN,
    DEFAULT_CREATION_POLICY,
)
from ..logger import get_logger
from .events import (
    EventLog,
    ProposalCanceledEvent,
    ProposalCreatedEvent,
    ProposalResolvedEvent,
    TreasuryDepositEvent,
)
from .membership import MembershipPredicate, MembershipToken, ScopedMembership
from .organization import (
    InvalidConfigurationError,
    Organization,
    OrganizationRegistry,
    ScopedOrganization,
)
from .proposals import (
    AuthorizationError,
    Proposal,
    ProposalKind,
    ProposalStatus,
    TimingError,
    WrongStatusError,
)
from .treasury import InsufficientFundsError, PayoutLedger, to_amount
from .voting import VotingEngine

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class NotCreatorError(AuthorizationError):
    """Only the proposal's creator may cancel it."""


class NotAuthorizedError(AuthorizationError):
    """Caller may not create organizations under the active policy."""


class VotingAlreadyStartedError(TimingError):
    """Cancellation attempted at or after start_time."""


class VotingNotEndedError(TimingError):
    """Resolution attempted before end_time."""


# ══════════════════════════════════════════════════════════════════════
#  CONTROLLER
# ══════════════════════════════════════════════════════════════════════

class GovernanceController:
    """
    Creates, cancels and resolves proposals.

    One controller serves every organization and scoped organization; the
    only per-organization difference is the membership predicate.
    """

    def __init__(
        self,
        registry: Optional[OrganizationRegistry] = None,
        event_log: Optional[EventLog] = None,
        payouts: Optional[PayoutLedger] = None,
        creation_policy: str = DEFAULT_CREATION_POLICY,
        admins: Iterable[str] = (),
    ):
        if creation_policy not in CREATION_POLICIES:
            raise InvalidConfigurationError(
                f"Unknown creation policy {creation_policy!r}, "
                f"expected one of {CREATION_POLICIES}"
            )
        self.registry = registry if registry is not None else OrganizationRegistry()
        self.events = event_log if event_log is not None else EventLog()
        self.payouts = payouts if payouts is not None else PayoutLedger()
        self.voting = VotingEngine(self.events)
        self.creation_policy = creation_policy
        self.admins = frozenset(admins)

    # ── Organizations ─────────────────────────────────────────────────

    def _authorize_creation(
        self,
        membership: MembershipPredicate,
        creator: str,
        creator_token: Optional[MembershipToken],
    ):
        if self.creation_policy == CREATION_POLICY_ADMIN:
            if creator not in self.admins:
                raise NotAuthorizedError(
                    f"{creator} is not an admin; organization creation is restricted"
                )
            return
        if creator_token is None:
            raise NotAuthorizedError(
                "A qualifying membership token is required to create an organization"
            )
        if creator_token.owner != creator:
            raise NotAuthorizedError(
                f"Token {creator_token.token_id} is not held by {creator}"
            )
        membership.check(creator_token)

    def create_organization(
        self,
        organization_id: str,
        name: str,
        membership: MembershipPredicate,
        creator: str,
        creator_token: Optional[MembershipToken] = None,
        **params,
    ) -> Organization:
        """
        Create and register a top-level organization.

        Under the ``open`` policy *creator_token* must be held by *creator*
        and satisfy *membership*; under ``admin`` *creator* must be an admin.
        *params* are forwarded to Organization (quorum, voting_delay, ...).
        """
        self._authorize_creation(membership, creator, creator_token)
        if organization_id in self.registry:
            raise InvalidConfigurationError(
                f"Organization {organization_id} already registered"
            )
        organization = Organization(
            organization_id=organization_id,
            name=name,
            membership=membership,
            creator=creator,
            **params,
        )
        self.registry.register(organization.id)
        logger.info(
            f"Organization {organization.id} '{name}' created by {creator} "
            f"(quorum={organization.quorum})"
        )
        return organization

    def create_scoped_organization(
        self,
        parent: Organization,
        organization_id: str,
        name: str,
        attribute: str,
        value: Any,
        creator: str,
        creator_token: Optional[MembershipToken] = None,
        **params,
    ) -> ScopedOrganization:
        """Create a sub-organization of *parent* gated by ``attribute == value``."""
        parent.require_version()
        if organization_id in self.registry:
            raise InvalidConfigurationError(
                f"Organization {organization_id} already registered"
            )
        # Under the open policy the creator must qualify for the new scope
        scope = ScopedMembership(parent.membership, attribute, value)
        self._authorize_creation(scope, creator, creator_token)
        return parent.create_child(
            organization_id=organization_id,
            name=name,
            attribute=attribute,
            value=value,
            registry=self.registry,
            creator=creator,
            **params,
        )

    def deposit(
        self,
        organization: Organization,
        amount: Union[Decimal, int, str],
        sender: str = "",
    ) -> Decimal:
        """Unrestricted treasury top-up. Returns the new balance."""
        organization.require_version()
        value = to_amount(amount)
        balance = organization.treasury.deposit(value)
        self.events.emit(TreasuryDepositEvent(
            organization_id=organization.id,
            sender=sender,
            amount=value,
            balance=balance,
        ))
        return balance

    # ── Create ────────────────────────────────────────────────────────

    def create_proposal(
        self,
        organization: Organization,
        token: MembershipToken,
        name: str,
        kind: ProposalKind,
        now: int,
        description: str = "",
        recipient: Optional[str] = None,
        amount: Optional[Union[Decimal, int, str]] = None,
    ) -> Proposal:
        """
        Create an ACTIVE proposal whose voting window is
        ``[now + voting_delay, now + voting_delay + voting_period]``.
        """
        organization.require_version()
        organization.membership.check(token)

        start_time = now + organization.voting_delay
        proposal = Proposal(
            id=organization.next_proposal_id(),
            organization_id=organization.id,
            name=name,
            description=description,
            kind=kind,
            creator=token.owner,
            created_at=now,
            start_time=start_time,
            end_time=start_time + organization.voting_period,
            recipient=recipient,
            amount=amount,
        )
        organization.add_proposal(proposal)

        self.events.emit(ProposalCreatedEvent(
            organization_id=organization.id,
            proposal_id=proposal.id,
            name=proposal.name,
            creator=proposal.creator,
            timestamp=now,
        ))
        logger.info(
            f"Proposal #{proposal.id} '{proposal.name}' ({proposal.kind.name}) "
            f"created in {organization.id} by {proposal.creator}, "
            f"voting {proposal.start_time}..{proposal.end_time}"
        )
        return proposal

    # ── Vote ──────────────────────────────────────────────────────────

    def cast_vote(self, organization: Organization, proposal_id: int,
                  token: MembershipToken, vote_type, now: int):
        return self.voting.cast_vote(organization, proposal_id, token, vote_type, now)

    # ── Cancel ────────────────────────────────────────────────────────

    def cancel_proposal(
        self,
        organization: Organization,
        proposal_id: int,
        identity: str,
        now: int,
    ) -> Proposal:
        """Creator-only cancellation while ACTIVE and before voting opens."""
        organization.require_version()
        proposal = organization.get_proposal(proposal_id)

        if identity != proposal.creator:
            raise NotCreatorError(
                f"{identity} did not create proposal #{proposal.id}"
            )
        if proposal.status != ProposalStatus.ACTIVE:
            raise WrongStatusError(
                f"Proposal #{proposal.id} cannot be canceled "
                f"(status={proposal.status.name})"
            )
        if now >= proposal.start_time:
            raise VotingAlreadyStartedError(
                f"Voting on proposal #{proposal.id} opened at {proposal.start_time}"
            )

        proposal.cancel(now)
        self.events.emit(ProposalCanceledEvent(
            organization_id=organization.id,
            proposal_id=proposal.id,
            name=proposal.name,
            timestamp=now,
        ))
        return proposal

    # ── Resolve ───────────────────────────────────────────────────────

    @staticmethod
    def outcome(proposal: Proposal, quorum: int) -> ProposalStatus:
        """
        Terminal status the current tally resolves to.

        Below quorum → DEFEATED; FOR > AGAINST → EXECUTED; otherwise
        (including ties) DEFEATED.
        """
        if proposal.total_votes < quorum:
            return ProposalStatus.DEFEATED
        if proposal.votes_for > proposal.votes_against:
            return ProposalStatus.EXECUTED
        return ProposalStatus.DEFEATED

    def resolve_proposal(
        self,
        organization: Organization,
        proposal_id: int,
        now: int,
    ) -> Proposal:
        """
        Close voting and move the proposal to DEFEATED or EXECUTED.

        Callable by anyone once ``now >= end_time``. Later calls fail with
        WrongStatusError. An executed FUNDING proposal pays its recipient
        from the treasury; InsufficientFundsError leaves everything as it was.
        """
        organization.require_version()
        proposal = organization.get_proposal(proposal_id)

        if proposal.status != ProposalStatus.ACTIVE:
            raise WrongStatusError(
                f"Proposal #{proposal.id} already resolved "
                f"(status={proposal.status.name})"
            )
        if now < proposal.end_time:
            raise VotingNotEndedError(
                f"Voting on proposal #{proposal.id} ends at {proposal.end_time} "
                f"(now={now})"
            )

        status = self.outcome(proposal, organization.quorum)
        payout = None

        if status == ProposalStatus.EXECUTED:
            if proposal.is_funding:
                try:
                    payout = organization.treasury.debit(proposal.amount)
                except InsufficientFundsError:
                    logger.warning(
                        f"Proposal #{proposal.id}: execution blocked, treasury "
                        f"{organization.id} holds {organization.treasury.balance} "
                        f"< {proposal.amount}"
                    )
                    raise
                self.payouts.credit(proposal.recipient, payout)
            proposal.mark_executed(now)
        elif proposal.total_votes < organization.quorum:
            proposal.mark_defeated(
                now,
                f"Quorum not reached ({proposal.total_votes}/{organization.quorum})",
            )
        else:
            proposal.mark_defeated(
                now,
                f"FOR {proposal.votes_for} <= AGAINST {proposal.votes_against}",
            )

        self.events.emit(ProposalResolvedEvent(
            organization_id=organization.id,
            proposal_id=proposal.id,
            name=proposal.name,
            status=proposal.status,
            timestamp=now,
            payout=payout,
        ))
        if payout is not None:
            logger.info(
                f"Proposal #{proposal.id}: paid {payout} to {proposal.recipient} "
                f"(treasury balance={organization.treasury.balance})"
            )
        return proposal

    # ── Queries ───────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creationPolicy": self.creation_policy,
            "admins": sorted(self.admins),
            "organizations": self.registry.ids(),
            "events": len(self.events),
            "payouts": self.payouts.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"<GovernanceController organizations={len(self.registry)} "
            f"events={len(self.events)}>"
        )
