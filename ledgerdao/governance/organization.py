"""
Organizations

An Organization (DAO) owns a treasury, its governance parameters, a
membership predicate and its proposals. A ScopedOrganization (sub-DAO) is
an Organization whose predicate adds an attribute filter on top of its
parent's; it is otherwise identical for proposal purposes.

The OrganizationRegistry is the hub that lists organization ids. It is an
explicit object handed to whoever creates organizations, append-only.
"""

from typing import Any, Dict, Iterator, List, Optional

from ..constants import (
    DEFAULT_QUORUM,
    DEFAULT_VOTING_DELAY_MS,
    DEFAULT_VOTING_PERIOD_MS,
    GOVERNANCE_VERSION,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger
from .membership import MembershipPredicate, ScopedMembership
from .proposals import (
    GovernanceError,
    Proposal,
    ProposalNotFoundError,
    ProposalStatus,
)
from .treasury import Treasury

logger = get_logger(__name__)


class InvalidConfigurationError(GovernanceError, ConfigurationError):
    """Organization parameters are out of range."""


class VersionMismatchError(GovernanceError):
    """Organization carries a version tag this package does not serve."""


class OrganizationRegistry:
    """
    Hub listing every organization id, in creation order.

    Created once at deployment and only ever appended to.
    """

    def __init__(self):
        self._ids: List[str] = []

    def register(self, organization_id: str):
        if organization_id in self._ids:
            raise InvalidConfigurationError(
                f"Organization {organization_id} already registered"
            )
        self._ids.append(organization_id)
        logger.info(f"Registry: organization {organization_id} registered")

    def ids(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, organization_id: str) -> bool:
        return organization_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __repr__(self) -> str:
        return f"<OrganizationRegistry organizations={len(self._ids)}>"


class Organization:
    """
    A governed collective.

    Args:
        organization_id: Unique id
        name:            Display name
        membership:      Predicate gating proposal creation and voting
        quorum:          Minimum total votes (all types) for a valid outcome
        voting_delay:    ms between proposal creation and voting opening
        voting_period:   ms length of the voting window
        version:         Version tag checked by every mutating operation
    """

    def __init__(
        self,
        organization_id: str,
        name: str,
        membership: MembershipPredicate,
        quorum: int = DEFAULT_QUORUM,
        voting_delay: int = DEFAULT_VOTING_DELAY_MS,
        voting_period: int = DEFAULT_VOTING_PERIOD_MS,
        creator: Optional[str] = None,
        version: int = GOVERNANCE_VERSION,
    ):
        if not organization_id:
            raise InvalidConfigurationError("organization_id is required")
        if quorum < 0:
            raise InvalidConfigurationError(f"quorum must be >= 0 (got {quorum})")
        if voting_delay < 0:
            raise InvalidConfigurationError(
                f"voting_delay must be >= 0 (got {voting_delay})"
            )
        if voting_period <= 0:
            raise InvalidConfigurationError(
                f"voting_period must be > 0 (got {voting_period})"
            )

        self.id = organization_id
        self.name = name
        self.membership = membership
        self.quorum = quorum
        self.voting_delay = voting_delay
        self.voting_period = voting_period
        self.creator = creator
        self.version = version
        self.treasury = Treasury(organization_id)
        self.children: List[str] = []
        self._proposals: Dict[int, Proposal] = {}
        self._next_proposal_id = 1

    def require_version(self, expected: int = GOVERNANCE_VERSION):
        """Entry check for mutating operations."""
        if self.version != expected:
            raise VersionMismatchError(
                f"Organization {self.id} is at version {self.version}, "
                f"expected {expected}"
            )

    # ── Proposals ─────────────────────────────────────────────────────

    def next_proposal_id(self) -> int:
        return self._next_proposal_id

    def add_proposal(self, proposal: Proposal):
        if proposal.id in self._proposals:
            raise InvalidConfigurationError(
                f"Proposal #{proposal.id} already exists in {self.id}"
            )
        self._proposals[proposal.id] = proposal
        self._next_proposal_id = max(self._next_proposal_id, proposal.id + 1)

    def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(
                f"Proposal #{proposal_id} not found in organization {self.id}"
            )
        return proposal

    def has_proposal(self, proposal_id: int) -> bool:
        return proposal_id in self._proposals

    def proposals(self) -> List[Proposal]:
        return [self._proposals[pid] for pid in sorted(self._proposals)]

    def proposals_by_status(self, status: ProposalStatus) -> List[Proposal]:
        return [p for p in self.proposals() if p.status == status]

    # ── Children ──────────────────────────────────────────────────────

    def create_child(
        self,
        organization_id: str,
        name: str,
        attribute: str,
        value: Any,
        registry: Optional[OrganizationRegistry] = None,
        creator: Optional[str] = None,
        quorum: Optional[int] = None,
        voting_delay: Optional[int] = None,
        voting_period: Optional[int] = None,
    ) -> "ScopedOrganization":
        """
        Create a scoped sub-organization gated by ``attribute == value``.

        Parameters not given are inherited from this organization. The
        child id is appended to ``children`` and to *registry* if given.
        """
        child = ScopedOrganization(
            organization_id=organization_id,
            name=name,
            parent=self,
            attribute=attribute,
            value=value,
            quorum=self.quorum if quorum is None else quorum,
            voting_delay=self.voting_delay if voting_delay is None else voting_delay,
            voting_period=self.voting_period if voting_period is None else voting_period,
            creator=creator,
            version=self.version,
        )
        if registry is not None:
            registry.register(child.id)
        self.children.append(child.id)
        logger.info(
            f"Organization {self.id}: scoped child {child.id} "
            f"({attribute}={value!r}) created"
        )
        return child

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "membership": self.membership.to_dict(),
            "quorum": self.quorum,
            "votingDelay": self.voting_delay,
            "votingPeriod": self.voting_period,
            "creator": self.creator,
            "version": self.version,
            "treasury": self.treasury.to_dict(),
            "children": list(self.children),
            "proposalCount": len(self._proposals),
        }

    def __repr__(self) -> str:
        return (
            f"<Organization {self.id} '{self.name}' "
            f"proposals={len(self._proposals)} quorum={self.quorum}>"
        )


class ScopedOrganization(Organization):
    """Sub-organization restricted to tokens whose *attribute* equals *value*."""

    def __init__(
        self,
        organization_id: str,
        name: str,
        parent: Organization,
        attribute: str,
        value: Any,
        **kwargs,
    ):
        super().__init__(
            organization_id=organization_id,
            name=name,
            membership=ScopedMembership(parent.membership, attribute, value),
            **kwargs,
        )
        self.parent_id = parent.id
        self.attribute = attribute
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["parentId"] = self.parent_id
        data["scope"] = {"attribute": self.attribute, "value": self.value}
        return data

    def __repr__(self) -> str:
        return (
            f"<ScopedOrganization {self.id} '{self.name}' "
            f"{self.attribute}={self.value!r} parent={self.parent_id}>"
        )
