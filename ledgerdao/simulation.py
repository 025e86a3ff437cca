"""
Scenario Replay

Replays a JSON scenario (organizations, tokens, deposits, proposals,
votes, cancellations, resolutions with explicit timestamps) through a
GovernanceController. Used by ``ledgerdao simulate`` and handy for
reproducing governance outcomes offline.

Scenario layout::

    {
      "organization": {"id": "dao", "name": "Builders", "token_type": "pass",
                       "creator": "alice", "creator_token": "t1",
                       "quorum": 3, "voting_delay": 1000, "voting_period": 10000},
      "children": [{"id": "dao-genesis", "name": "Genesis", "attribute": "origin",
                    "value": "genesis", "creator": "alice", "creator_token": "t1"}],
      "tokens": [{"token_id": "t1", "owner": "alice", "token_type": "pass",
                  "attributes": {"origin": "genesis"}}],
      "steps": [
        {"action": "deposit", "amount": "100", "sender": "carol"},
        {"action": "propose", "token": "t1", "name": "Grant", "kind": "funding",
         "recipient": "bob", "amount": "100", "now": 0},
        {"action": "vote", "proposal": 1, "token": "t1", "vote": "for", "now": 1500},
        {"action": "cancel", "proposal": 1, "identity": "alice", "now": 10},
        {"action": "resolve", "proposal": 1, "now": 20000}
      ]
    }

Steps may name an ``organization`` (default: the top-level one).
"""

from typing import Any, Dict, List, Optional

from .config import GovernanceConfig
from .exceptions import LedgerDAOException
from .governance import (
    BaseMembership,
    GovernanceController,
    MembershipToken,
    Organization,
)
from .logger import get_logger

logger = get_logger(__name__)

_ORG_PARAMS = ("quorum", "voting_delay", "voting_period")


class ScenarioError(LedgerDAOException):
    """Scenario file is malformed."""


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ScenarioError(f"{where}: missing required field '{key}'")
    return data[key]


def _as_int(value: Any, key: str, where: str) -> int:
    if isinstance(value, bool):
        raise ScenarioError(f"{where}: field '{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ScenarioError(
            f"{where}: field '{key}' must be an integer, got {value!r}"
        ) from None


def _require_int(data: Dict[str, Any], key: str, where: str) -> int:
    return _as_int(_require(data, key, where), key, where)


def _mapping(data: Any, where: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ScenarioError(f"{where}: expected an object, got {type(data).__name__}")
    return data


def _sequence(data: Any, where: str) -> List[Any]:
    if not isinstance(data, list):
        raise ScenarioError(f"{where}: expected a list, got {type(data).__name__}")
    return data


class ScenarioRunner:
    """Builds the world described by a scenario and replays its steps."""

    def __init__(self, scenario: Dict[str, Any], config: Optional[GovernanceConfig] = None):
        self.scenario = scenario
        self.config = config or GovernanceConfig()
        self.controller = GovernanceController(
            creation_policy=self.config.governance.creation_policy,
            admins=self.config.governance.admins,
        )
        self.tokens: Dict[str, MembershipToken] = {}
        self.organizations: Dict[str, Organization] = {}
        self.root: Optional[Organization] = None
        self.results: List[Dict[str, Any]] = []

    # ── Setup ─────────────────────────────────────────────────────────

    def _load_tokens(self):
        for raw in _sequence(self.scenario.get("tokens", []), "tokens"):
            raw = _mapping(raw, "token")
            token = MembershipToken(
                token_id=str(_require(raw, "token_id", "token")),
                owner=_require(raw, "owner", "token"),
                token_type=_require(raw, "token_type", "token"),
                attributes=dict(_mapping(raw.get("attributes", {}), "token attributes")),
            )
            self.tokens[token.token_id] = token

    def _token(self, token_id: Optional[str]) -> Optional[MembershipToken]:
        if token_id is None:
            return None
        try:
            return self.tokens[str(token_id)]
        except KeyError:
            raise ScenarioError(f"Unknown token: {token_id!r}") from None

    @staticmethod
    def _explicit_params(raw: Dict[str, Any], where: str) -> Dict[str, int]:
        return {
            key: _as_int(raw[key], key, where)
            for key in _ORG_PARAMS
            if key in raw
        }

    def _build_organizations(self):
        raw = _mapping(_require(self.scenario, "organization", "scenario"), "organization")
        params = self.config.organization_kwargs()
        params.update(self._explicit_params(raw, "organization"))
        org = self.controller.create_organization(
            organization_id=_require(raw, "id", "organization"),
            name=raw.get("name", raw["id"]),
            membership=BaseMembership(_require(raw, "token_type", "organization")),
            creator=_require(raw, "creator", "organization"),
            creator_token=self._token(raw.get("creator_token")),
            **params,
        )
        self.root = org
        self.organizations[org.id] = org

        for child_raw in _sequence(self.scenario.get("children", []), "children"):
            child_raw = _mapping(child_raw, "child")
            child = self.controller.create_scoped_organization(
                parent=self.organizations.get(child_raw.get("parent", org.id), org),
                organization_id=_require(child_raw, "id", "child"),
                name=child_raw.get("name", child_raw["id"]),
                attribute=_require(child_raw, "attribute", "child"),
                value=_require(child_raw, "value", "child"),
                creator=_require(child_raw, "creator", "child"),
                creator_token=self._token(child_raw.get("creator_token")),
                **self._explicit_params(child_raw, "child"),
            )
            self.organizations[child.id] = child

    # ── Steps ─────────────────────────────────────────────────────────

    def _organization(self, step: Dict[str, Any]) -> Organization:
        org_id = step.get("organization")
        if org_id is None:
            return self.root
        try:
            return self.organizations[org_id]
        except (KeyError, TypeError):
            raise ScenarioError(f"Unknown organization: {org_id!r}") from None

    def _apply(self, step: Dict[str, Any]) -> Any:
        action = _require(step, "action", "step")
        org = self._organization(step)
        ctl = self.controller

        if action == "deposit":
            return str(ctl.deposit(org, _require(step, "amount", action), step.get("sender", "")))
        if action == "propose":
            proposal = ctl.create_proposal(
                org,
                self._token(_require(step, "token", action)),
                name=_require(step, "name", action),
                kind=step.get("kind", "voting"),
                now=_require_int(step, "now", action),
                description=step.get("description", ""),
                recipient=step.get("recipient"),
                amount=step.get("amount"),
            )
            return proposal.id
        if action == "vote":
            event = ctl.cast_vote(
                org,
                _require_int(step, "proposal", action),
                self._token(_require(step, "token", action)),
                _require(step, "vote", action),
                _require_int(step, "now", action),
            )
            return event.vote_type.name
        if action == "cancel":
            proposal = ctl.cancel_proposal(
                org,
                _require_int(step, "proposal", action),
                _require(step, "identity", action),
                _require_int(step, "now", action),
            )
            return proposal.status.name
        if action == "resolve":
            proposal = ctl.resolve_proposal(
                org,
                _require_int(step, "proposal", action),
                _require_int(step, "now", action),
            )
            return proposal.status.name
        raise ScenarioError(f"Unknown action: {action!r}")

    def run(self) -> Dict[str, Any]:
        """
        Replay every step. Governance errors are recorded per step and the
        replay continues; malformed scenarios raise ScenarioError.
        """
        _mapping(self.scenario, "scenario")
        self._load_tokens()
        self._build_organizations()

        for index, step in enumerate(_sequence(self.scenario.get("steps", []), "steps")):
            step = _mapping(step, f"step {index}")
            record: Dict[str, Any] = {"step": index, "action": step.get("action")}
            try:
                record["result"] = self._apply(step)
                record["ok"] = True
            except ScenarioError:
                raise
            except LedgerDAOException as e:
                record["ok"] = False
                record["error"] = type(e).__name__
                record["message"] = str(e)
                logger.debug(f"Step {index} ({step.get('action')}) failed: {e}")
            self.results.append(record)

        return self.report()

    def report(self) -> Dict[str, Any]:
        return {
            "organizations": [o.to_dict() for o in self.organizations.values()],
            "proposals": [
                p.to_dict()
                for o in self.organizations.values()
                for p in o.proposals()
            ],
            "steps": self.results,
            "events": self.controller.events.to_list(),
            "payouts": self.controller.payouts.to_dict(),
            "registry": self.controller.registry.ids(),
        }

    @property
    def failed_steps(self) -> List[Dict[str, Any]]:
        return [r for r in self.results if not r["ok"]]


def replay_scenario(
    scenario: Dict[str, Any],
    config: Optional[GovernanceConfig] = None,
) -> Dict[str, Any]:
    """Replay *scenario* and return the JSON-serialisable report."""
    return ScenarioRunner(scenario, config).run()
