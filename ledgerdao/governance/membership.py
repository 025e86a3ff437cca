"""
Membership Predicates

A membership token is presented by reference to prove eligibility. It is
inspected, never consumed or transferred. Organizations hold a predicate
object; scoped (child) organizations wrap their parent's predicate with an
attribute-equality filter, so every organization shares the same voting
and lifecycle code beneath a different gate.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ..logger import get_logger
from .proposals import AuthorizationError

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class NotMemberError(AuthorizationError):
    """Token is not of the organization's membership type."""


class ScopeMismatchError(AuthorizationError):
    """Token does not satisfy a scoped organization's attribute filter."""


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MembershipToken:
    """
    Caller-held proof of eligibility.

    Attributes:
        token_id:    Unique id of the physical token (one ballot per proposal)
        owner:       Identity holding the token (direction lock key)
        token_type:  Membership type / collection the token belongs to
        attributes:  Arbitrary token traits, e.g. {"origin": "genesis"}
    """
    token_id: str
    owner: str
    token_type: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def attribute(self, name: str) -> Any:
        return self.attributes.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "owner": self.owner,
            "tokenType": self.token_type,
            "attributes": dict(self.attributes),
        }


# ══════════════════════════════════════════════════════════════════════
#  PREDICATES
# ══════════════════════════════════════════════════════════════════════

class MembershipPredicate(ABC):
    """
    Eligibility check. ``check`` returns None on acceptance and raises an
    AuthorizationError subclass on rejection.
    """

    @property
    @abstractmethod
    def token_type(self) -> str:
        """Membership type every accepted token must carry."""

    @abstractmethod
    def check(self, token: MembershipToken) -> None:
        """Raise NotMemberError / ScopeMismatchError if *token* is not eligible."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass

    def accepts(self, token: MembershipToken) -> bool:
        try:
            self.check(token)
        except AuthorizationError:
            return False
        return True


class BaseMembership(MembershipPredicate):
    """Accepts any token of the declared membership type."""

    def __init__(self, token_type: str):
        if not token_type:
            raise ValueError("token_type is required")
        self._token_type = token_type

    @property
    def token_type(self) -> str:
        return self._token_type

    def check(self, token: MembershipToken) -> None:
        if token.token_type != self.token_type:
            logger.debug(
                f"Token {token.token_id} rejected: type {token.token_type!r} "
                f"!= {self.token_type!r}"
            )
            raise NotMemberError(
                f"Token {token.token_id} is of type {token.token_type!r}, "
                f"expected {self.token_type!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "base", "tokenType": self.token_type}

    def __repr__(self) -> str:
        return f"<BaseMembership {self.token_type}>"


class ScopedMembership(MembershipPredicate):
    """
    Parent predicate plus ``token.attributes[attribute] == value``.

    Used by scoped organizations (sub-DAOs), e.g. only tokens sharing a
    given origin tag.
    """

    def __init__(self, base: MembershipPredicate, attribute: str, value: Any):
        if not attribute:
            raise ValueError("attribute is required")
        self.base = base
        self.attribute = attribute
        self.value = value

    @property
    def token_type(self) -> str:
        return self.base.token_type

    def check(self, token: MembershipToken) -> None:
        self.base.check(token)
        actual = token.attribute(self.attribute)
        if actual != self.value:
            logger.debug(
                f"Token {token.token_id} rejected: {self.attribute}={actual!r} "
                f"!= {self.value!r}"
            )
            raise ScopeMismatchError(
                f"Token {token.token_id} has {self.attribute}={actual!r}, "
                f"scope requires {self.value!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "scoped",
            "base": self.base.to_dict(),
            "attribute": self.attribute,
            "value": self.value,
        }

    def __repr__(self) -> str:
        return f"<ScopedMembership {self.attribute}={self.value!r} over {self.base!r}>"
