"""
Organization Treasury

A single pooled balance per organization. Anyone may deposit; only the
resolution step of the lifecycle controller debits, and the debit either
moves the full amount or raises without touching the balance.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

from ..logger import get_logger
from .proposals import ResourceError, ShapeError

logger = get_logger(__name__)

Amount = Union[Decimal, int, str]


class InsufficientFundsError(ResourceError):
    """Treasury balance is below the requested debit."""


class InvalidAmountError(ShapeError):
    """Amount is not a positive number."""


def to_amount(value: Amount) -> Decimal:
    """Convert *value* to a positive Decimal or raise InvalidAmountError."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Amount must be positive (got {value!r})")
    return amount


class Treasury:
    """Pooled organization funds."""

    def __init__(self, organization_id: str, balance: Amount = 0):
        self.organization_id = organization_id
        self._balance = Decimal(str(balance))
        if self._balance < 0:
            raise InvalidAmountError("Initial treasury balance cannot be negative")
        self._total_deposited = Decimal("0")
        self._total_disbursed = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def total_deposited(self) -> Decimal:
        return self._total_deposited

    @property
    def total_disbursed(self) -> Decimal:
        return self._total_disbursed

    def can_cover(self, amount: Amount) -> bool:
        return self._balance >= to_amount(amount)

    def deposit(self, amount: Amount) -> Decimal:
        """Merge *amount* into the balance. Returns the new balance."""
        value = to_amount(amount)
        self._balance += value
        self._total_deposited += value
        logger.info(
            f"Treasury {self.organization_id}: deposit {value} "
            f"(balance={self._balance})"
        )
        return self._balance

    def debit(self, amount: Amount) -> Decimal:
        """
        Remove *amount* from the balance.

        Raises InsufficientFundsError, leaving the balance untouched, when
        the balance is short. Returns the debited amount.
        """
        value = to_amount(amount)
        if self._balance < value:
            raise InsufficientFundsError(
                f"Treasury {self.organization_id} holds {self._balance}, "
                f"cannot debit {value}"
            )
        self._balance -= value
        self._total_disbursed += value
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organizationId": self.organization_id,
            "balance": str(self._balance),
            "totalDeposited": str(self._total_deposited),
            "totalDisbursed": str(self._total_disbursed),
        }

    def __repr__(self) -> str:
        return f"<Treasury {self.organization_id} balance={self._balance}>"


class PayoutLedger:
    """Funds received by payout recipients, keyed by address."""

    def __init__(self):
        self._balances: Dict[str, Decimal] = {}

    def credit(self, recipient: str, amount: Decimal) -> Decimal:
        self._balances[recipient] = self.balance_of(recipient) + amount
        return self._balances[recipient]

    def balance_of(self, recipient: str) -> Decimal:
        return self._balances.get(recipient, Decimal("0"))

    def to_dict(self) -> Dict[str, str]:
        return {address: str(amount) for address, amount in self._balances.items()}

    def __repr__(self) -> str:
        return f"<PayoutLedger recipients={len(self._balances)}>"
