"""
PAPERCHAIN Ledger Collaborator

The registry charges its registration fee through a transfer primitive owned
by the surrounding environment. Ledger is that primitive's interface;
InMemoryLedger is an in-process implementation with balances and an
append-only transfer record, used by the execution harness and the tests.

Transfer failures follow the native token transfer rules of the environment
the registry targets:

    INSUFFICIENT_BALANCE        sender cannot cover the amount
    SAME_SENDER_AND_RECIPIENT   sender and recipient are the same principal
    NON_POSITIVE_AMOUNT         amount is zero
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

from paperchain.errors import TransferError
from paperchain.models import Principal
from paperchain.observability import RegistryLayer, get_logger
from paperchain.result import Err, Ok, Result

logger = get_logger("ledger", RegistryLayer.LEDGER)


@dataclass(frozen=True)
class Transfer:
    """A committed token transfer."""
    amount: int
    sender: Principal
    recipient: Principal

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "from": self.sender, "to": self.recipient}


class Ledger(Protocol):
    """Token transfer primitive consumed by the registry."""

    def transfer(self, amount: int, sender: Principal, recipient: Principal) -> Result[bool]:
        ...


class InMemoryLedger:
    """
    Balance ledger kept in memory.

    A transfer either moves the full amount and appends a Transfer record, or
    fails with a TransferError and changes nothing.

    Example:
        ledger = InMemoryLedger({"ST1TEST": 5000})
        ledger.transfer(1000, "ST1TEST", "ST2TEST")   # Ok(True)
        ledger.balance_of("ST2TEST")                  # 1000
    """

    def __init__(self, balances: Optional[Mapping[Principal, int]] = None):
        self._balances: Dict[Principal, int] = {}
        self.transfers: List[Transfer] = []
        for principal, amount in (balances or {}).items():
            self.credit(principal, amount)

    def credit(self, principal: Principal, amount: int) -> int:
        """Mint amount into principal's balance and return the new balance."""
        if amount < 0:
            raise ValueError(f"cannot credit a negative amount: {amount}")
        self._balances[principal] = self._balances.get(principal, 0) + amount
        return self._balances[principal]

    def balance_of(self, principal: Principal) -> int:
        return self._balances.get(principal, 0)

    @property
    def balances(self) -> Dict[Principal, int]:
        return dict(self._balances)

    def transfer(self, amount: int, sender: Principal, recipient: Principal) -> Result[bool]:
        if amount <= 0:
            return Err(TransferError.NON_POSITIVE_AMOUNT)
        if sender == recipient:
            return Err(TransferError.SAME_SENDER_AND_RECIPIENT)
        if self.balance_of(sender) < amount:
            logger.debug(
                "Transfer rejected for insufficient balance",
                operation="transfer",
                sender=sender,
                amount=amount,
                balance=self.balance_of(sender),
            )
            return Err(TransferError.INSUFFICIENT_BALANCE)

        self._balances[sender] -= amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self.transfers.append(Transfer(amount=amount, sender=sender, recipient=recipient))
        return Ok(True)
