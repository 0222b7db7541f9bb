"""
PAPERCHAIN Execution Environment

In-process stand-in for the environment that hosts the registry. It owns the
two ambient values the registry never reads on its own, the current caller
and the current block height, plus the ledger that fees are paid through.
Calls are applied one at a time in the order they are submitted.

Transactions are plain dicts, as found in transaction scripts:

    {"caller": "ST1TEST", "op": "register-paper",
     "args": ["0xabc123", "Quantum Paper", "A quantum algorithm", 1000],
     "mine": 1}

"mine" advances the block height by that many blocks before the call runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from paperchain.events import EventBus
from paperchain.ledger import InMemoryLedger
from paperchain.models import CallContext, Paper, PaperId, Principal
from paperchain.observability import (
    RegistryLayer,
    correlation_id_var,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)
from paperchain.registry import PaperRegistry
from paperchain.result import Err, Ok

logger = get_logger("environment", RegistryLayer.ENVIRONMENT)


@dataclass(frozen=True)
class OperationSpec:
    method: str
    arity: int
    takes_context: bool


OPERATIONS: Dict[str, OperationSpec] = {
    "set-authority-contract": OperationSpec("set_authority_contract", 1, True),
    "set-registration-fee": OperationSpec("set_registration_fee", 1, True),
    "register-paper": OperationSpec("register_paper", 4, True),
    "verify-ownership": OperationSpec("verify_ownership", 1, True),
    "update-paper-metadata": OperationSpec("update_paper_metadata", 3, True),
    "deactivate-paper": OperationSpec("deactivate_paper", 1, True),
    "get-paper-details": OperationSpec("get_paper_details", 1, False),
    "get-paper-id": OperationSpec("get_paper_id", 1, False),
    "get-last-id": OperationSpec("get_last_id", 0, False),
    "get-registration-fee": OperationSpec("get_registration_fee", 0, False),
    "get-authority-contract": OperationSpec("get_authority_contract", 0, False),
    "is-paper-registered": OperationSpec("is_paper_registered", 1, False),
}


def render_result(value: Any) -> Dict[str, Any]:
    """Uniform ``{"ok": ..., "value": ...}`` view of any operation outcome."""
    if isinstance(value, (Ok, Err)):
        return value.to_dict()
    if isinstance(value, (Paper, PaperId)):
        return {"ok": True, "value": value.to_dict()}
    return {"ok": True, "value": value}


class Environment:
    """
    Serial execution harness around one registry.

    Example:
        env = Environment(balances={"ST1TEST": 5000})
        env.call("set-authority-contract", "ST2TEST", caller="ST1TEST")
        env.call("register-paper", "0xabc123", "Quantum Paper",
                 "A quantum algorithm", 1000, caller="ST1TEST")      # Ok(1)
        env.ledger.transfers    # [Transfer(amount=1000, sender='ST1TEST', recipient='ST2TEST')]
    """

    def __init__(
        self,
        balances: Optional[Mapping[Principal, int]] = None,
        default_caller: Optional[Principal] = None,
        block_height: int = 0,
        event_bus: Optional[EventBus] = None,
    ):
        if block_height < 0:
            raise ValueError(f"block height cannot be negative: {block_height}")
        self.ledger = InMemoryLedger(balances)
        self.registry = PaperRegistry(ledger=self.ledger, event_bus=event_bus)
        self.default_caller = default_caller
        self.block_height = block_height

    def advance(self, blocks: int = 1) -> int:
        """Move the block height forward and return the new height."""
        if blocks < 0:
            raise ValueError(f"block height cannot move backwards: {blocks}")
        self.block_height += blocks
        return self.block_height

    def context(self, caller: Optional[Principal] = None) -> CallContext:
        caller = caller or self.default_caller
        if not caller:
            raise ValueError("no caller given and no default caller configured")
        return CallContext(caller=caller, block_height=self.block_height)

    def call(self, operation: str, *args: Any, caller: Optional[Principal] = None) -> Any:
        """Run one registry operation under the current height."""
        spec = OPERATIONS.get(operation)
        if spec is None:
            raise ValueError(f"unknown operation: {operation}")
        if len(args) != spec.arity:
            raise ValueError(f"{operation} takes {spec.arity} argument(s), got {len(args)}")

        method = getattr(self.registry, spec.method)
        if spec.takes_context:
            return method(self.context(caller), *args)
        return method(*args)

    def execute(self, transactions: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Apply transactions in order and return one receipt per transaction.

        Rejected transactions produce a failed receipt; later transactions
        still run. Malformed transactions raise ValueError.
        """
        receipts: List[Dict[str, Any]] = []
        for index, tx in enumerate(transactions):
            self.advance(int(tx.get("mine", 0)))
            operation = str(tx.get("op", ""))
            args = list(tx.get("args", []))
            caller = tx.get("caller")

            token = set_correlation_id(generate_correlation_id())
            try:
                outcome = self.call(operation, *args, caller=caller)
                correlation_id = correlation_id_var.get()
            finally:
                correlation_id_var.reset(token)

            receipt = {
                "index": index,
                "caller": caller or self.default_caller,
                "height": self.block_height,
                "op": operation,
                "correlation_id": correlation_id,
                "result": render_result(outcome),
            }
            receipts.append(receipt)

        logger.debug(
            "Executed transactions",
            operation="execute",
            count=len(receipts),
            last_id=self.registry.get_last_id(),
        )
        return receipts

    def snapshot(self) -> Dict[str, Any]:
        """Registry state, balances, transfers and event log in one view."""
        return {
            "height": self.block_height,
            "state": self.registry.state.snapshot(),
            "balances": self.ledger.balances,
            "transfers": [t.to_dict() for t in self.ledger.transfers],
            "events": [r.to_dict() for r in self.registry.event_store.read_all()],
        }
