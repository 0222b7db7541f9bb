"""
PAPERCHAIN Registry

The single authoritative record binding a paper's content hash to its
creator, funding goal and funding counter.

Operations
──────────

    Configuration
        set_authority_contract   bind the fee-receiving authority, once
        set_registration_fee     replace the fee (any caller, once an authority exists)

    Papers
        register_paper           validate, charge fee, assign next id, store
        verify_ownership         is the caller the stored creator?
        update_paper_metadata    creator replaces title and description
        deactivate_paper         creator switches is_active off, permanently

    Queries
        get_paper_details, get_paper_id, get_last_id,
        get_registration_fee, get_authority_contract, is_paper_registered

Transition rules
────────────────

Every mutating operation takes the CallContext supplied by the execution
environment. All checks run before any write; the registration fee transfer
is the last fallible step and precedes every write, so a rejected call
leaves state, balances and the event log exactly as they were.

Failures are returned as Err(code), never raised. The registry holds no
locks: the environment admits one call at a time.

Note on set_registration_fee: it only requires that an authority exists,
not that the caller is the authority. That is the registry's published
behavior and is kept as is.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from paperchain.config import PaperchainConfig, get_config
from paperchain.errors import ErrorCode, InvariantViolation, RegistryError
from paperchain.events import (
    Event,
    EventBus,
    EventStore,
    PaperDeactivated,
    PaperMetadataUpdated,
    PaperRegistered,
)
from paperchain.ledger import InMemoryLedger, Ledger
from paperchain.models import (
    CallContext,
    HashLike,
    Paper,
    PaperHash,
    PaperId,
    Principal,
    RegistryState,
)
from paperchain.observability import (
    RegistryLayer,
    correlation_id_var,
    get_logger,
    timed_operation,
)
from paperchain.result import Err, Ok, Result
from paperchain.validation import Validators

logger = get_logger("registry", RegistryLayer.REGISTRY)


class PaperRegistry:
    """
    Paper registry state machine.

    Example:
        registry = PaperRegistry(ledger=InMemoryLedger({"ST1TEST": 5000}))
        registry.set_authority_contract(CallContext("ST1TEST"), "ST2TEST")
        registry.register_paper(
            CallContext("ST1TEST", block_height=0),
            "0xabc123", "Quantum Paper", "A quantum algorithm", 1000,
        )                                   # Ok(1)
    """

    def __init__(
        self,
        state: Optional[RegistryState] = None,
        ledger: Optional[Ledger] = None,
        event_store: Optional[EventStore] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[PaperchainConfig] = None,
    ):
        registry_config = (config or get_config()).registry
        self._title_max = registry_config.title_max_length.require()
        self._description_max = registry_config.description_max_length.require()
        self._hash_max = registry_config.max_hash_bytes.require()
        self._null_principal = registry_config.null_principal.require()

        if state is None:
            state = RegistryState(registration_fee=registry_config.default_registration_fee.require())
        self.state = state
        self.ledger: Ledger = ledger if ledger is not None else InMemoryLedger()
        self.event_store = event_store if event_store is not None else EventStore()
        self.event_bus = event_bus

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @timed_operation(logger, "set-authority-contract")
    def set_authority_contract(self, ctx: CallContext, candidate: Principal) -> Result[bool]:
        if not Validators.validate_principal(candidate, self._null_principal).is_valid:
            return self._reject(ctx, "set-authority-contract", RegistryError.INVALID_PRINCIPAL, candidate=candidate)
        if self.state.authority_contract is not None:
            return self._reject(ctx, "set-authority-contract", RegistryError.NOT_AUTHORIZED, candidate=candidate)

        self.state.authority_contract = candidate
        logger.info(
            "Authority contract set",
            operation="set-authority-contract",
            caller=ctx.caller,
            authority=candidate,
        )
        return Ok(True)

    @timed_operation(logger, "set-registration-fee")
    def set_registration_fee(self, ctx: CallContext, new_fee: int) -> Result[bool]:
        if isinstance(new_fee, bool) or not isinstance(new_fee, int):
            raise TypeError(f"registration fee must be an integer, got {type(new_fee).__name__}")
        if new_fee < 0:
            raise ValueError(f"registration fee cannot be negative: {new_fee}")

        if self.state.authority_contract is None:
            return self._reject(ctx, "set-registration-fee", RegistryError.NOT_AUTHORIZED, fee=new_fee)

        old_fee = self.state.registration_fee
        self.state.registration_fee = new_fee
        logger.info(
            "Registration fee changed",
            operation="set-registration-fee",
            caller=ctx.caller,
            old_fee=old_fee,
            new_fee=new_fee,
        )
        return Ok(True)

    # ------------------------------------------------------------------
    # Papers
    # ------------------------------------------------------------------

    @timed_operation(logger, "register-paper")
    def register_paper(
        self,
        ctx: CallContext,
        paper_hash: HashLike,
        title: str,
        description: str,
        funding_goal: int,
    ) -> Result[int]:
        op = "register-paper"

        hash_check = Validators.validate_hash(paper_hash, self._hash_max)
        if not hash_check.is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_HASH)
        key: PaperHash = hash_check.sanitized_value

        if not Validators.validate_title(title, self._title_max).is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_TITLE, paper_hash=key.hex())
        if not Validators.validate_description(description, self._description_max).is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_DESCRIPTION, paper_hash=key.hex())
        if not Validators.validate_funding_goal(funding_goal).is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_FUNDING_GOAL, paper_hash=key.hex())
        if key in self.state.papers:
            return self._reject(ctx, op, RegistryError.DUPLICATE_HASH, paper_hash=key.hex())

        authority = self.state.authority_contract
        if authority is None:
            return self._reject(ctx, op, RegistryError.NOT_AUTHORIZED, paper_hash=key.hex())

        fee = self.state.registration_fee
        transfer = self.ledger.transfer(fee, ctx.caller, authority)
        if transfer.is_err:
            return self._reject(ctx, op, transfer.code, paper_hash=key.hex(), fee=fee)

        new_id = self.state.last_id + 1
        self.state.papers[key] = Paper(
            creator=ctx.caller,
            title=title,
            description=description,
            timestamp=ctx.block_height,
            funding_goal=funding_goal,
        )
        self.state.paper_ids[key] = PaperId(id=new_id)
        self.state.last_id = new_id

        logger.info(
            "Paper registered",
            operation=op,
            caller=ctx.caller,
            paper_hash=key.hex(),
            paper_id=new_id,
            fee=fee,
            height=ctx.block_height,
        )
        self._emit(key, PaperRegistered(paper_id=new_id, paper_hash=key.hex()))
        return Ok(new_id)

    def verify_ownership(self, ctx: CallContext, paper_hash: HashLike) -> Result[bool]:
        """True iff the caller is the stored creator. Identity comparison only."""
        paper = self.get_paper_details(paper_hash)
        if paper is None:
            return Err(RegistryError.PAPER_NOT_FOUND)
        return Ok(paper.creator == ctx.caller)

    @timed_operation(logger, "update-paper-metadata")
    def update_paper_metadata(
        self,
        ctx: CallContext,
        paper_hash: HashLike,
        new_title: str,
        new_description: str,
    ) -> Result[bool]:
        op = "update-paper-metadata"

        key = self._key(paper_hash)
        paper = self.state.papers.get(key) if key is not None else None
        if paper is None:
            return self._reject(ctx, op, RegistryError.PAPER_NOT_FOUND)
        if paper.creator != ctx.caller:
            return self._reject(ctx, op, RegistryError.NOT_AUTHORIZED, paper_hash=key.hex())
        if not Validators.validate_title(new_title, self._title_max).is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_TITLE, paper_hash=key.hex())
        if not Validators.validate_description(new_description, self._description_max).is_valid:
            return self._reject(ctx, op, RegistryError.INVALID_DESCRIPTION, paper_hash=key.hex())

        self.state.papers[key] = replace(paper, title=new_title, description=new_description)

        logger.info("Paper metadata updated", operation=op, caller=ctx.caller, paper_hash=key.hex())
        self._emit(key, PaperMetadataUpdated(paper_hash=key.hex()))
        return Ok(True)

    @timed_operation(logger, "deactivate-paper")
    def deactivate_paper(self, ctx: CallContext, paper_hash: HashLike) -> Result[bool]:
        op = "deactivate-paper"

        key = self._key(paper_hash)
        paper = self.state.papers.get(key) if key is not None else None
        if paper is None:
            return self._reject(ctx, op, RegistryError.PAPER_NOT_FOUND)
        if paper.creator != ctx.caller:
            return self._reject(ctx, op, RegistryError.NOT_AUTHORIZED, paper_hash=key.hex())

        self.state.papers[key] = replace(paper, is_active=False)

        logger.info("Paper deactivated", operation=op, caller=ctx.caller, paper_hash=key.hex())
        self._emit(key, PaperDeactivated(paper_hash=key.hex()))
        return Ok(True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_paper_details(self, paper_hash: HashLike) -> Optional[Paper]:
        key = self._key(paper_hash)
        return self.state.papers.get(key) if key is not None else None

    def get_paper_id(self, paper_hash: HashLike) -> Optional[PaperId]:
        key = self._key(paper_hash)
        return self.state.paper_ids.get(key) if key is not None else None

    def get_last_id(self) -> int:
        return self.state.last_id

    def get_registration_fee(self) -> int:
        return self.state.registration_fee

    def get_authority_contract(self) -> Optional[Principal]:
        return self.state.authority_contract

    def is_paper_registered(self, paper_hash: HashLike) -> bool:
        key = self._key(paper_hash)
        return key is not None and key in self.state.papers

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the stores disagree with each other or with last_id."""
        violations: List[str] = self.state.check_invariants()
        if violations:
            raise InvariantViolation("; ".join(violations))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _key(paper_hash: HashLike) -> Optional[PaperHash]:
        # Values that do not parse as a hash cannot name a stored paper.
        try:
            return PaperHash.parse(paper_hash)
        except (TypeError, ValueError):
            return None

    def _reject(self, ctx: CallContext, operation: str, code: ErrorCode, **context: object) -> Err:
        logger.warning(
            f"Rejected {operation}",
            operation=operation,
            error_code=code.name,
            caller=ctx.caller,
            code=int(code),
            **context,
        )
        return Err(code)

    def _emit(self, key: PaperHash, event: Event) -> None:
        event.correlation_id = correlation_id_var.get() or None
        self.event_store.append(key.hex(), event)
        if self.event_bus is not None:
            self.event_bus.publish(event)
