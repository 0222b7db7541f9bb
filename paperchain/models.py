"""
PAPERCHAIN Data Model

Records owned by the registry:

    Paper       keyed by PaperHash; creator, metadata, funding counters, status
    PaperId     keyed by PaperHash; sequential id assigned at registration
    RegistryState
                the single state object a registry instance owns: id counter,
                authority, registration fee, and the two keyed stores

Identities are plain principal strings. The execution environment supplies
the caller and the current block height on every call through CallContext.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# Principals are opaque identity strings (e.g. "ST1TEST").
Principal = str

NULL_PRINCIPAL: Principal = "SP000000000000000000002Q6VF78"


# =============================================================================
# PAPER HASH
# =============================================================================

@dataclass(frozen=True)
class PaperHash:
    """
    Content fingerprint of a paper, the registry's primary key.

    Holds up to 32 raw bytes. A zero-length hash is the empty sentinel and is
    representable so that the registry, not the parser, can reject it.
    """
    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, bytes):
            object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def parse(cls, raw: Union["PaperHash", bytes, bytearray, str]) -> "PaperHash":
        """
        Build a hash from raw bytes or hex text.

        Hex text may carry a ``0x`` prefix. Raises ValueError for text that is
        not hex and TypeError for unsupported types.
        """
        if isinstance(raw, PaperHash):
            return raw
        if isinstance(raw, (bytes, bytearray)):
            return cls(bytes(raw))
        if isinstance(raw, str):
            text = raw.strip()
            if text[:2].lower() == "0x":
                text = text[2:]
            try:
                return cls(bytes.fromhex(text))
            except ValueError as e:
                raise ValueError(f"paper hash is not hex: {raw!r}") from e
        raise TypeError(f"cannot build PaperHash from {type(raw).__name__}")

    def hex(self) -> str:
        return "0x" + self.value.hex()

    def __len__(self) -> int:
        return len(self.value)

    def __str__(self) -> str:
        return self.hex()


HashLike = Union[PaperHash, bytes, bytearray, str]


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class Paper:
    """A registered paper. Only title, description and is_active ever change."""
    creator: Principal
    title: str
    description: str
    timestamp: int
    funding_goal: int
    funded_amount: int = 0
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creator": self.creator,
            "title": self.title,
            "description": self.description,
            "timestamp": self.timestamp,
            "fundingGoal": self.funding_goal,
            "fundedAmount": self.funded_amount,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class PaperId:
    id: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class CallContext:
    """
    Ambient values of one call, supplied by the execution environment.

    caller is the authenticated principal that signed the call and
    block_height is the environment's current height, used as the
    registration timestamp.
    """
    caller: Principal
    block_height: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"caller": self.caller, "block_height": self.block_height}


# =============================================================================
# REGISTRY STATE
# =============================================================================

@dataclass
class RegistryState:
    """
    Complete state of one registry.

    papers and paper_ids are kept as two stores keyed by the same hash so
    that id lookups do not need to touch paper records.
    """
    last_id: int = 0
    authority_contract: Optional[Principal] = None
    registration_fee: int = 1000
    papers: Dict[PaperHash, Paper] = field(default_factory=dict)
    paper_ids: Dict[PaperHash, PaperId] = field(default_factory=dict)

    def check_invariants(self) -> List[str]:
        """
        Return descriptions of violated store invariants (empty if consistent).

        Checks that both stores hold the same hashes, that ids are unique, and
        that ids are exactly 1..last_id.
        """
        violations: List[str] = []

        paper_keys = set(self.papers)
        id_keys = set(self.paper_ids)
        for h in sorted(paper_keys - id_keys, key=lambda k: k.value):
            violations.append(f"paper {h} has no id entry")
        for h in sorted(id_keys - paper_keys, key=lambda k: k.value):
            violations.append(f"id entry {h} has no paper")

        ids = [pid.id for pid in self.paper_ids.values()]
        if len(ids) != len(set(ids)):
            violations.append("paper ids are not unique")
        if sorted(ids) != list(range(1, self.last_id + 1)):
            violations.append(
                f"last_id {self.last_id} does not match {len(ids)} registered ids"
            )

        return violations

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the whole state, ordered by paper id."""
        ordered = sorted(self.paper_ids.items(), key=lambda kv: kv[1].id)
        return {
            "last_id": self.last_id,
            "authority_contract": self.authority_contract,
            "registration_fee": self.registration_fee,
            "papers": [
                {"hash": h.hex(), "id": pid.id, **self.papers[h].to_dict()}
                for h, pid in ordered
                if h in self.papers
            ],
        }
