"""Tagged success/failure results returned by registry operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, TypeVar, Union

from paperchain.errors import ErrorCode, RejectedTransition

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Committed transition carrying its typed payload."""
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: Any) -> T:
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True)
class Err:
    """Rejected transition carrying its error code."""
    code: ErrorCode

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        raise RejectedTransition(self.code)

    def unwrap_or(self, default: Any) -> Any:
        return default

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "value": int(self.code), "error": self.code.name}


Result = Union[Ok[T], Err]
