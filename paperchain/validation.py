"""
PAPERCHAIN Input Validation

Validators for registration and metadata inputs. Each returns a
ValidationResult; the registry maps a failed result to its error code.

Unlike general-purpose string validation, titles and descriptions are not
stripped or sanitized: what the creator submits is what gets stored, so the
length check applies to the value exactly as given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from paperchain.errors import ValidationError
from paperchain.models import NULL_PRINCIPAL, PaperHash


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the first ValidationError if validation failed."""
        if not self.is_valid:
            raise self.errors[0]

    @classmethod
    def success(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> "ValidationResult":
        return cls(is_valid=False, errors=errors)


# =============================================================================
# VALIDATORS
# =============================================================================

class Validators:
    """Collection of registry input validators."""

    # Limits
    MAX_HASH_BYTES = 32
    MAX_TITLE_LENGTH = 100
    MAX_DESCRIPTION_LENGTH = 500

    @classmethod
    def validate_text(
        cls,
        value: Any,
        field_name: str,
        min_length: int = 1,
        max_length: int = 100,
    ) -> ValidationResult:
        """Validate a bounded text value, counting characters."""
        if not isinstance(value, str):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected string, got {type(value).__name__}", value)
            ])

        errors = []
        if len(value) < min_length:
            errors.append(ValidationError(field_name, f"Too short (min {min_length} chars)", value))
        if len(value) > max_length:
            errors.append(ValidationError(field_name, f"Too long (max {max_length} chars)", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(value)

    @classmethod
    def validate_title(cls, value: Any, max_length: Optional[int] = None) -> ValidationResult:
        if max_length is None:
            max_length = cls.MAX_TITLE_LENGTH
        return cls.validate_text(value, "title", max_length=max_length)

    @classmethod
    def validate_description(cls, value: Any, max_length: Optional[int] = None) -> ValidationResult:
        return cls.validate_text(
            value, "description",
            max_length=cls.MAX_DESCRIPTION_LENGTH if max_length is None else max_length,
        )

    @classmethod
    def validate_hash(cls, value: Any, max_bytes: Optional[int] = None) -> ValidationResult:
        """Validate a paper hash: non-empty and at most max_bytes long."""
        if max_bytes is None:
            max_bytes = cls.MAX_HASH_BYTES
        try:
            paper_hash = PaperHash.parse(value)
        except (TypeError, ValueError) as e:
            return ValidationResult.failure([ValidationError("hash", str(e), value)])

        if len(paper_hash) == 0:
            return ValidationResult.failure([ValidationError("hash", "Hash cannot be empty", value)])
        if len(paper_hash) > max_bytes:
            return ValidationResult.failure([
                ValidationError("hash", f"Too long (max {max_bytes} bytes)", value)
            ])
        return ValidationResult.success(paper_hash)

    @classmethod
    def validate_funding_goal(cls, value: Any) -> ValidationResult:
        """Validate a funding goal: a strictly positive integer amount."""
        # bool is an int subclass; True is not an amount.
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError("funding_goal", f"Expected integer, got {type(value).__name__}", value)
            ])
        if value <= 0:
            return ValidationResult.failure([
                ValidationError("funding_goal", "Must be greater than zero", value)
            ])
        return ValidationResult.success(value)

    @classmethod
    def validate_principal(
        cls,
        value: Any,
        null_principal: str = NULL_PRINCIPAL,
    ) -> ValidationResult:
        """Validate a principal: non-empty text other than the null identity."""
        if not isinstance(value, str) or not value:
            return ValidationResult.failure([
                ValidationError("principal", "Principal cannot be empty", value)
            ])
        if value == null_principal:
            return ValidationResult.failure([
                ValidationError("principal", "Null principal is reserved", value)
            ])
        return ValidationResult.success(value)
