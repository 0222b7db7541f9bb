"""JSON Schema validation for transaction scripts.

Transaction scripts are validated before anything is executed so that a
malformed script fails as a whole instead of half-way through.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator

from paperchain.core import PACKAGE_ROOT, load_json

SCHEMAS_DIR = PACKAGE_ROOT / "schemas"
TRANSACTION_SCRIPT_SCHEMA = SCHEMAS_DIR / "transaction-script.schema.json"


@lru_cache(maxsize=None)
def schema_validator(schema_path: Path) -> Draft202012Validator:
    """Create (and cache) a validator for a schema file."""
    schema = load_json(schema_path)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def transaction_script_validator() -> Draft202012Validator:
    return schema_validator(TRANSACTION_SCRIPT_SCHEMA)


def validate_transaction_script(obj: Any) -> List[str]:
    """
    Validate a transaction script document.

    Returns:
        List of validation error messages (empty if valid), ordered by
        location in the document.
    """
    validator = transaction_script_validator()
    errors = sorted(validator.iter_errors(obj), key=lambda e: [str(p) for p in e.absolute_path])
    return [f"{error.json_path}: {error.message}" for error in errors]
