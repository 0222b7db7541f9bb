"""
PAPERCHAIN: Research Paper Registry

A registry that binds a paper's content hash to its creator, title,
description, funding goal and funding counter, and charges a registration
fee to a configured authority.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          PAPER REGISTRY                                  │
    │                                                                          │
    │  SURFACE                                                                 │
    │    cli.py          paperchain command line                               │
    │    environment.py  Caller, block height and serial execution             │
    │    schema.py       Transaction script validation                         │
    │                                                                          │
    │  STATE MACHINE                                                           │
    │    registry.py     Configuration, paper lifecycle and queries            │
    │    validation.py   Field validators                                      │
    │    ledger.py       Token transfers for the registration fee              │
    │    events.py       Event log, bus and projections                        │
    │                                                                          │
    │  FOUNDATION                                                              │
    │    models.py       Paper, PaperHash, CallContext, RegistryState          │
    │    errors.py       Numeric error taxonomy                                │
    │    result.py       Ok / Err outcomes                                     │
    │    config.py       YAML and environment configuration                    │
    │    observability.py Structured logging                                   │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Lifecycle
─────────

    (unregistered) ──register_paper──▶ Active ──deactivate_paper──▶ Inactive

Metadata updates are allowed in both Active and Inactive. Nothing is ever
removed, and paper ids are never reused.
"""

__version__ = "0.3.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import paperchain modules on first access."""

    if name in ("PaperRegistry",):
        from paperchain import registry
        return getattr(registry, name)

    if name in ("Environment", "OPERATIONS"):
        from paperchain import environment
        return getattr(environment, name)

    if name in ("Paper", "PaperHash", "PaperId", "CallContext", "RegistryState",
                "NULL_PRINCIPAL"):
        from paperchain import models
        return getattr(models, name)

    if name in ("RegistryError", "TransferError", "RejectedTransition",
                "InvariantViolation", "ValidationError"):
        from paperchain import errors
        return getattr(errors, name)

    if name in ("Ok", "Err", "Result"):
        from paperchain import result
        return getattr(result, name)

    if name in ("InMemoryLedger", "Ledger", "Transfer"):
        from paperchain import ledger
        return getattr(ledger, name)

    if name in ("EventBus", "EventStore", "PaperRegistered", "PaperMetadataUpdated",
                "PaperDeactivated", "PaperIndexProjection"):
        from paperchain import events
        return getattr(events, name)

    if name in ("ConfigManager", "get_config", "get_config_manager"):
        from paperchain import config
        return getattr(config, name)

    raise AttributeError(f"module 'paperchain' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Registry
    "PaperRegistry",
    "Environment",
    "OPERATIONS",
    # Models
    "Paper",
    "PaperHash",
    "PaperId",
    "CallContext",
    "RegistryState",
    "NULL_PRINCIPAL",
    # Errors
    "RegistryError",
    "TransferError",
    "RejectedTransition",
    "InvariantViolation",
    "ValidationError",
    "Ok",
    "Err",
    "Result",
    # Ledger
    "InMemoryLedger",
    "Ledger",
    "Transfer",
    # Events
    "EventBus",
    "EventStore",
    "PaperRegistered",
    "PaperMetadataUpdated",
    "PaperDeactivated",
    "PaperIndexProjection",
    # Config
    "ConfigManager",
    "get_config",
    "get_config_manager",
]
