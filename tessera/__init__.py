"""
TESSERA: Non-Fungible Asset Registry

A bounded collection of uniquely identified assets, each owned by exactly one
account, with transfer mediated by holders, single-asset delegates and
account-wide operators.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                            ASSET REGISTRY                                │
    │                                                                          │
    │  SURFACE                                                                 │
    │    registry.py       AssetRegistry facade, snapshots, state root         │
    │    cli.py            Command line over a JSON snapshot file              │
    │                                                                          │
    │  ORCHESTRATION                                                           │
    │    engine.py         Authorization predicate, mint/transfer/burn,        │
    │                      all-or-nothing transactions, receiver hooks         │
    │                                                                          │
    │  STATE                                                                   │
    │    ledger.py         id → holder, holder → count, issued total           │
    │    approvals.py      per-asset delegates, per-holder operators           │
    │    access.py         admin principal, mint pause gate                    │
    │    identity.py       name, symbol, capacity, identifier prefix           │
    │                                                                          │
    │  AMBIENT                                                                 │
    │    hardening.py      error taxonomy, validators, invariant checks        │
    │    events.py         Transfer / Approval / ApprovalForAll, bus, store    │
    │    config.py         YAML + environment configuration                    │
    │    observability.py  structured logging, audit trail                     │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Invariants
──────────

    Every existing asset has exactly one holder. Held counts sum to the issued
    total. Ids lie in [1, capacity]. An id is never minted twice while it
    exists. A delegate never outlives a transfer or burn of its asset.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import of public names on first access."""

    if name in ("AssetRegistry", "SNAPSHOT_TYPE"):
        from tessera import registry
        return getattr(registry, name)

    if name in ("TransferEngine", "ReceiverHook"):
        from tessera import engine
        return getattr(engine, name)

    if name in ("Ledger", "LedgerSnapshot"):
        from tessera import ledger
        return getattr(ledger, name)

    if name in ("ApprovalRegistry",):
        from tessera import approvals
        return getattr(approvals, name)

    if name in ("AccessController", "PauseGate", "PauseState"):
        from tessera import access
        return getattr(access, name)

    if name in ("CollectionIdentity",):
        from tessera import identity
        return getattr(identity, name)

    if name in ("Event", "Transfer", "Approval", "ApprovalForAll", "PauseChanged",
                "EventBus", "EventStore", "EventRecord", "EventHandlerError"):
        from tessera import events
        return getattr(events, name)

    if name in ("RegistryError", "Unauthorized", "InvalidAssetId", "AlreadyMinted",
                "NonexistentAsset", "OwnershipMismatch", "ZeroAddressRecipient",
                "MintingPaused", "UnsafeRecipient", "InvariantViolation",
                "ValidationError", "ERROR_TYPES"):
        from tessera import hardening
        return getattr(hardening, name)

    if name in ("ConfigManager", "TesseraConfig", "ConfigError"):
        from tessera import config
        return getattr(config, name)

    raise AttributeError(f"module 'tessera' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Surface
    "AssetRegistry",
    "TransferEngine",
    # State
    "Ledger",
    "ApprovalRegistry",
    "AccessController",
    "PauseGate",
    "PauseState",
    "CollectionIdentity",
    # Events
    "Transfer",
    "Approval",
    "ApprovalForAll",
    "EventBus",
    "EventStore",
    # Errors
    "RegistryError",
    "Unauthorized",
    "InvalidAssetId",
    "AlreadyMinted",
    "NonexistentAsset",
    "OwnershipMismatch",
    "ZeroAddressRecipient",
    "MintingPaused",
    "UnsafeRecipient",
    # Config
    "ConfigManager",
    "TesseraConfig",
]
