"""
TESSERA Asset Registry

Public entry point. `AssetRegistry` wires the identity, ledger, approval
registry, access controller, pause gate and transfer engine together and
exposes the full operation surface:

    Reads       display_name, symbol, capacity, base_identifier_prefix,
                total_issued, held_count_of, holder_of, get_approved,
                is_operator, resolve_identifier_string, paused, assets_of
    Writes      mint, safe_mint, transfer, safe_transfer, burn, approve,
                set_operator_approval, set_paused, pause, unpause
    State       snapshot, from_snapshot, state_root, check_invariants

Reads and writes are serialized with one re-entrant lock, so a read never
observes a call that is still in flight. Every mutating call is audited
with outcome success, denied or failure; rejected calls are also logged at
WARNING with the error code.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import inspect
import threading
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TypeVar

from tessera.access import AccessController, PauseGate, PauseState
from tessera.approvals import ApprovalRegistry
from tessera.config import TesseraConfig
from tessera.core import canonical_json_bytes, sha256_bytes
from tessera.engine import ReceiverHook, TransferEngine
from tessera.events import Approval, ApprovalForAll, EventBus, PauseChanged, Transfer
from tessera.hardening import (
    InvariantChecker,
    InvariantViolation,
    MintingPaused,
    RegistryError,
    Unauthorized,
    ValidationError,
)
from tessera.identity import CollectionIdentity
from tessera.ledger import Ledger
from tessera.observability import AuditLogger, RegistryComponent, get_logger
from tessera.schema import SNAPSHOT_SCHEMA, validation_errors

log = get_logger("asset_registry", RegistryComponent.REGISTRY)

SNAPSHOT_TYPE = "TesseraRegistrySnapshot"

F = TypeVar("F", bound=Callable[..., Any])

_DENIED = (Unauthorized, MintingPaused)


def _mutating(action: str, resource_arg: Optional[str] = None) -> Callable[[F], F]:
    """Serialize, audit and log a mutating registry call."""
    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(self: "AssetRegistry", caller: Any, *args: Any, **kwargs: Any) -> Any:
            resource = None
            if resource_arg:
                bound = signature.bind_partial(self, caller, *args, **kwargs)
                resource = bound.arguments.get(resource_arg)
            with self._lock:
                try:
                    result = func(self, caller, *args, **kwargs)
                except RegistryError as e:
                    outcome = "denied" if isinstance(e, _DENIED) else "failure"
                    log.warning(
                        f"{action} rejected: {e.message}",
                        error_code=e.code,
                        caller=str(caller),
                        resource=str(resource),
                    )
                    self.audit.log(caller, action, resource, outcome, error_code=e.code)
                    raise
                self.audit.log(caller, action, resource, "success")
                return result
        return wrapper  # type: ignore[return-value]
    return decorator


class AssetRegistry:
    """A bounded collection of non-fungible assets and their ownership."""

    def __init__(
        self,
        identity: CollectionIdentity,
        admin: str,
        event_bus: Optional[EventBus] = None,
        audit_enabled: bool = True,
        paused: bool = False,
    ):
        self.identity = identity
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self.ledger = Ledger()
        self.approvals = ApprovalRegistry()
        self.access = AccessController(admin)
        self.pause_gate = PauseGate(
            self.access, PauseState.PAUSED if paused else PauseState.ACTIVE
        )
        self.engine = TransferEngine(
            identity=identity,
            ledger=self.ledger,
            approvals=self.approvals,
            access=self.access,
            pause_gate=self.pause_gate,
            event_bus=self.event_bus,
        )
        self.audit = AuditLogger(
            get_logger("audit", RegistryComponent.REGISTRY), enabled=audit_enabled
        )
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: TesseraConfig,
        event_bus: Optional[EventBus] = None,
    ) -> "AssetRegistry":
        return cls(
            identity=config.build_identity(),
            admin=config.collection.admin.get(),
            event_bus=event_bus,
            audit_enabled=config.observability.audit_enabled.get(),
        )

    def __repr__(self) -> str:
        return (
            f"AssetRegistry({self.identity.symbol!r}, issued={self.total_issued}/"
            f"{self.capacity}, paused={self.paused})"
        )

    # =========================================================================
    # IDENTITY
    # =========================================================================

    @property
    def display_name(self) -> str:
        return self.identity.display_name

    @property
    def symbol(self) -> str:
        return self.identity.symbol

    @property
    def capacity(self) -> int:
        return self.identity.capacity

    @property
    def base_identifier_prefix(self) -> str:
        return self.identity.base_identifier_prefix

    @property
    def admin(self) -> str:
        return self.access.admin

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def total_issued(self) -> int:
        with self._lock:
            return self.ledger.total_issued

    @property
    def paused(self) -> bool:
        with self._lock:
            return self.pause_gate.paused

    def held_count_of(self, holder: Optional[str]) -> int:
        with self._lock:
            return self.ledger.held_count_of(holder)

    def holder_of(self, asset_id: int) -> str:
        with self._lock:
            return self.ledger.holder_of(asset_id)

    def assets_of(self, holder: str) -> List[int]:
        with self._lock:
            return self.ledger.assets_of(holder)

    def get_approved(self, asset_id: int) -> Optional[str]:
        with self._lock:
            return self.engine.get_approved(asset_id)

    def is_operator(self, holder: str, operator: str) -> bool:
        with self._lock:
            return self.approvals.is_operator(holder, operator)

    def may_act(self, caller: str, asset_id: int) -> bool:
        with self._lock:
            return self.engine.may_act(caller, asset_id)

    def resolve_identifier_string(self, asset_id: int) -> str:
        with self._lock:
            return self.engine.resolve_identifier_string(asset_id)

    # =========================================================================
    # WRITES
    # =========================================================================

    @_mutating("mint", "asset_id")
    def mint(self, caller: str, to: Optional[str], asset_id: int) -> Transfer:
        return self.engine.mint(caller, to, asset_id)

    @_mutating("safe_mint", "asset_id")
    def safe_mint(self, caller: str, to: Optional[str], asset_id: int, data: bytes = b"") -> Transfer:
        return self.engine.safe_mint(caller, to, asset_id, data)

    @_mutating("transfer", "asset_id")
    def transfer(self, caller: str, from_account: str, to: Optional[str], asset_id: int) -> Transfer:
        return self.engine.transfer(caller, from_account, to, asset_id)

    @_mutating("safe_transfer", "asset_id")
    def safe_transfer(
        self,
        caller: str,
        from_account: str,
        to: Optional[str],
        asset_id: int,
        data: bytes = b"",
    ) -> Transfer:
        return self.engine.safe_transfer(caller, from_account, to, asset_id, data)

    @_mutating("burn", "asset_id")
    def burn(self, caller: str, asset_id: int) -> Transfer:
        return self.engine.burn(caller, asset_id)

    @_mutating("approve", "asset_id")
    def approve(self, caller: str, asset_id: int, delegate: Optional[str]) -> Approval:
        return self.engine.approve(caller, asset_id, delegate)

    @_mutating("set_operator_approval", "operator")
    def set_operator_approval(self, caller: str, operator: str, granted: bool) -> ApprovalForAll:
        return self.engine.set_operator_approval(caller, operator, granted)

    @_mutating("set_paused")
    def set_paused(self, caller: str, value: bool) -> Optional[PauseChanged]:
        """Toggle the mint gate; returns None when the state is unchanged."""
        return self.engine.set_paused(caller, value)

    def pause(self, caller: str) -> Optional[PauseChanged]:
        return self.set_paused(caller, True)

    def unpause(self, caller: str) -> Optional[PauseChanged]:
        return self.set_paused(caller, False)

    def register_receiver(self, account: str, hook: ReceiverHook) -> None:
        with self._lock:
            self.engine.register_receiver(account, hook)

    def unregister_receiver(self, account: str) -> bool:
        with self._lock:
            return self.engine.unregister_receiver(account)

    # =========================================================================
    # STATE
    # =========================================================================

    def check_invariants(self) -> None:
        """Verify every ledger invariant; raise InvariantViolation otherwise."""
        with self._lock:
            self.ledger.check_invariants(self.capacity)
            InvariantChecker.check_approvals_exist(self.approvals.delegates(), self.ledger.holders())

    def snapshot(self) -> Dict[str, Any]:
        """JSON-compatible document of the full registry state."""
        with self._lock:
            return {
                "type": SNAPSHOT_TYPE,
                "identity": self.identity.to_dict(),
                "admin": self.admin,
                "paused": self.paused,
                "holders": {str(i): h for i, h in sorted(self.ledger.holders().items())},
                "approvals": {str(i): d for i, d in sorted(self.approvals.delegates().items())},
                "operators": self.approvals.operator_table(),
            }

    def state_root(self) -> str:
        """sha256 of the canonical JSON snapshot."""
        return sha256_bytes(canonical_json_bytes(self.snapshot()))

    @classmethod
    def from_snapshot(
        cls,
        doc: Dict[str, Any],
        event_bus: Optional[EventBus] = None,
        audit_enabled: bool = True,
    ) -> "AssetRegistry":
        """Rebuild a registry from `snapshot()` output.

        Counters are derived from the holder map; no events are emitted.
        """
        errors = validation_errors(doc, SNAPSHOT_SCHEMA)
        if errors:
            raise ValidationError("snapshot", "; ".join(errors[:5]), None)

        registry = cls(
            identity=CollectionIdentity.from_dict(doc["identity"]),
            admin=doc["admin"],
            event_bus=event_bus,
            audit_enabled=audit_enabled,
            paused=doc["paused"],
        )
        holders = {int(k): v for k, v in doc["holders"].items()}
        InvariantChecker.check_id_range(holders.keys(), registry.capacity)
        registry.ledger.restore(Ledger.from_holders(holders).snapshot())

        for key, delegate in doc["approvals"].items():
            asset_id = int(key)
            if asset_id not in holders:
                raise InvariantViolation(f"approval recorded for nonexistent asset {asset_id}")
            registry.approvals.approve(holders[asset_id], asset_id, delegate, holders[asset_id])
        for holder, operators in doc["operators"].items():
            for operator in operators:
                registry.approvals.set_operator_approval(holder, operator, True)
        registry.check_invariants()
        return registry
