"""
TESSERA Transfer Engine

Authorization and mutation orchestrator. Composes the ledger, the approval
registry, the access controller and the pause gate, and is the only code path
that mutates any of them.

Every operation follows the same shape:

    1. admission checks     (admin, pause gate)        nothing mutated yet
    2. argument checks      (id range, null recipient)
    3. standing checks      (holder / delegate / operator, re-read each call)
    4. mutation             inside transaction(): snapshot, apply, commit
    5. notification         exactly one ledger event, published on commit

If anything raises inside a transaction, ledger and approvals are restored to
the snapshot and buffered events are dropped, so a failed call leaves no trace.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from tessera.access import AccessController, PauseGate
from tessera.approvals import ApprovalRegistry
from tessera.events import Event, EventBus, Transfer
from tessera.hardening import (
    InvalidAssetId,
    OwnershipMismatch,
    RegistryError,
    Unauthorized,
    UnsafeRecipient,
    Validators,
    ZeroAddressRecipient,
    is_null_account,
    require_account,
)
from tessera.identity import CollectionIdentity
from tessera.ledger import Ledger
from tessera.observability import (
    RegistryComponent,
    get_logger,
    timed_operation,
)

log = get_logger("transfer_engine", RegistryComponent.ENGINE)

# hook(operator, from_, asset_id, data) -> True to accept
ReceiverHook = Callable[..., Any]


class TransferEngine:
    """Performs authorized mint, transfer, burn and approval changes."""

    def __init__(
        self,
        identity: CollectionIdentity,
        ledger: Ledger,
        approvals: ApprovalRegistry,
        access: AccessController,
        pause_gate: PauseGate,
        event_bus: Optional[EventBus] = None,
    ):
        self.identity = identity
        self.ledger = ledger
        self.approvals = approvals
        self.access = access
        self.pause_gate = pause_gate
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self._receivers: Dict[str, ReceiverHook] = {}
        self._pending: Optional[List[Event]] = None

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[List[Event]]:
        """All-or-nothing unit of work.

        Yields the list that buffers events raised inside the unit. Nested
        transactions join the outermost one.
        """
        if self._pending is not None:
            yield self._pending
            return

        ledger_before = self.ledger.snapshot()
        approvals_before = self.approvals.snapshot()
        self._pending = []
        try:
            yield self._pending
        except BaseException:
            self.ledger.restore(ledger_before)
            self.approvals.restore(approvals_before)
            self._pending = None
            raise

        committed, self._pending = self._pending, None
        for event in committed:
            self._publish(event)

    def _emit(self, event: Event) -> None:
        if self._pending is not None:
            self._pending.append(event)
        else:
            self._publish(event)

    def _publish(self, event: Event) -> None:
        # only committed effects reach the log and the bus
        log.info(f"{event.event_type} committed", args=list(event.args))
        self.event_bus.publish(event)

    # =========================================================================
    # AUTHORIZATION
    # =========================================================================

    def is_holder(self, caller: Any, asset_id: int) -> bool:
        return caller == self.ledger.holder_of(asset_id)

    def is_delegate(self, caller: Any, asset_id: int) -> bool:
        self.ledger.holder_of(asset_id)
        delegate = self.approvals.get_approved(asset_id)
        return delegate is not None and caller == delegate

    def is_holder_operator(self, caller: Any, asset_id: int) -> bool:
        return self.approvals.is_operator(self.ledger.holder_of(asset_id), caller)

    def may_act(self, caller: Any, asset_id: int) -> bool:
        """Holder, delegate or operator of the holder. Raises NonexistentAsset."""
        return (
            self.is_holder(caller, asset_id)
            or self.is_delegate(caller, asset_id)
            or self.is_holder_operator(caller, asset_id)
        )

    def _require_may_act(self, caller: Any, asset_id: int, action: str) -> None:
        if not self.may_act(caller, asset_id):
            raise Unauthorized(
                f"{caller!r} may not {action} asset {asset_id}",
                asset_id=asset_id,
                caller=caller,
            )

    def _require_valid_id(self, asset_id: Any) -> int:
        result = Validators.validate_asset_id(asset_id, self.identity.capacity)
        if not result.is_valid:
            raise InvalidAssetId(
                f"asset id {asset_id!r} outside [1, {self.identity.capacity}]",
                asset_id=asset_id,
            )
        return result.sanitized_value

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    @timed_operation(log, "mint")
    def mint(self, caller: str, to: Optional[str], asset_id: int) -> Transfer:
        self.access.require_admin(caller)
        self.pause_gate.require_active()
        asset_id = self._require_valid_id(asset_id)
        if is_null_account(to):
            raise ZeroAddressRecipient("Cannot mint to zero address", asset_id=asset_id)
        to = require_account(to, "to")

        with self.transaction():
            self.ledger.create(asset_id, to)
            event = Transfer(from_account=None, to_account=to, asset_id=asset_id)
            self._emit(event)
        return event

    @timed_operation(log, "transfer")
    def transfer(self, caller: str, from_account: str, to: Optional[str], asset_id: int) -> Transfer:
        holder = self.ledger.holder_of(asset_id)
        if holder != from_account:
            raise OwnershipMismatch(
                f"asset {asset_id} is held by {holder!r}, not {from_account!r}",
                asset_id=asset_id,
            )
        self._require_may_act(caller, asset_id, "transfer")
        if is_null_account(to):
            raise ZeroAddressRecipient(asset_id=asset_id)
        to = require_account(to, "to")

        with self.transaction():
            self.approvals.clear_approval(asset_id)
            self.ledger.reassign(asset_id, from_account, to)
            event = Transfer(from_account=from_account, to_account=to, asset_id=asset_id)
            self._emit(event)
        return event

    @timed_operation(log, "burn")
    def burn(self, caller: str, asset_id: int) -> Transfer:
        holder = self.ledger.holder_of(asset_id)
        self._require_may_act(caller, asset_id, "burn")

        with self.transaction():
            self.approvals.clear_approval(asset_id)
            self.ledger.destroy(asset_id)
            event = Transfer(from_account=holder, to_account=None, asset_id=asset_id)
            self._emit(event)
        return event

    def approve(self, caller: str, asset_id: int, delegate: Optional[str]):
        holder = self.ledger.holder_of(asset_id)
        if not is_null_account(delegate):
            delegate = require_account(delegate, "delegate")
        with self.transaction():
            event = self.approvals.approve(caller, asset_id, delegate, holder)
            self._emit(event)
        return event

    def set_operator_approval(self, caller: str, operator: str, granted: bool):
        caller = require_account(caller, "holder")
        operator = require_account(operator, "operator")
        with self.transaction():
            event = self.approvals.set_operator_approval(caller, operator, granted)
            self._emit(event)
        return event

    def set_paused(self, caller: str, value: bool):
        event = self.pause_gate.set_paused(caller, value)
        if event is not None:
            self._emit(event)
        return event

    # =========================================================================
    # SAFE DELIVERY
    # =========================================================================

    def register_receiver(self, account: str, hook: ReceiverHook) -> None:
        self._receivers[require_account(account)] = hook

    def unregister_receiver(self, account: str) -> bool:
        return self._receivers.pop(account, None) is not None

    def _check_on_received(
        self,
        operator: str,
        from_account: Optional[str],
        to: str,
        asset_id: int,
        data: bytes,
    ) -> None:
        hook = self._receivers.get(to)
        if hook is None:
            return
        try:
            accepted = hook(operator=operator, from_=from_account, asset_id=asset_id, data=data)
        except RegistryError:
            raise
        except Exception as exc:
            raise UnsafeRecipient(
                f"receiver hook of {to!r} raised: {exc}", asset_id=asset_id
            ) from exc
        if accepted is not True:
            raise UnsafeRecipient(f"{to!r} refused asset {asset_id}", asset_id=asset_id)

    def safe_mint(self, caller: str, to: Optional[str], asset_id: int, data: bytes = b"") -> Transfer:
        with self.transaction():
            event = self.mint(caller, to, asset_id)
            self._check_on_received(caller, None, event.to_account, event.asset_id, data)
        return event

    def safe_transfer(
        self,
        caller: str,
        from_account: str,
        to: Optional[str],
        asset_id: int,
        data: bytes = b"",
    ) -> Transfer:
        with self.transaction():
            event = self.transfer(caller, from_account, to, asset_id)
            self._check_on_received(caller, from_account, event.to_account, asset_id, data)
        return event

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_approved(self, asset_id: int) -> Optional[str]:
        self.ledger.holder_of(asset_id)
        return self.approvals.get_approved(asset_id)

    def resolve_identifier_string(self, asset_id: int) -> str:
        self.ledger.holder_of(asset_id)
        return self.identity.identifier_for(asset_id)
