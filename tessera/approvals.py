"""
TESSERA Approval Registry

Two kinds of standing are tracked here:

    Delegate   at most one account per existing asset, allowed to move or
               burn that asset; cleared every time the asset moves or is burned
    Operator   accounts a holder has authorized over all of its current and
               future assets; survives transfers

The registry does not know who holds what. Callers pass the current holder in,
re-read from the ledger on every call.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from tessera.events import Approval, ApprovalForAll
from tessera.hardening import Unauthorized, ValidationError, is_null_account


@dataclass(frozen=True)
class ApprovalSnapshot:
    delegates: Dict[int, str] = field(default_factory=dict)
    operators: Dict[str, FrozenSet[str]] = field(default_factory=dict)


class ApprovalRegistry:
    """Per-asset delegates and per-holder operator sets."""

    def __init__(self) -> None:
        self._delegates: Dict[int, str] = {}
        self._operators: Dict[str, Set[str]] = {}

    # Delegates

    def approve(
        self,
        caller: str,
        asset_id: int,
        delegate: Optional[str],
        holder: str,
    ) -> Approval:
        """Set the single delegate of `asset_id`; the null account clears it.

        `holder` must be the asset's current holder. The caller must be that
        holder or one of its operators.
        """
        if caller != holder and not self.is_operator(holder, caller):
            raise Unauthorized(
                f"{caller!r} is neither holder nor operator of asset {asset_id}",
                asset_id=asset_id,
                caller=caller,
            )
        if is_null_account(delegate):
            self._delegates.pop(asset_id, None)
            delegate = None
        else:
            self._delegates[asset_id] = delegate
        return Approval(holder=holder, delegate=delegate, asset_id=asset_id)

    def get_approved(self, asset_id: int) -> Optional[str]:
        return self._delegates.get(asset_id)

    def clear_approval(self, asset_id: int) -> None:
        self._delegates.pop(asset_id, None)

    # Operators

    def set_operator_approval(self, holder: str, operator: str, granted: bool) -> ApprovalForAll:
        if is_null_account(operator):
            raise ValidationError("operator", "Operator cannot be the null account", operator)
        granted = bool(granted)
        if granted:
            self._operators.setdefault(holder, set()).add(operator)
        else:
            ops = self._operators.get(holder)
            if ops is not None:
                ops.discard(operator)
                if not ops:
                    del self._operators[holder]
        return ApprovalForAll(holder=holder, operator=operator, granted=granted)

    def is_operator(self, holder: Optional[str], operator: Optional[str]) -> bool:
        if holder is None or operator is None:
            return False
        return operator in self._operators.get(holder, ())

    def operators_of(self, holder: str) -> List[str]:
        return sorted(self._operators.get(holder, ()))

    def delegates(self) -> Dict[int, str]:
        return dict(self._delegates)

    def operator_table(self) -> Dict[str, List[str]]:
        return {h: sorted(ops) for h, ops in self._operators.items()}

    # Rollback

    def snapshot(self) -> ApprovalSnapshot:
        return ApprovalSnapshot(
            delegates=dict(self._delegates),
            operators={h: frozenset(ops) for h, ops in self._operators.items()},
        )

    def restore(self, snapshot: ApprovalSnapshot) -> None:
        self._delegates = dict(snapshot.delegates)
        self._operators = {h: set(ops) for h, ops in snapshot.operators.items()}
