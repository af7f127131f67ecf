"""
TESSERA Ownership Ledger

The single source of truth for "who owns what". Holds the asset id to holder
map together with the derived per-holder counts and the issued total.

The counters are never recomputed from a scan during normal operation; they
change only inside create/destroy/reassign, in the same step as the holder map.
A holder whose count reaches zero is removed from the count map so that the
map only names current holders.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from tessera.hardening import (
    AlreadyMinted,
    InvalidAssetId,
    InvariantChecker,
    InvariantViolation,
    NonexistentAsset,
)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time copy of ledger state, used for rollback."""
    holders: Dict[int, str] = field(default_factory=dict)
    held_counts: Dict[str, int] = field(default_factory=dict)
    total_issued: int = 0


class Ledger:
    """Asset id → holder mapping with transactional counters."""

    def __init__(self) -> None:
        self._holders: Dict[int, str] = {}
        self._held_counts: Dict[str, int] = {}
        self._total_issued = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def total_issued(self) -> int:
        return self._total_issued

    def exists(self, asset_id: Any) -> bool:
        if isinstance(asset_id, bool) or not isinstance(asset_id, int):
            return False
        return asset_id in self._holders

    def holder_of(self, asset_id: Any) -> str:
        """Return the current holder; raise NonexistentAsset if there is none.

        Only plain ints are ids. `True` and `1.0` hash like `1` and would
        otherwise resolve, so they raise InvalidAssetId.
        """
        if isinstance(asset_id, bool) or not isinstance(asset_id, int):
            raise InvalidAssetId(f"asset id {asset_id!r} is not an integer", asset_id=asset_id)
        try:
            return self._holders[asset_id]
        except KeyError:
            raise NonexistentAsset(f"asset {asset_id!r} does not exist", asset_id=asset_id) from None

    def held_count_of(self, holder: Optional[str]) -> int:
        return self._held_counts.get(holder, 0) if holder is not None else 0

    def assets_of(self, holder: str) -> List[int]:
        """Ids currently held by `holder`, ascending. Derived by scan."""
        return sorted(i for i, h in self._holders.items() if h == holder)

    def holders(self) -> Dict[int, str]:
        return dict(self._holders)

    def held_counts(self) -> Dict[str, int]:
        return dict(self._held_counts)

    def __len__(self) -> int:
        return len(self._holders)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, asset_id: int, holder: str) -> None:
        if asset_id in self._holders:
            raise AlreadyMinted(asset_id=asset_id)
        self._holders[asset_id] = holder
        self._held_counts[holder] = self._held_counts.get(holder, 0) + 1
        self._total_issued += 1

    def destroy(self, asset_id: int) -> str:
        """Remove the asset and return its last holder."""
        holder = self.holder_of(asset_id)
        del self._holders[asset_id]
        self._decrement(holder)
        self._total_issued -= 1
        return holder

    def reassign(self, asset_id: int, from_holder: str, to_holder: str) -> None:
        current = self._holders.get(asset_id)
        if current is None or current != from_holder:
            raise InvariantViolation(
                f"reassign of asset {asset_id!r} expected holder {from_holder!r}, "
                f"found {current!r}"
            )
        self._decrement(from_holder)
        self._holders[asset_id] = to_holder
        self._held_counts[to_holder] = self._held_counts.get(to_holder, 0) + 1

    def _decrement(self, holder: str) -> None:
        remaining = self._held_counts.get(holder, 0) - 1
        InvariantChecker.check_non_negative(f"held_count[{holder}]", remaining)
        if remaining:
            self._held_counts[holder] = remaining
        else:
            self._held_counts.pop(holder, None)

    # -------------------------------------------------------------------------
    # Rollback and rebuild
    # -------------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            holders=dict(self._holders),
            held_counts=dict(self._held_counts),
            total_issued=self._total_issued,
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self._holders = dict(snapshot.holders)
        self._held_counts = dict(snapshot.held_counts)
        self._total_issued = snapshot.total_issued

    @classmethod
    def from_holders(cls, holders: Mapping[int, str]) -> "Ledger":
        """Rebuild a ledger, deriving counters from a holder map."""
        ledger = cls()
        for asset_id, holder in holders.items():
            ledger.create(asset_id, holder)
        return ledger

    def check_invariants(self, capacity: Optional[int] = None) -> None:
        InvariantChecker.check_balance_conservation(
            self._holders, self._held_counts, self._total_issued
        )
        if capacity is not None:
            InvariantChecker.check_id_range(self._holders.keys(), capacity)
