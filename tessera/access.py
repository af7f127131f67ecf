"""Administrative principal and the mint pause gate."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from tessera.events import PauseChanged
from tessera.hardening import MintingPaused, Unauthorized, require_account


class AccessController:
    """Holds the single admin principal, fixed at construction."""

    def __init__(self, admin: str):
        self._admin = require_account(admin, "admin")

    @property
    def admin(self) -> str:
        return self._admin

    def is_admin(self, caller: Any) -> bool:
        return caller == self._admin

    def require_admin(self, caller: Any) -> None:
        if not self.is_admin(caller):
            raise Unauthorized(f"{caller!r} is not the admin principal", caller=caller)


class PauseState(Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class PauseGate:
    """Two-state admission control for minting only.

    Setting the current state again is allowed and changes nothing.
    """

    def __init__(self, access: AccessController, state: PauseState = PauseState.ACTIVE):
        self._access = access
        self._state = state

    @property
    def state(self) -> PauseState:
        return self._state

    @property
    def paused(self) -> bool:
        return self._state is PauseState.PAUSED

    def set_paused(self, caller: str, value: bool) -> Optional[PauseChanged]:
        """Transition the gate. Returns an event only when the state changed."""
        self._access.require_admin(caller)
        target = PauseState.PAUSED if value else PauseState.ACTIVE
        if target is self._state:
            return None
        self._state = target
        return PauseChanged(actor=caller, paused=self.paused)

    def require_active(self) -> None:
        if self.paused:
            raise MintingPaused()
