"""Tests for the approval registry, the admin principal and the pause gate."""

import pytest

from tessera.access import AccessController, PauseGate, PauseState
from tessera.approvals import ApprovalRegistry
from tessera.events import Approval, ApprovalForAll, PauseChanged
from tessera.hardening import MintingPaused, Unauthorized, ValidationError


class TestDelegates:

    def test_holder_sets_delegate(self):
        approvals = ApprovalRegistry()
        event = approvals.approve("alice", 1, "bob", holder="alice")
        assert isinstance(event, Approval)
        assert event.args == ("alice", "bob", 1)
        assert approvals.get_approved(1) == "bob"

    def test_stranger_cannot_set_delegate(self):
        approvals = ApprovalRegistry()
        with pytest.raises(Unauthorized):
            approvals.approve("mallory", 1, "mallory", holder="alice")
        assert approvals.get_approved(1) is None

    def test_operator_sets_delegate(self):
        approvals = ApprovalRegistry()
        approvals.set_operator_approval("alice", "op", True)
        approvals.approve("op", 1, "bob", holder="alice")
        assert approvals.get_approved(1) == "bob"

    @pytest.mark.parametrize("null", [None, ""])
    def test_null_delegate_clears(self, null):
        approvals = ApprovalRegistry()
        approvals.approve("alice", 1, "bob", holder="alice")
        event = approvals.approve("alice", 1, null, holder="alice")
        assert event.delegate is None
        assert approvals.get_approved(1) is None
        assert approvals.delegates() == {}

    def test_clear_approval_is_idempotent(self):
        approvals = ApprovalRegistry()
        approvals.clear_approval(1)
        approvals.approve("alice", 1, "bob", holder="alice")
        approvals.clear_approval(1)
        approvals.clear_approval(1)
        assert approvals.get_approved(1) is None


class TestOperators:

    def test_grant_and_revoke(self):
        approvals = ApprovalRegistry()
        event = approvals.set_operator_approval("alice", "bob", True)
        assert isinstance(event, ApprovalForAll)
        assert event.args == ("alice", "bob", True)
        assert approvals.is_operator("alice", "bob")
        assert not approvals.is_operator("bob", "alice")

        approvals.set_operator_approval("alice", "bob", False)
        assert not approvals.is_operator("alice", "bob")
        assert approvals.operator_table() == {}

    def test_revoke_unknown_is_harmless(self):
        approvals = ApprovalRegistry()
        event = approvals.set_operator_approval("alice", "bob", False)
        assert event.granted is False
        assert approvals.operators_of("alice") == []

    def test_granted_is_coerced_to_bool(self):
        approvals = ApprovalRegistry()
        assert approvals.set_operator_approval("alice", "bob", 1).granted is True

    def test_null_operator_rejected(self):
        with pytest.raises(ValidationError):
            ApprovalRegistry().set_operator_approval("alice", None, True)

    def test_null_holder_is_never_operated(self):
        assert ApprovalRegistry().is_operator(None, "bob") is False

    def test_operators_are_listed_sorted(self):
        approvals = ApprovalRegistry()
        for op in ("zed", "amy", "kim"):
            approvals.set_operator_approval("alice", op, True)
        assert approvals.operators_of("alice") == ["amy", "kim", "zed"]


class TestApprovalRollback:

    def test_restore(self):
        approvals = ApprovalRegistry()
        approvals.approve("alice", 1, "bob", holder="alice")
        approvals.set_operator_approval("alice", "carol", True)
        snap = approvals.snapshot()

        approvals.clear_approval(1)
        approvals.set_operator_approval("alice", "carol", False)
        approvals.set_operator_approval("alice", "dave", True)
        approvals.restore(snap)

        assert approvals.get_approved(1) == "bob"
        assert approvals.operator_table() == {"alice": ["carol"]}

    def test_restored_sets_are_independent(self):
        approvals = ApprovalRegistry()
        approvals.set_operator_approval("alice", "carol", True)
        snap = approvals.snapshot()
        approvals.restore(snap)
        approvals.set_operator_approval("alice", "dave", True)
        assert snap.operators == {"alice": frozenset({"carol"})}


class TestAccessController:

    def test_admin_is_fixed(self):
        access = AccessController("admin")
        assert access.admin == "admin"
        assert access.is_admin("admin")
        assert not access.is_admin("alice")

    def test_require_admin(self):
        access = AccessController("admin")
        access.require_admin("admin")
        with pytest.raises(Unauthorized):
            access.require_admin("alice")

    @pytest.mark.parametrize("admin", [None, "", "  "])
    def test_null_admin_rejected(self, admin):
        with pytest.raises(ValidationError):
            AccessController(admin)


class TestPauseGate:

    def test_starts_active(self):
        gate = PauseGate(AccessController("admin"))
        assert gate.state is PauseState.ACTIVE
        gate.require_active()

    def test_transitions_return_events(self):
        gate = PauseGate(AccessController("admin"))
        event = gate.set_paused("admin", True)
        assert isinstance(event, PauseChanged)
        assert event.args == ("admin", True)
        with pytest.raises(MintingPaused):
            gate.require_active()

        assert gate.set_paused("admin", True) is None
        assert gate.set_paused("admin", False).paused is False
        gate.require_active()

    def test_non_admin_cannot_toggle(self):
        gate = PauseGate(AccessController("admin"))
        with pytest.raises(Unauthorized):
            gate.set_paused("alice", True)
        assert not gate.paused

    def test_initial_state(self):
        gate = PauseGate(AccessController("admin"), PauseState.PAUSED)
        assert gate.paused
