"""
Transfer engine: authorization predicate, all-or-nothing transactions and
receiver hooks on safe mint / safe transfer.
"""

import pytest

from tessera.events import Transfer
from tessera.hardening import (
    NonexistentAsset,
    OwnershipMismatch,
    Unauthorized,
    UnsafeRecipient,
)

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"


class TestAuthorizationPredicate:

    def test_holder_delegate_operator(self, registry):
        registry.mint(ADMIN, ALICE, 1)
        engine = registry.engine

        assert engine.may_act(ALICE, 1)
        assert not engine.may_act(BOB, 1)

        registry.approve(ALICE, 1, BOB)
        assert engine.is_delegate(BOB, 1)
        assert engine.may_act(BOB, 1)

        registry.set_operator_approval(ALICE, CAROL, True)
        assert engine.is_holder_operator(CAROL, 1)
        assert registry.may_act(CAROL, 1)

    def test_predicate_on_absent_asset(self, registry):
        with pytest.raises(NonexistentAsset):
            registry.may_act(ALICE, 1)

    def test_null_caller_never_delegate(self, registry):
        registry.mint(ADMIN, ALICE, 1)
        assert not registry.engine.is_delegate(None, 1)

    def test_standing_follows_current_holder(self, registry):
        registry.mint(ADMIN, ALICE, 1)
        registry.set_operator_approval(BOB, CAROL, True)
        assert not registry.may_act(CAROL, 1)

        registry.transfer(ALICE, ALICE, BOB, 1)
        assert registry.may_act(CAROL, 1)


class TestTransactions:

    def test_commit_publishes_buffered_events(self, registry, events):
        engine = registry.engine
        with engine.transaction():
            engine.mint(ADMIN, ALICE, 1)
            engine.mint(ADMIN, BOB, 2)
            assert events == []
        assert [e.args for e in events] == [(None, ALICE, 1), (None, BOB, 2)]

    def test_failure_restores_everything(self, registry, events):
        registry.mint(ADMIN, ALICE, 1)
        registry.approve(ALICE, 1, BOB)
        before = registry.snapshot()
        seen = list(events)
        engine = registry.engine

        with pytest.raises(OwnershipMismatch):
            with engine.transaction():
                engine.transfer(ALICE, ALICE, CAROL, 1)
                engine.mint(ADMIN, CAROL, 2)
                engine.transfer(ALICE, ALICE, BOB, 1)

        assert registry.snapshot() == before
        assert registry.get_approved(1) == BOB
        assert events == seen
        registry.check_invariants()

    def test_non_registry_error_also_rolls_back(self, registry):
        engine = registry.engine
        with pytest.raises(RuntimeError):
            with engine.transaction():
                engine.mint(ADMIN, ALICE, 1)
                raise RuntimeError("boom")
        assert registry.total_issued == 0

    def test_nested_transactions_join_outer(self, registry, events):
        engine = registry.engine
        with engine.transaction() as outer:
            with engine.transaction() as inner:
                engine.mint(ADMIN, ALICE, 1)
                assert inner is outer
            assert len(outer) == 1
            assert events == []
        assert len(events) == 1

    def test_engine_usable_after_rollback(self, registry):
        engine = registry.engine
        with pytest.raises(RuntimeError):
            with engine.transaction():
                raise RuntimeError("boom")
        registry.mint(ADMIN, ALICE, 1)
        assert registry.total_issued == 1


class TestSafeDelivery:

    def test_accepting_receiver(self, registry, events):
        calls = []

        def hook(operator, from_, asset_id, data):
            calls.append((operator, from_, asset_id, data))
            return True

        registry.register_receiver(BOB, hook)
        registry.safe_mint(ADMIN, BOB, 1, b"hello")
        registry.safe_transfer(BOB, BOB, ALICE, 1)
        registry.safe_transfer(ALICE, ALICE, BOB, 1, b"x")

        assert calls == [(ADMIN, None, 1, b"hello"), (ALICE, ALICE, 1, b"x")]
        assert registry.holder_of(1) == BOB
        assert [e.args for e in events] == [
            (None, BOB, 1),
            (BOB, ALICE, 1),
            (ALICE, BOB, 1),
        ]

    def test_accounts_without_hook_accept(self, registry):
        registry.safe_mint(ADMIN, ALICE, 1)
        assert registry.holder_of(1) == ALICE

    @pytest.mark.parametrize("answer", [False, None, 1, "yes"])
    def test_refusing_receiver_rolls_back_mint(self, registry, events, answer):
        registry.register_receiver(BOB, lambda **kw: answer)
        with pytest.raises(UnsafeRecipient):
            registry.safe_mint(ADMIN, BOB, 1)
        assert registry.total_issued == 0
        assert registry.held_count_of(BOB) == 0
        assert events == []

    def test_raising_receiver_rolls_back_transfer(self, registry, events):
        registry.mint(ADMIN, ALICE, 1)
        registry.approve(ALICE, 1, CAROL)
        seen = list(events)

        def hook(**kwargs):
            raise KeyError("no wallet")

        registry.register_receiver(BOB, hook)
        with pytest.raises(UnsafeRecipient) as exc_info:
            registry.safe_transfer(CAROL, ALICE, BOB, 1)

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert registry.holder_of(1) == ALICE
        assert registry.get_approved(1) == CAROL
        assert events == seen

    def test_registry_errors_from_hook_propagate(self, registry):
        def hook(**kwargs):
            raise Unauthorized("hook says no")

        registry.register_receiver(BOB, hook)
        with pytest.raises(Unauthorized):
            registry.safe_mint(ADMIN, BOB, 1)
        assert registry.total_issued == 0

    def test_plain_transfer_skips_hook(self, registry):
        registry.register_receiver(BOB, lambda **kw: False)
        registry.mint(ADMIN, ALICE, 1)
        registry.transfer(ALICE, ALICE, BOB, 1)
        assert registry.holder_of(1) == BOB

    def test_unregister_receiver(self, registry):
        registry.register_receiver(BOB, lambda **kw: False)
        assert registry.unregister_receiver(BOB) is True
        assert registry.unregister_receiver(BOB) is False
        registry.safe_mint(ADMIN, BOB, 1)

    def test_safe_mint_event_type(self, registry):
        event = registry.safe_mint(ADMIN, ALICE, 2)
        assert isinstance(event, Transfer)
        assert event.args == (None, ALICE, 2)

    def test_refused_delivery_is_audited_as_failure(self, registry):
        registry.register_receiver(BOB, lambda **kw: False)
        with pytest.raises(UnsafeRecipient):
            registry.safe_mint(ADMIN, BOB, 1)
        entry = registry.audit.entries()[-1]
        assert (entry.action, entry.outcome) == ("safe_mint", "failure")
        assert entry.details == {"error_code": "UNSAFE_RECIPIENT"}
