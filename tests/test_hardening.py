"""Tests for the error taxonomy, input validators and collection identity."""

import pytest

from tessera.hardening import (
    ERROR_TYPES,
    AlreadyMinted,
    RegistryError,
    ValidationError,
    Validators,
    ZeroAddressRecipient,
    is_null_account,
    require_account,
)
from tessera.identity import CollectionIdentity


class TestErrorTaxonomy:

    def test_codes_are_unique_and_registered(self):
        assert len(ERROR_TYPES) == 10
        for code, cls in ERROR_TYPES.items():
            assert cls.code == code
            assert issubclass(cls, RegistryError)

    def test_default_messages(self):
        assert str(AlreadyMinted()) == "Token already minted"
        assert ZeroAddressRecipient("Cannot mint to zero address").message == (
            "Cannot mint to zero address"
        )

    def test_to_dict_includes_details(self):
        err = AlreadyMinted(asset_id=3)
        assert err.to_dict() == {
            "code": "ALREADY_MINTED",
            "message": "Token already minted",
            "details": {"asset_id": 3},
        }

    def test_validation_error_fields(self):
        err = ValidationError("to", "Too long", "x" * 300)
        assert err.field == "to"
        assert err.message == "to: Too long"


class TestValidators:

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_null_accounts(self, value):
        assert is_null_account(value)

    @pytest.mark.parametrize("value", ["alice", "0xAbC123", "did:key:z6Mk"])
    def test_valid_accounts(self, value):
        assert require_account(value) == value

    @pytest.mark.parametrize("value", ["has space", "a" * 257, 42, "semi;colon"])
    def test_invalid_accounts(self, value):
        with pytest.raises(ValidationError):
            require_account(value)

    @pytest.mark.parametrize("value", ["  alice  ", " alice", "alice\n", "alice\x00", "\x00alice", "\x00"])
    def test_padded_accounts_are_rejected_not_rewritten(self, value):
        with pytest.raises(ValidationError):
            require_account(value)

    @pytest.mark.parametrize("value,valid", [
        (1, True), (5, True), (0, False), (6, False), (True, False), ("2", False), (2.0, False),
    ])
    def test_asset_id(self, value, valid):
        assert Validators.validate_asset_id(value, capacity=5).is_valid is valid

    def test_validation_result_raise(self):
        result = Validators.validate_capacity(0)
        with pytest.raises(ValidationError):
            result.raise_if_invalid()


class TestCollectionIdentity:

    def test_identifier_for_is_plain_concatenation(self):
        identity = CollectionIdentity("N", "S", 5, "ipfs://bafy/")
        assert identity.identifier_for(4) == "ipfs://bafy/4"

    def test_empty_prefix(self):
        assert CollectionIdentity("N", "S", 5).identifier_for(2) == "2"

    def test_contains_and_ids(self):
        identity = CollectionIdentity("N", "S", 3)
        assert list(identity.asset_ids()) == [1, 2, 3]
        assert identity.contains(3)
        assert not identity.contains(4)

    @pytest.mark.parametrize("capacity", [0, -1, "5", True])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValidationError):
            CollectionIdentity("N", "S", capacity)

    def test_dict_round_trip(self):
        identity = CollectionIdentity("N", "S", 3, "p/")
        assert CollectionIdentity.from_dict(identity.to_dict()) == identity

    def test_is_frozen(self):
        identity = CollectionIdentity("N", "S", 3)
        with pytest.raises(AttributeError):
            identity.capacity = 10
