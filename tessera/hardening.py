"""
TESSERA Validation and Hardening Module

Error taxonomy, input validation and invariant enforcement for the asset
registry. It addresses:

1. A closed set of registry error kinds, each with a stable machine code
2. Validation of account identities and asset ids at the public surface
3. Ledger invariant checks (unique holder, balance conservation, range)

Security Model:
    - All inputs are untrusted until validated
    - Every check runs before any mutation
    - Errors are raised to the caller, never swallowed

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional


# =============================================================================
# REGISTRY ERROR TYPES
# =============================================================================

class RegistryError(Exception):
    """Base exception for every failure surfaced by the registry."""

    code = "REGISTRY_ERROR"
    default_message = "registry operation failed"

    def __init__(self, message: str = "", **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            d["details"] = dict(self.details)
        return d


class Unauthorized(RegistryError):
    """Caller lacks administrative or holder/delegate/operator standing."""
    code = "UNAUTHORIZED"
    default_message = "caller is not authorized"


class InvalidAssetId(RegistryError):
    """Asset id outside [1, capacity]."""
    code = "INVALID_ASSET_ID"
    default_message = "TokenId out of range"


class AlreadyMinted(RegistryError):
    """Asset id currently held."""
    code = "ALREADY_MINTED"
    default_message = "Token already minted"


class NonexistentAsset(RegistryError):
    """Operation targets an id with no current holder."""
    code = "NONEXISTENT_ASSET"
    default_message = "asset does not exist"


class OwnershipMismatch(RegistryError):
    """Caller-asserted holder does not match the actual holder."""
    code = "OWNERSHIP_MISMATCH"
    default_message = "asserted holder does not match current holder"


class ZeroAddressRecipient(RegistryError):
    """Destination account is the null sentinel."""
    code = "ZERO_ADDRESS_RECIPIENT"
    default_message = "Cannot transfer to zero address"


class MintingPaused(RegistryError):
    """Mint attempted while the pause gate is closed."""
    code = "MINTING_PAUSED"
    default_message = "Minting is paused"


class UnsafeRecipient(RegistryError):
    """Receiver hook refused a safe mint or safe transfer."""
    code = "UNSAFE_RECIPIENT"
    default_message = "recipient refused the asset"


class InvariantViolation(RegistryError):
    """Ledger invariant violated."""
    code = "INVARIANT_VIOLATION"
    default_message = "ledger invariant violated"


class ValidationError(RegistryError):
    """Malformed input value."""
    code = "VALIDATION_ERROR"
    default_message = "invalid input"

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"{field}: {message}", field=field)


ERROR_TYPES: Dict[str, type] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        InvalidAssetId,
        AlreadyMinted,
        NonexistentAsset,
        OwnershipMismatch,
        ZeroAddressRecipient,
        MintingPaused,
        UnsafeRecipient,
        InvariantViolation,
        ValidationError,
    )
}


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the first ValidationError if validation failed."""
        if not self.is_valid:
            raise self.errors[0]

    def unwrap(self) -> Any:
        self.raise_if_invalid()
        return self.sanitized_value

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

def is_null_account(value: Any) -> bool:
    """True for the null account sentinel (None or an empty string)."""
    return value is None or (isinstance(value, str) and not value.strip())


class Validators:
    """Collection of input validators."""

    ACCOUNT_PATTERN = re.compile(r'^[A-Za-z0-9_.:\-]{1,256}$')

    MAX_STRING_LENGTH = 4096

    @classmethod
    def validate_string(
        cls,
        value: Any,
        field_name: str,
        min_length: int = 1,
        max_length: Optional[int] = None,
        pattern: Optional[re.Pattern] = None,
    ) -> ValidationResult:
        """Validate a string value."""
        max_length = max_length or cls.MAX_STRING_LENGTH
        errors = []

        if not isinstance(value, str):
            errors.append(ValidationError(field_name, f"Expected string, got {type(value).__name__}", value))
            return ValidationResult.failure(errors)

        sanitized = value.strip().replace('\x00', '')

        if len(sanitized) < min_length:
            errors.append(ValidationError(field_name, f"Too short (min {min_length} chars)", value))

        if len(sanitized) > max_length:
            errors.append(ValidationError(field_name, f"Too long (max {max_length} chars)", value))

        if pattern and not pattern.match(sanitized):
            errors.append(ValidationError(field_name, "Does not match required pattern", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(sanitized)

    @classmethod
    def validate_account(cls, value: Any, field_name: str = "account") -> ValidationResult:
        """Validate a non-null account identity.

        Identities are compared byte for byte, so a value is accepted only as
        given: surrounding whitespace or NUL bytes are rejected, never stripped.
        """
        if is_null_account(value):
            return ValidationResult.failure([
                ValidationError(field_name, "Account cannot be the null account", value)
            ])
        result = cls.validate_string(
            value, field_name,
            min_length=1, max_length=256,
            pattern=cls.ACCOUNT_PATTERN,
        )
        if result.is_valid and result.sanitized_value != value:
            return ValidationResult.failure([
                ValidationError(field_name, "Account must be given without padding or NUL bytes", value)
            ])
        return result

    @classmethod
    def validate_asset_id(cls, value: Any, capacity: int) -> ValidationResult:
        """Validate an asset id against the closed range [1, capacity].

        Range failures are reported as InvalidAssetId by the caller; type
        failures (bool, float, str) are plain validation errors.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError("asset_id", f"Expected int, got {type(value).__name__}", value)
            ])
        if value < 1 or value > capacity:
            return ValidationResult.failure([
                ValidationError("asset_id", f"Out of range [1, {capacity}]", value)
            ])
        return ValidationResult.success(value)

    @classmethod
    def validate_capacity(cls, value: Any) -> ValidationResult:
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError("capacity", f"Expected int, got {type(value).__name__}", value)
            ])
        if value < 1:
            return ValidationResult.failure([
                ValidationError("capacity", "Must be a positive integer", value)
            ])
        return ValidationResult.success(value)


def require_account(value: Any, field_name: str = "account") -> str:
    """Return the account as given or raise ValidationError."""
    return Validators.validate_account(value, field_name).unwrap()


# =============================================================================
# LEDGER INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces ledger invariants over a holder map and its derived counters."""

    @staticmethod
    def check_non_negative(field_name: str, value: int) -> None:
        if value < 0:
            raise InvariantViolation(f"{field_name} cannot be negative: {value}")

    @staticmethod
    def check_id_range(asset_ids: Iterable[int], capacity: int) -> None:
        for asset_id in asset_ids:
            if asset_id < 1 or asset_id > capacity:
                raise InvariantViolation(
                    f"asset {asset_id} outside valid range [1, {capacity}]"
                )

    @staticmethod
    def check_balance_conservation(
        holders: Mapping[int, str],
        held_counts: Mapping[str, int],
        total_issued: int,
    ) -> None:
        """Verify held counts agree with the holder map and sum to total_issued."""
        expected: Dict[str, int] = {}
        for holder in holders.values():
            expected[holder] = expected.get(holder, 0) + 1

        for holder, count in held_counts.items():
            InvariantChecker.check_non_negative(f"held_count[{holder}]", count)
            if count != expected.get(holder, 0):
                raise InvariantViolation(
                    f"held_count for {holder} is {count}, "
                    f"but holder map records {expected.get(holder, 0)}"
                )
        for holder, count in expected.items():
            if held_counts.get(holder, 0) != count:
                raise InvariantViolation(
                    f"holder {holder} owns {count} assets but held_count is "
                    f"{held_counts.get(holder, 0)}"
                )

        if sum(held_counts.values()) != total_issued:
            raise InvariantViolation(
                f"sum of held counts {sum(held_counts.values())} "
                f"!= total_issued {total_issued}"
            )
        if total_issued != len(holders):
            raise InvariantViolation(
                f"total_issued {total_issued} != existing assets {len(holders)}"
            )

    @staticmethod
    def check_approvals_exist(approvals: Mapping[int, str], holders: Mapping[int, str]) -> None:
        for asset_id in approvals:
            if asset_id not in holders:
                raise InvariantViolation(
                    f"approval recorded for nonexistent asset {asset_id}"
                )
