"""Collection identity and the universe of valid asset ids."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator

from tessera.hardening import ValidationError, Validators


@dataclass(frozen=True)
class CollectionIdentity:
    """Immutable identity of a collection.

    Valid asset ids form the closed range [1, capacity]. The base identifier
    prefix is stored verbatim; resolving it into metadata happens elsewhere.
    """

    display_name: str
    symbol: str
    capacity: int
    base_identifier_prefix: str = ""

    def __post_init__(self) -> None:
        Validators.validate_capacity(self.capacity).raise_if_invalid()
        for name in ("display_name", "symbol", "base_identifier_prefix"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(name, "Expected string", getattr(self, name))

    def contains(self, asset_id: Any) -> bool:
        return Validators.validate_asset_id(asset_id, self.capacity).is_valid

    def asset_ids(self) -> Iterator[int]:
        return iter(range(1, self.capacity + 1))

    def identifier_for(self, asset_id: int) -> str:
        return f"{self.base_identifier_prefix}{asset_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_name": self.display_name,
            "symbol": self.symbol,
            "capacity": self.capacity,
            "base_identifier_prefix": self.base_identifier_prefix,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionIdentity":
        return cls(
            display_name=data["display_name"],
            symbol=data["symbol"],
            capacity=data["capacity"],
            base_identifier_prefix=data.get("base_identifier_prefix", ""),
        )
