import os
import pathlib
import sys
from typing import List

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import tessera`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from tessera.events import Event, EventBus  # noqa: E402
from tessera.identity import CollectionIdentity  # noqa: E402
from tessera.registry import AssetRegistry  # noqa: E402


NAME = "MyNFTCollection"
SYMBOL = "MNFT"
CAPACITY = 5
BASE_PREFIX = "https://example.com/metadata/"

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: long randomized walks (skipped unless TESSERA_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('TESSERA_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set TESSERA_RUN_SLOW=1 to enable'))


@pytest.fixture
def identity() -> CollectionIdentity:
    return CollectionIdentity(
        display_name=NAME,
        symbol=SYMBOL,
        capacity=CAPACITY,
        base_identifier_prefix=BASE_PREFIX,
    )


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def events(bus: EventBus) -> List[Event]:
    """Every event published on `bus`, in order."""
    seen: List[Event] = []
    bus.subscribe()(seen.append)
    return seen


@pytest.fixture
def registry(identity: CollectionIdentity, bus: EventBus, events: List[Event]) -> AssetRegistry:
    return AssetRegistry(identity, admin=ADMIN, event_bus=bus)
