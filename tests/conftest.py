"""Shared fixtures: manual clock, in-memory ledgers, engine and session configs.

Стандартная раскладка окон в тестах:
    allocation [1000, 2000], cooldown (2000, 2500), minting [2500, 3500]
"""

from collections.abc import Callable

import pytest

from mintsale import EngineConfig, SaleEngine
from mintsale.core.domain import RolloverOption, SessionConfig
from mintsale.core.interfaces import InMemoryAssetLedger, InMemoryItemLedger, ManualClock

ALLOCATION_START = 1_000
ALLOCATION_END = 2_000
MINTING_START = 2_500
MINTING_END = 3_500

ASSET = "asset:usdc"
COLLECTION = "items:genesis"
COORDINATOR = "coordinator"
USERS = ("alice", "bob", "carol")
STARTING_BALANCE = 1_000_000


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=0)


@pytest.fixture
def assets() -> InMemoryAssetLedger:
    ledger = InMemoryAssetLedger()
    for user in USERS:
        ledger.fund(ASSET, user, STARTING_BALANCE)
    return ledger


@pytest.fixture
def items() -> InMemoryItemLedger:
    return InMemoryItemLedger()


@pytest.fixture
def make_config() -> Callable[..., SessionConfig]:
    """Фабрика SessionConfig со стандартными окнами."""

    def _make(**overrides) -> SessionConfig:
        params = {
            "item_collection_ref": COLLECTION,
            "coordinator": COORDINATOR,
            "deposit_asset_ref": ASSET,
            "allocation_start": ALLOCATION_START,
            "allocation_end": ALLOCATION_END,
            "minting_start": MINTING_START,
            "minting_end": MINTING_END,
            "min_price": 1,
            "max_supply": 10_000,
            "rollover_option": RolloverOption.CLOSE,
        }
        params.update(overrides)
        return SessionConfig(**params)

    return _make


@pytest.fixture
def engine(assets, items, clock) -> SaleEngine:
    return SaleEngine(assets=assets, items=items, clock=clock, config=EngineConfig(log_level="DEBUG"))
