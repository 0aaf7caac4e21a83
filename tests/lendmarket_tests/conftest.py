"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src and this directory to Python path
tests_dir = Path(__file__).resolve().parent
project_root = tests_dir.parents[1]
sys.path.insert(0, str(project_root / "src"))
sys.path.insert(0, str(tests_dir))

import pytest
from prometheus_client import CollectorRegistry

from lendmarket.core.contracts import AllowListRegistry, ERC20Registry, ERC721Registry, EscrowRegistry
from lendmarket.core.lending import LendingEngine, LendingFacet
from lendmarket.core.lending_metrics import LendingMetrics

from lending_helpers import ADMIN, FakeClock, Market


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def market(clock):
    """Engine wired to fresh registries, with two allowed revenue tokens."""
    tokens = ERC20Registry()
    fee = tokens.create_token(ADMIN, "Fee Token", "FEE", address="0x" + "f" * 40)
    revenue = tokens.create_token(ADMIN, "Revenue Token", "REV", address="0x" + "e" * 40)
    bonus = tokens.create_token(ADMIN, "Bonus Token", "BNS", address="0x" + "d" * 40)

    assets = ERC721Registry(name="Lendable Assets", symbol="LND", owner=ADMIN)
    escrows = EscrowRegistry(tokens)
    allow_lists = AllowListRegistry()
    metrics = LendingMetrics(registry=CollectorRegistry())

    engine = LendingEngine(
        owner=ADMIN,
        assets=assets,
        tokens=tokens,
        escrows=escrows,
        allow_lists=allow_lists,
        fee_token=fee.address,
        clock=clock,
        metrics=metrics,
    )
    engine.add_revenue_tokens(ADMIN, [revenue.address, bonus.address])

    return Market(
        engine=engine,
        facet=LendingFacet(engine),
        assets=assets,
        tokens=tokens,
        escrows=escrows,
        allow_lists=allow_lists,
        clock=clock,
        metrics=metrics,
        fee=fee,
        revenue=revenue,
        bonus=bonus,
    )
