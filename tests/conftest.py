"""Shared test fixtures for the colonywar test suite."""

from __future__ import annotations

import pytest

from colonywar.colony import Colony
from colonywar.config import WarfareConfig
from colonywar.ledger import RelationLedger
from colonywar.system import ColonyWarfareSystem
from tests.helpers import make_colony


@pytest.fixture
def config() -> WarfareConfig:
    """Default config with a fixed seed."""
    return WarfareConfig(seed=42)


@pytest.fixture
def system(config: WarfareConfig) -> ColonyWarfareSystem:
    """A fresh warfare system."""
    return ColonyWarfareSystem(config)


@pytest.fixture
def ledger() -> RelationLedger:
    """An empty relation ledger."""
    return RelationLedger()


@pytest.fixture
def pair() -> tuple[Colony, Colony]:
    """Two neighbouring colonies with adjacent single-cell territories."""
    return (
        make_colony(1, location=(0.0, 0.0), territory=[(0.0, 0.0), (1.0, 0.0)]),
        make_colony(2, location=(3.0, 0.0), territory=[(3.0, 0.0), (4.0, 0.0)]),
    )


@pytest.fixture
def registered_pair(system: ColonyWarfareSystem, pair: tuple[Colony, Colony]) -> tuple[Colony, Colony]:
    """The neighbouring pair, registered with the system."""
    for colony in pair:
        system.register_colony(colony)
    return pair
