"""Shared test doubles for colonywar test suites.

These are plain classes and factories, not unittest.mock.
"""

from __future__ import annotations

import random

from colonywar.colony import Caste, Colony


class FixedRandom(random.Random):
    """Random source whose random() always returns the same value."""

    def __init__(self, value: float = 0.0):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def make_colony(
    colony_id: int,
    location: tuple[float, float] = (0.0, 0.0),
    size: int = 50,
    soldiers: int = 10,
    workers: int = 20,
    territory: list[tuple[float, float]] | None = None,
    resources: dict[str, float] | None = None,
    fitness: float = 1.0,
) -> Colony:
    """Build a colony whose territory defaults to a single cell at its nest."""
    return Colony(
        id=colony_id,
        size=size,
        territory=list(territory) if territory is not None else [location],
        location=location,
        castes={Caste.SOLDIER: soldiers, Caste.WORKER: workers},
        fitness=fitness,
        resources=dict(resources or {}),
    )
