"""Colony snapshot consumed by the warfare engine each tick.

The colony simulation itself lives outside this package. ``ColonyView`` is
the surface the engine relies on; ``Colony`` is a concrete dataclass that
satisfies it and is what the tests and embedding simulations construct.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from colonywar.types import Position


class Caste(enum.Enum):
    """Caste roles inside a colony."""

    QUEEN = "queen"
    DRONE = "drone"
    WORKER = "worker"
    SOLDIER = "soldier"
    SCOUT = "scout"
    NURSE = "nurse"
    BUILDER = "builder"
    SPECIALIST = "specialist"


@runtime_checkable
class ColonyView(Protocol):
    """What the engine reads from, and writes back to, a colony."""

    id: int
    size: int
    territory: list[Position]
    location: Position
    castes: dict[Caste, int]
    fitness: float

    def resource_surplus(self, resource_type: str) -> float:
        """Amount held above the strategic reserve."""
        ...

    def resource_need(self, resource_type: str) -> float:
        """Shortfall below the ideal stock."""
        ...

    def can_afford_for_trade(self, resource_type: str, amount: float) -> bool:
        """Whether amount can leave the colony without exhausting its reserve."""
        ...

    def consume_resource(self, resource_type: str, amount: float) -> bool:
        """Remove amount from the stockpile if available."""
        ...

    def add_resource(self, resource_type: str, amount: float) -> None:
        """Add amount to the stockpile."""
        ...


@dataclass
class Colony:
    """A colony as seen by the diplomacy engine.

    Reserve rules: the strategic reserve of a resource is
    ``20 * consumption * size * 0.1`` and the ideal stock is
    ``30 * consumption * size * 0.1``.
    """

    id: int
    size: int = 1
    territory: list[Position] = field(default_factory=list)
    location: Position = (0.0, 0.0)
    castes: dict[Caste, int] = field(default_factory=dict)
    fitness: float = 1.0
    resources: dict[str, float] = field(default_factory=dict)
    consumption: dict[str, float] = field(default_factory=dict)

    def caste_count(self, caste: Caste) -> int:
        return self.castes.get(caste, 0)

    def strategic_reserve(self, resource_type: str) -> float:
        return 20.0 * self.consumption.get(resource_type, 1.0) * self.size * 0.1

    def ideal_stock(self, resource_type: str) -> float:
        return 30.0 * self.consumption.get(resource_type, 1.0) * self.size * 0.1

    def resource_surplus(self, resource_type: str) -> float:
        return max(0.0, self.resources.get(resource_type, 0.0) - self.strategic_reserve(resource_type))

    def resource_need(self, resource_type: str) -> float:
        return max(0.0, self.ideal_stock(resource_type) - self.resources.get(resource_type, 0.0))

    def can_afford(self, resource_type: str, amount: float) -> bool:
        return amount >= 0 and self.resources.get(resource_type, 0.0) >= amount

    def can_afford_for_trade(self, resource_type: str, amount: float) -> bool:
        """Trades may dip into the reserve but must leave at least half of it."""
        if not self.can_afford(resource_type, amount):
            return False
        remaining = self.resources.get(resource_type, 0.0) - amount
        return remaining >= self.strategic_reserve(resource_type) * 0.5

    def consume_resource(self, resource_type: str, amount: float) -> bool:
        if not self.can_afford(resource_type, amount):
            return False
        self.resources[resource_type] = self.resources.get(resource_type, 0.0) - amount
        return True

    def add_resource(self, resource_type: str, amount: float) -> None:
        if amount <= 0:
            return
        self.resources[resource_type] = self.resources.get(resource_type, 0.0) + amount


def nest_distance(a: ColonyView, b: ColonyView) -> float:
    """Euclidean distance between two colonies' nest locations."""
    return math.dist(a.location, b.location)


def index_colonies(colonies: list[ColonyView]) -> dict[int, ColonyView]:
    """Map colony ID to colony for the live colonies of this tick."""
    return {colony.id: colony for colony in colonies}
