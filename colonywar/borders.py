"""Shared-border geometry between colony territories.

Borders are recomputed from scratch every tick. Only the per-pair conflict
bookkeeping (last conflict tick, disputed flag) survives
between ticks so ignition can see recent history.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from colonywar.errors import UnknownColonyError
from colonywar.types import Position

if TYPE_CHECKING:
    from colonywar.colony import ColonyView
    from colonywar.ledger import RelationLedger

logger = logging.getLogger(__name__)


def pair_key(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


@dataclass
class TerritoryBorder:
    """Shared border between two colonies for the current tick."""

    colony1_id: int
    colony2_id: int
    border_points: list[Position] = field(default_factory=list)
    border_length: float = 0.0
    disputed: bool = False
    fortifications: int = 0
    last_conflict: int | None = None  # tick; None = never

    @property
    def pair(self) -> tuple[int, int]:
        return pair_key(self.colony1_id, self.colony2_id)

    def involves(self, colony_id: int) -> bool:
        return colony_id in (self.colony1_id, self.colony2_id)


@dataclass
class _BorderMemory:
    disputed: bool = False
    last_conflict: int | None = None


class BorderCalculator:
    """Derives TerritoryBorder records from colony territories each tick."""

    def __init__(self, ledger: RelationLedger, border_distance: float = 3.0):
        """Initialize the calculator.

        Args:
            ledger: Relation ledger whose diplomacies receive border snapshots
            border_distance: Max distance between two cells to form a border
        """
        self.ledger = ledger
        self.border_distance = border_distance
        self._borders: list[TerritoryBorder] = []
        self._memory: dict[tuple[int, int], _BorderMemory] = {}

    @property
    def borders(self) -> list[TerritoryBorder]:
        return list(self._borders)

    def update(self, colonies: list[ColonyView]) -> list[TerritoryBorder]:
        """Recompute every shared border, replacing last tick's list.

        Args:
            colonies: Live colonies this tick, in scheduler order

        Returns:
            The new border list
        """
        borders: list[TerritoryBorder] = []

        for i, colony1 in enumerate(colonies):
            for colony2 in colonies[i + 1 :]:
                points = self.shared_border(colony1.territory, colony2.territory)
                if not points:
                    continue

                memory = self._memory.get(pair_key(colony1.id, colony2.id), _BorderMemory())
                border = TerritoryBorder(
                    colony1_id=colony1.id,
                    colony2_id=colony2.id,
                    border_points=points,
                    border_length=self.border_length(points),
                    disputed=memory.disputed,
                    last_conflict=memory.last_conflict,
                )
                borders.append(border)

                for owner, other in ((colony1.id, colony2.id), (colony2.id, colony1.id)):
                    try:
                        self.ledger.get(owner).territory_borders[other] = [border]
                    except UnknownColonyError:
                        logger.debug(f"Border {owner}/{other}: colony {owner} not registered")

        self._borders = borders
        return list(borders)

    def shared_border(self, territory1: list[Position], territory2: list[Position]) -> list[Position]:
        """Midpoints of every cell pair within border distance, in scan order."""
        points: list[Position] = []
        for x1, y1 in territory1:
            for x2, y2 in territory2:
                if math.hypot(x1 - x2, y1 - y2) <= self.border_distance:
                    points.append(((x1 + x2) / 2, (y1 + y2) / 2))
        return points

    @staticmethod
    def border_length(points: list[Position]) -> float:
        """Path length through the points in discovery order.

        Not a perimeter: points are not sorted along the border.
        """
        if len(points) < 2:
            return 0.0
        return sum(math.dist(points[i - 1], points[i]) for i in range(1, len(points)))

    def border_between(self, a: int, b: int) -> TerritoryBorder | None:
        key = pair_key(a, b)
        for border in self._borders:
            if border.pair == key:
                return border
        return None

    def mark_conflict(self, a: int, b: int, tick: int) -> None:
        """Remember that a conflict started on the a/b border at tick."""
        self._memory.setdefault(pair_key(a, b), _BorderMemory()).last_conflict = tick
        border = self.border_between(a, b)
        if border is not None:
            border.last_conflict = tick

    def mark_disputed(self, a: int, b: int) -> None:
        """Flag the a/b border as disputed from now on."""
        self._memory.setdefault(pair_key(a, b), _BorderMemory()).disputed = True
        border = self.border_between(a, b)
        if border is not None:
            border.disputed = True
