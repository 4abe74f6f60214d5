"""Periodic peaceful diplomacy between colonies that are not at war.

Successful talks raise mutual trust and can step a relation up the ladder
ENEMY -> TRUCE -> NEUTRAL. Diplomacy never makes colonies ALLIED; that takes
an explicit alliance.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

from colonywar.colony import nest_distance
from colonywar.errors import UnknownColonyError
from colonywar.ledger import DiplomaticEvent
from colonywar.types import EventType, RelationKind

if TYPE_CHECKING:
    from colonywar.colony import ColonyView
    from colonywar.config import WarfareConfig
    from colonywar.ledger import RelationLedger

logger = logging.getLogger(__name__)

# relation -> (trust threshold, next relation)
IMPROVEMENT_LADDER: dict[RelationKind, tuple[float, RelationKind]] = {
    RelationKind.ENEMY: (0.4, RelationKind.TRUCE),
    RelationKind.TRUCE: (0.6, RelationKind.NEUTRAL),
}


class DiplomacyEngine:
    """Runs diplomatic talks every ``diplomacy_update_rate`` ticks."""

    def __init__(self, config: WarfareConfig, ledger: RelationLedger, rng: random.Random):
        self.config = config
        self.ledger = ledger
        self.rng = rng

    def attempt_diplomacy(self, colonies: list[ColonyView], tick: int) -> int:
        """Let every eligible pair try to improve relations.

        Args:
            colonies: Live colonies this tick
            tick: Current tick

        Returns:
            Number of successful diplomatic interactions
        """
        if tick % self.config.diplomacy_update_rate != 0:
            return 0

        successes = 0
        ordered = sorted(colonies, key=lambda c: c.id)
        for i, colony1 in enumerate(ordered):
            for colony2 in ordered[i + 1 :]:
                if colony1.id == colony2.id:
                    continue
                try:
                    if not self.should_attempt(colony1, colony2):
                        continue
                    if self.rng.random() < self.success_chance(colony1, colony2):
                        self.improve_relations(colony1.id, colony2.id, tick)
                        successes += 1
                except UnknownColonyError as e:
                    logger.debug(f"Diplomacy {colony1.id}/{colony2.id} skipped: {e}")

        if successes:
            logger.debug(f"Tick {tick}: {successes} successful diplomatic interactions")
        return successes

    def should_attempt(self, colony1: ColonyView, colony2: ColonyView) -> bool:
        """Only NEUTRAL and TRUCE pairs negotiate."""
        relation = self.ledger.relation(colony1.id, colony2.id)
        if relation == RelationKind.ENEMY and colony2.id in self.ledger.get(colony1.id).conflicts:
            return False
        return relation in (RelationKind.NEUTRAL, RelationKind.TRUCE)

    def success_chance(self, colony1: ColonyView, colony2: ColonyView) -> float:
        trust = (self.ledger.trust(colony1.id, colony2.id) + self.ledger.trust(colony2.id, colony1.id)) / 2.0
        reputation = (self.ledger.get(colony1.id).reputation + self.ledger.get(colony2.id).reputation) / 2.0
        return (trust + reputation + self.proximity(colony1, colony2)) / 3.0

    @staticmethod
    def proximity(colony1: ColonyView, colony2: ColonyView) -> float:
        return max(0.0, 1.0 - nest_distance(colony1, colony2) / 100.0)

    def improve_relations(self, colony1_id: int, colony2_id: int, tick: int) -> RelationKind:
        """Raise mutual trust by 0.1 and step the relation up if trust allows.

        NEUTRAL is the top of the ladder; NEUTRAL pairs only gain trust.

        Args:
            colony1_id: Colony initiating the talks (records the event)
            colony2_id: Counterpart
            tick: Current tick

        Returns:
            The relation after the interaction

        Raises:
            UnknownColonyError: If either colony is not registered
        """
        self.ledger.get(colony2_id)
        trust = self.ledger.adjust_trust(colony1_id, colony2_id, 0.1)

        current = self.ledger.relation(colony1_id, colony2_id)
        step = IMPROVEMENT_LADDER.get(current)
        if step is None or trust <= step[0]:
            return current

        new_relation = step[1]
        self.ledger.set_relation(colony1_id, colony2_id, new_relation)
        self.ledger.record_event(
            colony1_id,
            colony2_id,
            DiplomaticEvent(
                tick=tick,
                event_type=EventType.RELATION_IMPROVEMENT,
                other_colony_id=colony2_id,
                description=f"Relations improved to {new_relation.value}",
                trust_delta=0.1,
                reputation_delta=0.05,
            ),
        )
        logger.info(f"Tick {tick}: colonies {colony1_id} and {colony2_id} now {new_relation.value}")
        return new_relation
