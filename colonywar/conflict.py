"""Conflict ignition, turn-by-turn combat and settlement.

A Conflict lives in the conflict arena for its whole life; the two colonies'
diplomacies only hold its ID while it is active. Settled conflicts stay in
the arena with ``is_active`` cleared so history and stats can still see them.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from colonywar.colony import Caste, index_colonies, nest_distance
from colonywar.errors import UnknownColonyError
from colonywar.ledger import DiplomaticEvent
from colonywar.types import BattleOutcome, ConflictType, EventType, Position, RelationKind, WarGoal

if TYPE_CHECKING:
    from colonywar.arena import Arena
    from colonywar.borders import BorderCalculator, TerritoryBorder
    from colonywar.colony import ColonyView
    from colonywar.config import WarfareConfig
    from colonywar.ledger import RelationLedger

logger = logging.getLogger(__name__)

INTENSITY_RANGES: dict[ConflictType, tuple[float, float]] = {
    ConflictType.BORDER_SKIRMISH: (0.2, 0.3),
    ConflictType.RESOURCE_WAR: (0.4, 0.4),
    ConflictType.TOTAL_WAR: (0.7, 0.3),
    ConflictType.RAID: (0.1, 0.2),
}  # type -> (base, spread)

MAX_TURNS: dict[ConflictType, int] = {
    ConflictType.RAID: 20,
    ConflictType.TOTAL_WAR: 200,
}
DEFAULT_MAX_TURNS = 100

HEAVY_CASUALTIES = 20


@dataclass
class Conflict:
    """An armed conflict between an attacker and a defender colony.

    Attributes:
        id: Arena ID
        attacker: Attacking colony ID
        defender: Defending colony ID
        conflict_type: Kind of conflict (drives intensity and max duration)
        start_tick: Tick the conflict was declared
        turns_active: Battle turns fought so far
        casualty_count: Cumulative casualties over all turns
        resources_lost: Cumulative resource losses over all turns
        territory_claimed: Cells taken from the defender, awarded at settlement
        intensity: Scales casualties, in [0, 1]
        war_goal: What the attacker is fighting for
        is_active: False once settled or dropped
        end_tick: Tick the conflict ended (None while active)
        winner: Winning colony ID (None while active or when dropped)
    """

    id: int
    attacker: int
    defender: int
    conflict_type: ConflictType
    start_tick: int
    turns_active: int = 0
    casualty_count: int = 0
    resources_lost: float = 0.0
    territory_claimed: list[Position] = field(default_factory=list)
    intensity: float = 0.3
    war_goal: WarGoal = WarGoal.UNSPECIFIED
    is_active: bool = True
    end_tick: int | None = None
    winner: int | None = None

    def involves(self, colony_id: int) -> bool:
        return colony_id in (self.attacker, self.defender)

    def opponent_of(self, colony_id: int) -> int:
        return self.defender if colony_id == self.attacker else self.attacker


class ConflictEngine:
    """Starts, fights and settles conflicts between registered colonies."""

    def __init__(
        self,
        config: WarfareConfig,
        ledger: RelationLedger,
        borders: BorderCalculator,
        conflicts: Arena[Conflict],
        rng: random.Random,
    ):
        self.config = config
        self.ledger = ledger
        self.borders = borders
        self.conflicts = conflicts
        self.rng = rng

    # ------------------------------------------------------------------
    # Ignition
    # ------------------------------------------------------------------

    def check_for_conflicts(self, colonies: list[ColonyView], tick: int) -> list[Conflict]:
        """Roll every current border for a new border skirmish.

        Does nothing while the number of active conflicts is at the cap.

        Args:
            colonies: Live colonies this tick
            tick: Current tick

        Returns:
            Conflicts started this tick
        """
        if len(self.conflicts.active()) >= self.config.max_active_conflicts:
            return []

        by_id = index_colonies(colonies)
        started: list[Conflict] = []

        for border in self.borders.borders:
            if self.rng.random() >= self.config.border_conflict_chance:
                continue

            colony1 = by_id.get(border.colony1_id)
            colony2 = by_id.get(border.colony2_id)
            if colony1 is None or colony2 is None:
                continue

            try:
                if not self.should_start_conflict(colony1, colony2, border, tick):
                    continue
            except UnknownColonyError as e:
                logger.debug(f"Skipping border {border.pair}: {e}")
                continue

            conflict = self.start_conflict(colony1, colony2, ConflictType.BORDER_SKIRMISH, tick)
            if conflict is not None:
                started.append(conflict)

        return started

    def should_start_conflict(
        self, colony1: ColonyView, colony2: ColonyView, border: TerritoryBorder, tick: int
    ) -> bool:
        """Decide whether a border incident escalates into a conflict."""
        d1 = self.ledger.get(colony1.id)
        d2 = self.ledger.get(colony2.id)

        if d1.relation_to(colony2.id) == RelationKind.ALLIED or d2.relation_to(colony1.id) == RelationKind.ALLIED:
            return False
        if self.active_conflict_between(colony1.id, colony2.id) is not None:
            return False

        if d1.relation_to(colony2.id) == RelationKind.ENEMY:
            return self.rng.random() < 0.3

        chance = self.resource_pressure(colony1, colony2) * self.config.resource_competition * 0.1
        if border.disputed:
            chance *= 2.0
        if border.last_conflict is not None and tick - border.last_conflict < 100:
            chance *= 0.5

        return self.rng.random() < chance

    @staticmethod
    def resource_pressure(colony1: ColonyView, colony2: ColonyView) -> float:
        """Competition for resources from nest proximity and combined size, in [0, 1]."""
        proximity = max(0.0, 1.0 - nest_distance(colony1, colony2) / 50.0)
        size_pressure = (colony1.size + colony2.size) / 200.0
        return min(1.0, proximity + size_pressure)

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    def start_conflict(
        self, attacker: ColonyView, defender: ColonyView, conflict_type: ConflictType, tick: int
    ) -> Conflict | None:
        """Declare war from attacker on defender.

        Args:
            attacker: Colony declaring war
            defender: Colony being attacked
            conflict_type: Kind of conflict
            tick: Current tick

        Returns:
            The new Conflict, or None if either colony is unknown, the pair is
            ALLIED, or the pair is already at war
        """
        if attacker.id == defender.id:
            return None
        if not (self.ledger.is_registered(attacker.id) and self.ledger.is_registered(defender.id)):
            logger.debug(f"Conflict {attacker.id}->{defender.id} refused: colony not registered")
            return None
        if self.ledger.relation(attacker.id, defender.id) == RelationKind.ALLIED:
            logger.debug(f"Conflict {attacker.id}->{defender.id} refused: allied")
            return None
        if self.active_conflict_between(attacker.id, defender.id) is not None:
            return None

        conflict = self.conflicts.add(
            lambda conflict_id: Conflict(
                id=conflict_id,
                attacker=attacker.id,
                defender=defender.id,
                conflict_type=conflict_type,
                start_tick=tick,
                intensity=self.initial_intensity(conflict_type),
                war_goal=self.determine_war_goal(attacker, defender),
            )
        )

        self.ledger.set_relation(attacker.id, defender.id, RelationKind.ENEMY)
        self.ledger.adjust_trust(attacker.id, defender.id, -0.3)
        self.ledger.link_conflict(attacker.id, defender.id, conflict.id)
        self.ledger.record_event(
            attacker.id,
            defender.id,
            DiplomaticEvent(
                tick=tick,
                event_type=EventType.WAR_DECLARATION,
                other_colony_id=defender.id,
                description="War declared",
                trust_delta=-0.3,
                reputation_delta=-0.1,
            ),
        )
        self.borders.mark_conflict(attacker.id, defender.id, tick)

        logger.info(
            f"Tick {tick}: colony {attacker.id} declared {conflict_type.value} on colony {defender.id} "
            f"(goal={conflict.war_goal.value}, intensity={conflict.intensity:.2f})"
        )
        return conflict

    def initial_intensity(self, conflict_type: ConflictType) -> float:
        base, spread = INTENSITY_RANGES.get(conflict_type, (0.3, 0.0))
        return base + self.rng.random() * spread

    @staticmethod
    def determine_war_goal(attacker: ColonyView, defender: ColonyView) -> WarGoal:
        if attacker.size > int(defender.size * 1.5):
            return WarGoal.DOMINANCE
        if len(attacker.territory) < 5:
            return WarGoal.TERRITORY
        return WarGoal.RESOURCES

    def active_conflict_between(self, a: int, b: int) -> Conflict | None:
        for conflict in self.conflicts.active():
            if conflict.involves(a) and conflict.involves(b):
                return conflict
        return None

    def conflicts_involving(self, colony_id: int) -> list[Conflict]:
        """Active conflicts in which the colony is attacker or defender."""
        return [c for c in self.conflicts.active() if c.involves(colony_id)]

    # ------------------------------------------------------------------
    # Per-turn combat
    # ------------------------------------------------------------------

    def process_conflicts(self, colonies: list[ColonyView], tick: int) -> list[Conflict]:
        """Fight one turn of every active conflict.

        Returns:
            Conflicts that ended this tick (settled or dropped)
        """
        by_id = index_colonies(colonies)
        ended: list[Conflict] = []

        for conflict in self.conflicts.active():
            attacker = by_id.get(conflict.attacker)
            defender = by_id.get(conflict.defender)
            if attacker is None or defender is None:
                self.drop_conflict(conflict, tick)
                ended.append(conflict)
                continue

            if not self.update_conflict(conflict, attacker, defender, tick):
                ended.append(conflict)

        return ended

    def update_conflict(self, conflict: Conflict, attacker: ColonyView, defender: ColonyView, tick: int) -> bool:
        """Fight one turn; returns False if the conflict was settled."""
        conflict.turns_active += 1

        attacker_strength = self.military_strength(attacker)
        defender_strength = self.military_strength(defender)
        conflict.casualty_count += self.resolve_battle(
            attacker, defender, attacker_strength, defender_strength, conflict
        )

        if conflict.turns_active > 20:
            conflict.intensity *= 0.95

        if self.should_end_conflict(conflict, attacker, defender):
            self.resolve_conflict(conflict, attacker, defender, tick)
            return False
        return True

    @staticmethod
    def military_strength(colony: ColonyView) -> float:
        """Fighting capability from soldiers, workers, fitness and territory."""
        soldiers = colony.castes.get(Caste.SOLDIER, 0)
        workers = colony.castes.get(Caste.WORKER, 0)
        strength = (soldiers * 2.0 + workers * 0.3) * colony.fitness
        territory_bonus = min(2.0, len(colony.territory) / 10.0)
        return strength * (1.0 + territory_bonus)

    @staticmethod
    def classify_battle(ratio: float, roll: float) -> BattleOutcome:
        """Map the attacker's strength share and a uniform roll to an outcome.

        Every (ratio, roll) pair lands in exactly one outcome.
        """
        if ratio > 0.6 and roll > 0.3:
            return BattleOutcome.ATTACKER_VICTORY
        if ratio < 0.4 and roll < 0.7:
            return BattleOutcome.DEFENDER_VICTORY
        return BattleOutcome.STALEMATE

    def resolve_battle(
        self,
        attacker: ColonyView,
        defender: ColonyView,
        attacker_strength: float,
        defender_strength: float,
        conflict: Conflict,
    ) -> int:
        """Resolve one battle, apply losses to both colonies.

        Args:
            attacker: Attacking colony (size and territory may change)
            defender: Defending colony (size and territory may change)
            attacker_strength: Attacker military strength this turn
            defender_strength: Defender military strength this turn
            conflict: Conflict being fought (resources and claims accumulate)

        Returns:
            Casualties inflicted this turn
        """
        total = attacker_strength + defender_strength
        ratio = attacker_strength / total if total > 0 else 0.5
        outcome = self.classify_battle(ratio, self.rng.random())

        if outcome == BattleOutcome.ATTACKER_VICTORY:
            casualties = int(defender.size * 0.1 * conflict.intensity)
            resources_lost = defender_strength * 0.2
            if conflict.war_goal == WarGoal.TERRITORY and len(defender.territory) > 1:
                claimed = defender.territory[self.rng.randrange(len(defender.territory))]
                conflict.territory_claimed.append(claimed)
                defender.territory = [cell for cell in defender.territory if cell != claimed]
        elif outcome == BattleOutcome.DEFENDER_VICTORY:
            casualties = int(attacker.size * 0.1 * conflict.intensity)
            resources_lost = attacker_strength * 0.2
        else:
            casualties = int((attacker.size + defender.size) * 0.05 * conflict.intensity)
            resources_lost = total * 0.1

        attacker.size = int(max(1, attacker.size - casualties * 0.3))
        defender.size = int(max(1, defender.size - casualties * 0.7))
        conflict.resources_lost += resources_lost

        return casualties

    # ------------------------------------------------------------------
    # Termination and settlement
    # ------------------------------------------------------------------

    def should_end_conflict(self, conflict: Conflict, attacker: ColonyView, defender: ColonyView) -> bool:
        if attacker.size < 5 or defender.size < 5:
            return True
        if conflict.turns_active > MAX_TURNS.get(conflict.conflict_type, DEFAULT_MAX_TURNS):
            return True
        if conflict.intensity < 0.1:
            return True
        return conflict.turns_active > 30 and self.rng.random() < 0.05

    def resolve_conflict(self, conflict: Conflict, attacker: ColonyView, defender: ColonyView, tick: int) -> None:
        """Settle a conflict: pick a winner and set post-war relations.

        Args:
            conflict: Conflict being settled
            attacker: Attacking colony
            defender: Defending colony
            tick: Current tick
        """
        if self.evaluate_war_outcome(conflict, attacker, defender):
            winner, loser = attacker, defender
        else:
            winner, loser = defender, attacker

        self.ledger.adjust_reputation(winner.id, 0.1)
        self.ledger.adjust_reputation(loser.id, -0.1)

        if conflict.casualty_count > HEAVY_CASUALTIES:
            self.ledger.set_relation(winner.id, loser.id, RelationKind.ENEMY)
            self.ledger.set_trust(winner.id, loser.id, 0.1)
        else:
            self.ledger.set_relation(winner.id, loser.id, RelationKind.TRUCE)
            self.ledger.set_trust(winner.id, loser.id, 0.3)

        if conflict.territory_claimed:
            winner.territory = list(winner.territory) + list(conflict.territory_claimed)
            self.borders.mark_disputed(winner.id, loser.id)

        self.ledger.record_event(
            winner.id,
            loser.id,
            DiplomaticEvent(
                tick=tick,
                event_type=EventType.PEACE_TREATY,
                other_colony_id=loser.id,
                description="Conflict resolved",
                trust_delta=0.1,
                reputation_delta=0.05,
            ),
        )

        self.ledger.unlink_conflict(attacker.id, defender.id, conflict.id)
        conflict.is_active = False
        conflict.end_tick = tick
        conflict.winner = winner.id

        logger.info(
            f"Tick {tick}: conflict {conflict.id} settled after {conflict.turns_active} turns, "
            f"winner={winner.id}, casualties={conflict.casualty_count}"
        )

    def evaluate_war_outcome(self, conflict: Conflict, attacker: ColonyView, defender: ColonyView) -> bool:
        """Whether the attacker achieved its war goal.

        Alliance-led wars and wars without a goal are settled by a coin flip.
        """
        goal = conflict.war_goal
        if goal == WarGoal.TERRITORY:
            return len(conflict.territory_claimed) > 0
        if goal == WarGoal.RESOURCES:
            return conflict.resources_lost > 0 and attacker.size >= defender.size
        if goal == WarGoal.DOMINANCE:
            return attacker.size > int(defender.size * 1.2)
        return self.rng.random() < 0.5

    def drop_conflict(self, conflict: Conflict, tick: int) -> None:
        """End a conflict whose attacker or defender no longer exists."""
        self.ledger.unlink_conflict(conflict.attacker, conflict.defender, conflict.id)
        conflict.is_active = False
        conflict.end_tick = tick
        logger.debug(f"Tick {tick}: conflict {conflict.id} dropped, a colony disappeared")
