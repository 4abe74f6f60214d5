"""Military alliances: formation, resource pooling, shared defense and joint operations.

An Alliance groups two or more colonies into mutually ALLIED relations. While
active it redistributes resources between members, lends strength to members
under attack and periodically launches coordinated wars on common enemies.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING

from colonywar.colony import index_colonies, nest_distance
from colonywar.conflict import ConflictEngine
from colonywar.errors import UnknownColonyError
from colonywar.ledger import DiplomaticEvent
from colonywar.types import RESOURCE_TYPES, ConflictType, EventType, RelationKind, WarGoal

if TYPE_CHECKING:
    from colonywar.arena import Arena
    from colonywar.colony import ColonyView
    from colonywar.config import WarfareConfig
    from colonywar.ledger import RelationLedger

logger = logging.getLogger(__name__)

MAX_RESOURCE_SHARE = 0.3
SHARING_THRESHOLD = 20.0  # min surplus to contribute / need to receive
ALLIED_TRUST_FLOOR = 0.8


@dataclass
class Alliance:
    """A military pact between two or more colonies.

    Attributes:
        id: Arena ID
        members: Member colony IDs, in the order they were proposed
        start_tick: Tick the alliance was formed
        duration: Ticks until expiry (-1 = permanent)
        alliance_type: Free-form label ("defensive", "trade", ...)
        shared_defense: Whether members help defend each other
        resource_share: Fraction of pooled surplus redistributed, in [0, 0.3]
        is_active: False once expired or dissolved
        joint_operations: Conflict IDs launched as joint operations
    """

    id: int
    members: list[int]
    start_tick: int
    duration: int = -1
    alliance_type: str = "defensive"
    shared_defense: bool = True
    resource_share: float = 0.0
    is_active: bool = True
    joint_operations: list[int] = field(default_factory=list)

    def has_member(self, colony_id: int) -> bool:
        return colony_id in self.members

    def is_expired(self, tick: int) -> bool:
        return self.duration > 0 and tick - self.start_tick > self.duration


class AllianceEngine:
    """Forms alliances and runs their per-tick benefits."""

    def __init__(
        self,
        config: WarfareConfig,
        ledger: RelationLedger,
        alliances: Arena[Alliance],
        conflict_engine: ConflictEngine,
        rng: random.Random,
    ):
        self.config = config
        self.ledger = ledger
        self.alliances = alliances
        self.conflict_engine = conflict_engine
        self.rng = rng

    # ------------------------------------------------------------------
    # Formation
    # ------------------------------------------------------------------

    def create_alliance(
        self,
        members: list[int],
        alliance_type: str,
        resource_share: float,
        tick: int,
        duration: int = -1,
    ) -> Alliance | None:
        """Form an alliance between the given colonies.

        Args:
            members: Colony IDs joining the alliance
            alliance_type: Label for the alliance
            resource_share: Requested share, clamped to [0, 0.3]
            tick: Current tick
            duration: Ticks until expiry (-1 = permanent)

        Returns:
            The new Alliance, or None if there are fewer than two distinct
            members, a member is unknown, or any two members are enemies
        """
        members = list(dict.fromkeys(members))
        if len(members) < 2:
            return None

        for member in members:
            if not self.ledger.is_registered(member):
                logger.debug(f"Alliance {members} refused: colony {member} not registered")
                return None
        for a, b in combinations(members, 2):
            if self.ledger.relation(a, b) == RelationKind.ENEMY:
                logger.debug(f"Alliance {members} refused: {a} and {b} are enemies")
                return None

        alliance = self.alliances.add(
            lambda alliance_id: Alliance(
                id=alliance_id,
                members=members,
                start_tick=tick,
                duration=duration,
                alliance_type=alliance_type,
                resource_share=min(MAX_RESOURCE_SHARE, max(0.0, resource_share)),
            )
        )

        self.ledger.link_alliance(members, alliance.id)
        for a, b in combinations(members, 2):
            self.ledger.set_relation(a, b, RelationKind.ALLIED)
            self.ledger.raise_trust_to(a, b, ALLIED_TRUST_FLOOR)
        for member in members:
            for other in members:
                if other == member:
                    continue
                self.ledger.record_event(
                    member,
                    other,
                    DiplomaticEvent(
                        tick=tick,
                        event_type=EventType.ALLIANCE_FORMED,
                        other_colony_id=other,
                        description="Military alliance established",
                        trust_delta=0.3,
                        reputation_delta=0.1,
                    ),
                )

        logger.info(f"Tick {tick}: {alliance_type} alliance {alliance.id} formed by {members}")
        return alliance

    def attempt_alliance_formation(self, colonies: list[ColonyView], tick: int) -> list[Alliance]:
        """Offer defensive alliances to trusting pairs with a common enemy.

        Returns:
            Alliances formed this tick
        """
        if tick % self.config.alliance_formation_interval != 0:
            return []

        formed: list[Alliance] = []
        for i, colony1 in enumerate(colonies):
            for colony2 in colonies[i + 1 :]:
                try:
                    if not self.should_form_alliance(colony1.id, colony2.id):
                        continue
                except UnknownColonyError as e:
                    logger.debug(f"Alliance check {colony1.id}/{colony2.id} skipped: {e}")
                    continue
                if self.allied_together(colony1.id, colony2.id):
                    continue

                share = 0.1 + self.rng.random() * 0.1
                alliance = self.create_alliance([colony1.id, colony2.id], "defensive", share, tick)
                if alliance is not None:
                    formed.append(alliance)
                    break
        return formed

    def should_form_alliance(self, colony1_id: int, colony2_id: int) -> bool:
        d1 = self.ledger.get(colony1_id)
        d2 = self.ledger.get(colony2_id)
        if d1.relation_to(colony2_id) == RelationKind.ENEMY or d1.trust_in(colony2_id) < 0.7:
            return False

        common_enemies = set(d1.enemies()) & set(d2.enemies())
        return bool(common_enemies) and self.rng.random() < 0.3

    def allied_together(self, colony1_id: int, colony2_id: int) -> bool:
        """Whether both colonies belong to the same active alliance."""
        return any(a.has_member(colony1_id) and a.has_member(colony2_id) for a in self.alliances.active())

    def deactivate(self, alliance: Alliance, tick: int, reason: str) -> None:
        alliance.is_active = False
        self.ledger.unlink_alliance(alliance.members, alliance.id)
        logger.info(f"Tick {tick}: alliance {alliance.id} ended ({reason})")

    # ------------------------------------------------------------------
    # Per-tick processing
    # ------------------------------------------------------------------

    def process_alliances(self, colonies: list[ColonyView], tick: int) -> None:
        """Expire alliances and run sharing, defense and joint operations.

        Args:
            colonies: Live colonies this tick
            tick: Current tick
        """
        by_id = index_colonies(colonies)

        for alliance in self.alliances.active():
            if alliance.is_expired(tick):
                self.deactivate(alliance, tick, "expired")
                continue

            members = [by_id[m] for m in alliance.members if m in by_id]
            if len(members) < 2:
                self.deactivate(alliance, tick, "fewer than two members left")
                continue

            if alliance.resource_share > 0:
                self.share_resources(alliance, members)
            if alliance.shared_defense:
                self.process_shared_defense(alliance, by_id)
            if tick % self.config.joint_operation_interval == 0:
                self.coordinate_joint_operations(alliance, members, by_id, tick)

    def share_resources(self, alliance: Alliance, members: list[ColonyView]) -> float:
        """Move a share of pooled surplus from rich members to needy ones.

        Surpluses and needs are measured once per resource type before any
        resources move.

        Returns:
            Total amount redistributed across all resource types
        """
        redistributed = 0.0
        for resource_type in RESOURCE_TYPES:
            donors = [(m, m.resource_surplus(resource_type)) for m in members]
            donors = [(m, s) for m, s in donors if s > SHARING_THRESHOLD]
            receivers = [(m, m.resource_need(resource_type)) for m in members]
            receivers = [(m, n) for m, n in receivers if n > SHARING_THRESHOLD]
            if not donors or not receivers:
                continue

            total_surplus = sum(s for _, s in donors)
            total_need = sum(n for _, n in receivers)
            amount = min(total_surplus, total_need) * alliance.resource_share

            for member, surplus in donors:
                member.consume_resource(resource_type, amount * surplus / total_surplus)
            for member, need in receivers:
                member.add_resource(resource_type, amount * need / total_need)
            redistributed += amount

        return redistributed

    def process_shared_defense(self, alliance: Alliance, by_id: dict[int, ColonyView]) -> None:
        """Idle nearby members reinforce any member currently defending."""
        for conflict in self.conflict_engine.conflicts.active():
            if not alliance.has_member(conflict.defender):
                continue
            defender = by_id.get(conflict.defender)
            if defender is None:
                continue

            for member_id in alliance.members:
                if member_id == defender.id:
                    continue
                ally = by_id.get(member_id)
                if ally is None or self.conflict_engine.conflicts_involving(ally.id):
                    continue
                if nest_distance(ally, defender) <= self.config.ally_support_range:
                    self.lend_support(ally, defender, share=0.3, cost=0.05)

    @staticmethod
    def lend_support(supporter: ColonyView, supported: ColonyView, share: float, cost: float) -> None:
        """Boost supported's fitness by a share of supporter's strength; supporter pays in size."""
        supported.fitness += ConflictEngine.military_strength(supporter) * share * 0.1
        losses = int(supporter.size * cost)
        if losses > 0:
            supporter.size = int(max(1, supporter.size - losses))

    def coordinate_joint_operations(
        self,
        alliance: Alliance,
        members: list[ColonyView],
        by_id: dict[int, ColonyView],
        tick: int,
    ):
        """Launch at most one joint war against a colony two or more members hate.

        Returns:
            The conflict started, or None
        """
        enemy_counts: dict[int, int] = {}
        for member in members:
            for enemy_id in self.ledger.get(member.id).enemies():
                if not alliance.has_member(enemy_id):
                    enemy_counts[enemy_id] = enemy_counts.get(enemy_id, 0) + 1

        candidates = sorted(
            (enemy_id for enemy_id, count in enemy_counts.items() if count >= 2),
            key=lambda enemy_id: (-enemy_counts[enemy_id], enemy_id),
        )
        for enemy_id in candidates:
            target = by_id.get(enemy_id)
            if target is None or not self.should_launch_joint_operation(members, target):
                continue
            conflict = self.launch_joint_operation(alliance, members, target, tick)
            if conflict is not None:
                return conflict
        return None

    @staticmethod
    def should_launch_joint_operation(members: list[ColonyView], target: ColonyView) -> bool:
        if len(members) < 2:
            return False
        combined = sum(ConflictEngine.military_strength(m) for m in members)
        return combined > ConflictEngine.military_strength(target) * 1.5

    def launch_joint_operation(self, alliance: Alliance, members: list[ColonyView], target: ColonyView, tick: int):
        """Nearest member declares total war; the others lend strength."""
        leader = min(members, key=lambda m: nest_distance(m, target))
        conflict = self.conflict_engine.start_conflict(leader, target, ConflictType.TOTAL_WAR, tick)
        if conflict is None:
            return None

        for supporter in members:
            if supporter.id != leader.id:
                self.lend_support(supporter, leader, share=0.2, cost=0.03)

        conflict.war_goal = WarGoal.ALLIANCE_DOMINANCE
        conflict.intensity = min(1.0, conflict.intensity + 0.2)
        alliance.joint_operations.append(conflict.id)

        logger.info(
            f"Tick {tick}: alliance {alliance.id} launched joint operation {conflict.id} "
            f"led by {leader.id} against {target.id}"
        )
        return conflict
