"""Trade agreements: negotiation, periodic execution and expiry."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from colonywar.colony import index_colonies, nest_distance
from colonywar.errors import UnknownColonyError
from colonywar.ledger import DiplomaticEvent
from colonywar.types import RESOURCE_TYPES, EventType, RelationKind

if TYPE_CHECKING:
    from colonywar.arena import Arena
    from colonywar.colony import ColonyView
    from colonywar.config import WarfareConfig
    from colonywar.conflict import Conflict
    from colonywar.ledger import RelationLedger

logger = logging.getLogger(__name__)

RELATION_EFFICIENCY: dict[RelationKind, float] = {
    RelationKind.ALLIED: 0.2,
    RelationKind.TRADING: 0.1,
    RelationKind.ENEMY: -0.5,
    RelationKind.TRUCE: -0.1,
}

RELATIONSHIP_MULTIPLIERS: dict[RelationKind, float] = {
    RelationKind.ALLIED: 1.5,
    RelationKind.TRADING: 1.3,
    RelationKind.NEUTRAL: 1.0,
    RelationKind.TRUCE: 0.8,
    RelationKind.VASSAL: 1.2,
    RelationKind.ENEMY: 0.1,
}

NEGOTIATION_THRESHOLD = 10.0  # min surplus and need for a resource to be offered


@dataclass
class TradeAgreement:
    """A standing exchange of resources between two colonies.

    Attributes:
        id: Arena ID
        colony1_id: Colony offering ``resources_offered``
        colony2_id: Colony supplying ``resources_wanted``
        start_tick: Tick the agreement was signed
        duration: Ticks until expiry (-1 = open-ended)
        resources_offered: Resource type -> amount colony 1 sends per execution
        resources_wanted: Resource type -> amount colony 2 sends per execution
        trade_volume: Base multiplier on every amount
        is_active: False once expired, failed or orphaned
        last_trade_tick: Tick of the last execution (signing tick before any)
        trades_executed: Successful executions so far
        total_transferred: Sum of every amount moved in either direction
    """

    id: int
    colony1_id: int
    colony2_id: int
    start_tick: int
    duration: int = -1
    resources_offered: dict[str, float] = field(default_factory=dict)
    resources_wanted: dict[str, float] = field(default_factory=dict)
    trade_volume: float = 1.0
    is_active: bool = True
    last_trade_tick: int = 0
    trades_executed: int = 0
    total_transferred: float = 0.0

    def involves(self, colony_id: int) -> bool:
        return colony_id in (self.colony1_id, self.colony2_id)

    def is_expired(self, tick: int) -> bool:
        return self.duration > 0 and tick - self.start_tick > self.duration


def trust_bonus(trust: float) -> float:
    """Piecewise-linear trade multiplier from mutual trust (0.5 to ~2.0)."""
    if trust <= 0.0:
        return 0.5
    if trust <= 0.3:
        return 0.5 + trust * 1.67
    if trust <= 0.7:
        return 1.0 + (trust - 0.3) * 1.25
    return 1.5 + (trust - 0.7) * 1.67


class TradeEngine:
    """Negotiates, executes and expires trade agreements."""

    def __init__(
        self,
        config: WarfareConfig,
        ledger: RelationLedger,
        trades: Arena[TradeAgreement],
        conflicts: Arena[Conflict],
        rng: random.Random,
    ):
        self.config = config
        self.ledger = ledger
        self.trades = trades
        self.conflicts = conflicts
        self.rng = rng

    # ------------------------------------------------------------------
    # Agreements
    # ------------------------------------------------------------------

    def create_trade_agreement(
        self,
        colony1: ColonyView,
        colony2: ColonyView,
        offered: dict[str, float],
        wanted: dict[str, float],
        duration: int,
        tick: int,
    ) -> TradeAgreement | None:
        """Sign a trade agreement between two colonies.

        Args:
            colony1: Colony sending ``offered``
            colony2: Colony sending ``wanted``
            offered: Resource type -> amount per execution from colony 1
            wanted: Resource type -> amount per execution from colony 2
            duration: Ticks until expiry (-1 = open-ended)
            tick: Current tick

        Returns:
            The new TradeAgreement, or None if either colony is unknown or
            the pair is ENEMY
        """
        if colony1.id == colony2.id:
            return None
        if not (self.ledger.is_registered(colony1.id) and self.ledger.is_registered(colony2.id)):
            logger.debug(f"Trade {colony1.id}/{colony2.id} refused: colony not registered")
            return None
        if self.ledger.relation(colony1.id, colony2.id) == RelationKind.ENEMY:
            logger.debug(f"Trade {colony1.id}/{colony2.id} refused: enemies")
            return None

        agreement = self.trades.add(
            lambda trade_id: TradeAgreement(
                id=trade_id,
                colony1_id=colony1.id,
                colony2_id=colony2.id,
                start_tick=tick,
                duration=duration,
                resources_offered=dict(offered),
                resources_wanted=dict(wanted),
                last_trade_tick=tick,
            )
        )

        self.ledger.link_trade(colony1.id, colony2.id, agreement.id)
        self.ledger.record_event(
            colony1.id,
            colony2.id,
            DiplomaticEvent(
                tick=tick,
                event_type=EventType.TRADE_AGREEMENT,
                other_colony_id=colony2.id,
                description="Trade agreement established",
                trust_delta=0.1,
                reputation_delta=0.05,
            ),
        )

        logger.info(f"Tick {tick}: trade agreement {agreement.id} signed by {colony1.id} and {colony2.id}")
        return agreement

    def deactivate(self, agreement: TradeAgreement, tick: int, reason: str) -> None:
        agreement.is_active = False
        self.ledger.unlink_trade(agreement.colony1_id, agreement.colony2_id, agreement.id)
        logger.info(f"Tick {tick}: trade agreement {agreement.id} ended ({reason})")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def process_trade_agreements(self, colonies: list[ColonyView], tick: int) -> int:
        """Expire and execute every active agreement.

        Args:
            colonies: Live colonies this tick
            tick: Current tick

        Returns:
            Number of trades executed this tick
        """
        by_id = index_colonies(colonies)
        executed = 0

        for agreement in self.trades.active():
            if agreement.is_expired(tick):
                self.deactivate(agreement, tick, "expired")
                continue

            colony1 = by_id.get(agreement.colony1_id)
            colony2 = by_id.get(agreement.colony2_id)
            if colony1 is None or colony2 is None:
                self.deactivate(agreement, tick, "colony disappeared")
                continue

            if tick - agreement.last_trade_tick < self.config.trade_execution_interval:
                continue

            try:
                success = self.execute_trade(agreement, colony1, colony2, tick)
            except UnknownColonyError as e:
                logger.debug(f"Trade {agreement.id} skipped: {e}")
                continue

            if success:
                agreement.last_trade_tick = tick
                executed += 1
            else:
                self.deactivate(agreement, tick, "obligations not met")

        return executed

    def execute_trade(self, agreement: TradeAgreement, colony1: ColonyView, colony2: ColonyView, tick: int) -> bool:
        """Move resources both ways if both colonies can honour the agreement.

        Args:
            agreement: Agreement being executed
            colony1: Colony sending ``resources_offered``
            colony2: Colony sending ``resources_wanted``
            tick: Current tick

        Returns:
            True if the exchange happened, False if either side could not pay
        """
        for resource_type, amount in agreement.resources_offered.items():
            if not colony1.can_afford_for_trade(resource_type, amount * agreement.trade_volume):
                return False
        for resource_type, amount in agreement.resources_wanted.items():
            if not colony2.can_afford_for_trade(resource_type, amount * agreement.trade_volume):
                return False

        efficiency = self.route_efficiency(colony1, colony2)
        volume = (
            agreement.trade_volume
            * efficiency
            * trust_bonus(self.ledger.trust(colony1.id, colony2.id))
            * self.relationship_multiplier(colony1.id, colony2.id)
        )

        moved = self._transfer(colony1, colony2, agreement.resources_offered, volume)
        moved += self._transfer(colony2, colony1, agreement.resources_wanted, volume)
        agreement.trades_executed += 1
        agreement.total_transferred += moved

        trust = self.ledger.adjust_trust(colony1.id, colony2.id, 0.02 * efficiency)
        if self.ledger.relation(colony1.id, colony2.id) == RelationKind.NEUTRAL and trust > 0.6:
            self.ledger.set_relation(colony1.id, colony2.id, RelationKind.TRADING)

        logger.debug(f"Tick {tick}: trade {agreement.id} moved {moved:.2f} (volume {volume:.2f})")
        return True

    @staticmethod
    def _transfer(giver: ColonyView, receiver: ColonyView, amounts: dict[str, float], volume: float) -> float:
        moved = 0.0
        for resource_type, amount in amounts.items():
            quantity = amount * volume
            if giver.consume_resource(resource_type, quantity):
                receiver.add_resource(resource_type, quantity)
                moved += quantity
        return moved

    def route_efficiency(self, colony1: ColonyView, colony2: ColonyView) -> float:
        """Trade route efficiency in [0.1, 1.0]."""
        efficiency = 0.8 - min(0.3, nest_distance(colony1, colony2) / 200.0)

        relation = self.ledger.relation(colony1.id, colony2.id)
        efficiency += RELATION_EFFICIENCY.get(relation, 0.0)
        efficiency += (self.ledger.trust(colony1.id, colony2.id) - 0.5) * 0.2

        for conflict in self.conflicts.active():
            if conflict.involves(colony1.id) or conflict.involves(colony2.id):
                efficiency -= 0.3 * conflict.intensity

        return max(0.1, min(1.0, efficiency))

    def relationship_multiplier(self, colony1_id: int, colony2_id: int) -> float:
        return RELATIONSHIP_MULTIPLIERS.get(self.ledger.relation(colony1_id, colony2_id), 1.0)

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    def attempt_automatic_trading(self, colonies: list[ColonyView], tick: int) -> list[TradeAgreement]:
        """Pair up colonies whose surpluses cover each other's needs.

        Returns:
            Agreements signed this tick
        """
        if tick % self.config.trade_negotiation_interval != 0:
            return []

        signed: list[TradeAgreement] = []
        for i, colony1 in enumerate(colonies):
            for colony2 in colonies[i + 1 :]:
                try:
                    if not self.should_attempt_trading(colony1, colony2):
                        continue
                    agreement = self.evaluate_and_create_trade(colony1, colony2, tick)
                except UnknownColonyError as e:
                    logger.debug(f"Trade negotiation {colony1.id}/{colony2.id} skipped: {e}")
                    continue
                if agreement is not None:
                    signed.append(agreement)
        return signed

    def should_attempt_trading(self, colony1: ColonyView, colony2: ColonyView) -> bool:
        diplomacy = self.ledger.get(colony1.id)
        if diplomacy.relation_to(colony2.id) == RelationKind.ENEMY:
            return False
        if colony2.id in diplomacy.trade_agreements:
            return False
        return diplomacy.trust_in(colony2.id) > 0.4

    def evaluate_and_create_trade(self, colony1: ColonyView, colony2: ColonyView, tick: int) -> TradeAgreement | None:
        offered: dict[str, float] = {}
        wanted: dict[str, float] = {}

        for resource_type in RESOURCE_TYPES:
            surplus1 = colony1.resource_surplus(resource_type)
            need1 = colony1.resource_need(resource_type)
            surplus2 = colony2.resource_surplus(resource_type)
            need2 = colony2.resource_need(resource_type)

            if surplus1 > NEGOTIATION_THRESHOLD and need2 > NEGOTIATION_THRESHOLD:
                offered[resource_type] = min(surplus1 * 0.3, need2 * 0.5)
            if surplus2 > NEGOTIATION_THRESHOLD and need1 > NEGOTIATION_THRESHOLD:
                wanted[resource_type] = min(surplus2 * 0.3, need1 * 0.5)

        if not offered or not wanted:
            return None

        duration = 500 + self.rng.randrange(1000)
        agreement = self.create_trade_agreement(colony1, colony2, offered, wanted, duration, tick)
        if agreement is not None and self.ledger.relation(colony1.id, colony2.id) == RelationKind.NEUTRAL:
            self.ledger.set_relation(colony1.id, colony2.id, RelationKind.TRADING)
        return agreement
