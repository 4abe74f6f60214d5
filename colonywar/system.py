"""ColonyWarfareSystem: the single entry point the colony simulation talks to.

Owns the relation ledger, the border calculator, the conflict / trade /
alliance arenas and the engines that operate on them, and runs one warfare
update per simulation tick:

1. Register new colonies
2. Recompute territory borders
3. Roll borders for new conflicts
4. Fight one turn of every active conflict
5. Diplomacy
6. Execute trade agreements
7. Negotiate new trade agreements
8. Alliance sharing, defense and joint operations
9. Form new alliances
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from colonywar.alliance import Alliance, AllianceEngine
from colonywar.arena import Arena
from colonywar.borders import BorderCalculator, TerritoryBorder
from colonywar.config import WarfareConfig
from colonywar.conflict import Conflict, ConflictEngine
from colonywar.diplomacy import DiplomacyEngine
from colonywar.errors import ColonyWarError
from colonywar.ledger import ColonyDiplomacy, DiplomaticEvent, RelationLedger
from colonywar.snapshot import SnapshotSerializer
from colonywar.timing import PerformanceMonitor, TickTiming
from colonywar.trade import TradeAgreement, TradeEngine
from colonywar.types import ConflictType, RelationKind

if TYPE_CHECKING:
    from colonywar.colony import ColonyView

logger = logging.getLogger(__name__)


class ColonyWarfareSystem:
    """Diplomacy and warfare between every colony of a simulation."""

    def __init__(self, config: WarfareConfig | None = None, rng: random.Random | None = None):
        """Initialize the system.

        Args:
            config: Warfare settings (defaults + COLONYWAR_* env vars if None)
            rng: Random source; a new one seeded from ``config.seed`` if None
        """
        self.config = config if config is not None else WarfareConfig()
        self.rng = rng if rng is not None else random.Random(self.config.seed)

        self.ledger = RelationLedger()
        self.border_calculator = BorderCalculator(self.ledger, self.config.border_distance)

        self._conflicts: Arena[Conflict] = Arena()
        self._trades: Arena[TradeAgreement] = Arena()
        self._alliances: Arena[Alliance] = Arena()

        self.conflict_engine = ConflictEngine(
            self.config, self.ledger, self.border_calculator, self._conflicts, self.rng
        )
        self.trade_engine = TradeEngine(self.config, self.ledger, self._trades, self._conflicts, self.rng)
        self.alliance_engine = AllianceEngine(
            self.config, self.ledger, self._alliances, self.conflict_engine, self.rng
        )
        self.diplomacy_engine = DiplomacyEngine(self.config, self.ledger, self.rng)

        self.last_tick: int | None = None
        self._perf_monitor: PerformanceMonitor | None = (
            PerformanceMonitor() if self.config.timing_enabled else None
        )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, colonies: list[ColonyView], tick: int) -> None:
        """Run one warfare update over the live colonies.

        Args:
            colonies: Every live colony this tick
            tick: Current simulation tick
        """
        tick_start = time.perf_counter()

        t0 = time.perf_counter()
        for colony in colonies:
            self.register_colony(colony)
        t1 = time.perf_counter()

        self._run_phase("borders", self.border_calculator.update, colonies)
        t2 = time.perf_counter()

        self._run_phase("conflict ignition", self.conflict_engine.check_for_conflicts, colonies, tick)
        self._run_phase("conflict resolution", self.conflict_engine.process_conflicts, colonies, tick)
        t3 = time.perf_counter()

        self._run_phase("diplomacy", self.diplomacy_engine.attempt_diplomacy, colonies, tick)
        t4 = time.perf_counter()

        self._run_phase("trade execution", self.trade_engine.process_trade_agreements, colonies, tick)
        self._run_phase("trade negotiation", self.trade_engine.attempt_automatic_trading, colonies, tick)
        t5 = time.perf_counter()

        self._run_phase("alliances", self.alliance_engine.process_alliances, colonies, tick)
        self._run_phase("alliance formation", self.alliance_engine.attempt_alliance_formation, colonies, tick)
        t6 = time.perf_counter()

        self.last_tick = tick

        if self._perf_monitor is not None:
            self._perf_monitor.record_tick(
                TickTiming(
                    tick=tick,
                    registration_ms=(t1 - t0) * 1000,
                    borders_ms=(t2 - t1) * 1000,
                    conflicts_ms=(t3 - t2) * 1000,
                    diplomacy_ms=(t4 - t3) * 1000,
                    trade_ms=(t5 - t4) * 1000,
                    alliances_ms=(t6 - t5) * 1000,
                    total_ms=(time.perf_counter() - tick_start) * 1000,
                )
            )

    def _run_phase(self, name: str, phase: Callable[..., Any], *args: Any) -> Any:
        try:
            return phase(*args)
        except ColonyWarError as e:
            logger.warning(f"Warfare phase '{name}' failed: {e}")
            return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register_colony(self, colony: ColonyView) -> bool:
        return self.ledger.register_colony(colony)

    def update_territory_borders(self, colonies: list[ColonyView]) -> list[TerritoryBorder]:
        return self.border_calculator.update(colonies)

    def check_for_conflicts(self, colonies: list[ColonyView], tick: int) -> list[Conflict]:
        return self.conflict_engine.check_for_conflicts(colonies, tick)

    def process_conflicts(self, colonies: list[ColonyView], tick: int) -> list[Conflict]:
        return self.conflict_engine.process_conflicts(colonies, tick)

    def start_conflict(
        self, attacker: ColonyView, defender: ColonyView, conflict_type: ConflictType, tick: int
    ) -> Conflict | None:
        return self.conflict_engine.start_conflict(attacker, defender, conflict_type, tick)

    def attempt_diplomacy(self, colonies: list[ColonyView], tick: int) -> int:
        return self.diplomacy_engine.attempt_diplomacy(colonies, tick)

    def improve_relations(self, colony1_id: int, colony2_id: int, tick: int) -> RelationKind | None:
        """Run one successful diplomatic interaction; None if a colony is unknown."""
        try:
            return self.diplomacy_engine.improve_relations(colony1_id, colony2_id, tick)
        except ColonyWarError as e:
            logger.debug(f"improve_relations({colony1_id}, {colony2_id}) skipped: {e}")
            return None

    def create_trade_agreement(
        self,
        colony1: ColonyView,
        colony2: ColonyView,
        offered: dict[str, float],
        wanted: dict[str, float],
        duration: int,
        tick: int,
    ) -> TradeAgreement | None:
        return self.trade_engine.create_trade_agreement(colony1, colony2, offered, wanted, duration, tick)

    def process_trade_agreements(self, colonies: list[ColonyView], tick: int) -> int:
        return self.trade_engine.process_trade_agreements(colonies, tick)

    def attempt_automatic_trading(self, colonies: list[ColonyView], tick: int) -> list[TradeAgreement]:
        return self.trade_engine.attempt_automatic_trading(colonies, tick)

    def create_alliance(
        self, members: list[int], alliance_type: str, resource_share: float, tick: int
    ) -> Alliance | None:
        return self.alliance_engine.create_alliance(members, alliance_type, resource_share, tick)

    def process_alliances(self, colonies: list[ColonyView], tick: int) -> None:
        self.alliance_engine.process_alliances(colonies, tick)

    def attempt_alliance_formation(self, colonies: list[ColonyView], tick: int) -> list[Alliance]:
        return self.alliance_engine.attempt_alliance_formation(colonies, tick)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_diplomacy(self, colony_id: int) -> ColonyDiplomacy | None:
        if not self.ledger.is_registered(colony_id):
            return None
        return self.ledger.get(colony_id)

    def get_history(self, colony_id: int, other_id: int | None = None) -> list[DiplomaticEvent]:
        """Events recorded by a colony (about other_id, or all by tick); empty if unknown."""
        if not self.ledger.is_registered(colony_id):
            return []
        return self.ledger.history(colony_id, other_id)

    def active_conflicts(self) -> list[Conflict]:
        return self._conflicts.active()

    def all_conflicts(self) -> list[Conflict]:
        return self._conflicts.all()

    def get_conflict(self, conflict_id: int) -> Conflict | None:
        return self._conflicts.get(conflict_id)

    def trade_agreements(self) -> list[TradeAgreement]:
        return self._trades.all()

    def get_trade_agreement(self, trade_id: int) -> TradeAgreement | None:
        return self._trades.get(trade_id)

    def alliances(self) -> list[Alliance]:
        return self._alliances.all()

    def get_alliance(self, alliance_id: int) -> Alliance | None:
        return self._alliances.get(alliance_id)

    def territory_borders(self) -> list[TerritoryBorder]:
        return self.border_calculator.borders

    def get_warfare_stats(self) -> dict[str, Any]:
        """Aggregate counts for dashboards.

        Relation counts are per side: one NEUTRAL pair adds 2 to
        ``neutral_relations``.
        """
        counts = self.ledger.relation_counts()
        stats: dict[str, Any] = {
            "total_colonies": len(self.ledger),
            "active_conflicts": len(self._conflicts.active()),
            "total_alliances": len(self._alliances),
            "active_trade_agreements": len(self._trades.active()),
        }
        for kind in RelationKind:
            stats[f"{kind.value}_relations"] = counts[kind]
        stats["total_relations"] = sum(counts.values())
        stats["border_conflicts"] = self.config.border_conflict_chance
        stats["resource_competition"] = self.config.resource_competition
        return stats

    def snapshot(self) -> dict:
        return SnapshotSerializer().serialize(self)

    @property
    def performance_summary(self) -> dict:
        if self._perf_monitor is None:
            return {}
        return self._perf_monitor.summary
