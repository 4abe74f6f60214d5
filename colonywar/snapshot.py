"""Snapshot serialization: convert ColonyWarfareSystem state to plain dicts.

Snapshots share no mutable objects with the live system, so viewers on other
threads can read them while the simulation keeps updating.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from colonywar.alliance import Alliance
    from colonywar.borders import TerritoryBorder
    from colonywar.conflict import Conflict
    from colonywar.ledger import ColonyDiplomacy, DiplomaticEvent
    from colonywar.system import ColonyWarfareSystem
    from colonywar.trade import TradeAgreement


class SnapshotSerializer:
    """Serialize warfare state for viewers."""

    SCHEMA_VERSION = 1

    def serialize(self, system: ColonyWarfareSystem) -> dict:
        """Serialize the full diplomatic and military state.

        Args:
            system: The warfare system to serialize

        Returns:
            Dictionary of plain values, lists and dicts
        """
        return {
            "schema_version": self.SCHEMA_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "tick": system.last_tick,
            "config": system.config.model_dump(),
            "stats": system.get_warfare_stats(),
            "diplomacies": {
                str(d.colony_id): self._serialize_diplomacy(d) for d in system.ledger.diplomacies()
            },
            "conflicts": [self._serialize_conflict(c) for c in system.all_conflicts()],
            "trade_agreements": [self._serialize_trade(t) for t in system.trade_agreements()],
            "alliances": [self._serialize_alliance(a) for a in system.alliances()],
            "borders": [self._serialize_border(b) for b in system.territory_borders()],
        }

    def _serialize_diplomacy(self, diplomacy: ColonyDiplomacy) -> dict:
        return {
            "colony_id": diplomacy.colony_id,
            "reputation": diplomacy.reputation,
            "relations": {str(other): rel.value for other, rel in diplomacy.relations.items()},
            "trust_levels": {str(other): trust for other, trust in diplomacy.trust_levels.items()},
            "trade_agreements": {str(other): tid for other, tid in diplomacy.trade_agreements.items()},
            "alliances": {str(other): aid for other, aid in diplomacy.alliances.items()},
            "conflicts": {str(other): cid for other, cid in diplomacy.conflicts.items()},
            "history": {
                str(other): [self._serialize_event(e) for e in events]
                for other, events in diplomacy.history.items()
            },
        }

    @staticmethod
    def _serialize_event(event: DiplomaticEvent) -> dict:
        return {
            "tick": event.tick,
            "event_type": event.event_type.value,
            "other_colony_id": event.other_colony_id,
            "description": event.description,
            "trust_delta": event.trust_delta,
            "reputation_delta": event.reputation_delta,
        }

    @staticmethod
    def _serialize_conflict(conflict: Conflict) -> dict:
        return {
            "id": conflict.id,
            "attacker": conflict.attacker,
            "defender": conflict.defender,
            "conflict_type": conflict.conflict_type.value,
            "start_tick": conflict.start_tick,
            "turns_active": conflict.turns_active,
            "casualty_count": conflict.casualty_count,
            "resources_lost": conflict.resources_lost,
            "territory_claimed": [list(cell) for cell in conflict.territory_claimed],
            "intensity": conflict.intensity,
            "war_goal": conflict.war_goal.value,
            "is_active": conflict.is_active,
            "end_tick": conflict.end_tick,
            "winner": conflict.winner,
        }

    @staticmethod
    def _serialize_trade(agreement: TradeAgreement) -> dict:
        return {
            "id": agreement.id,
            "colony1_id": agreement.colony1_id,
            "colony2_id": agreement.colony2_id,
            "start_tick": agreement.start_tick,
            "duration": agreement.duration,
            "resources_offered": dict(agreement.resources_offered),
            "resources_wanted": dict(agreement.resources_wanted),
            "trade_volume": agreement.trade_volume,
            "is_active": agreement.is_active,
            "last_trade_tick": agreement.last_trade_tick,
            "trades_executed": agreement.trades_executed,
            "total_transferred": agreement.total_transferred,
        }

    @staticmethod
    def _serialize_alliance(alliance: Alliance) -> dict:
        return {
            "id": alliance.id,
            "members": list(alliance.members),
            "start_tick": alliance.start_tick,
            "duration": alliance.duration,
            "alliance_type": alliance.alliance_type,
            "shared_defense": alliance.shared_defense,
            "resource_share": alliance.resource_share,
            "is_active": alliance.is_active,
            "joint_operations": list(alliance.joint_operations),
        }

    @staticmethod
    def _serialize_border(border: TerritoryBorder) -> dict:
        return {
            "colony1_id": border.colony1_id,
            "colony2_id": border.colony2_id,
            "border_points": [list(p) for p in border.border_points],
            "border_length": border.border_length,
            "disputed": border.disputed,
            "fortifications": border.fortifications,
            "last_conflict": border.last_conflict,
        }


def snapshot_state(system: ColonyWarfareSystem) -> dict:
    """Serialize a warfare system with the default serializer."""
    return SnapshotSerializer().serialize(system)
