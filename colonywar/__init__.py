"""Inter-colony diplomacy and warfare.

This package tracks how autonomous colonies relate to each other:
- RelationLedger: Symmetric relations, trust, reputation and event history
- BorderCalculator: Shared territorial borders between colonies
- ConflictEngine: Conflict ignition, turn-by-turn combat and settlement
- DiplomacyEngine: Periodic peaceful negotiation between colonies
- TradeEngine: Trade agreement negotiation and execution
- AllianceEngine: Alliances, shared defense and joint operations
- ColonyWarfareSystem: Per-tick facade over all of the above
"""

from __future__ import annotations

from colonywar.alliance import Alliance, AllianceEngine
from colonywar.borders import BorderCalculator, TerritoryBorder
from colonywar.colony import Caste, Colony, ColonyView
from colonywar.config import WarfareConfig, load_config
from colonywar.conflict import Conflict, ConflictEngine
from colonywar.diplomacy import DiplomacyEngine
from colonywar.errors import ColonyWarError, ConfigError, UnknownColonyError
from colonywar.ledger import ColonyDiplomacy, DiplomaticEvent, RelationLedger
from colonywar.system import ColonyWarfareSystem
from colonywar.trade import TradeAgreement, TradeEngine
from colonywar.types import BattleOutcome, ConflictType, EventType, RelationKind, ResourceType, WarGoal

__all__ = [
    "Alliance",
    "AllianceEngine",
    "BattleOutcome",
    "BorderCalculator",
    "Caste",
    "Colony",
    "ColonyDiplomacy",
    "ColonyView",
    "ColonyWarError",
    "ColonyWarfareSystem",
    "ConfigError",
    "Conflict",
    "ConflictEngine",
    "ConflictType",
    "DiplomacyEngine",
    "DiplomaticEvent",
    "EventType",
    "RelationKind",
    "RelationLedger",
    "ResourceType",
    "TerritoryBorder",
    "TradeAgreement",
    "TradeEngine",
    "UnknownColonyError",
    "WarfareConfig",
    "WarGoal",
    "load_config",
]
