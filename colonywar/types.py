"""Closed enumerations shared by the diplomacy and warfare components."""

from __future__ import annotations

import enum

Position = tuple[float, float]


class RelationKind(enum.Enum):
    """Symmetric diplomatic status between two colonies."""

    NEUTRAL = "neutral"
    ALLIED = "allied"
    ENEMY = "enemy"
    TRUCE = "truce"
    TRADING = "trading"
    VASSAL = "vassal"


class ConflictType(enum.Enum):
    """Kinds of inter-colony conflict."""

    BORDER_SKIRMISH = "border_skirmish"
    RESOURCE_WAR = "resource_war"
    TOTAL_WAR = "total_war"
    RAID = "raid"


class WarGoal(enum.Enum):
    """What the attacker wants out of a conflict."""

    TERRITORY = "territory"
    RESOURCES = "resources"
    DOMINANCE = "dominance"
    ALLIANCE_DOMINANCE = "alliance_dominance"
    UNSPECIFIED = "unspecified"


class EventType(enum.Enum):
    """Diplomatic event tags recorded in colony history."""

    WAR_DECLARATION = "war_declaration"
    PEACE_TREATY = "peace_treaty"
    TRADE_AGREEMENT = "trade_agreement"
    ALLIANCE_FORMED = "alliance_formed"
    RELATION_IMPROVEMENT = "relation_improvement"


class BattleOutcome(enum.Enum):
    """Result of a single turn of combat."""

    ATTACKER_VICTORY = "attacker_victory"
    DEFENDER_VICTORY = "defender_victory"
    STALEMATE = "stalemate"


class ResourceType(enum.Enum):
    """Resource types exchanged through trade and alliance sharing."""

    FOOD = "food"
    BIOMASS = "biomass"
    ENERGY = "energy"
    MATERIALS = "materials"


RESOURCE_TYPES: tuple[str, ...] = tuple(r.value for r in ResourceType)
