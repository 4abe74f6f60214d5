"""Relation ledger: per-colony diplomatic state toward every other colony.

Relation and trust are symmetric by construction: every write goes through
a ledger method that updates both sides. Reputation is colony-local and the
event history is one-sided (only the acting colony records the event).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from colonywar.errors import UnknownColonyError
from colonywar.types import EventType, RelationKind

if TYPE_CHECKING:
    from colonywar.borders import TerritoryBorder
    from colonywar.colony import ColonyView

logger = logging.getLogger(__name__)

INITIAL_TRUST = 0.5


def clamp_trust(value: float) -> float:
    return max(0.0, min(1.0, value))


def clamp_reputation(value: float) -> float:
    return max(-1.0, min(1.0, value))


@dataclass(frozen=True)
class DiplomaticEvent:
    """Immutable audit record of a diplomatic interaction."""

    tick: int
    event_type: EventType
    other_colony_id: int
    description: str = ""
    trust_delta: float = 0.0
    reputation_delta: float = 0.0

    def __str__(self) -> str:
        return f"[Tick {self.tick}] {self.event_type.value} with {self.other_colony_id}: {self.description}"


@dataclass
class ColonyDiplomacy:
    """One colony's view of every other registered colony.

    Attributes:
        colony_id: Owning colony
        relations: Other colony ID -> relation kind
        trust_levels: Other colony ID -> trust in [0, 1]
        reputation: Colony-local reputation in [-1, 1]
        history: Other colony ID -> events this colony recorded about it
        trade_agreements: Other colony ID -> trade agreement ID
        alliances: Other member ID -> alliance ID
        conflicts: Other colony ID -> conflict ID
        territory_borders: Other colony ID -> current border (single element)
    """

    colony_id: int
    relations: dict[int, RelationKind] = field(default_factory=dict)
    trust_levels: dict[int, float] = field(default_factory=dict)
    reputation: float = 0.0
    history: dict[int, list[DiplomaticEvent]] = field(default_factory=dict)
    trade_agreements: dict[int, int] = field(default_factory=dict)
    alliances: dict[int, int] = field(default_factory=dict)
    conflicts: dict[int, int] = field(default_factory=dict)
    territory_borders: dict[int, list[TerritoryBorder]] = field(default_factory=dict)

    def relation_to(self, other_id: int) -> RelationKind:
        return self.relations.get(other_id, RelationKind.NEUTRAL)

    def trust_in(self, other_id: int) -> float:
        return self.trust_levels.get(other_id, INITIAL_TRUST)

    def enemies(self) -> list[int]:
        """IDs this colony currently rates as ENEMY."""
        return [oid for oid, rel in self.relations.items() if rel == RelationKind.ENEMY]

    def all_events(self) -> list[DiplomaticEvent]:
        """Every recorded event across all counterparts, ordered by tick."""
        events = [e for events in self.history.values() for e in events]
        return sorted(events, key=lambda e: e.tick)


class RelationLedger:
    """Owns every ColonyDiplomacy and performs all symmetric writes."""

    def __init__(self):
        self._diplomacies: dict[int, ColonyDiplomacy] = {}

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register_colony(self, colony: ColonyView) -> bool:
        """Add a colony, neutral toward every colony already registered.

        Args:
            colony: Colony to register

        Returns:
            True if the colony was new, False if it was already registered
        """
        if colony.id in self._diplomacies:
            return False

        diplomacy = ColonyDiplomacy(colony_id=colony.id)
        for existing_id, existing in self._diplomacies.items():
            diplomacy.relations[existing_id] = RelationKind.NEUTRAL
            diplomacy.trust_levels[existing_id] = INITIAL_TRUST
            existing.relations[colony.id] = RelationKind.NEUTRAL
            existing.trust_levels[colony.id] = INITIAL_TRUST

        self._diplomacies[colony.id] = diplomacy
        logger.debug(f"Registered colony {colony.id} ({len(self._diplomacies)} known)")
        return True

    def get(self, colony_id: int) -> ColonyDiplomacy:
        """Get a colony's diplomacy.

        Raises:
            UnknownColonyError: If the colony is not registered
        """
        diplomacy = self._diplomacies.get(colony_id)
        if diplomacy is None:
            raise UnknownColonyError(colony_id)
        return diplomacy

    def is_registered(self, colony_id: int) -> bool:
        return colony_id in self._diplomacies

    def colony_ids(self) -> list[int]:
        return list(self._diplomacies.keys())

    def diplomacies(self) -> list[ColonyDiplomacy]:
        return list(self._diplomacies.values())

    def __len__(self) -> int:
        return len(self._diplomacies)

    # ------------------------------------------------------------------
    # Symmetric relation / trust
    # ------------------------------------------------------------------

    def relation(self, a: int, b: int) -> RelationKind:
        return self.get(a).relation_to(b)

    def trust(self, a: int, b: int) -> float:
        return self.get(a).trust_in(b)

    def set_relation(self, a: int, b: int, kind: RelationKind) -> None:
        """Set the relation between a and b on both sides."""
        da, db = self.get(a), self.get(b)
        previous = da.relation_to(b)
        da.relations[b] = kind
        db.relations[a] = kind
        if previous != kind:
            logger.debug(f"Relation {a}<->{b}: {previous.value} -> {kind.value}")

    def set_trust(self, a: int, b: int, value: float) -> float:
        """Set trust between a and b on both sides, clamped to [0, 1]."""
        da, db = self.get(a), self.get(b)
        value = clamp_trust(value)
        da.trust_levels[b] = value
        db.trust_levels[a] = value
        return value

    def adjust_trust(self, a: int, b: int, delta: float) -> float:
        """Add delta to the trust between a and b; returns the new value."""
        return self.set_trust(a, b, self.trust(a, b) + delta)

    def raise_trust_to(self, a: int, b: int, floor: float) -> float:
        """Raise trust between a and b to at least floor."""
        return self.set_trust(a, b, max(self.trust(a, b), floor))

    def adjust_reputation(self, colony_id: int, delta: float) -> float:
        diplomacy = self.get(colony_id)
        diplomacy.reputation = clamp_reputation(diplomacy.reputation + delta)
        return diplomacy.reputation

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record_event(self, from_id: int, to_id: int, event: DiplomaticEvent) -> None:
        """Append an event to from_id's history about to_id (not mirrored)."""
        self.get(from_id).history.setdefault(to_id, []).append(event)

    def history(self, colony_id: int, other_id: int | None = None) -> list[DiplomaticEvent]:
        """Get a copy of a colony's recorded events.

        Args:
            colony_id: Colony whose history to read
            other_id: Restrict to events about this colony (None = all, by tick)

        Returns:
            List of events
        """
        diplomacy = self.get(colony_id)
        if other_id is None:
            return diplomacy.all_events()
        return list(diplomacy.history.get(other_id, []))

    # ------------------------------------------------------------------
    # Back-references (arena IDs)
    # ------------------------------------------------------------------

    def link_conflict(self, a: int, b: int, conflict_id: int) -> None:
        self.get(a).conflicts[b] = conflict_id
        self.get(b).conflicts[a] = conflict_id

    def unlink_conflict(self, a: int, b: int, conflict_id: int) -> None:
        self._unlink("conflicts", a, b, conflict_id)

    def link_trade(self, a: int, b: int, trade_id: int) -> None:
        self.get(a).trade_agreements[b] = trade_id
        self.get(b).trade_agreements[a] = trade_id

    def unlink_trade(self, a: int, b: int, trade_id: int) -> None:
        self._unlink("trade_agreements", a, b, trade_id)

    def link_alliance(self, members: list[int], alliance_id: int) -> None:
        for member in members:
            diplomacy = self.get(member)
            for other in members:
                if other != member:
                    diplomacy.alliances[other] = alliance_id

    def unlink_alliance(self, members: list[int], alliance_id: int) -> None:
        for member in members:
            for other in members:
                if other != member:
                    self._unlink("alliances", member, other, alliance_id, mirror=False)

    def _unlink(self, attr: str, a: int, b: int, item_id: int, mirror: bool = True) -> None:
        """Drop a back-reference, only if it still points at item_id.

        Missing colonies are skipped: a colony that disappeared has nothing
        left to unlink.
        """
        pairs = [(a, b), (b, a)] if mirror else [(a, b)]
        for owner, other in pairs:
            diplomacy = self._diplomacies.get(owner)
            if diplomacy is None:
                continue
            refs: dict[int, int] = getattr(diplomacy, attr)
            if refs.get(other) == item_id:
                del refs[other]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def relation_counts(self) -> dict[RelationKind, int]:
        """Count directed relations by kind (each pair counts once per side)."""
        counts = {kind: 0 for kind in RelationKind}
        for diplomacy in self._diplomacies.values():
            for relation in diplomacy.relations.values():
                counts[relation] += 1
        return counts
