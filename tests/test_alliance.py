"""Tests for alliance formation and alliance benefits."""

from __future__ import annotations

import pytest

from colonywar.config import WarfareConfig
from colonywar.system import ColonyWarfareSystem
from colonywar.types import ConflictType, EventType, RelationKind, WarGoal
from tests.helpers import FixedRandom, make_colony


def _register(system: ColonyWarfareSystem, *colonies):
    for colony in colonies:
        system.register_colony(colony)
    return colonies


class TestCreateAlliance:
    """Forming alliances directly."""

    def test_trusting_pair_becomes_allied(self, system: ColonyWarfareSystem, registered_pair):
        """Test a trusting pair becomes allied with linked back-refs and events."""
        system.ledger.set_trust(1, 2, 0.9)

        alliance = system.create_alliance([1, 2], "defensive", 0.2, 10)

        assert alliance is not None
        assert alliance.members == [1, 2]
        assert alliance.duration == -1
        assert alliance.shared_defense is True
        assert alliance.resource_share == pytest.approx(0.2)
        assert system.ledger.relation(1, 2) == RelationKind.ALLIED
        assert system.ledger.relation(2, 1) == RelationKind.ALLIED
        assert system.ledger.trust(1, 2) == pytest.approx(0.9)
        assert system.ledger.get(1).alliances[2] == alliance.id
        assert system.ledger.get(2).alliances[1] == alliance.id
        assert [e.event_type for e in system.get_history(1, 2)] == [EventType.ALLIANCE_FORMED]
        assert [e.event_type for e in system.get_history(2, 1)] == [EventType.ALLIANCE_FORMED]

    def test_trust_raised_to_floor(self, system: ColonyWarfareSystem, registered_pair):
        """Test alliance creation raises trust to 0.8."""
        system.create_alliance([1, 2], "defensive", 0.1, 0)

        assert system.ledger.trust(1, 2) == pytest.approx(0.8)
        assert system.ledger.trust(2, 1) == pytest.approx(0.8)

    def test_refused_with_enemy_pair(self, system: ColonyWarfareSystem):
        """Test an alliance is refused when any two members are enemies."""
        _register(system, make_colony(1), make_colony(2), make_colony(3))
        system.ledger.set_relation(2, 3, RelationKind.ENEMY)

        assert system.create_alliance([1, 2, 3], "defensive", 0.1, 0) is None
        assert system.alliances() == []
        assert system.ledger.relation(1, 2) == RelationKind.NEUTRAL

    @pytest.mark.parametrize("members", [[1], [1, 1], [], [1, 9]])
    def test_refused_for_bad_members(self, system: ColonyWarfareSystem, registered_pair, members):
        """Test an alliance needs two distinct registered members."""
        assert system.create_alliance(members, "defensive", 0.1, 0) is None

    @pytest.mark.parametrize("requested,expected", [(0.5, 0.3), (-0.2, 0.0), (0.15, 0.15)])
    def test_share_is_clamped(self, system: ColonyWarfareSystem, registered_pair, requested, expected):
        """Test resource share is clamped to [0, 0.3]."""
        alliance = system.create_alliance([1, 2], "defensive", requested, 0)

        assert alliance.resource_share == pytest.approx(expected)


class TestAllianceFormation:
    """Automatic alliances against common enemies."""

    def _setup(self, system: ColonyWarfareSystem):
        colonies = _register(system, make_colony(1), make_colony(2), make_colony(3))
        system.ledger.set_relation(1, 3, RelationKind.ENEMY)
        system.ledger.set_relation(2, 3, RelationKind.ENEMY)
        system.ledger.set_trust(1, 2, 0.75)
        return list(colonies)

    def test_forms_defensive_alliance(self):
        """Test trusting colonies with a common enemy form a defensive alliance."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.0))
        colonies = self._setup(system)

        formed = system.attempt_alliance_formation(colonies, 300)

        assert len(formed) == 1
        assert formed[0].members == [1, 2]
        assert formed[0].alliance_type == "defensive"
        assert formed[0].resource_share == pytest.approx(0.1)

    def test_only_on_formation_interval(self):
        """Test formation only runs on the formation interval."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.0))
        colonies = self._setup(system)

        assert system.attempt_alliance_formation(colonies, 299) == []

    def test_needs_common_enemy(self):
        """Test formation requires a shared enemy."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.0))
        colonies = self._setup(system)
        system.ledger.set_relation(2, 3, RelationKind.TRUCE)

        assert system.attempt_alliance_formation(colonies, 300) == []

    def test_needs_trust(self):
        """Test formation requires trust of at least 0.7."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.0))
        colonies = self._setup(system)
        system.ledger.set_trust(1, 2, 0.6)

        assert system.attempt_alliance_formation(colonies, 300) == []

    def test_failed_roll(self):
        """Test a failed roll forms no alliance."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.5))
        colonies = self._setup(system)

        assert system.attempt_alliance_formation(colonies, 300) == []

    def test_skips_existing_alliance(self):
        """Test members already allied are not allied twice."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.0))
        colonies = self._setup(system)
        system.create_alliance([1, 2], "defensive", 0.1, 0)

        assert system.attempt_alliance_formation(colonies, 300) == []
        assert len(system.alliances()) == 1


class TestAllianceBenefits:
    """Resource sharing, shared defense and lifecycle."""

    def test_resource_sharing(self, system: ColonyWarfareSystem):
        """Test surplus flows to the member in need."""
        rich = make_colony(1, size=10, resources={"food": 200.0})
        poor = make_colony(2, size=10)
        _register(system, rich, poor)
        alliance = system.create_alliance([1, 2], "defensive", 0.2, 0)

        moved = system.alliance_engine.share_resources(alliance, [rich, poor])

        assert moved == pytest.approx(6.0)
        assert rich.resources["food"] == pytest.approx(194.0)
        assert poor.resources["food"] == pytest.approx(6.0)

    def test_shared_defense(self, system: ColonyWarfareSystem):
        """Test an idle nearby ally reinforces the defender."""
        defender = make_colony(1, soldiers=10, workers=0)
        ally = make_colony(2, location=(50.0, 0.0), size=100, soldiers=10, workers=0)
        attacker = make_colony(3, location=(5.0, 0.0))
        _register(system, defender, ally, attacker)
        system.create_alliance([1, 2], "defensive", 0.0, 0)
        system.start_conflict(attacker, defender, ConflictType.RAID, 1)

        system.process_alliances([defender, ally, attacker], 1)

        assert defender.fitness == pytest.approx(1.66)
        assert ally.size == 95

    def test_shared_defense_accumulates_each_pass(self, system: ColonyWarfareSystem):
        """Test the fitness boost stacks every tick the defense lasts."""
        defender = make_colony(1, soldiers=10, workers=0)
        ally = make_colony(2, location=(50.0, 0.0), size=100, soldiers=10, workers=0)
        attacker = make_colony(3, location=(5.0, 0.0))
        _register(system, defender, ally, attacker)
        system.create_alliance([1, 2], "defensive", 0.0, 0)
        system.start_conflict(attacker, defender, ConflictType.RAID, 1)

        system.process_alliances([defender, ally, attacker], 1)
        system.process_alliances([defender, ally, attacker], 2)

        assert defender.fitness == pytest.approx(2.32)
        assert ally.size == 91

    def test_distant_ally_does_not_help(self, system: ColonyWarfareSystem):
        """Test allies beyond support range stay out."""
        defender = make_colony(1)
        ally = make_colony(2, location=(200.0, 0.0), size=100)
        attacker = make_colony(3, location=(5.0, 0.0))
        _register(system, defender, ally, attacker)
        system.create_alliance([1, 2], "defensive", 0.0, 0)
        system.start_conflict(attacker, defender, ConflictType.RAID, 1)

        system.process_alliances([defender, ally, attacker], 1)

        assert defender.fitness == 1.0
        assert ally.size == 100

    def test_expiry_releases_back_refs(self, system: ColonyWarfareSystem, registered_pair):
        """Test an expired alliance releases back-refs but stays in the arena."""
        a, b = registered_pair
        alliance = system.alliance_engine.create_alliance([1, 2], "defensive", 0.0, 0, duration=10)

        system.process_alliances([a, b], 11)

        assert not alliance.is_active
        assert system.ledger.get(1).alliances == {}
        assert system.get_alliance(alliance.id) is alliance

    def test_dissolves_when_member_disappears(self, system: ColonyWarfareSystem, registered_pair):
        """Test an alliance with one live member is deactivated."""
        a, _ = registered_pair
        alliance = system.create_alliance([1, 2], "defensive", 0.0, 0)

        system.process_alliances([a], 5)

        assert not alliance.is_active


class TestJointOperations:
    """Coordinated wars against common enemies."""

    def _setup(self, system: ColonyWarfareSystem, target_soldiers: int = 5):
        leader = make_colony(1, location=(0.0, 0.0), soldiers=10, workers=0)
        supporter = make_colony(2, location=(50.0, 0.0), size=100, soldiers=10, workers=0)
        target = make_colony(3, location=(10.0, 0.0), soldiers=target_soldiers, workers=0)
        _register(system, leader, supporter, target)
        alliance = system.create_alliance([1, 2], "defensive", 0.0, 0)
        system.ledger.set_relation(1, 3, RelationKind.ENEMY)
        system.ledger.set_relation(2, 3, RelationKind.ENEMY)
        return alliance, [leader, supporter, target]

    def test_launches_total_war(self, system: ColonyWarfareSystem):
        """Test a joint operation opens an alliance-led total war."""
        alliance, colonies = self._setup(system)
        leader, supporter, _ = colonies

        system.process_alliances(colonies, 200)

        assert len(alliance.joint_operations) == 1
        conflict = system.get_conflict(alliance.joint_operations[0])
        assert conflict.attacker == 1
        assert conflict.defender == 3
        assert conflict.conflict_type == ConflictType.TOTAL_WAR
        assert conflict.war_goal == WarGoal.ALLIANCE_DOMINANCE
        assert conflict.intensity >= 0.9
        assert leader.fitness == pytest.approx(1.44)
        assert supporter.size == 97

    def test_not_on_other_ticks(self, system: ColonyWarfareSystem):
        """Test joint operations only run on their interval."""
        alliance, colonies = self._setup(system)

        system.process_alliances(colonies, 150)

        assert alliance.joint_operations == []

    def test_strong_target_is_left_alone(self, system: ColonyWarfareSystem):
        """Test a target stronger than the alliance is not attacked."""
        alliance, colonies = self._setup(system, target_soldiers=100)

        system.process_alliances(colonies, 200)

        assert alliance.joint_operations == []
        assert system.active_conflicts() == []
