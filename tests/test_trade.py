"""Tests for trade agreements."""

from __future__ import annotations

import pytest

from colonywar.config import WarfareConfig
from colonywar.system import ColonyWarfareSystem
from colonywar.trade import TradeEngine, trust_bonus
from colonywar.types import ConflictType, EventType, RelationKind
from tests.helpers import FixedRandom, make_colony


@pytest.fixture
def traders(system: ColonyWarfareSystem):
    """Two size-10 colonies at the same spot, one rich in food, one in energy."""
    a = make_colony(1, size=10, resources={"food": 200.0})
    b = make_colony(2, size=10, resources={"energy": 200.0})
    system.register_colony(a)
    system.register_colony(b)
    return a, b


class TestCreateTradeAgreement:
    """Signing agreements."""

    def test_create_copies_maps_and_links(self, system: ColonyWarfareSystem, traders):
        """Test an agreement copies its maps and links both sides."""
        a, b = traders
        offered = {"food": 10.0}

        agreement = system.create_trade_agreement(a, b, offered, {"energy": 10.0}, -1, 7)
        offered["food"] = 99.0

        assert agreement is not None
        assert agreement.resources_offered == {"food": 10.0}
        assert agreement.trade_volume == 1.0
        assert agreement.last_trade_tick == 7
        assert system.ledger.get(1).trade_agreements[2] == agreement.id
        assert system.ledger.get(2).trade_agreements[1] == agreement.id
        assert [e.event_type for e in system.get_history(1, 2)] == [EventType.TRADE_AGREEMENT]
        assert system.get_history(2, 1) == []

    def test_refused_between_enemies(self, system: ColonyWarfareSystem, traders):
        """Test enemies cannot sign agreements."""
        a, b = traders
        system.ledger.set_relation(1, 2, RelationKind.ENEMY)

        assert system.create_trade_agreement(a, b, {"food": 1.0}, {"energy": 1.0}, -1, 0) is None
        assert system.trade_agreements() == []

    def test_refused_for_unknown_colony(self, system: ColonyWarfareSystem, traders):
        """Test agreements with unknown colonies are refused."""
        a, _ = traders

        assert system.create_trade_agreement(a, make_colony(5), {}, {}, -1, 0) is None


class TestExecution:
    """Periodic execution and expiry."""

    def test_twenty_ticks_transfer_and_build_trust(self, system: ColonyWarfareSystem, traders):
        """Test twenty ticks of trade move goods and build trust."""
        a, b = traders
        agreement = system.create_trade_agreement(a, b, {"food": 10.0}, {"energy": 10.0}, -1, 0)

        for tick in range(1, 21):
            system.process_trade_agreements([a, b], tick)

        assert agreement.is_active
        assert agreement.trades_executed == 2
        assert agreement.last_trade_tick == 20
        assert agreement.total_transferred > 0
        assert b.resources["food"] > 0
        assert a.resources["energy"] > 0
        assert a.resources["food"] < 200.0
        assert system.ledger.trust(1, 2) > 0.5
        assert system.ledger.trust(2, 1) == system.ledger.trust(1, 2)

    def test_first_execution_volume(self, system: ColonyWarfareSystem, traders):
        """Test the amounts moved by the first execution."""
        a, b = traders
        system.create_trade_agreement(a, b, {"food": 10.0}, {"energy": 10.0}, -1, 0)

        assert system.process_trade_agreements([a, b], 10) == 1

        assert b.resources["food"] == pytest.approx(10.0)
        assert a.resources["energy"] == pytest.approx(10.0)
        assert system.ledger.trust(1, 2) == pytest.approx(0.516)

    def test_expiry_releases_back_refs(self, system: ColonyWarfareSystem, traders):
        """Test an expired agreement releases back-refs."""
        a, b = traders
        agreement = system.create_trade_agreement(a, b, {"food": 1.0}, {"energy": 1.0}, 5, 0)

        system.process_trade_agreements([a, b], 6)

        assert not agreement.is_active
        assert system.ledger.get(1).trade_agreements == {}
        assert system.ledger.get(2).trade_agreements == {}
        assert system.get_trade_agreement(agreement.id) is agreement

    def test_unaffordable_trade_deactivates(self, system: ColonyWarfareSystem, traders):
        """Test an unaffordable trade deactivates the agreement."""
        a, b = traders
        a.resources["food"] = 15.0
        agreement = system.create_trade_agreement(a, b, {"food": 10.0}, {"energy": 10.0}, -1, 0)

        system.process_trade_agreements([a, b], 10)

        assert not agreement.is_active
        assert a.resources["food"] == 15.0

    def test_missing_colony_deactivates(self, system: ColonyWarfareSystem, traders):
        """Test a vanished partner deactivates the agreement."""
        a, b = traders
        agreement = system.create_trade_agreement(a, b, {"food": 1.0}, {"energy": 1.0}, -1, 0)

        system.process_trade_agreements([a], 3)

        assert not agreement.is_active

    def test_neutral_becomes_trading_with_trust(self, system: ColonyWarfareSystem, traders):
        """Test trusting neutral partners become TRADING."""
        a, b = traders
        system.ledger.set_trust(1, 2, 0.65)
        system.create_trade_agreement(a, b, {"food": 1.0}, {"energy": 1.0}, -1, 0)

        system.process_trade_agreements([a, b], 10)

        assert system.ledger.relation(1, 2) == RelationKind.TRADING
        assert system.ledger.relation(2, 1) == RelationKind.TRADING


class TestEfficiency:
    """Route efficiency, trust bonus and relationship multipliers."""

    @pytest.mark.parametrize(
        "trust,expected",
        [(-0.1, 0.5), (0.0, 0.5), (0.3, 1.001), (0.5, 1.25), (0.7, 1.5), (1.0, 2.001)],
    )
    def test_trust_bonus(self, trust, expected):
        """Test the piecewise trust bonus."""
        assert trust_bonus(trust) == pytest.approx(expected)

    def test_route_efficiency_neutral_nearby(self, system: ColonyWarfareSystem, traders):
        """Test base efficiency for a nearby neutral pair."""
        a, b = traders

        assert system.trade_engine.route_efficiency(a, b) == pytest.approx(0.8)

    def test_route_efficiency_distance_penalty(self, system: ColonyWarfareSystem, traders):
        """Test distance lowers efficiency."""
        a, b = traders
        b.location = (100.0, 0.0)

        assert system.trade_engine.route_efficiency(a, b) == pytest.approx(0.5)

    def test_route_efficiency_clamped(self, system: ColonyWarfareSystem, traders):
        """Test efficiency is clamped at 0.1."""
        a, b = traders
        b.location = (100.0, 0.0)
        system.ledger.set_relation(1, 2, RelationKind.ENEMY)
        system.ledger.set_trust(1, 2, 0.0)

        assert system.trade_engine.route_efficiency(a, b) == pytest.approx(0.1)

    def test_route_efficiency_conflict_penalty(self, system: ColonyWarfareSystem, traders):
        """Test active conflicts lower efficiency."""
        a, b = traders
        c = make_colony(3)
        system.register_colony(c)
        conflict = system.start_conflict(c, a, ConflictType.RAID, 0)

        expected = 0.8 - 0.3 * conflict.intensity
        assert system.trade_engine.route_efficiency(a, b) == pytest.approx(expected)

    def test_relationship_multiplier(self, system: ColonyWarfareSystem, traders):
        """Test multipliers per relation."""
        engine: TradeEngine = system.trade_engine
        system.ledger.set_relation(1, 2, RelationKind.ALLIED)
        assert engine.relationship_multiplier(1, 2) == 1.5
        system.ledger.set_relation(1, 2, RelationKind.VASSAL)
        assert engine.relationship_multiplier(1, 2) == 1.2
        system.ledger.set_relation(1, 2, RelationKind.ENEMY)
        assert engine.relationship_multiplier(1, 2) == 0.1


class TestAutomaticTrading:
    """Negotiating agreements from surplus and need."""

    def _complementary(self, system: ColonyWarfareSystem):
        a = make_colony(1, size=10, resources={"food": 100.0})
        b = make_colony(2, size=10, resources={"energy": 100.0})
        system.register_colony(a)
        system.register_colony(b)
        return a, b

    def test_creates_matching_agreement(self):
        """Test complementary surpluses produce an agreement."""
        system = ColonyWarfareSystem(WarfareConfig(), rng=FixedRandom(0.5))
        a, b = self._complementary(system)

        signed = system.attempt_automatic_trading([a, b], 100)

        assert len(signed) == 1
        agreement = signed[0]
        assert agreement.resources_offered == {"food": pytest.approx(15.0)}
        assert agreement.resources_wanted == {"energy": pytest.approx(15.0)}
        assert 500 <= agreement.duration <= 1499
        assert system.ledger.relation(1, 2) == RelationKind.TRADING

    def test_only_on_negotiation_interval(self, system: ColonyWarfareSystem):
        """Test negotiation only runs on its interval."""
        a, b = self._complementary(system)

        assert system.attempt_automatic_trading([a, b], 99) == []

    def test_skips_existing_agreement(self, system: ColonyWarfareSystem):
        """Test pairs with an agreement are skipped."""
        a, b = self._complementary(system)
        system.create_trade_agreement(a, b, {"food": 1.0}, {"energy": 1.0}, -1, 0)

        assert system.attempt_automatic_trading([a, b], 100) == []

    def test_requires_trust(self, system: ColonyWarfareSystem):
        """Test negotiation requires trust above 0.4."""
        a, b = self._complementary(system)
        system.ledger.set_trust(1, 2, 0.4)

        assert system.attempt_automatic_trading([a, b], 100) == []

    def test_one_sided_surplus_is_not_enough(self, system: ColonyWarfareSystem):
        """Test both sides must have something to offer."""
        a = make_colony(1, size=10, resources={"food": 100.0})
        b = make_colony(2, size=10)
        system.register_colony(a)
        system.register_colony(b)

        assert system.attempt_automatic_trading([a, b], 100) == []
