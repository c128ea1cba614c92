"""Tests for the stats calculator."""

from dataclasses import replace

import pytest

from hunttrack.core.events import SkillCategory
from hunttrack.core.markup import MarkupConfig, MarkupEntry, MarkupLibrary
from hunttrack.core.session import LoadoutBook, SessionAggregate, TrackingContext
from hunttrack.core.stats import (
    calculate_session_stats,
    quick_stats,
    safe_div,
    skill_gain_rate,
    skills_by_category,
    top_skills,
)


@pytest.fixture
def ctx(rifle_loadout, clock):
    return TrackingContext(loadouts=LoadoutBook([rifle_loadout], active_id=rifle_loadout.id), clock=clock)


@pytest.fixture
def hunt(ctx, clock, make_event):
    """Session with ten seconds of shooting, loot, a death, and skill gains."""
    aggregate = SessionAggregate()
    session, _ = aggregate.start(ctx)
    for i in range(10):
        aggregate.add_event(ctx, make_event("HIT", i + 1, damage=10))
    aggregate.add_event(ctx, make_event("CRITICAL_HIT", 11, damage=40))
    aggregate.add_event(ctx, make_event("MISS", 11))
    aggregate.add_event(ctx, make_event("DAMAGE_TAKEN", 12, amount=20))
    aggregate.add_event(ctx, make_event("DEFLECT", 12))
    aggregate.add_event(ctx, make_event("SELF_HEAL", 13, amount=15))
    aggregate.add_event(ctx, make_event("LOOT", 14, item="Animal Oil Residue", value=2.0, quantity=200))
    aggregate.add_event(ctx, make_event("LOOT", 15, item="Animal Hide", value=1.0))
    aggregate.add_event(ctx, make_event("MINING_CLAIM", 16, resource="Lysterium Stone", value=0.5))
    aggregate.add_event(ctx, make_event("SKILL_GAIN", 17, skill="Rifle", amount=0.4))
    aggregate.add_event(ctx, make_event("SKILL_GAIN", 18, skill="Aim", amount=0.1))
    aggregate.add_event(ctx, make_event("SKILL_GAIN", 19, skill="Rifle", amount=0.2))
    aggregate.add_event(ctx, make_event("PLAYER_DEATH", 20))
    clock.advance(3600)
    return session


class TestSafeDiv:
    def test_zero_denominator(self):
        assert safe_div(5, 0) == 0.0

    def test_normal(self):
        assert safe_div(6, 3) == 2.0


class TestQuickStats:
    """Tests for the running-totals projection."""

    def test_projection(self, hunt, clock):
        quick = quick_stats(hunt, clock.now())
        assert quick.duration == 3600
        assert quick.shots == 12
        assert quick.hits == 11
        assert quick.hit_rate == pytest.approx(11 / 12 * 100)
        assert quick.crit_rate == pytest.approx(1 / 11 * 100)
        assert quick.kills == 2
        assert quick.claim_count == 1

    def test_legacy_session(self, hunt, clock):
        assert quick_stats(replace(hunt, running_stats=None), clock.now()) is None

    def test_empty_session(self, ctx, clock):
        session, _ = SessionAggregate().start(ctx)
        quick = quick_stats(session, clock.now())
        assert quick.hit_rate == 0.0
        assert quick.crit_rate == 0.0


class TestSessionStats:
    """Tests for the full report."""

    def test_combat(self, hunt, clock):
        stats = calculate_session_stats(hunt, clock.now())
        assert stats.damage_dealt == 140
        assert stats.avg_damage_per_hit == pytest.approx(140 / 11)
        assert stats.max_damage_hit == 40
        # Shots from t+1 to t+11
        assert stats.dps == pytest.approx(14.0)
        assert stats.kd_ratio == 2.0

    def test_economy(self, hunt, clock):
        hunt.manual_armor_cost = 0.3
        hunt.manual_fap_cost = 0.2
        stats = calculate_session_stats(hunt, clock.now())
        assert stats.total_spend == pytest.approx(12 * 0.21216)
        assert stats.total_cost == pytest.approx(12 * 0.21216 + 0.5)
        assert stats.loot_value == pytest.approx(3.5)
        assert stats.loot_count == 3
        assert stats.profit == pytest.approx(3.5 - stats.total_cost)
        assert stats.return_rate == pytest.approx(3.5 / stats.total_cost * 100)
        assert stats.dpp == pytest.approx(140 / stats.total_spend)

    def test_decay_needs_loadout(self, hunt, clock, rifle_loadout):
        assert calculate_session_stats(hunt, clock.now()).decay == 0.0

        loadout = replace(rifle_loadout, decay_per_hit_pec=5.0, decay_per_heal_pec=10.0)
        stats = calculate_session_stats(hunt, clock.now(), loadout=loadout)
        assert stats.armor_decay == pytest.approx(2 * 0.05)
        assert stats.fap_decay == pytest.approx(0.1)
        assert stats.net_profit == pytest.approx(stats.profit - 0.2)

    def test_markup_disabled_by_default(self, hunt, clock):
        stats = calculate_session_stats(hunt, clock.now())
        assert stats.markup_enabled is False
        assert stats.loot_value_with_markup == stats.loot_value

    def test_markup(self, hunt, clock):
        library = MarkupLibrary(items={"Animal Oil Residue": MarkupEntry("Animal Oil Residue", markup_percent=150.0)})
        stats = calculate_session_stats(hunt, clock.now(), library=library, markup_config=MarkupConfig())
        assert stats.markup_enabled
        assert stats.markup_value == pytest.approx(1.0)
        assert stats.loot_value_with_markup == pytest.approx(4.5)
        assert stats.profit_with_markup == pytest.approx(stats.profit + 1.0)

    def test_markup_config_switched_off(self, hunt, clock):
        library = MarkupLibrary(items={"Animal Hide": MarkupEntry("Animal Hide", markup_percent=200.0)})
        stats = calculate_session_stats(
            hunt, clock.now(), library=library, markup_config=MarkupConfig(enabled=False)
        )
        assert stats.markup_value == 0.0

    def test_idempotent(self, hunt, clock):
        first = calculate_session_stats(hunt, clock.now())
        second = calculate_session_stats(hunt, clock.now())
        assert first == second

    def test_legacy_session_rebuilt(self, hunt, clock):
        expected = calculate_session_stats(hunt, clock.now())
        legacy = replace(hunt, running_stats=None)
        assert calculate_session_stats(legacy, clock.now()) == expected
        assert legacy.running_stats is None

    def test_empty_session(self, ctx, clock):
        session, _ = SessionAggregate().start(ctx)
        stats = calculate_session_stats(session, clock.now())
        assert stats.dps == 0.0
        assert stats.return_rate == 0.0
        assert stats.kd_ratio == 0.0
        assert stats.skill_efficiency.skill_per_hour == 0.0

    def test_single_shot_dps(self, ctx, clock, make_event):
        aggregate = SessionAggregate()
        session, _ = aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("HIT", damage=25))
        assert calculate_session_stats(session, clock.now()).dps == 25

    def test_no_deaths_kd(self, ctx, clock, make_event):
        aggregate = SessionAggregate()
        session, _ = aggregate.start(ctx)
        aggregate.add_event(ctx, make_event("LOOT", value=1))
        aggregate.add_event(ctx, make_event("LOOT", 1, value=1))
        assert calculate_session_stats(session, clock.now()).kd_ratio == 2.0

    def test_loot_by_item(self, hunt, clock):
        items = calculate_session_stats(hunt, clock.now()).loot_by_item
        assert items["Animal Oil Residue"].quantity == 200
        assert items["Lysterium Stone"].total_value == 0.5

    def test_loadout_breakdown(self, hunt, clock):
        (line,) = calculate_session_stats(hunt, clock.now()).loadout_breakdown
        assert line.loadout_id == "rifle"
        assert line.loadout_name == "Rifle"
        assert line.shots == 12
        assert line.loot_value == pytest.approx(3.5)


class TestSkillAnalysis:
    """Tests for skill breakdowns."""

    def test_breakdown(self, hunt, clock):
        stats = calculate_session_stats(hunt, clock.now())
        rifle = stats.skills.by_skill["Rifle"]
        assert rifle.total_gain == pytest.approx(0.6)
        assert rifle.gain_count == 2
        assert rifle.average_gain == pytest.approx(0.3)
        assert stats.skills.by_category[SkillCategory.COMBAT] == pytest.approx(0.7)

    def test_top_and_grouped(self, hunt, clock):
        stats = calculate_session_stats(hunt, clock.now())
        assert [s.skill_name for s in top_skills(stats, limit=1)] == ["Rifle"]
        grouped = skills_by_category(stats)
        assert [s.skill_name for s in grouped[SkillCategory.COMBAT]] == ["Rifle", "Aim"]

    def test_rates(self, hunt, clock):
        stats = calculate_session_stats(hunt, clock.now())
        assert skill_gain_rate(stats) == pytest.approx(0.7)
        assert stats.skill_efficiency.skill_per_kill == pytest.approx(0.35)
