"""Tests for the event taxonomy."""

from datetime import datetime

import pytest

from hunttrack.core.events import (
    CombatOutcomeEvent,
    DamageEvent,
    EventKind,
    GlobalEvent,
    HealEvent,
    LootEvent,
    SkillCategory,
    SkillEvent,
    StatusEvent,
    UnknownEvent,
    event_from_dict,
    event_from_log,
    event_to_dict,
    get_skill_category,
    normalize_event_type,
)

TS = datetime(2024, 1, 1, 12, 0, 0)


class TestNormalizeEventType:
    """Tests for raw type name mapping."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("HIT", EventKind.HIT),
            ("DAMAGE_DEALT", EventKind.HIT),
            ("MINING_CLAIM", EventKind.CLAIM),
            ("GLOBAL_HOF", EventKind.HOF),
            ("ATTRIBUTE_IMPROVE", EventKind.ATTRIBUTE_GAIN),
            ("PLAYER_DEATH", EventKind.DEATH),
            ("critical_hit", EventKind.CRITICAL_HIT),
            (" loot ", EventKind.LOOT),
        ],
    )
    def test_known_types(self, raw, expected):
        assert normalize_event_type(raw) == expected

    def test_unknown_type(self):
        assert normalize_event_type("TELEPORT") == EventKind.UNKNOWN


class TestEventFromLog:
    """Tests for building typed events."""

    def test_hit(self):
        event = event_from_log("HIT", TS, {"damage": 12.5, "creature": "Atrox"})
        assert isinstance(event, DamageEvent)
        assert event.kind == EventKind.HIT
        assert event.amount == 12.5
        assert event.creature == "Atrox"
        assert event.critical is False

    def test_critical_flag_upgrades_hit(self):
        event = event_from_log("HIT", TS, {"amount": 30, "critical": True})
        assert event.kind == EventKind.CRITICAL_HIT
        assert event.critical is True

    def test_critical_flag_upgrades_damage_taken(self):
        event = event_from_log("DAMAGE_TAKEN", TS, {"amount": 8, "critical": True})
        assert event.kind == EventKind.CRITICAL_DAMAGE_TAKEN

    def test_miss_has_no_payload(self):
        event = event_from_log("MISS", TS, {"amount": 5})
        assert isinstance(event, CombatOutcomeEvent)

    def test_heal(self):
        event = event_from_log("HEALED_BY", TS, {"heal": 20, "player": "Medic"})
        assert isinstance(event, HealEvent)
        assert event.amount == 20
        assert event.player == "Medic"

    def test_loot_defaults(self):
        event = event_from_log("LOOT", TS, {"value": "0.5"})
        assert isinstance(event, LootEvent)
        assert event.item_name == "Unknown"
        assert event.value == 0.5
        assert event.quantity == 1

    def test_loot_with_quantity(self):
        event = event_from_log("LOOT", TS, {"item": "Shrapnel", "value": 1.2, "quantity": "1200"})
        assert event.item_name == "Shrapnel"
        assert event.quantity == 1200

    def test_skill_category(self):
        event = event_from_log("SKILL_GAIN", TS, {"skill": "Rifle", "amount": 0.05})
        assert isinstance(event, SkillEvent)
        assert event.category == SkillCategory.COMBAT

    def test_attribute_gain_is_attribute(self):
        event = event_from_log("ATTRIBUTE_IMPROVE", TS, {"attribute": "Agility", "amount": 0.01})
        assert event.kind == EventKind.ATTRIBUTE_GAIN
        assert event.category == SkillCategory.ATTRIBUTES
        assert event.skill_name == "Agility"

    def test_global(self):
        event = event_from_log("GLOBAL_HOF", TS, {"player": "Someone", "value": 500, "creature": "Atrox"})
        assert isinstance(event, GlobalEvent)
        assert event.is_hof
        assert event.item_name == "Atrox"

    def test_status(self):
        assert isinstance(event_from_log("PLAYER_DEATH", TS), StatusEvent)

    def test_unknown_keeps_payload(self):
        event = event_from_log("TELEPORT", TS, {"where": "Port Atlantis"}, raw="line")
        assert isinstance(event, UnknownEvent)
        assert event.kind == EventKind.UNKNOWN
        assert event.raw_type == "TELEPORT"
        assert event.data == {"where": "Port Atlantis"}

    def test_bad_number_is_zero(self):
        event = event_from_log("HIT", TS, {"amount": "lots"})
        assert event.amount == 0.0

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "-inf", "NaN"])
    def test_non_finite_number_is_zero(self, value):
        assert event_from_log("HIT", TS, {"damage": value}).amount == 0.0
        assert event_from_log("LOOT", TS, {"value": value, "quantity": value}).value == 0.0


class TestSkillCategory:
    def test_known(self):
        assert get_skill_category("First Aid") == SkillCategory.SUPPORT
        assert get_skill_category("Mining") == SkillCategory.PROFESSION

    def test_unknown(self):
        assert get_skill_category("Basket Weaving") == SkillCategory.OTHER


class TestEventSerialization:
    """Stored events come back as the same variant."""

    def test_restores_variants(self):
        events = [
            event_from_log("CRITICAL_HIT", TS, {"amount": 44.0, "creature": "Daikiba"}, raw="raw line"),
            event_from_log("LOOT", TS, {"item": "Animal Oil Residue", "value": 0.3, "quantity": 30}),
            event_from_log("SKILL_GAIN", TS, {"skill": "Aim", "amount": 0.02}),
        ]
        assert [event_from_dict(event_to_dict(e)) for e in events] == events

    def test_unknown_kind_in_record(self):
        event = event_from_dict({"kind": "warp_drive", "timestamp": TS.isoformat()})
        assert isinstance(event, UnknownEvent)
        assert event.raw_type == "warp_drive"
