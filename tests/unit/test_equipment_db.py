"""Tests for the equipment database."""

import json

import pytest

from hunttrack.core.loadout import Loadout, loadout_costs
from hunttrack.data.equipment_db import EquipmentDB, parse_record

RIFLE = {
    "Id": 101,
    "Name": "Sollomate Opalo",
    "Properties": {
        "Category": "Laser Rifle",
        "Economy": {"Decay": 2.016, "AmmoBurn": 105.6, "MaxTT": 40.0, "MinTT": 1.2, "Efficiency": 45.2},
        "Damage": {"Burn": 8.0, "Stab": None},
        "Range": 42.0,
    },
}

AMP = {
    "Id": 7,
    "Name": "A101",
    "Properties": {"Economy": {"Decay": 0.5, "AmmoBurn": 50}, "Damage": {"Burn": 3.0}},
}


@pytest.fixture
def equipment_db():
    db = EquipmentDB()
    db.load_records("weapon", [RIFLE, {"Name": "Broken"}, {"Id": 3}])
    db.load_records("amp", [AMP])
    return db


class TestParseRecord:
    """Tests for raw record conversion."""

    def test_decay_converted_from_pec(self):
        record = parse_record(RIFLE, "weapon")
        economy = record.equipment.economy
        assert economy.decay == pytest.approx(0.02016)
        assert economy.ammo_burn == 105.6
        assert record.category == "Laser Rifle"
        assert record.equipment.range == 42.0
        assert record.equipment.max_tt == 40.0

    def test_damage_vector(self):
        damage = parse_record(RIFLE, "weapon").equipment.damage
        assert damage.burn == 8.0
        assert damage.stab == 0.0
        assert damage.total == 8.0

    def test_missing_economy(self):
        assert parse_record({"Name": "Broken"}, "weapon") is None

    def test_missing_name(self):
        assert parse_record({"Properties": {"Economy": {}}}, "weapon") is None


class TestEquipmentDB:
    """Tests for lookups."""

    def test_invalid_records_skipped(self, equipment_db):
        assert len(equipment_db) == 2
        assert equipment_db.names("weapon") == ["Sollomate Opalo"]

    def test_find_by_name(self, equipment_db):
        weapon = equipment_db.find_by_name("  sollomate OPALO ", "weapon")
        assert weapon.name == "Sollomate Opalo"
        assert equipment_db.find_by_name("Sollomate Opalo", "amp") is None

    def test_search(self, equipment_db):
        assert [r.name for r in equipment_db.search("opal", "weapon")] == ["Sollomate Opalo"]
        assert equipment_db.search("", "weapon") == []
        assert equipment_db.search("opal", "scope") == []

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            EquipmentDB().load_records("armor", [])

    def test_priced_loadout(self, equipment_db):
        loadout = Loadout(
            id="l",
            name="Opalo + A101",
            weapon=equipment_db.find_by_name("Sollomate Opalo", "weapon"),
            amp=equipment_db.find_by_name("A101", "amp"),
        )
        costs = loadout_costs(loadout)
        assert costs.weapon_cost == pytest.approx(0.01056 + 0.02016)
        assert costs.amp_cost == pytest.approx(0.005 + 0.005)


class TestLoadDirectory:
    """Tests for loading data files."""

    def test_loads_known_files(self, tmp_path):
        (tmp_path / "weapons.json").write_text(json.dumps([RIFLE]), encoding="utf-8")
        (tmp_path / "amps.json").write_text(json.dumps({"items": [AMP]}), encoding="utf-8")

        db = EquipmentDB()
        assert db.load_directory(tmp_path) == 2
        assert db.find_by_name("A101", "amp") is not None

    def test_bad_file_skipped(self, tmp_path):
        (tmp_path / "weapons.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "scopes.json").write_text(json.dumps([RIFLE]), encoding="utf-8")

        db = EquipmentDB()
        assert db.load_directory(tmp_path) == 1
        assert db.names("scope") == ["Sollomate Opalo"]

    def test_empty_directory(self, tmp_path):
        assert EquipmentDB().load_directory(tmp_path) == 0
