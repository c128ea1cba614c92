"""Equipment database - loads and indexes weapon/amp/scope/sight data."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from hunttrack.config.logging import get_logger
from hunttrack.core.loadout import DAMAGE_TYPES, DamageProperties, Equipment, EquipmentEconomy

logger = get_logger()

EQUIPMENT_TYPES = ("weapon", "amp", "scope", "sight")

# Data file per equipment type, e.g. weapons.json
EQUIPMENT_FILES = {
    "weapon": "weapons.json",
    "amp": "amps.json",
    "scope": "scopes.json",
    "sight": "sights.json",
}

# Raw decay values are in PEC
PEC_PER_PED = 100

MAX_SEARCH_RESULTS = 20


@dataclass(frozen=True)
class EquipmentRecord:
    """One equipment entry, decay already in PED."""

    id: int
    name: str
    equipment_type: str
    category: Optional[str]
    equipment: Equipment


def parse_record(raw: dict[str, Any], equipment_type: str) -> Optional[EquipmentRecord]:
    """
    Convert a raw item-database record.

    Expected shape: {"Id", "Name", "Properties": {"Type", "Category",
    "Economy": {"Decay", "AmmoBurn", "MaxTT", "MinTT", "Efficiency"},
    "Damage": {"Stab", ...}, "Range"}}

    Returns:
        None for records without a name or economy block
    """
    name = raw.get("Name")
    properties = raw.get("Properties") or {}
    economy = properties.get("Economy")
    if not name or not economy:
        return None

    damage = None
    raw_damage = properties.get("Damage")
    if raw_damage:
        damage = DamageProperties(
            **{key: float(raw_damage.get(key.capitalize()) or 0.0) for key in DAMAGE_TYPES}
        )

    def _opt(value: Any) -> Optional[float]:
        return float(value) if value is not None else None

    equipment = Equipment(
        name=name,
        economy=EquipmentEconomy(
            decay=float(economy.get("Decay") or 0.0) / PEC_PER_PED,
            ammo_burn=float(economy.get("AmmoBurn") or 0.0),
        ),
        damage=damage,
        range=_opt(properties.get("Range")),
        max_tt=_opt(economy.get("MaxTT")),
        min_tt=_opt(economy.get("MinTT")),
        efficiency=_opt(economy.get("Efficiency")),
    )
    return EquipmentRecord(
        id=int(raw.get("Id") or 0),
        name=name,
        equipment_type=properties.get("Type") or equipment_type,
        category=properties.get("Category"),
        equipment=equipment,
    )


class EquipmentDB:
    """Name lookup over equipment records, per equipment type."""

    def __init__(self) -> None:
        self._records: dict[str, list[EquipmentRecord]] = {t: [] for t in EQUIPMENT_TYPES}
        self._by_name: dict[str, dict[str, EquipmentRecord]] = {t: {} for t in EQUIPMENT_TYPES}

    def load_records(self, equipment_type: str, raw_records: Iterable[dict[str, Any]]) -> int:
        """
        Add raw records of one type.

        Returns:
            Number of records loaded
        """
        if equipment_type not in EQUIPMENT_TYPES:
            raise ValueError(f"Unknown equipment type: {equipment_type}")

        count = 0
        for raw in raw_records:
            record = parse_record(raw, equipment_type)
            if record is None:
                continue
            self._records[equipment_type].append(record)
            self._by_name[equipment_type][record.name.lower()] = record
            count += 1
        return count

    def load_directory(self, directory: Path) -> int:
        """
        Load every known equipment file found in a directory.

        Missing files are skipped; unreadable ones are logged and skipped.

        Returns:
            Total records loaded
        """
        total = 0
        for equipment_type, filename in EQUIPMENT_FILES.items():
            path = directory / filename
            if not path.exists():
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not load equipment file {path}: {e}")
                continue
            if isinstance(data, dict):
                data = data.get("items", [])
            total += self.load_records(equipment_type, data)
        logger.info(f"Loaded {total} equipment records from {directory}")
        return total

    def find_by_name(self, name: str, equipment_type: str) -> Optional[Equipment]:
        """Exact (case-insensitive) name lookup."""
        record = self._by_name.get(equipment_type, {}).get(name.strip().lower())
        return record.equipment if record else None

    def search(self, query: str, equipment_type: str, limit: int = MAX_SEARCH_RESULTS) -> list[EquipmentRecord]:
        """Substring search by name (case-insensitive)."""
        needle = query.strip().lower()
        if not needle:
            return []
        matches = [r for r in self._records.get(equipment_type, []) if needle in r.name.lower()]
        return matches[:limit]

    def names(self, equipment_type: str) -> list[str]:
        return [r.name for r in self._records.get(equipment_type, [])]

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())
