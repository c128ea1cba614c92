"""Equipment cost and damage model - pure functions over a loadout."""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


# Ammo burn units to PED (1/10000)
AMMO_BURN_TO_PED = 0.0001

# Pre-migration flat enhancer model: 103 ammo burn per slot per shot
LEGACY_ENHANCER_AMMO_BURN = 103

MAX_ENHANCER_SLOTS = 10

# Per-enhancer modifiers
DAMAGE_ENHANCER_BONUS = 0.1  # +10% damage and cost per slot
ECONOMY_ENHANCER_FACTOR = 0.989  # ~1.1% cheaper per slot, compounding
ACCURACY_ENHANCER_CRIT = 0.002  # +0.2% crit per slot

DAMAGE_TYPES = (
    "stab",
    "cut",
    "impact",
    "penetration",
    "shrapnel",
    "burn",
    "cold",
    "acid",
    "electric",
)


@dataclass(frozen=True)
class EquipmentEconomy:
    """Per-use economy of a piece of equipment."""

    decay: float = 0.0  # PED per use
    ammo_burn: float = 0.0  # Raw units, x0.0001 for PED


@dataclass(frozen=True)
class DamageProperties:
    """Nine-component damage vector."""

    stab: float = 0.0
    cut: float = 0.0
    impact: float = 0.0
    penetration: float = 0.0
    shrapnel: float = 0.0
    burn: float = 0.0
    cold: float = 0.0
    acid: float = 0.0
    electric: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.stab
            + self.cut
            + self.impact
            + self.penetration
            + self.shrapnel
            + self.burn
            + self.cold
            + self.acid
            + self.electric
        )


@dataclass(frozen=True)
class Equipment:
    """A weapon, amplifier, scope or sight."""

    name: str
    economy: EquipmentEconomy = field(default_factory=EquipmentEconomy)
    damage: Optional[DamageProperties] = None
    range: Optional[float] = None
    max_tt: Optional[float] = None
    min_tt: Optional[float] = None
    efficiency: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "economy": {"decay": self.economy.decay, "ammo_burn": self.economy.ammo_burn},
        }
        if self.damage is not None:
            result["damage"] = {name: getattr(self.damage, name) for name in DAMAGE_TYPES}
        for key in ("range", "max_tt", "min_tt", "efficiency"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Equipment":
        economy = data.get("economy") or {}
        damage = data.get("damage")
        return cls(
            name=data.get("name", ""),
            economy=EquipmentEconomy(
                decay=float(economy.get("decay", 0.0)),
                ammo_burn=float(economy.get("ammo_burn", economy.get("ammoBurn", 0.0))),
            ),
            damage=(
                DamageProperties(**{k: float(damage.get(k, 0.0)) for k in DAMAGE_TYPES})
                if damage
                else None
            ),
            range=data.get("range"),
            max_tt=data.get("max_tt", data.get("maxTT")),
            min_tt=data.get("min_tt", data.get("minTT")),
            efficiency=data.get("efficiency"),
        )


def create_equipment(name: str, decay: float, ammo_burn: float = 0.0) -> Equipment:
    """Create equipment from raw economy values (decay in PED)."""
    return Equipment(name=name, economy=EquipmentEconomy(decay=decay, ammo_burn=ammo_burn))


@dataclass
class Loadout:
    """Equipment configuration used to price each shot."""

    id: str
    name: str

    # Equipment slots
    weapon: Optional[Equipment] = None
    amp: Optional[Equipment] = None
    scope: Optional[Equipment] = None
    sight: Optional[Equipment] = None

    # Enhancer slot counters (sum <= 10)
    damage_enhancers: int = 0
    accuracy_enhancers: int = 0
    range_enhancers: int = 0
    economy_enhancers: int = 0

    # Player skill percentages (0-100)
    hit_profession: float = 100.0
    damage_profession: float = 100.0

    # Manual override bypasses calculation
    use_manual_cost: bool = False
    manual_cost_per_shot: Optional[float] = None

    # Defensive decay inputs in PEC
    decay_per_hit_pec: float = 0.0  # Armor decay per hit taken
    decay_per_heal_pec: float = 0.0  # FAP decay per heal

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def enhancer_slots_used(self) -> int:
        return (
            self.damage_enhancers
            + self.accuracy_enhancers
            + self.range_enhancers
            + self.economy_enhancers
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weapon": self.weapon.to_dict() if self.weapon else None,
            "amp": self.amp.to_dict() if self.amp else None,
            "scope": self.scope.to_dict() if self.scope else None,
            "sight": self.sight.to_dict() if self.sight else None,
            "damage_enhancers": self.damage_enhancers,
            "accuracy_enhancers": self.accuracy_enhancers,
            "range_enhancers": self.range_enhancers,
            "economy_enhancers": self.economy_enhancers,
            "hit_profession": self.hit_profession,
            "damage_profession": self.damage_profession,
            "use_manual_cost": self.use_manual_cost,
            "manual_cost_per_shot": self.manual_cost_per_shot,
            "decay_per_hit_pec": self.decay_per_hit_pec,
            "decay_per_heal_pec": self.decay_per_heal_pec,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def create_loadout(name: str) -> Loadout:
    """Create a new empty loadout with a fresh id."""
    now = datetime.now()
    return Loadout(id=str(uuid.uuid4()), name=name, created_at=now, updated_at=now)


@dataclass(frozen=True)
class LoadoutCosts:
    """Per-shot cost breakdown in PED."""

    weapon_cost: float
    amp_cost: float
    scope_cost: float
    sight_cost: float
    enhancer_cost: float  # Share of weapon+amp cost added by enhancers
    total_per_shot: float


@dataclass(frozen=True)
class DamageRange:
    min: float
    max: float


# --- Cost ---


def weapon_cost(equipment: Optional[Equipment]) -> float:
    """Cost per shot of a weapon or amp: ammo burn plus decay, in PED."""
    if equipment is None:
        return 0.0
    return equipment.economy.ammo_burn * AMMO_BURN_TO_PED + equipment.economy.decay


def attachment_cost(equipment: Optional[Equipment]) -> float:
    """Cost per shot of a scope or sight: decay only."""
    if equipment is None:
        return 0.0
    return equipment.economy.decay


def enhancer_multiplier(loadout: Loadout) -> float:
    """Cost multiplier applied to weapon and amp by damage/economy enhancers."""
    return (1 + DAMAGE_ENHANCER_BONUS * loadout.damage_enhancers) * (
        ECONOMY_ENHANCER_FACTOR ** loadout.economy_enhancers
    )


def loadout_costs(loadout: Loadout) -> LoadoutCosts:
    """
    Compute the per-shot cost breakdown of a loadout.

    Damage enhancers raise weapon and amp cost by 10% each; economy
    enhancers lower it by 1.1% each, compounding. Scope and sight are
    unaffected.

    Args:
        loadout: Loadout to price

    Returns:
        LoadoutCosts with every slot cost and the total
    """
    multiplier = enhancer_multiplier(loadout)
    base_weapon = weapon_cost(loadout.weapon)
    base_amp = weapon_cost(loadout.amp)

    weapon = base_weapon * multiplier
    amp = base_amp * multiplier
    scope = attachment_cost(loadout.scope)
    sight = attachment_cost(loadout.sight)

    return LoadoutCosts(
        weapon_cost=weapon,
        amp_cost=amp,
        scope_cost=scope,
        sight_cost=sight,
        enhancer_cost=(weapon + amp) - (base_weapon + base_amp),
        total_per_shot=weapon + amp + scope + sight,
    )


def effective_cost_per_shot(loadout: Loadout) -> float:
    """Cost per shot honouring the manual override."""
    if loadout.use_manual_cost and loadout.manual_cost_per_shot is not None:
        return loadout.manual_cost_per_shot
    return loadout_costs(loadout).total_per_shot


def legacy_enhancer_surcharge(slots: int, override: Optional[float] = None) -> float:
    """
    Flat per-shot enhancer cost of the pre-migration model.

    Each slot burned 103 ammo units (0.0103 PED) per shot.
    """
    if override is not None and override > 0:
        return override
    return slots * LEGACY_ENHANCER_AMMO_BURN * AMMO_BURN_TO_PED


# --- Damage ---


def total_damage(equipment: Optional[Equipment]) -> float:
    """Sum of the nine damage components (0 without a damage vector)."""
    if equipment is None or equipment.damage is None:
        return 0.0
    return equipment.damage.total


def damage_range(loadout: Loadout) -> DamageRange:
    """
    Enhanced min/max damage per hit.

    Damage profession lifts the minimum from 25% to 50% of the total.
    The amp adds damage up to the weapon's base minimum: half of it to
    the min bound and all of it to the max bound.
    """
    if loadout.weapon is None:
        return DamageRange(min=0.0, max=0.0)

    total = total_damage(loadout.weapon)
    base_min = total * (0.25 + 0.25 * loadout.damage_profession / 100)
    base_max = total

    multiplier = 1 + DAMAGE_ENHANCER_BONUS * loadout.damage_enhancers
    low = base_min * multiplier
    high = base_max * multiplier

    if loadout.amp is not None and loadout.amp.damage is not None:
        amp_cap = min(total_damage(loadout.amp), base_min)
        low += amp_cap * 0.5
        high += amp_cap

    return DamageRange(min=low, max=high)


def hit_rate(loadout: Loadout) -> float:
    """Probability a shot hits: 80% at 0 skill, 90% at 100."""
    return 0.8 + (loadout.hit_profession / 100) / 10


def crit_rate(loadout: Loadout) -> float:
    """Probability a shot crits, plus 0.2% per accuracy enhancer."""
    return (math.sqrt(loadout.hit_profession) / 10 + 1) / 100 + (
        ACCURACY_ENHANCER_CRIT * loadout.accuracy_enhancers
    )


def effective_damage(loadout: Loadout) -> float:
    """Expected damage per shot."""
    bounds = damage_range(loadout)
    return (bounds.min + bounds.max) / 2 * hit_rate(loadout) + bounds.max * crit_rate(loadout)


def damage_per_ped(loadout: Loadout) -> float:
    """Expected damage per PED spent (0 when the shot is free)."""
    cost = effective_cost_per_shot(loadout)
    if cost <= 0:
        return 0.0
    return effective_damage(loadout) / cost


# --- Validation and migration ---


def validate_loadout(loadout: Loadout) -> list[str]:
    """
    Validate a loadout configuration.

    The formulas above compute for any input; this is the caller-side check.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    counters = {
        "damage_enhancers": loadout.damage_enhancers,
        "accuracy_enhancers": loadout.accuracy_enhancers,
        "range_enhancers": loadout.range_enhancers,
        "economy_enhancers": loadout.economy_enhancers,
    }
    for name, value in counters.items():
        if value < 0:
            errors.append(f"{name} must not be negative")

    if loadout.enhancer_slots_used > MAX_ENHANCER_SLOTS:
        errors.append(
            f"Enhancer slots exceed {MAX_ENHANCER_SLOTS}: {loadout.enhancer_slots_used}"
        )

    for name in ("hit_profession", "damage_profession"):
        value = getattr(loadout, name)
        if not 0 <= value <= 100:
            errors.append(f"{name} must be between 0 and 100")

    if loadout.use_manual_cost and loadout.manual_cost_per_shot is not None:
        if loadout.manual_cost_per_shot < 0:
            errors.append("manual_cost_per_shot must not be negative")

    if loadout.decay_per_hit_pec < 0 or loadout.decay_per_heal_pec < 0:
        errors.append("Decay inputs must not be negative")

    return errors


# Old camelCase record keys -> current field names
_LEGACY_KEYS = {
    "damageEnhancers": "damage_enhancers",
    "accuracyEnhancers": "accuracy_enhancers",
    "rangeEnhancers": "range_enhancers",
    "economyEnhancers": "economy_enhancers",
    "hitProfession": "hit_profession",
    "damageProfession": "damage_profession",
    "useManualCost": "use_manual_cost",
    "manualCostPerShot": "manual_cost_per_shot",
    "decayPerHitPec": "decay_per_hit_pec",
    "decayPerHealPec": "decay_per_heal_pec",
    "weaponEnhancerSlots": "weapon_enhancer_slots",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds
        return datetime.fromtimestamp(value / 1000)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.now()


def migrate_loadout(data: dict[str, Any]) -> Loadout:
    """
    Build a Loadout from a stored record of any format version.

    Maps camelCase keys and folds the single legacy enhancer counter
    (weapon_enhancer_slots) into damage_enhancers. Runs once at load time.

    Args:
        data: Stored loadout record

    Returns:
        Current-format Loadout
    """
    record = dict(data)
    for old_key, new_key in _LEGACY_KEYS.items():
        if old_key in record and new_key not in record:
            record[new_key] = record.pop(old_key)

    damage_enhancers = int(record.get("damage_enhancers") or 0)
    legacy_slots = int(record.get("weapon_enhancer_slots") or 0)
    if legacy_slots > damage_enhancers:
        damage_enhancers = legacy_slots

    def _equipment(key: str) -> Optional[Equipment]:
        value = record.get(key)
        return Equipment.from_dict(value) if value else None

    manual = record.get("manual_cost_per_shot")
    return Loadout(
        id=str(record.get("id") or uuid.uuid4()),
        name=record.get("name", "Unnamed"),
        weapon=_equipment("weapon"),
        amp=_equipment("amp"),
        scope=_equipment("scope"),
        sight=_equipment("sight"),
        damage_enhancers=damage_enhancers,
        accuracy_enhancers=int(record.get("accuracy_enhancers") or 0),
        range_enhancers=int(record.get("range_enhancers") or 0),
        economy_enhancers=int(record.get("economy_enhancers") or 0),
        hit_profession=float(record.get("hit_profession", 100.0)),
        damage_profession=float(record.get("damage_profession", 100.0)),
        use_manual_cost=bool(record.get("use_manual_cost", False)),
        manual_cost_per_shot=float(manual) if manual is not None else None,
        decay_per_hit_pec=float(record.get("decay_per_hit_pec") or 0.0),
        decay_per_heal_pec=float(record.get("decay_per_heal_pec") or 0.0),
        created_at=_parse_time(record.get("created_at")),
        updated_at=_parse_time(record.get("updated_at")),
    )
