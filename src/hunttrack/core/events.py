"""Event taxonomy - tagged event variants with no I/O dependencies."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EventKind(str, Enum):
    """Every event kind the session engine understands."""

    # Combat - offensive
    HIT = "hit"
    CRITICAL_HIT = "critical_hit"
    MISS = "miss"
    TARGET_DODGED = "target_dodged"
    TARGET_EVADED = "target_evaded"
    TARGET_RESISTED = "target_resisted"
    OUT_OF_RANGE = "out_of_range"

    # Combat - defensive
    DAMAGE_TAKEN = "damage_taken"
    CRITICAL_DAMAGE_TAKEN = "critical_damage_taken"
    DAMAGE_REDUCED = "damage_reduced"
    DEFLECT = "deflect"
    PLAYER_DODGED = "player_dodged"
    PLAYER_EVADED = "player_evaded"
    ENEMY_MISSED = "enemy_missed"

    # Healing
    SELF_HEAL = "self_heal"
    HEALED_BY = "healed_by"
    HEAL_OTHER = "heal_other"

    # Loot and mining
    LOOT = "loot"
    CLAIM = "claim"
    NO_FIND = "no_find"
    RESOURCE_DEPLETED = "resource_depleted"

    # Skills
    SKILL_GAIN = "skill_gain"
    ATTRIBUTE_GAIN = "attribute_gain"
    SKILL_RANK = "skill_rank"
    SKILL_ACQUIRED = "skill_acquired"

    # Death / revival
    DEATH = "death"
    REVIVED = "revived"
    DIVINE_INTERVENTION = "divine_intervention"

    # Globals
    GLOBAL = "global"
    GLOBAL_MINING = "global_mining"
    GLOBAL_CRAFT = "global_craft"
    HOF = "hof"
    HOF_MINING = "hof_mining"

    # Equipment and effects
    TIER_UP = "tier_up"
    ENHANCER_BROKE = "enhancer_broke"
    BUFF = "buff"
    DEBUFF = "debuff"

    # Anything the engine does not recognise
    UNKNOWN = "unknown"


class SkillCategory(str, Enum):
    """Skill groups used by the skill breakdown."""

    COMBAT = "combat"
    ATTRIBUTES = "attributes"
    PROFESSION = "profession"
    SUPPORT = "support"
    OTHER = "other"


# Kinds that consume ammo (count as a shot)
SHOT_KINDS = frozenset({
    EventKind.HIT,
    EventKind.CRITICAL_HIT,
    EventKind.MISS,
    EventKind.TARGET_DODGED,
    EventKind.TARGET_EVADED,
    EventKind.TARGET_RESISTED,
    EventKind.OUT_OF_RANGE,
})

LOOT_KINDS = frozenset({EventKind.LOOT, EventKind.CLAIM})

SKILL_KINDS = frozenset({
    EventKind.SKILL_GAIN,
    EventKind.ATTRIBUTE_GAIN,
    EventKind.SKILL_RANK,
    EventKind.SKILL_ACQUIRED,
})

GLOBAL_KINDS = frozenset({
    EventKind.GLOBAL,
    EventKind.GLOBAL_MINING,
    EventKind.GLOBAL_CRAFT,
    EventKind.HOF,
    EventKind.HOF_MINING,
})

HOF_KINDS = frozenset({EventKind.HOF, EventKind.HOF_MINING})


# --- Event variants ---


@dataclass(frozen=True)
class DamageEvent:
    """Damage dealt, taken, or absorbed by armor."""

    kind: EventKind
    timestamp: datetime
    amount: float = 0.0
    creature: Optional[str] = None
    raw: str = ""

    @property
    def critical(self) -> bool:
        return self.kind in (EventKind.CRITICAL_HIT, EventKind.CRITICAL_DAMAGE_TAKEN)


@dataclass(frozen=True)
class CombatOutcomeEvent:
    """An attack that landed no damage (miss, dodge, deflect...)."""

    kind: EventKind
    timestamp: datetime
    raw: str = ""


@dataclass(frozen=True)
class HealEvent:
    """Healing done to self, received, or given."""

    kind: EventKind
    timestamp: datetime
    amount: float = 0.0
    player: Optional[str] = None
    raw: str = ""


@dataclass(frozen=True)
class LootEvent:
    """Looted item (hunting) or mining claim."""

    kind: EventKind
    timestamp: datetime
    item_name: str = "Unknown"
    value: float = 0.0  # TT value in PED
    quantity: int = 1
    raw: str = ""


@dataclass(frozen=True)
class SkillEvent:
    """Skill or attribute progress."""

    kind: EventKind
    timestamp: datetime
    skill_name: str = "Unknown"
    amount: float = 0.0
    category: SkillCategory = SkillCategory.OTHER
    raw: str = ""


@dataclass(frozen=True)
class GlobalEvent:
    """Server-wide global / hall of fame broadcast."""

    kind: EventKind
    timestamp: datetime
    player: Optional[str] = None
    value: float = 0.0
    item_name: Optional[str] = None
    raw: str = ""

    @property
    def is_hof(self) -> bool:
        return self.kind in HOF_KINDS


@dataclass(frozen=True)
class StatusEvent:
    """Payload-free state change (death, buff, tier up...)."""

    kind: EventKind
    timestamp: datetime
    raw: str = ""


@dataclass(frozen=True)
class UnknownEvent:
    """Event type the engine does not understand; kept for forward compatibility."""

    raw_type: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)
    raw: str = ""
    kind: EventKind = EventKind.UNKNOWN


LogEvent = (
    DamageEvent
    | CombatOutcomeEvent
    | HealEvent
    | LootEvent
    | SkillEvent
    | GlobalEvent
    | StatusEvent
    | UnknownEvent
)


_VARIANT_BY_KIND: dict[EventKind, type] = {}
for _kind in (
    EventKind.HIT,
    EventKind.CRITICAL_HIT,
    EventKind.DAMAGE_TAKEN,
    EventKind.CRITICAL_DAMAGE_TAKEN,
    EventKind.DAMAGE_REDUCED,
):
    _VARIANT_BY_KIND[_kind] = DamageEvent
for _kind in (
    EventKind.MISS,
    EventKind.TARGET_DODGED,
    EventKind.TARGET_EVADED,
    EventKind.TARGET_RESISTED,
    EventKind.OUT_OF_RANGE,
    EventKind.DEFLECT,
    EventKind.PLAYER_DODGED,
    EventKind.PLAYER_EVADED,
    EventKind.ENEMY_MISSED,
):
    _VARIANT_BY_KIND[_kind] = CombatOutcomeEvent
for _kind in (EventKind.SELF_HEAL, EventKind.HEALED_BY, EventKind.HEAL_OTHER):
    _VARIANT_BY_KIND[_kind] = HealEvent
for _kind in LOOT_KINDS:
    _VARIANT_BY_KIND[_kind] = LootEvent
for _kind in SKILL_KINDS:
    _VARIANT_BY_KIND[_kind] = SkillEvent
for _kind in GLOBAL_KINDS:
    _VARIANT_BY_KIND[_kind] = GlobalEvent
for _kind in (
    EventKind.DEATH,
    EventKind.REVIVED,
    EventKind.DIVINE_INTERVENTION,
    EventKind.TIER_UP,
    EventKind.ENHANCER_BROKE,
    EventKind.BUFF,
    EventKind.DEBUFF,
    EventKind.NO_FIND,
    EventKind.RESOURCE_DEPLETED,
):
    _VARIANT_BY_KIND[_kind] = StatusEvent


def variant_for(kind: EventKind) -> type:
    """Return the event class that carries the given kind."""
    return _VARIANT_BY_KIND.get(kind, UnknownEvent)


# --- Raw log type normalization ---

# Upper-case type names emitted by the log reader -> event kinds
RAW_TYPE_MAP: dict[str, EventKind] = {
    "HIT": EventKind.HIT,
    "DAMAGE_DEALT": EventKind.HIT,
    "CRITICAL_HIT": EventKind.CRITICAL_HIT,
    "MISS": EventKind.MISS,
    "TARGET_DODGED": EventKind.TARGET_DODGED,
    "TARGET_DODGE": EventKind.TARGET_DODGED,
    "TARGET_EVADED": EventKind.TARGET_EVADED,
    "TARGET_EVADE": EventKind.TARGET_EVADED,
    "TARGET_RESISTED": EventKind.TARGET_RESISTED,
    "OUT_OF_RANGE": EventKind.OUT_OF_RANGE,
    "DAMAGE_TAKEN": EventKind.DAMAGE_TAKEN,
    "CRITICAL_DAMAGE_TAKEN": EventKind.CRITICAL_DAMAGE_TAKEN,
    "DAMAGE_REDUCED": EventKind.DAMAGE_REDUCED,
    "DAMAGE_DEFLECTED": EventKind.DEFLECT,
    "DEFLECT": EventKind.DEFLECT,
    "PLAYER_DODGED": EventKind.PLAYER_DODGED,
    "PLAYER_DODGE": EventKind.PLAYER_DODGED,
    "PLAYER_EVADED": EventKind.PLAYER_EVADED,
    "PLAYER_EVADE": EventKind.PLAYER_EVADED,
    "ENEMY_MISSED": EventKind.ENEMY_MISSED,
    "SELF_HEAL": EventKind.SELF_HEAL,
    "HEAL": EventKind.SELF_HEAL,
    "HEALED_BY": EventKind.HEALED_BY,
    "HEAL_OTHER": EventKind.HEAL_OTHER,
    "LOOT": EventKind.LOOT,
    "CLAIM": EventKind.CLAIM,
    "MINING_CLAIM": EventKind.CLAIM,
    "NO_FIND": EventKind.NO_FIND,
    "DEPLETED": EventKind.RESOURCE_DEPLETED,
    "SKILL_GAIN": EventKind.SKILL_GAIN,
    "SKILL_INCREASE": EventKind.SKILL_GAIN,
    "ATTRIBUTE_GAIN": EventKind.ATTRIBUTE_GAIN,
    "ATTRIBUTE_IMPROVE": EventKind.ATTRIBUTE_GAIN,
    "ATTRIBUTE_INCREASE": EventKind.ATTRIBUTE_GAIN,
    "SKILL_RANK": EventKind.SKILL_RANK,
    "RANK_UP": EventKind.SKILL_RANK,
    "SKILL_ACQUIRED": EventKind.SKILL_ACQUIRED,
    "PLAYER_DEATH": EventKind.DEATH,
    "DEATH": EventKind.DEATH,
    "REVIVED": EventKind.REVIVED,
    "DIVINE_INTERVENTION": EventKind.DIVINE_INTERVENTION,
    "GLOBAL": EventKind.GLOBAL,
    "GLOBAL_KILL": EventKind.GLOBAL,
    "GLOBAL_MINING": EventKind.GLOBAL_MINING,
    "GLOBAL_CRAFT": EventKind.GLOBAL_CRAFT,
    "HOF": EventKind.HOF,
    "GLOBAL_HOF": EventKind.HOF,
    "GLOBAL_MINING_HOF": EventKind.HOF_MINING,
    "TIER_UP": EventKind.TIER_UP,
    "ENHANCER_BROKE": EventKind.ENHANCER_BROKE,
    "BUFF": EventKind.BUFF,
    "DEBUFF": EventKind.DEBUFF,
}


def normalize_event_type(raw_type: str) -> EventKind:
    """
    Map a raw log type name to an event kind.

    Accepts the log reader's upper-case names ("CRITICAL_HIT") as well as
    the engine's own lower-case kind values ("critical_hit").

    Returns:
        EventKind.UNKNOWN when the type is not recognised
    """
    key = raw_type.strip()
    kind = RAW_TYPE_MAP.get(key.upper())
    if kind is not None:
        return kind
    try:
        return EventKind(key.lower())
    except ValueError:
        return EventKind.UNKNOWN


# --- Skill classification ---

SKILL_CATEGORIES: dict[str, SkillCategory] = {
    # Combat - ranged
    "Aim": SkillCategory.COMBAT,
    "Marksmanship": SkillCategory.COMBAT,
    "Rifle": SkillCategory.COMBAT,
    "Handgun": SkillCategory.COMBAT,
    "Weapons Handling": SkillCategory.COMBAT,
    "Ranged Damage Assessment": SkillCategory.COMBAT,
    "Inflict Ranged Damage": SkillCategory.COMBAT,
    "BLP Weaponry Technology": SkillCategory.COMBAT,
    "Laser Weaponry Technology": SkillCategory.COMBAT,
    "Plasma Weaponry Technology": SkillCategory.COMBAT,
    "Gauss Weaponry Technology": SkillCategory.COMBAT,
    "Heavy Weapons": SkillCategory.COMBAT,
    "Support Weapon Systems": SkillCategory.COMBAT,
    # Combat - melee
    "Melee Combat": SkillCategory.COMBAT,
    "Inflict Melee Damage": SkillCategory.COMBAT,
    "Light Melee Weapons": SkillCategory.COMBAT,
    "Heavy Melee Weapons": SkillCategory.COMBAT,
    "Clubs": SkillCategory.COMBAT,
    "Whip": SkillCategory.COMBAT,
    "Power Fist": SkillCategory.COMBAT,
    # Combat - defense
    "Combat Reflexes": SkillCategory.COMBAT,
    "Dodge": SkillCategory.COMBAT,
    "Evade": SkillCategory.COMBAT,
    "Concentration": SkillCategory.COMBAT,
    # Attributes
    "Agility": SkillCategory.ATTRIBUTES,
    "Strength": SkillCategory.ATTRIBUTES,
    "Stamina": SkillCategory.ATTRIBUTES,
    "Intelligence": SkillCategory.ATTRIBUTES,
    "Psyche": SkillCategory.ATTRIBUTES,
    # Professions
    "Mining": SkillCategory.PROFESSION,
    "Surveying": SkillCategory.PROFESSION,
    "Prospecting": SkillCategory.PROFESSION,
    "Drilling": SkillCategory.PROFESSION,
    "Extraction": SkillCategory.PROFESSION,
    "Geology": SkillCategory.PROFESSION,
    "Blueprint Comprehension": SkillCategory.PROFESSION,
    "Manufacture Attachments": SkillCategory.PROFESSION,
    "Manufacture Metal Equipment": SkillCategory.PROFESSION,
    "Mechanics": SkillCategory.PROFESSION,
    "Engineering": SkillCategory.PROFESSION,
    "Anatomy": SkillCategory.PROFESSION,
    "Analysis": SkillCategory.PROFESSION,
    "Animal Lore": SkillCategory.PROFESSION,
    "Zoology": SkillCategory.PROFESSION,
    "Skinning": SkillCategory.PROFESSION,
    "Scan Animal": SkillCategory.PROFESSION,
    "Scan Robot": SkillCategory.PROFESSION,
    # Support
    "First Aid": SkillCategory.SUPPORT,
    "Diagnosis": SkillCategory.SUPPORT,
    "Bioregenesis": SkillCategory.SUPPORT,
    "Jamming": SkillCategory.SUPPORT,
    "Athletics": SkillCategory.SUPPORT,
    "Vehicle Repairing": SkillCategory.SUPPORT,
    "Translocation": SkillCategory.SUPPORT,
}


def get_skill_category(skill_name: str) -> SkillCategory:
    """Get the category for a skill name (OTHER if unknown)."""
    return SKILL_CATEGORIES.get(skill_name, SkillCategory.OTHER)


# --- Construction ---


def _float(data: dict[str, Any], *keys: str) -> float:
    for key in keys:
        value = data.get(key)
        if value is not None:
            try:
                number = float(value)
            except (TypeError, ValueError):
                return 0.0
            # NaN or infinity would poison every running total
            return number if math.isfinite(number) else 0.0
    return 0.0


def _str(data: dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return str(value)
    return None


def event_from_log(
    raw_type: str,
    timestamp: datetime,
    data: Optional[dict[str, Any]] = None,
    raw: str = "",
) -> LogEvent:
    """
    Build a typed event from a classified log record.

    Args:
        raw_type: Type name from the log reader (e.g. "HIT", "LOOT")
        timestamp: When the event happened
        data: Loosely-typed payload (damage, item, value, skill, player...)
        raw: Original log line

    Returns:
        The matching event variant; UnknownEvent for unrecognised types
    """
    data = data or {}
    kind = normalize_event_type(raw_type)
    variant = variant_for(kind)

    if variant is DamageEvent:
        # Older readers flag criticals in the payload instead of the type name
        if data.get("critical"):
            if kind == EventKind.HIT:
                kind = EventKind.CRITICAL_HIT
            elif kind == EventKind.DAMAGE_TAKEN:
                kind = EventKind.CRITICAL_DAMAGE_TAKEN
        return DamageEvent(
            kind=kind,
            timestamp=timestamp,
            amount=_float(data, "amount", "damage"),
            creature=_str(data, "creature"),
            raw=raw,
        )
    if variant is CombatOutcomeEvent:
        return CombatOutcomeEvent(kind=kind, timestamp=timestamp, raw=raw)
    if variant is HealEvent:
        return HealEvent(
            kind=kind,
            timestamp=timestamp,
            amount=_float(data, "amount", "heal"),
            player=_str(data, "player"),
            raw=raw,
        )
    if variant is LootEvent:
        quantity = data.get("quantity", 1)
        try:
            quantity = int(quantity)
        except (TypeError, ValueError, OverflowError):
            quantity = 1
        return LootEvent(
            kind=kind,
            timestamp=timestamp,
            item_name=_str(data, "item", "item_name", "resource") or "Unknown",
            value=_float(data, "value"),
            quantity=quantity,
            raw=raw,
        )
    if variant is SkillEvent:
        skill_name = _str(data, "skill", "attribute", "skill_name") or "Unknown"
        if kind == EventKind.ATTRIBUTE_GAIN:
            category = SkillCategory.ATTRIBUTES
        else:
            category = get_skill_category(skill_name)
        return SkillEvent(
            kind=kind,
            timestamp=timestamp,
            skill_name=skill_name,
            amount=_float(data, "amount"),
            category=category,
            raw=raw,
        )
    if variant is GlobalEvent:
        return GlobalEvent(
            kind=kind,
            timestamp=timestamp,
            player=_str(data, "player"),
            value=_float(data, "value"),
            item_name=_str(data, "item", "resource", "creature"),
            raw=raw,
        )
    if variant is StatusEvent:
        return StatusEvent(kind=kind, timestamp=timestamp, raw=raw)
    return UnknownEvent(raw_type=raw_type, timestamp=timestamp, data=dict(data), raw=raw)


# --- Serialization ---


def event_to_dict(event: LogEvent) -> dict[str, Any]:
    """Serialize an event to a JSON-compatible dict."""
    if isinstance(event, UnknownEvent):
        return {
            "kind": EventKind.UNKNOWN.value,
            "raw_type": event.raw_type,
            "timestamp": event.timestamp.isoformat(),
            "data": event.data,
            "raw": event.raw,
        }

    result: dict[str, Any] = {
        "kind": event.kind.value,
        "timestamp": event.timestamp.isoformat(),
    }
    if isinstance(event, DamageEvent):
        result["amount"] = event.amount
        if event.creature is not None:
            result["creature"] = event.creature
    elif isinstance(event, HealEvent):
        result["amount"] = event.amount
        if event.player is not None:
            result["player"] = event.player
    elif isinstance(event, LootEvent):
        result["item_name"] = event.item_name
        result["value"] = event.value
        result["quantity"] = event.quantity
    elif isinstance(event, SkillEvent):
        result["skill_name"] = event.skill_name
        result["amount"] = event.amount
        result["category"] = event.category.value
    elif isinstance(event, GlobalEvent):
        result["value"] = event.value
        if event.player is not None:
            result["player"] = event.player
        if event.item_name is not None:
            result["item_name"] = event.item_name
    if event.raw:
        result["raw"] = event.raw
    return result


def event_from_dict(data: dict[str, Any]) -> LogEvent:
    """Deserialize an event written by event_to_dict."""
    timestamp = datetime.fromisoformat(data["timestamp"])
    raw = data.get("raw", "")
    try:
        kind = EventKind(data.get("kind", ""))
    except ValueError:
        kind = EventKind.UNKNOWN

    if kind == EventKind.UNKNOWN:
        return UnknownEvent(
            raw_type=data.get("raw_type", data.get("kind", "")),
            timestamp=timestamp,
            data=data.get("data", {}),
            raw=raw,
        )

    variant = variant_for(kind)
    if variant is DamageEvent:
        return DamageEvent(kind, timestamp, float(data.get("amount", 0.0)), data.get("creature"), raw)
    if variant is HealEvent:
        return HealEvent(kind, timestamp, float(data.get("amount", 0.0)), data.get("player"), raw)
    if variant is LootEvent:
        return LootEvent(
            kind,
            timestamp,
            data.get("item_name", "Unknown"),
            float(data.get("value", 0.0)),
            int(data.get("quantity", 1)),
            raw,
        )
    if variant is SkillEvent:
        return SkillEvent(
            kind,
            timestamp,
            data.get("skill_name", "Unknown"),
            float(data.get("amount", 0.0)),
            SkillCategory(data.get("category", SkillCategory.OTHER.value)),
            raw,
        )
    if variant is GlobalEvent:
        return GlobalEvent(
            kind,
            timestamp,
            data.get("player"),
            float(data.get("value", 0.0)),
            data.get("item_name"),
            raw,
        )
    return variant(kind=kind, timestamp=timestamp, raw=raw)
