"""Event fold rules - incremental running totals for a session."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from hunttrack.core.events import (
    DamageEvent,
    EventKind,
    GlobalEvent,
    HealEvent,
    LogEvent,
    LootEvent,
    SHOT_KINDS,
    SkillEvent,
    event_from_dict,
    event_to_dict,
)

if TYPE_CHECKING:
    from hunttrack.core.session import Session


# Tally key for shots fired with no loadout active
MANUAL_LOADOUT_KEY = "__manual__"


@dataclass
class LoadoutTally:
    """Per-loadout share of a session."""

    shots: int = 0
    spend: float = 0.0  # PED
    loot_value: float = 0.0  # PED

    @property
    def profit(self) -> float:
        return self.loot_value - self.spend


@dataclass(frozen=True)
class RecordedEvent:
    """An event as it entered the session log."""

    event: LogEvent
    loadout_id: Optional[str] = None  # Active loadout at fold time
    cost_per_shot: Optional[float] = None  # Shot events only

    def to_dict(self) -> dict[str, Any]:
        result = event_to_dict(self.event)
        if self.loadout_id is not None:
            result["loadout_id"] = self.loadout_id
        if self.cost_per_shot is not None:
            result["cost_per_shot"] = self.cost_per_shot
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordedEvent":
        cost = data.get("cost_per_shot")
        return cls(
            event=event_from_dict(data),
            loadout_id=data.get("loadout_id"),
            cost_per_shot=float(cost) if cost is not None else None,
        )


@dataclass
class RunningStats:
    """Counters maintained event by event."""

    # Offense
    shots: int = 0
    hits: int = 0
    misses: int = 0
    criticals: int = 0
    damage_dealt: float = 0.0
    critical_damage: float = 0.0
    max_damage_hit: float = 0.0
    target_dodged: int = 0
    target_evaded: int = 0
    target_resisted: int = 0
    out_of_range: int = 0

    # Defense
    damage_taken: float = 0.0
    critical_damage_taken: float = 0.0
    damage_taken_events: int = 0
    damage_reduced: float = 0.0
    player_dodges: int = 0
    player_evades: int = 0
    deflects: int = 0
    enemy_misses: int = 0

    # Healing
    healed: float = 0.0
    self_healing: float = 0.0
    healed_by_others: float = 0.0
    healing_given: float = 0.0
    heal_count: int = 0

    # Economy
    loot_value: float = 0.0
    loot_count: int = 0
    claim_count: int = 0
    claim_value: float = 0.0
    no_finds: int = 0
    total_spend: float = 0.0

    # Outcomes
    kills: int = 0
    deaths: int = 0
    revives: int = 0

    # Skills
    skill_gains: float = 0.0
    skill_events: int = 0
    skill_ranks: int = 0
    new_skills_unlocked: int = 0

    # Globals
    global_count: int = 0
    hof_count: int = 0

    # Equipment
    tier_ups: int = 0
    enhancer_breaks: int = 0

    first_event_time: Optional[datetime] = None
    last_event_time: Optional[datetime] = None
    first_shot_time: Optional[datetime] = None
    last_shot_time: Optional[datetime] = None

    loadouts: dict[str, LoadoutTally] = field(default_factory=dict)

    @property
    def armor_hits(self) -> int:
        """Incoming attacks that wore armor (hits and deflects)."""
        return self.damage_taken_events + self.deflects

    def tally(self, loadout_id: Optional[str]) -> LoadoutTally:
        key = loadout_id or MANUAL_LOADOUT_KEY
        tally = self.loadouts.get(key)
        if tally is None:
            tally = LoadoutTally()
            self.loadouts[key] = tally
        return tally

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        for key in ("first_event_time", "last_event_time", "first_shot_time", "last_shot_time"):
            value = getattr(self, key)
            result[key] = value.isoformat() if value else None
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunningStats":
        values = dict(data)
        loadouts = {
            key: LoadoutTally(**tally) for key, tally in (values.pop("loadouts", None) or {}).items()
        }
        for key in ("first_event_time", "last_event_time", "first_shot_time", "last_shot_time"):
            if values.get(key):
                values[key] = datetime.fromisoformat(values[key])
        known = set(cls.__dataclass_fields__)
        return cls(loadouts=loadouts, **{k: v for k, v in values.items() if k in known})


def _player_matches(event: GlobalEvent, player_name: Optional[str]) -> bool:
    if not player_name:
        return True
    return (event.player or "").strip().lower() == player_name.strip().lower()


def fold_event(
    stats: RunningStats,
    recorded: RecordedEvent,
    player_name: Optional[str] = None,
) -> None:
    """
    Fold one recorded event into running stats, in place.

    Loot counts as a kill; mining claims never do. Globals only count
    when they belong to player_name (any player when unset). Unknown
    kinds change nothing.

    Args:
        stats: Running stats to update
        recorded: Event plus the loadout/cost captured when it was added
        player_name: Player whose globals count
    """
    event = recorded.event
    kind = event.kind
    if kind == EventKind.UNKNOWN:
        return

    ts = event.timestamp
    if stats.first_event_time is None:
        stats.first_event_time = ts
    stats.last_event_time = ts

    # --- Shots ---
    if kind in SHOT_KINDS:
        cost = recorded.cost_per_shot or 0.0
        stats.shots += 1
        stats.total_spend += cost
        tally = stats.tally(recorded.loadout_id)
        tally.shots += 1
        tally.spend += cost
        if stats.first_shot_time is None:
            stats.first_shot_time = ts
        stats.last_shot_time = ts

        if isinstance(event, DamageEvent):
            stats.hits += 1
            stats.damage_dealt += event.amount
            stats.max_damage_hit = max(stats.max_damage_hit, event.amount)
            if event.critical:
                stats.criticals += 1
                stats.critical_damage += event.amount
            return

        stats.misses += 1
        if kind == EventKind.TARGET_DODGED:
            stats.target_dodged += 1
        elif kind == EventKind.TARGET_EVADED:
            stats.target_evaded += 1
        elif kind == EventKind.TARGET_RESISTED:
            stats.target_resisted += 1
        elif kind == EventKind.OUT_OF_RANGE:
            stats.out_of_range += 1
        return

    # --- Incoming ---
    if kind in (EventKind.DAMAGE_TAKEN, EventKind.CRITICAL_DAMAGE_TAKEN):
        amount = event.amount if isinstance(event, DamageEvent) else 0.0
        stats.damage_taken += amount
        stats.damage_taken_events += 1
        if kind == EventKind.CRITICAL_DAMAGE_TAKEN:
            stats.critical_damage_taken += amount
    elif kind == EventKind.DAMAGE_REDUCED:
        stats.damage_reduced += event.amount if isinstance(event, DamageEvent) else 0.0
    elif kind == EventKind.PLAYER_DODGED:
        stats.player_dodges += 1
    elif kind == EventKind.PLAYER_EVADED:
        stats.player_evades += 1
    elif kind == EventKind.DEFLECT:
        stats.deflects += 1
    elif kind == EventKind.ENEMY_MISSED:
        stats.enemy_misses += 1

    # --- Healing ---
    elif isinstance(event, HealEvent):
        if kind == EventKind.SELF_HEAL:
            stats.healed += event.amount
            stats.self_healing += event.amount
            stats.heal_count += 1
        elif kind == EventKind.HEALED_BY:
            stats.healed += event.amount
            stats.healed_by_others += event.amount
        else:
            stats.healing_given += event.amount

    # --- Loot ---
    elif isinstance(event, LootEvent):
        stats.loot_value += event.value
        stats.tally(recorded.loadout_id).loot_value += event.value
        if kind == EventKind.LOOT:
            stats.loot_count += 1
            stats.kills += 1
        else:
            stats.claim_count += 1
            stats.claim_value += event.value
    elif kind == EventKind.NO_FIND:
        stats.no_finds += 1

    # --- Skills ---
    elif isinstance(event, SkillEvent):
        if kind in (EventKind.SKILL_GAIN, EventKind.ATTRIBUTE_GAIN):
            stats.skill_gains += event.amount
            stats.skill_events += 1
        elif kind == EventKind.SKILL_RANK:
            stats.skill_ranks += 1
        else:
            stats.new_skills_unlocked += 1

    # --- Death ---
    elif kind == EventKind.DEATH:
        stats.deaths += 1
    elif kind == EventKind.REVIVED:
        stats.revives += 1

    # --- Globals ---
    elif isinstance(event, GlobalEvent):
        if _player_matches(event, player_name):
            stats.global_count += 1
            if event.is_hof:
                stats.hof_count += 1

    # --- Equipment ---
    elif kind == EventKind.TIER_UP:
        stats.tier_ups += 1
    elif kind == EventKind.ENHANCER_BROKE:
        stats.enhancer_breaks += 1


def fold_events(
    events: list[RecordedEvent], player_name: Optional[str] = None
) -> RunningStats:
    """Fold a whole event log from empty state."""
    stats = RunningStats()
    for recorded in events:
        fold_event(stats, recorded, player_name)
    return stats


def rebuild_running_stats(session: "Session") -> RunningStats:
    """Replay a session's full event log into fresh running stats."""
    return fold_events(session.events, session.player_name)
