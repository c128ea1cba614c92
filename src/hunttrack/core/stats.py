"""Stats calculator - quick and full reports derived from a session."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from hunttrack.core.events import EventKind, LootEvent, SkillCategory, SkillEvent
from hunttrack.core.fold import MANUAL_LOADOUT_KEY, rebuild_running_stats
from hunttrack.core.loadout import Loadout
from hunttrack.core.markup import (
    LootTally,
    MarkupConfig,
    MarkupLibrary,
    calculate_loot_markup,
)
from hunttrack.core.session import Session, session_duration

# Decay inputs are entered in PEC
PEC_PER_PED = 100


def safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0 for a zero denominator."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True)
class QuickStats:
    """Cheap projection of running stats for live display."""

    duration: float  # Seconds
    shots: int
    hits: int
    misses: int
    criticals: int
    damage_dealt: float
    damage_taken: float
    healed: float
    loot_value: float
    loot_count: int
    claim_count: int
    kills: int
    deaths: int
    skill_gains: float
    skill_events: int
    global_count: int
    hof_count: int
    total_spend: float
    hit_rate: float  # Percent of shots
    crit_rate: float  # Percent of hits


@dataclass
class SkillStats:
    skill_name: str
    category: SkillCategory
    total_gain: float = 0.0
    gain_count: int = 0
    first_gain: Optional[datetime] = None
    last_gain: Optional[datetime] = None

    @property
    def average_gain(self) -> float:
        return safe_div(self.total_gain, self.gain_count)


@dataclass
class SkillBreakdown:
    total_skill_gains: float = 0.0
    total_skill_events: int = 0
    skill_ranks: int = 0
    new_skills_unlocked: int = 0
    by_skill: dict[str, SkillStats] = field(default_factory=dict)
    by_category: dict[SkillCategory, float] = field(
        default_factory=lambda: {category: 0.0 for category in SkillCategory}
    )


@dataclass(frozen=True)
class SkillEfficiency:
    skill_per_hour: float
    skill_per_kill: float
    skill_per_ped: float
    skill_per_shot: float
    skill_per_loot: float  # Skill points per PED of loot
    avg_skill_per_event: float


@dataclass
class LootItemStats:
    item_name: str
    count: int = 0
    quantity: int = 0
    total_value: float = 0.0


@dataclass(frozen=True)
class LoadoutBreakdown:
    loadout_id: Optional[str]  # None for shots fired without a loadout
    loadout_name: str
    cost_per_shot: float
    shots: int
    spend: float
    loot_value: float
    profit: float
    return_rate: float


@dataclass(frozen=True)
class SessionStats:
    """Full session report."""

    duration: float

    # Combat
    shots: int
    hits: int
    misses: int
    criticals: int
    kills: int
    deaths: int
    damage_dealt: float
    damage_taken: float
    healed: float
    hit_rate: float
    crit_rate: float
    avg_damage_per_hit: float
    max_damage_hit: float
    dps: float
    dpp: float
    kd_ratio: float

    # Economy (TT)
    loot_count: int
    loot_value: float
    total_spend: float
    armor_cost: float
    fap_cost: float
    misc_cost: float
    total_cost: float
    profit: float
    armor_decay: float
    fap_decay: float
    decay: float
    net_profit: float
    return_rate: float

    # Markup-adjusted
    markup_enabled: bool
    markup_value: float
    loot_value_with_markup: float
    profit_with_markup: float
    net_profit_with_markup: float
    return_rate_with_markup: float

    # Progress
    skill_gains: float
    global_count: int
    hof_count: int

    skills: SkillBreakdown
    skill_efficiency: SkillEfficiency
    loot_by_item: dict[str, LootItemStats]
    loadout_breakdown: list[LoadoutBreakdown]


def quick_stats(session: Session, now: datetime) -> Optional[QuickStats]:
    """
    O(1) stats from the running totals.

    Returns:
        None for a legacy session without running stats
    """
    stats = session.running_stats
    if stats is None:
        return None

    return QuickStats(
        duration=session_duration(session, now),
        shots=stats.shots,
        hits=stats.hits,
        misses=stats.misses,
        criticals=stats.criticals,
        damage_dealt=stats.damage_dealt,
        damage_taken=stats.damage_taken,
        healed=stats.healed,
        loot_value=stats.loot_value,
        loot_count=stats.loot_count,
        claim_count=stats.claim_count,
        kills=stats.kills,
        deaths=stats.deaths,
        skill_gains=stats.skill_gains,
        skill_events=stats.skill_events,
        global_count=stats.global_count,
        hof_count=stats.hof_count,
        total_spend=stats.total_spend,
        hit_rate=safe_div(stats.hits, stats.shots) * 100,
        crit_rate=safe_div(stats.criticals, stats.hits) * 100,
    )


def _scan_events(session: Session) -> tuple[SkillBreakdown, dict[str, LootItemStats]]:
    """Per-skill and per-item breakdowns need the full log."""
    skills = SkillBreakdown()
    loot: dict[str, LootItemStats] = {}

    for recorded in session.events:
        event = recorded.event
        if isinstance(event, SkillEvent):
            if event.kind == EventKind.SKILL_RANK:
                skills.skill_ranks += 1
                continue
            if event.kind == EventKind.SKILL_ACQUIRED:
                skills.new_skills_unlocked += 1
                continue
            skills.total_skill_gains += event.amount
            skills.total_skill_events += 1
            skills.by_category[event.category] += event.amount
            entry = skills.by_skill.get(event.skill_name)
            if entry is None:
                entry = SkillStats(
                    skill_name=event.skill_name,
                    category=event.category,
                    first_gain=event.timestamp,
                )
                skills.by_skill[event.skill_name] = entry
            entry.total_gain += event.amount
            entry.gain_count += 1
            entry.last_gain = event.timestamp
        elif isinstance(event, LootEvent):
            item = loot.get(event.item_name)
            if item is None:
                item = LootItemStats(item_name=event.item_name)
                loot[event.item_name] = item
            item.count += 1
            item.quantity += event.quantity
            item.total_value += event.value

    return skills, loot


def _loadout_breakdown(session: Session) -> list[LoadoutBreakdown]:
    stats = session.running_stats
    result = []
    for key, tally in stats.loadouts.items():
        if key == MANUAL_LOADOUT_KEY:
            loadout_id = None
            name = "Manual"
            cost_per_shot = session.manual_cost_per_shot
        else:
            snapshot = session.loadout_snapshots.get(key)
            loadout_id = key
            name = snapshot.name if snapshot else "Unknown"
            cost_per_shot = snapshot.cost_per_shot if snapshot else safe_div(tally.spend, tally.shots)
        result.append(
            LoadoutBreakdown(
                loadout_id=loadout_id,
                loadout_name=name,
                cost_per_shot=cost_per_shot,
                shots=tally.shots,
                spend=tally.spend,
                loot_value=tally.loot_value,
                profit=tally.profit,
                return_rate=safe_div(tally.loot_value, tally.spend) * 100,
            )
        )
    return result


def calculate_session_stats(
    session: Session,
    now: datetime,
    loadout: Optional[Loadout] = None,
    library: Optional[MarkupLibrary] = None,
    markup_config: Optional[MarkupConfig] = None,
) -> SessionStats:
    """
    Full stats report for a session.

    Totals come from the running stats (rebuilt from the log for legacy
    sessions without touching the session). Defensive decay uses the
    loadout's per-hit and per-heal PEC inputs; without a loadout it is 0.
    Markup-adjusted values are computed only when an enabled markup
    config is given.

    Args:
        session: Session to report on
        now: Current time, for the duration of a running session
        loadout: Loadout supplying defensive decay inputs
        library: Synced markup library
        markup_config: User markup settings

    Returns:
        SessionStats
    """
    stats = session.running_stats
    if stats is None:
        stats = rebuild_running_stats(session)
        session = replace(session, running_stats=stats)

    duration = session_duration(session, now)
    skills, loot_by_item = _scan_events(session)

    # Combat
    avg_damage = safe_div(stats.damage_dealt, stats.hits)
    if stats.first_shot_time is not None and stats.last_shot_time is not None:
        window = (stats.last_shot_time - stats.first_shot_time).total_seconds()
        dps = stats.damage_dealt / window if window > 0 else stats.damage_dealt
    else:
        dps = 0.0
    kd_ratio = safe_div(stats.kills, stats.deaths) if stats.deaths > 0 else float(stats.kills)

    # Economy
    total_spend = stats.total_spend
    total_cost = (
        total_spend
        + session.manual_armor_cost
        + session.manual_fap_cost
        + session.manual_misc_cost
    )
    profit = stats.loot_value - total_cost

    hit_decay_pec = loadout.decay_per_hit_pec if loadout else 0.0
    heal_decay_pec = loadout.decay_per_heal_pec if loadout else 0.0
    armor_decay = stats.armor_hits * (hit_decay_pec / PEC_PER_PED)
    fap_decay = stats.heal_count * (heal_decay_pec / PEC_PER_PED)
    decay = armor_decay + fap_decay
    net_profit = profit - decay

    # Markup
    markup_enabled = markup_config is not None and markup_config.enabled
    markup_value = 0.0
    loot_with_markup = stats.loot_value
    if markup_enabled:
        tallies = {
            name: LootTally(total_value=item.total_value, quantity=item.quantity)
            for name, item in loot_by_item.items()
        }
        result = calculate_loot_markup(tallies, library or MarkupLibrary(), markup_config)
        markup_value = result.total_markup
        loot_with_markup = stats.loot_value + markup_value
    profit_with_markup = loot_with_markup - total_cost

    efficiency = SkillEfficiency(
        skill_per_hour=safe_div(stats.skill_gains, duration / 3600),
        skill_per_kill=safe_div(stats.skill_gains, stats.kills),
        skill_per_ped=safe_div(stats.skill_gains, total_spend),
        skill_per_shot=safe_div(stats.skill_gains, stats.shots),
        skill_per_loot=safe_div(stats.skill_gains, stats.loot_value),
        avg_skill_per_event=safe_div(stats.skill_gains, stats.skill_events),
    )

    return SessionStats(
        duration=duration,
        shots=stats.shots,
        hits=stats.hits,
        misses=stats.misses,
        criticals=stats.criticals,
        kills=stats.kills,
        deaths=stats.deaths,
        damage_dealt=stats.damage_dealt,
        damage_taken=stats.damage_taken,
        healed=stats.healed,
        hit_rate=safe_div(stats.hits, stats.shots) * 100,
        crit_rate=safe_div(stats.criticals, stats.hits) * 100,
        avg_damage_per_hit=avg_damage,
        max_damage_hit=stats.max_damage_hit,
        dps=dps,
        dpp=safe_div(stats.damage_dealt, total_spend),
        kd_ratio=kd_ratio,
        loot_count=stats.loot_count + stats.claim_count,
        loot_value=stats.loot_value,
        total_spend=total_spend,
        armor_cost=session.manual_armor_cost,
        fap_cost=session.manual_fap_cost,
        misc_cost=session.manual_misc_cost,
        total_cost=total_cost,
        profit=profit,
        armor_decay=armor_decay,
        fap_decay=fap_decay,
        decay=decay,
        net_profit=net_profit,
        return_rate=safe_div(stats.loot_value, total_cost) * 100,
        markup_enabled=markup_enabled,
        markup_value=markup_value,
        loot_value_with_markup=loot_with_markup,
        profit_with_markup=profit_with_markup,
        net_profit_with_markup=profit_with_markup - decay,
        return_rate_with_markup=safe_div(loot_with_markup, total_cost) * 100,
        skill_gains=stats.skill_gains,
        global_count=stats.global_count,
        hof_count=stats.hof_count,
        skills=skills,
        skill_efficiency=efficiency,
        loot_by_item=loot_by_item,
        loadout_breakdown=_loadout_breakdown(session),
    )


# --- Skill analysis ---


def top_skills(stats: SessionStats, limit: int = 10) -> list[SkillStats]:
    """Skills with the largest total gain, best first."""
    ranked = sorted(stats.skills.by_skill.values(), key=lambda s: s.total_gain, reverse=True)
    return ranked[:limit]


def skills_by_category(stats: SessionStats) -> dict[SkillCategory, list[SkillStats]]:
    """Skills grouped by category, each group sorted by total gain."""
    grouped: dict[SkillCategory, list[SkillStats]] = {category: [] for category in SkillCategory}
    for skill in stats.skills.by_skill.values():
        grouped[skill.category].append(skill)
    for skills in grouped.values():
        skills.sort(key=lambda s: s.total_gain, reverse=True)
    return grouped


def skill_gain_rate(stats: SessionStats, period_minutes: float = 60) -> float:
    """Skill points gained per period of active time."""
    periods = stats.duration / (period_minutes * 60)
    return safe_div(stats.skills.total_skill_gains, periods)
