"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from hunttrack.core.markup import FallbackStrategy, MarkupSource
from hunttrack.core.session import SessionState


class StatusResponse(BaseModel):
    """Server status."""

    status: str
    version: str
    collector_running: bool
    db_path: str
    events_path: Optional[str] = None
    active_session_id: Optional[str] = None
    tracker_state: SessionState
    last_save_error: Optional[str] = None
    session_count: int
    loadout_count: int


# --- Sessions ---


class SessionSummaryResponse(BaseModel):
    """Session listing entry (no event log)."""

    id: str
    name: str
    tags: list[str]
    state: SessionState
    started_at: datetime
    ended_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    event_count: int


class SessionListResponse(BaseModel):
    sessions: list[SessionSummaryResponse]
    total: int


class SessionResponse(BaseModel):
    """Single session with its clock and expense fields."""

    id: str
    name: str
    tags: list[str]
    state: SessionState
    started_at: datetime
    ended_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    total_paused_seconds: float
    duration_seconds: float
    event_count: int
    manual_armor_cost: float
    manual_fap_cost: float
    manual_misc_cost: float
    manual_cost_per_shot: float
    player_name: Optional[str] = None
    loadouts_used: list[str]


class StartSessionRequest(BaseModel):
    """Request to start a new session."""

    name: Optional[str] = None  # None = "Session <date>"
    tags: list[str] = []


class ExpensesRequest(BaseModel):
    """Manual expenses in PED; omitted fields stay unchanged."""

    armor: Optional[float] = None
    fap: Optional[float] = None
    misc: Optional[float] = None


class EventRequest(BaseModel):
    """A classified event pushed directly into the active session."""

    type: str
    timestamp: Optional[datetime] = None  # None = now
    data: dict[str, Any] = {}
    raw: str = ""


class EventResponse(BaseModel):
    kind: str
    recorded: bool
    event_count: int


class QuickStatsResponse(BaseModel):
    """Counters readable straight from the running tallies."""

    duration: float
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
    hit_rate: float
    crit_rate: float


# --- Loadouts ---


class EquipmentModel(BaseModel):
    """Equipment item; decay in PED, ammo burn in ammo units."""

    name: str
    decay: float = 0.0
    ammo_burn: float = 0.0
    damage: Optional[dict[str, float]] = None  # stab, cut, ... per damage type
    range: Optional[float] = None
    max_tt: Optional[float] = None
    min_tt: Optional[float] = None
    efficiency: Optional[float] = None


class LoadoutRequest(BaseModel):
    """Create or replace a loadout."""

    name: str
    weapon: Optional[EquipmentModel] = None
    amp: Optional[EquipmentModel] = None
    scope: Optional[EquipmentModel] = None
    sight: Optional[EquipmentModel] = None
    damage_enhancers: int = 0
    accuracy_enhancers: int = 0
    range_enhancers: int = 0
    economy_enhancers: int = 0
    hit_profession: float = 100.0
    damage_profession: float = 100.0
    use_manual_cost: bool = False
    manual_cost_per_shot: Optional[float] = None
    decay_per_hit_pec: float = 0.0
    decay_per_heal_pec: float = 0.0


class LoadoutCostsResponse(BaseModel):
    """Per-shot cost and damage figures of a loadout."""

    loadout_id: str
    weapon_cost: float
    amp_cost: float
    scope_cost: float
    sight_cost: float
    enhancer_cost: float
    total_per_shot: float
    effective_cost_per_shot: float  # Honours the manual override
    damage_min: float
    damage_max: float
    hit_rate: float
    crit_rate: float
    effective_damage: float
    damage_per_ped: float


# --- Markup ---


class MarkupItemResponse(BaseModel):
    item_name: str
    markup_percent: Optional[float] = None
    markup_value: Optional[float] = None
    tt_value: Optional[float] = None
    item_type: Optional[str] = None
    item_id: Optional[str] = None
    source: MarkupSource
    last_updated: Optional[datetime] = None
    favorite: bool = False
    is_custom: bool = False
    notes: Optional[str] = None


class MarkupLibraryResponse(BaseModel):
    items: list[MarkupItemResponse]
    total: int
    with_markup: int
    last_synced: Optional[datetime] = None


class MarkupItemRequest(BaseModel):
    """Manual library entry or edit."""

    markup_percent: Optional[float] = None
    markup_value: Optional[float] = None
    tt_value: Optional[float] = None
    item_type: Optional[str] = None
    favorite: bool = False
    notes: Optional[str] = None


class DefaultMarkupModel(BaseModel):
    percent: float = 0.0
    fallback_strategy: FallbackStrategy = FallbackStrategy.TT


class MarkupConfigModel(BaseModel):
    """User overrides layered over the library."""

    enabled: bool = True
    default_markup: DefaultMarkupModel = DefaultMarkupModel()
    custom_items: dict[str, dict[str, Any]] = {}
    last_modified: Optional[datetime] = None


class ResolveMarkupRequest(BaseModel):
    item_name: str
    tt_value: float


class MarkupResultResponse(BaseModel):
    item_name: str
    tt_value: float
    markup_value: float
    total_value: float
    markup_percent: float
    source: str


class ImportCsvRequest(BaseModel):
    """CSV text as produced by the export endpoint."""

    csv: str
