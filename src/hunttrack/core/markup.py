"""Markup resolution - adjust TT loot value with per-item market markup."""

import csv
import io
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union


class FallbackStrategy(str, Enum):
    """What to do for items with no configured markup."""

    TT = "tt"  # Keep TT value
    DEFAULT = "default"  # Apply the default percent
    ZERO = "zero"  # Keep TT value (no markup)


class MarkupSource(str, Enum):
    """Where a library entry came from."""

    API = "api"
    MANUAL = "manual"
    STATIC = "static"


@dataclass(frozen=True)
class DefaultMarkupConfig:
    percent: float = 0.0  # Total-value percent (100 = TT)
    fallback_strategy: FallbackStrategy = FallbackStrategy.TT


@dataclass(frozen=True)
class MarkupEntry:
    """Markup settings for one item."""

    item_name: str
    markup_percent: Optional[float] = None  # Total-value percent, 120 = TT + 20%
    markup_value: Optional[float] = None  # Fixed PED on top of TT
    tt_value: Optional[float] = None
    item_type: Optional[str] = None
    item_id: Optional[str] = None
    source: MarkupSource = MarkupSource.STATIC
    last_updated: Optional[datetime] = None
    favorite: bool = False
    is_custom: bool = False
    notes: Optional[str] = None

    @property
    def has_markup(self) -> bool:
        return bool(
            (self.markup_percent is not None and self.markup_percent > 0)
            or (self.markup_value is not None and self.markup_value > 0)
        )


# Fields a user override may set on an entry
OVERRIDE_FIELDS = (
    "markup_percent",
    "markup_value",
    "tt_value",
    "item_type",
    "favorite",
    "notes",
)


@dataclass
class MarkupLibrary:
    """Shared per-item markup library (synced or bundled)."""

    items: dict[str, MarkupEntry] = field(default_factory=dict)
    last_synced: Optional[datetime] = None
    version: int = 1
    default_markup: DefaultMarkupConfig = field(default_factory=DefaultMarkupConfig)


@dataclass
class MarkupConfig:
    """User overrides layered on top of the library."""

    custom_items: dict[str, dict[str, Any]] = field(default_factory=dict)
    default_markup: DefaultMarkupConfig = field(default_factory=DefaultMarkupConfig)
    enabled: bool = True
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class MarkupResult:
    tt_value: float
    markup_value: float
    total_value: float
    markup_percent: float
    source: str  # configured | default | none


@dataclass
class ItemMarkup:
    """Per-item line of a batch markup ledger."""

    item_name: str
    tt_value: float = 0.0
    markup_value: float = 0.0
    total_value: float = 0.0
    markup_percent: float = 0.0
    source: str = "none"
    quantity: int = 0


@dataclass
class LootMarkup:
    total_tt: float
    total_markup: float
    total_with_markup: float
    items: dict[str, ItemMarkup]


@dataclass(frozen=True)
class LootTally:
    """Pre-aggregated loot of one item."""

    total_value: float
    quantity: int = 1


# --- Resolution ---


def _effective_entry(
    item_name: str, library: MarkupLibrary, config: MarkupConfig
) -> Optional[dict[str, Any]]:
    """Library entry with the user's override merged on top."""
    entry = library.items.get(item_name)
    override = config.custom_items.get(item_name)
    if entry is None and override is None:
        return None

    merged: dict[str, Any] = {}
    if entry is not None:
        merged["markup_percent"] = entry.markup_percent
        merged["markup_value"] = entry.markup_value
    if override:
        merged.update(override)
    return merged


def resolve_markup(
    item_name: str,
    tt_value: float,
    library: MarkupLibrary,
    config: MarkupConfig,
) -> MarkupResult:
    """
    Resolve the market value of an item.

    Percent mode wins over fixed mode. Items with neither fall back to the
    default policy: the config's default when its percent is set, otherwise
    the library's, applied only with the 'default' strategy.

    Args:
        item_name: Item to price
        tt_value: TT value in PED
        library: Synced markup library
        config: User overrides

    Returns:
        MarkupResult with source 'configured', 'default' or 'none'
    """
    entry = _effective_entry(item_name, library, config)

    if entry is not None:
        percent = entry.get("markup_percent")
        if percent is not None and percent > 0:
            total = tt_value * (percent / 100)
            return MarkupResult(
                tt_value=tt_value,
                markup_value=total - tt_value,
                total_value=total,
                markup_percent=percent,
                source="configured",
            )

        fixed = entry.get("markup_value")
        if fixed is not None and fixed > 0:
            effective_percent = (fixed / tt_value) * 100 if tt_value > 0 else 0.0
            return MarkupResult(
                tt_value=tt_value,
                markup_value=fixed,
                total_value=tt_value + fixed,
                markup_percent=effective_percent,
                source="configured",
            )

    default = (
        config.default_markup
        if config.default_markup.percent > 0
        else library.default_markup
    )
    if default.fallback_strategy == FallbackStrategy.DEFAULT and default.percent > 0:
        total = tt_value * (default.percent / 100)
        return MarkupResult(
            tt_value=tt_value,
            markup_value=total - tt_value,
            total_value=total,
            markup_percent=default.percent,
            source="default",
        )

    return MarkupResult(
        tt_value=tt_value,
        markup_value=0.0,
        total_value=tt_value,
        markup_percent=0.0,
        source="none",
    )


LootInput = Union[Iterable[tuple[str, float]], Mapping[str, LootTally]]


def calculate_loot_markup(
    loot: LootInput,
    library: MarkupLibrary,
    config: MarkupConfig,
) -> LootMarkup:
    """
    Resolve markup over a whole loot breakdown.

    Args:
        loot: Either ordered (item_name, value) pairs, one per drop, or a
            mapping of item name to LootTally
        library: Synced markup library
        config: User overrides

    Returns:
        LootMarkup with totals and a per-item ledger (repeated names summed)
    """
    if isinstance(loot, Mapping):
        entries = [(name, tally.total_value, tally.quantity) for name, tally in loot.items()]
    else:
        entries = [(name, value, 1) for name, value in loot]

    total_tt = 0.0
    total_markup = 0.0
    items: dict[str, ItemMarkup] = {}

    for item_name, value, quantity in entries:
        result = resolve_markup(item_name, value, library, config)
        total_tt += result.tt_value
        total_markup += result.markup_value

        line = items.get(item_name)
        if line is None:
            line = ItemMarkup(
                item_name=item_name,
                markup_percent=result.markup_percent,
                source=result.source,
            )
            items[item_name] = line
        line.tt_value += result.tt_value
        line.markup_value += result.markup_value
        line.total_value += result.total_value
        line.quantity += quantity

    return LootMarkup(
        total_tt=total_tt,
        total_markup=total_markup,
        total_with_markup=total_tt + total_markup,
        items=items,
    )


# --- Library maintenance ---


def merge_library_with_config(library: MarkupLibrary, config: MarkupConfig) -> MarkupLibrary:
    """
    Apply user overrides onto a library.

    Overridden and user-added entries are tagged source='manual' and
    is_custom=True. The input library is not modified.
    """
    items = dict(library.items)
    for item_name, override in config.custom_items.items():
        values = {k: v for k, v in override.items() if k in OVERRIDE_FIELDS}
        existing = items.get(item_name)
        if existing is not None:
            items[item_name] = replace(
                existing, **values, source=MarkupSource.MANUAL, is_custom=True
            )
        else:
            values.setdefault("markup_percent", 100.0)
            items[item_name] = MarkupEntry(
                item_name=item_name,
                source=MarkupSource.MANUAL,
                last_updated=config.last_modified,
                is_custom=True,
                **values,
            )

    return MarkupLibrary(
        items=items,
        last_synced=library.last_synced,
        version=library.version,
        default_markup=(
            config.default_markup
            if config.default_markup.percent > 0
            else library.default_markup
        ),
    )


@dataclass(frozen=True)
class LibraryStats:
    total_items: int
    custom_items: int
    type_counts: dict[str, int]
    average_markup: float  # Mean percent over items with markup other than 100
    last_synced: Optional[datetime]


def library_stats(library: MarkupLibrary) -> LibraryStats:
    """Summarize a markup library."""
    entries = list(library.items.values())
    type_counts: dict[str, int] = {}
    for entry in entries:
        key = entry.item_type or "Unknown"
        type_counts[key] = type_counts.get(key, 0) + 1

    marked = [e.markup_percent for e in entries if e.markup_percent and e.markup_percent != 100]
    average = sum(marked) / len(marked) if marked else 100.0

    return LibraryStats(
        total_items=len(entries),
        custom_items=sum(1 for e in entries if e.is_custom),
        type_counts=type_counts,
        average_markup=average,
        last_synced=library.last_synced,
    )


def search_items(
    library: MarkupLibrary,
    query: str,
    limit: Optional[int] = None,
    item_type: Optional[str] = None,
    has_markup: Optional[bool] = None,
) -> list[MarkupEntry]:
    """
    Search library entries by name substring (case-insensitive).

    Exact name matches sort first, the rest alphabetically.
    """
    needle = query.lower()
    results = [e for e in library.items.values() if needle in e.item_name.lower()]

    if item_type:
        results = [e for e in results if e.item_type == item_type]
    if has_markup is not None:
        results = [e for e in results if e.has_markup == has_markup]

    results.sort(key=lambda e: (e.item_name.lower() != needle, e.item_name.lower()))

    if limit:
        results = results[:limit]
    return results


def item_types(library: MarkupLibrary) -> list[str]:
    """Sorted distinct item types in the library."""
    return sorted({e.item_type for e in library.items.values() if e.item_type})


# --- CSV ---

CSV_HEADERS = ["Item Name", "TT Value", "Markup %", "Markup PED", "Item Type", "Source"]


def export_csv(library: MarkupLibrary) -> str:
    """Export library entries as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in library.items.values():
        writer.writerow([
            entry.item_name,
            f"{entry.tt_value:.4f}" if entry.tt_value is not None else "",
            f"{entry.markup_percent:g}" if entry.markup_percent is not None else "",
            f"{entry.markup_value:.4f}" if entry.markup_value is not None else "",
            entry.item_type or "",
            entry.source.value,
        ])
    return buffer.getvalue()


def _parse_number(value: str) -> Optional[float]:
    value = value.strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_csv(text: str) -> dict[str, dict[str, Any]]:
    """
    Parse CSV text (as written by export_csv) into config overrides.

    Rows without a markup percent or value are skipped.
    """
    reader = csv.reader(io.StringIO(text))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    result: dict[str, dict[str, Any]] = {}

    for row in rows[1:]:
        item_name = row[0].strip() if row else ""
        if not item_name:
            continue
        override: dict[str, Any] = {}
        percent = _parse_number(row[2]) if len(row) > 2 else None
        if percent is not None:
            override["markup_percent"] = percent
        value = _parse_number(row[3]) if len(row) > 3 else None
        if value is not None:
            override["markup_value"] = value
        if override:
            result[item_name] = override

    return result


# --- API conversion ---


def api_item_to_entry(item: dict[str, Any], now: Optional[datetime] = None) -> MarkupEntry:
    """
    Convert an item record from the remote item API.

    Expected shape: {"Id", "Name", "Properties": {"Type", "Economy": {"Value"}}}.
    New entries start at 100% (TT value).
    """
    properties = item.get("Properties") or {}
    economy = properties.get("Economy") or {}
    tt_value = economy.get("Value")
    return MarkupEntry(
        item_name=item["Name"],
        item_id=str(item["Id"]) if item.get("Id") is not None else None,
        tt_value=float(tt_value) if tt_value is not None else None,
        markup_percent=100.0,
        item_type=properties.get("Type"),
        source=MarkupSource.API,
        last_updated=now or datetime.now(),
    )


def api_items_to_library(items: Iterable[dict[str, Any]]) -> dict[str, MarkupEntry]:
    """Convert a list of API item records to library entries keyed by name."""
    now = datetime.now()
    result = {}
    for item in items:
        if not item.get("Name"):
            continue
        entry = api_item_to_entry(item, now=now)
        result[entry.item_name] = entry
    return result


# --- Serialization ---


def _parse_enum(enum_cls, value, default):
    # Unknown stored values fall back to the default
    try:
        return enum_cls(value) if value is not None else default
    except ValueError:
        return default


def entry_to_dict(entry: MarkupEntry) -> dict[str, Any]:
    return {
        "item_name": entry.item_name,
        "markup_percent": entry.markup_percent,
        "markup_value": entry.markup_value,
        "tt_value": entry.tt_value,
        "item_type": entry.item_type,
        "item_id": entry.item_id,
        "source": entry.source.value,
        "last_updated": entry.last_updated.isoformat() if entry.last_updated else None,
        "favorite": entry.favorite,
        "is_custom": entry.is_custom,
        "notes": entry.notes,
    }


def entry_from_dict(data: dict[str, Any]) -> MarkupEntry:
    last_updated = data.get("last_updated")
    return MarkupEntry(
        item_name=data["item_name"],
        markup_percent=data.get("markup_percent"),
        markup_value=data.get("markup_value"),
        tt_value=data.get("tt_value"),
        item_type=data.get("item_type"),
        item_id=data.get("item_id"),
        source=_parse_enum(MarkupSource, data.get("source"), MarkupSource.STATIC),
        last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        favorite=bool(data.get("favorite", False)),
        is_custom=bool(data.get("is_custom", False)),
        notes=data.get("notes"),
    )


def default_markup_to_dict(default: DefaultMarkupConfig) -> dict[str, Any]:
    return {"percent": default.percent, "fallback_strategy": default.fallback_strategy.value}


def default_markup_from_dict(data: dict[str, Any]) -> DefaultMarkupConfig:
    return DefaultMarkupConfig(
        percent=float(data.get("percent", 0.0)),
        fallback_strategy=_parse_enum(
            FallbackStrategy, data.get("fallback_strategy"), FallbackStrategy.TT
        ),
    )


def config_to_dict(config: MarkupConfig) -> dict[str, Any]:
    return {
        "custom_items": config.custom_items,
        "default_markup": default_markup_to_dict(config.default_markup),
        "enabled": config.enabled,
        "last_modified": config.last_modified.isoformat() if config.last_modified else None,
    }


def config_from_dict(data: dict[str, Any]) -> MarkupConfig:
    last_modified = data.get("last_modified")
    return MarkupConfig(
        custom_items=dict(data.get("custom_items") or {}),
        default_markup=default_markup_from_dict(data.get("default_markup") or {}),
        enabled=bool(data.get("enabled", True)),
        last_modified=datetime.fromisoformat(last_modified) if last_modified else None,
    )
