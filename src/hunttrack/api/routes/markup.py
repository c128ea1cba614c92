"""Markup API routes."""

from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from hunttrack.api.dependencies import get_repository, get_tracker
from hunttrack.api.schemas import (
    DefaultMarkupModel,
    ImportCsvRequest,
    MarkupConfigModel,
    MarkupItemRequest,
    MarkupItemResponse,
    MarkupLibraryResponse,
    MarkupResultResponse,
    ResolveMarkupRequest,
)
from hunttrack.core.markup import (
    DefaultMarkupConfig,
    MarkupConfig,
    MarkupEntry,
    MarkupSource,
    export_csv,
    item_types,
    library_stats,
    merge_library_with_config,
    parse_csv,
    resolve_markup,
    search_items,
)
from hunttrack.db.repository import Repository
from hunttrack.tracker.session_tracker import SessionTracker

router = APIRouter(prefix="/api/markup", tags=["markup"])


def _entry_response(entry: MarkupEntry) -> MarkupItemResponse:
    return MarkupItemResponse(**asdict(entry))


def _config_model(config: MarkupConfig) -> MarkupConfigModel:
    return MarkupConfigModel(
        enabled=config.enabled,
        default_markup=DefaultMarkupModel(
            percent=config.default_markup.percent,
            fallback_strategy=config.default_markup.fallback_strategy,
        ),
        custom_items=config.custom_items,
        last_modified=config.last_modified,
    )


@router.get("/library", response_model=MarkupLibraryResponse)
def get_library(
    q: Optional[str] = Query(None, description="Name substring"),
    item_type: Optional[str] = None,
    has_markup: Optional[bool] = None,
    limit: Optional[int] = Query(None, ge=1),
    repo: Repository = Depends(get_repository),
) -> MarkupLibraryResponse:
    """Library entries with the user's overrides applied."""
    library = merge_library_with_config(repo.load_markup_library(), repo.get_markup_config())
    entries = search_items(library, q or "", limit=limit, item_type=item_type, has_markup=has_markup)
    return MarkupLibraryResponse(
        items=[_entry_response(e) for e in entries],
        total=len(library.items),
        with_markup=sum(1 for e in library.items.values() if e.has_markup),
        last_synced=library.last_synced,
    )


@router.get("/library/stats")
def get_library_stats(repo: Repository = Depends(get_repository)) -> dict:
    library = merge_library_with_config(repo.load_markup_library(), repo.get_markup_config())
    stats = library_stats(library)
    return {**asdict(stats), "item_types": item_types(library)}


@router.get("/items/{item_name}", response_model=MarkupItemResponse)
def get_item(item_name: str, repo: Repository = Depends(get_repository)) -> MarkupItemResponse:
    library = merge_library_with_config(repo.load_markup_library(), repo.get_markup_config())
    entry = library.items.get(item_name)
    if entry is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return _entry_response(entry)


@router.put("/items/{item_name}", response_model=MarkupItemResponse)
def upsert_item(
    item_name: str,
    body: MarkupItemRequest,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> MarkupItemResponse:
    """Add or replace a manual library entry. Manual entries survive syncs."""
    for value in (body.markup_percent, body.markup_value, body.tt_value):
        if value is not None and value < 0:
            raise HTTPException(status_code=422, detail="Markup values must not be negative")

    existing = repo.get_markup_entry(item_name)
    entry = MarkupEntry(
        item_name=item_name,
        markup_percent=body.markup_percent,
        markup_value=body.markup_value,
        tt_value=body.tt_value if body.tt_value is not None else (existing.tt_value if existing else None),
        item_type=body.item_type or (existing.item_type if existing else None),
        item_id=existing.item_id if existing else None,
        source=MarkupSource.MANUAL,
        last_updated=datetime.now(),
        favorite=body.favorite,
        is_custom=True,
        notes=body.notes,
    )
    repo.upsert_markup_entry(entry)
    tracker.reload_markup()
    return _entry_response(entry)


@router.get("/config", response_model=MarkupConfigModel)
def get_config(repo: Repository = Depends(get_repository)) -> MarkupConfigModel:
    return _config_model(repo.get_markup_config())


@router.put("/config", response_model=MarkupConfigModel)
def put_config(
    body: MarkupConfigModel,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> MarkupConfigModel:
    """Replace the user's markup config."""
    if body.default_markup.percent < 0:
        raise HTTPException(status_code=422, detail="Default markup must not be negative")

    config = MarkupConfig(
        custom_items=body.custom_items,
        default_markup=DefaultMarkupConfig(
            percent=body.default_markup.percent,
            fallback_strategy=body.default_markup.fallback_strategy,
        ),
        enabled=body.enabled,
        last_modified=datetime.now(),
    )
    repo.save_markup_config(config)
    tracker.reload_markup()
    return _config_model(config)


@router.post("/resolve", response_model=MarkupResultResponse)
def resolve(body: ResolveMarkupRequest, repo: Repository = Depends(get_repository)) -> MarkupResultResponse:
    """Price one item with the stored library and config."""
    result = resolve_markup(
        body.item_name,
        body.tt_value,
        repo.load_markup_library(),
        repo.get_markup_config(),
    )
    return MarkupResultResponse(item_name=body.item_name, **asdict(result))


@router.get("/export", response_class=PlainTextResponse)
def export(repo: Repository = Depends(get_repository)) -> PlainTextResponse:
    library = merge_library_with_config(repo.load_markup_library(), repo.get_markup_config())
    return PlainTextResponse(
        export_csv(library),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="markup.csv"'},
    )


@router.post("/import")
def import_csv(
    body: ImportCsvRequest,
    repo: Repository = Depends(get_repository),
    tracker: SessionTracker = Depends(get_tracker),
) -> dict:
    """Merge CSV rows into the config's per-item overrides."""
    overrides = parse_csv(body.csv)
    config = repo.get_markup_config()
    for item_name, override in overrides.items():
        config.custom_items[item_name] = {**config.custom_items.get(item_name, {}), **override}
    config.last_modified = datetime.now()
    repo.save_markup_config(config)
    tracker.reload_markup()
    return {"success": True, "imported": len(overrides)}
