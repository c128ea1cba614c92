"""Loadouts API routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from hunttrack.api.dependencies import get_repository
from hunttrack.api.schemas import EquipmentModel, LoadoutCostsResponse, LoadoutRequest
from hunttrack.core.loadout import (
    DAMAGE_TYPES,
    DamageProperties,
    Equipment,
    EquipmentEconomy,
    Loadout,
    create_loadout,
    crit_rate,
    damage_per_ped,
    damage_range,
    effective_cost_per_shot,
    effective_damage,
    hit_rate,
    loadout_costs,
    validate_loadout,
)
from hunttrack.db.repository import Repository

router = APIRouter(prefix="/api/loadouts", tags=["loadouts"])


def _to_equipment(model: Optional[EquipmentModel]) -> Optional[Equipment]:
    if model is None:
        return None
    damage = None
    if model.damage:
        damage = DamageProperties(
            **{key: float(model.damage.get(key, 0.0)) for key in DAMAGE_TYPES}
        )
    return Equipment(
        name=model.name,
        economy=EquipmentEconomy(decay=model.decay, ammo_burn=model.ammo_burn),
        damage=damage,
        range=model.range,
        max_tt=model.max_tt,
        min_tt=model.min_tt,
        efficiency=model.efficiency,
    )


def _apply_request(loadout: Loadout, body: LoadoutRequest) -> Loadout:
    """Copy request fields onto a loadout and reject invalid results with 422."""
    loadout.name = body.name
    loadout.weapon = _to_equipment(body.weapon)
    loadout.amp = _to_equipment(body.amp)
    loadout.scope = _to_equipment(body.scope)
    loadout.sight = _to_equipment(body.sight)
    loadout.damage_enhancers = body.damage_enhancers
    loadout.accuracy_enhancers = body.accuracy_enhancers
    loadout.range_enhancers = body.range_enhancers
    loadout.economy_enhancers = body.economy_enhancers
    loadout.hit_profession = body.hit_profession
    loadout.damage_profession = body.damage_profession
    loadout.use_manual_cost = body.use_manual_cost
    loadout.manual_cost_per_shot = body.manual_cost_per_shot
    loadout.decay_per_hit_pec = body.decay_per_hit_pec
    loadout.decay_per_heal_pec = body.decay_per_heal_pec

    errors = validate_loadout(loadout)
    if errors:
        raise HTTPException(status_code=422, detail=errors)
    return loadout


def _get_or_404(loadout_id: str, repo: Repository) -> Loadout:
    loadout = repo.get_loadout(loadout_id)
    if loadout is None:
        raise HTTPException(status_code=404, detail="Loadout not found")
    return loadout


@router.get("")
def list_loadouts(repo: Repository = Depends(get_repository)) -> dict:
    """List loadouts with the active one marked."""
    active_id = repo.get_active_loadout_id()
    return {
        "loadouts": [
            {**loadout.to_dict(), "cost_per_shot": effective_cost_per_shot(loadout)}
            for loadout in repo.list_loadouts()
        ],
        "active_id": active_id,
    }


@router.post("", status_code=201)
def create_loadout_route(
    body: LoadoutRequest,
    repo: Repository = Depends(get_repository),
) -> dict:
    loadout = _apply_request(create_loadout(body.name), body)
    repo.save_loadout(loadout)
    return loadout.to_dict()


@router.get("/{loadout_id}")
def get_loadout(loadout_id: str, repo: Repository = Depends(get_repository)) -> dict:
    return _get_or_404(loadout_id, repo).to_dict()


@router.put("/{loadout_id}")
def update_loadout(
    loadout_id: str,
    body: LoadoutRequest,
    repo: Repository = Depends(get_repository),
) -> dict:
    """Replace a loadout. Sessions price later shots with the new values."""
    loadout = _apply_request(_get_or_404(loadout_id, repo), body)
    loadout.updated_at = datetime.now()
    repo.save_loadout(loadout)
    return loadout.to_dict()


@router.delete("/{loadout_id}")
def delete_loadout(loadout_id: str, repo: Repository = Depends(get_repository)) -> dict:
    if not repo.delete_loadout(loadout_id):
        raise HTTPException(status_code=404, detail="Loadout not found")
    return {"success": True, "id": loadout_id}


@router.post("/{loadout_id}/activate")
def activate_loadout(loadout_id: str, repo: Repository = Depends(get_repository)) -> dict:
    """Make this loadout price subsequent shots."""
    _get_or_404(loadout_id, repo)
    repo.set_active_loadout_id(loadout_id)
    return {"success": True, "active_id": loadout_id}


@router.post("/deactivate")
def deactivate_loadout(repo: Repository = Depends(get_repository)) -> dict:
    repo.set_active_loadout_id(None)
    return {"success": True, "active_id": None}


@router.get("/{loadout_id}/costs", response_model=LoadoutCostsResponse)
def get_loadout_costs(
    loadout_id: str,
    repo: Repository = Depends(get_repository),
) -> LoadoutCostsResponse:
    loadout = _get_or_404(loadout_id, repo)
    costs = loadout_costs(loadout)
    damage = damage_range(loadout)
    return LoadoutCostsResponse(
        loadout_id=loadout.id,
        weapon_cost=costs.weapon_cost,
        amp_cost=costs.amp_cost,
        scope_cost=costs.scope_cost,
        sight_cost=costs.sight_cost,
        enhancer_cost=costs.enhancer_cost,
        total_per_shot=costs.total_per_shot,
        effective_cost_per_shot=effective_cost_per_shot(loadout),
        damage_min=damage.min,
        damage_max=damage.max,
        hit_rate=hit_rate(loadout),
        crit_rate=crit_rate(loadout),
        effective_damage=effective_damage(loadout),
        damage_per_ped=damage_per_ped(loadout),
    )
