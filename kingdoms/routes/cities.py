# kingdoms/routes/cities.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kingdoms.config import KINGDOM_SIZE, POLL_VIEWPORT_SIZE, RESOURCE_TYPES
from kingdoms.database import get_db, utcnow
from kingdoms.game.economy import (
    PRODUCERS,
    apply_city_poll,
    building_production,
    research_bonus_for,
    research_bonus_percents,
)
from kingdoms.game.kingdom_map import tiles_in_viewport, viewport_bounds
from kingdoms.models.kingdom import Kingdom
from kingdoms.models.map_tile import MapTile
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user
from kingdoms.routes.city_util import (
    city_buildings,
    city_research,
    city_to_dict,
    get_city_or_404,
    player_building_to_dict,
    player_research_to_dict,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/city", tags=["cities"])


@router.get("/{city_id}/poll")
def poll_city(
    city_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    """
    Single round-trip for the city screen:
    - advances resources to now (the only place resources grow)
    - reports construction/research timers, flagging the ones that are due
    - returns the map window around the city
    Completion of due timers is a separate explicit call.
    """
    city = get_city_or_404(db, city_id, current_user)
    now = utcnow()

    accrual = apply_city_poll(db, city, now)
    db.commit()
    db.refresh(city)

    bonuses = research_bonus_percents(db, city.id)
    bonuses["architecture"] = research_bonus_for(db, city.id, "architecture")

    buildings = city_buildings(db, city.id)
    research = city_research(db, city.id)

    constructing = [(pb, b) for pb, b in buildings if pb.is_constructing]
    researching = [(pr, r) for pr, r in research if pr.is_researching]

    resource_buildings = []
    power = 0
    for pb, b in buildings:
        if pb.is_constructing:
            continue
        power += int(b.power)
        entry = PRODUCERS.get(b.slug)
        if entry is None:
            continue
        resource, research_slug = entry
        pct = bonuses.get(research_slug, 0) if research_slug else 0
        resource_buildings.append(
            {
                "id": pb.id,
                "slug": b.slug,
                "plotId": pb.plot_id,
                "level": pb.level,
                "resource": resource,
                "bonusPercent": pct,
                "production": building_production(b.base_value, b.bonus_value, pb.level, pct),
            }
        )

    production = {k: 0 for k in RESOURCE_TYPES}
    for rb in resource_buildings:
        production[rb["resource"]] += rb["production"]

    tile = db.query(MapTile).filter(MapTile.id == city.map_tile_id).first()
    kingdom = db.query(Kingdom).filter(Kingdom.id == tile.kingdom_id).first() if tile else None
    kingdom_map = {"tiles": [], "viewport": None}
    if tile:
        vp = viewport_bounds(
            tile.kingdom_id,
            tile.x,
            tile.y,
            POLL_VIEWPORT_SIZE,
            kingdom.size if kingdom else KINGDOM_SIZE,
        )
        kingdom_map = {"tiles": tiles_in_viewport(db, vp), "viewport": vp.to_dict()}

    return {
        "city": city_to_dict(city, tile),
        "buildings": [player_building_to_dict(pb, b, now) for pb, b in buildings],
        "generation": {
            "amounts": accrual.total,
            "current": accrual.current,
            "offline": accrual.offline,
            "offlinePolls": accrual.offline_polls,
            "elapsedSeconds": accrual.elapsed_seconds,
            "timestamp": now.isoformat(),
        },
        "research": [player_research_to_dict(pr, r, now) for pr, r in research],
        "timers": {
            "constructing": [player_building_to_dict(pb, b, now) for pb, b in constructing],
            "research": [player_research_to_dict(pr, r, now) for pr, r in researching],
            "readyConstructions": [
                pb.id for pb, _ in constructing if pb.construction_ends_at and pb.construction_ends_at <= now
            ],
            "readyResearch": [
                pr.research_id for pr, _ in researching if pr.research_ends_at and pr.research_ends_at <= now
            ],
        },
        "resourceBuildings": resource_buildings,
        "researchBonuses": bonuses,
        "cityStats": {
            "buildingCount": len(buildings),
            "power": power,
            "population": city.population,
            "productionPerPoll": production,
        },
        "kingdomMap": kingdom_map,
    }


@router.get("/{city_id}/data")
def city_data(
    city_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    # Read-only snapshot, no accrual
    city = get_city_or_404(db, city_id, current_user)
    tile = db.query(MapTile).filter(MapTile.id == city.map_tile_id).first()
    return {
        "city": city_to_dict(city, tile),
        "buildings": [player_building_to_dict(pb, b) for pb, b in city_buildings(db, city.id)],
        "lastUpdated": utcnow().isoformat(),
    }


@router.get("/{city_id}/buildings")
def list_city_buildings(
    city_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    now = utcnow()
    return {
        "cityId": city.id,
        "buildings": [player_building_to_dict(pb, b, now) for pb, b in city_buildings(db, city.id)],
    }
