# kingdoms/routes/city_util.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from kingdoms.game.catalog import cost_of
from kingdoms.models.building import Building
from kingdoms.models.city import City
from kingdoms.models.map_tile import MapTile
from kingdoms.models.player import Player
from kingdoms.models.player_building import PlayerBuilding
from kingdoms.models.player_research import PlayerResearch
from kingdoms.models.research import Research
from kingdoms.models.user import User


def get_city_or_404(db: Session, city_id: int, current_user: User) -> City:
    """City owned by one of the caller's players; anything else looks missing."""
    city = (
        db.query(City)
        .join(Player, Player.id == City.player_id)
        .filter(City.id == city_id, Player.user_id == current_user.id)
        .first()
    )
    if not city:
        raise HTTPException(status_code=404, detail="City not found or access denied")
    return city


def get_player_or_404(db: Session, player_id: int, current_user: User) -> Player:
    player = (
        db.query(Player)
        .filter(Player.id == player_id, Player.user_id == current_user.id)
        .first()
    )
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def seconds_left(ends_at: Optional[datetime], now: datetime) -> int:
    if not ends_at:
        return 0
    return max(0, int((ends_at - now).total_seconds()))


def building_to_dict(b: Building) -> dict:
    return {
        "id": b.id,
        "slug": b.slug,
        "name": b.name,
        "description": b.description,
        "fieldType": b.field_type,
        "cost": cost_of(b),
        "constructionTime": b.construction_time,
        "power": b.power,
        "baseValue": b.base_value,
        "bonusValue": b.bonus_value,
        "requirements": b.requirements or {},
    }


def research_to_dict(r: Research) -> dict:
    return {
        "id": r.id,
        "slug": r.slug,
        "name": r.name,
        "description": r.description,
        "cost": cost_of(r),
        "researchTime": r.research_time,
        "power": r.power,
        "baseValue": r.base_value,
        "bonusValue": r.bonus_value,
        "requirements": r.requirements or {},
    }


def city_to_dict(city: City, tile: Optional[MapTile] = None) -> dict:
    out = {
        "id": city.id,
        "playerId": city.player_id,
        "mapTileId": city.map_tile_id,
        "name": city.name,
        "age": city.age,
        "population": city.population,
        "food": city.food,
        "wood": city.wood,
        "stone": city.stone,
        "ore": city.ore,
        "gold": city.gold,
        "lastResourceGeneration": _iso(city.last_resource_generation),
        "createdAt": _iso(city.created_at),
    }
    if tile is not None:
        out["mapTile"] = {"id": tile.id, "x": tile.x, "y": tile.y, "type": tile.type, "level": tile.level}
    return out


def player_building_to_dict(pb: PlayerBuilding, b: Building, now: Optional[datetime] = None) -> dict:
    out = {
        "id": pb.id,
        "cityId": pb.city_id,
        "buildingId": pb.building_id,
        "plotId": pb.plot_id,
        "level": pb.level,
        "isConstructing": bool(pb.is_constructing),
        "constructionStartedAt": _iso(pb.construction_started_at),
        "constructionEndsAt": _iso(pb.construction_ends_at),
        "building": building_to_dict(b),
    }
    if now is not None and pb.is_constructing:
        out["secondsLeft"] = seconds_left(pb.construction_ends_at, now)
    return out


def player_research_to_dict(pr: PlayerResearch, r: Research, now: Optional[datetime] = None) -> dict:
    out = {
        "id": pr.id,
        "cityId": pr.city_id,
        "researchId": pr.research_id,
        "level": pr.level,
        "isResearching": bool(pr.is_researching),
        "researchStartedAt": _iso(pr.research_started_at),
        "researchEndsAt": _iso(pr.research_ends_at),
        "research": research_to_dict(r),
    }
    if now is not None and pr.is_researching:
        out["secondsLeft"] = seconds_left(pr.research_ends_at, now)
    return out


def city_buildings(db: Session, city_id: int) -> list[tuple[PlayerBuilding, Building]]:
    return (
        db.query(PlayerBuilding, Building)
        .join(Building, Building.id == PlayerBuilding.building_id)
        .filter(PlayerBuilding.city_id == city_id)
        .order_by(PlayerBuilding.id.asc())
        .all()
    )


def city_research(db: Session, city_id: int) -> list[tuple[PlayerResearch, Research]]:
    return (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(PlayerResearch.city_id == city_id)
        .order_by(PlayerResearch.research_id.asc())
        .all()
    )
