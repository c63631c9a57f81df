# kingdoms/routes/players.py
from __future__ import annotations

import logging
import random

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.config import STARTING_RESOURCES, TOWN_CENTER_PLOT
from kingdoms.database import get_db
from kingdoms.game.kingdom_map import tile_resources
from kingdoms.models.alliance import Alliance, AllianceMember
from kingdoms.models.building import Building
from kingdoms.models.city import City
from kingdoms.models.kingdom import Kingdom
from kingdoms.models.map_tile import MapTile
from kingdoms.models.player import Player
from kingdoms.models.player_building import PlayerBuilding
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user
from kingdoms.routes.city_util import city_to_dict, get_player_or_404

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/player", tags=["players"])


class CreatePlayerRequest(BaseModel):
    name: str = Field(min_length=2, max_length=40)
    gender: str = Field(min_length=1, max_length=16)
    avatar: str = Field(min_length=1, max_length=64)


class LastCityRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_city: int = Field(alias="lastCity")


def _player_to_dict(p: Player) -> dict:
    return {
        "id": p.id,
        "userId": p.user_id,
        "kingdomId": p.kingdom_id,
        "name": p.name,
        "gender": p.gender,
        "avatar": p.avatar,
        "lastCity": p.last_city,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
    }


def _open_kingdom(db: Session) -> Kingdom:
    """First kingdom with a free slot; a new one when every kingdom is full."""
    for kingdom in db.query(Kingdom).order_by(Kingdom.id.asc()).all():
        count = db.query(Player).filter(Player.kingdom_id == kingdom.id).count()
        if count < kingdom.max_players:
            return kingdom

    number = db.query(Kingdom).count() + 1
    kingdom = Kingdom(name=f"Kingdom {number}")
    db.add(kingdom)
    db.flush()
    log.info("kingdom created kingdom_id=%s (all kingdoms full)", kingdom.id)
    return kingdom


def _free_tile(db: Session, kingdom: Kingdom, rng: random.Random) -> MapTile:
    tile = (
        db.query(MapTile)
        .outerjoin(City, City.map_tile_id == MapTile.id)
        .filter(MapTile.kingdom_id == kingdom.id, MapTile.type == "plains", City.id.is_(None))
        .order_by(MapTile.id.asc())
        .first()
    )
    if tile:
        return tile

    # Unseeded or exhausted grid: place a fresh plains tile on an unused coordinate
    used = {
        (x, y)
        for x, y in db.query(MapTile.x, MapTile.y).filter(MapTile.kingdom_id == kingdom.id).all()
    }
    if len(used) >= kingdom.size * kingdom.size:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Kingdom has no free tiles")

    while True:
        x, y = rng.randrange(kingdom.size), rng.randrange(kingdom.size)
        if (x, y) not in used:
            break

    tile = MapTile(
        kingdom_id=kingdom.id,
        x=x,
        y=y,
        type="plains",
        level=1,
        resources=tile_resources("plains", rng),
    )
    db.add(tile)
    db.flush()
    return tile


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_player(
    payload: CreatePlayerRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    kingdom = _open_kingdom(db)

    existing = (
        db.query(Player)
        .filter(Player.user_id == current_user.id, Player.kingdom_id == kingdom.id)
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have a player in this kingdom",
        )

    town_center = db.query(Building).filter(Building.slug == "towncenter").first()
    if not town_center:
        raise HTTPException(status_code=500, detail="Building catalog is not seeded")

    player = Player(
        user_id=current_user.id,
        kingdom_id=kingdom.id,
        name=payload.name.strip(),
        gender=payload.gender,
        avatar=payload.avatar,
    )
    db.add(player)
    db.flush()

    tile = _free_tile(db, kingdom, random.Random())

    city = City(
        player_id=player.id,
        map_tile_id=tile.id,
        name=f"{player.name}'s Capital",
        age=1,
        **STARTING_RESOURCES,
    )
    db.add(city)
    db.flush()

    db.add(
        PlayerBuilding(
            player_id=player.id,
            city_id=city.id,
            building_id=town_center.id,
            plot_id=TOWN_CENTER_PLOT,
            level=1,
            is_constructing=False,
        )
    )

    player.last_city = city.id
    current_user.last_played_kingdom = kingdom.id

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Could not place city, try again")

    db.refresh(player)
    db.refresh(city)
    log.info(
        "player created player_id=%s user_id=%s kingdom_id=%s city_id=%s tile=(%s,%s)",
        player.id, current_user.id, kingdom.id, city.id, tile.x, tile.y,
    )
    return {
        "success": True,
        "player": _player_to_dict(player),
        "city": city_to_dict(city, tile),
        "kingdom": {"id": kingdom.id, "name": kingdom.name},
    }


@router.get("")
def get_player(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    q = db.query(Player).filter(Player.user_id == current_user.id)

    player = None
    if current_user.last_played_kingdom is not None:
        player = q.filter(Player.kingdom_id == current_user.last_played_kingdom).first()
    if player is None:
        player = q.order_by(Player.id.asc()).first()
    if player is None:
        raise HTTPException(status_code=404, detail="Player not found")

    return _player_to_dict(player)


@router.get("/{player_id}/cities")
def list_cities(
    player_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    player = get_player_or_404(db, player_id, current_user)

    rows = (
        db.query(City, MapTile)
        .join(MapTile, MapTile.id == City.map_tile_id)
        .filter(City.player_id == player.id)
        .order_by(City.id.asc())
        .all()
    )
    return {
        "playerId": player.id,
        "lastCity": player.last_city,
        "cities": [city_to_dict(c, t) for c, t in rows],
    }


@router.patch("/{player_id}/cities")
def set_last_city(
    player_id: int,
    payload: LastCityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    player = get_player_or_404(db, player_id, current_user)

    city = db.query(City).filter(City.id == payload.last_city, City.player_id == player.id).first()
    if not city:
        raise HTTPException(status_code=404, detail="City not found or access denied")

    player.last_city = city.id
    db.commit()
    return {"success": True, "lastCity": city.id}


@router.get("/{player_id}/alliance")
def get_alliance(
    player_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    player = get_player_or_404(db, player_id, current_user)

    row = (
        db.query(AllianceMember, Alliance)
        .join(Alliance, Alliance.id == AllianceMember.alliance_id)
        .filter(AllianceMember.player_id == player.id)
        .first()
    )
    if not row:
        return {"hasAlliance": False, "allianceName": None, "allianceId": None}

    member, alliance = row
    return {
        "hasAlliance": True,
        "allianceName": alliance.name,
        "allianceId": alliance.id,
        "role": member.role,
    }
