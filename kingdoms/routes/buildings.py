# kingdoms/routes/buildings.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.config import RESOURCE_TYPES
from kingdoms.database import get_db, utcnow
from kingdoms.game.catalog import cost_of
from kingdoms.game.economy import city_resources, spend
from kingdoms.game.rules import construction_seconds, normalize_plot_id, validate_build, validate_upgrade
from kingdoms.models.building import Building
from kingdoms.models.city import City
from kingdoms.models.player_building import PlayerBuilding
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user
from kingdoms.routes.city_util import (
    building_to_dict,
    get_city_or_404,
    player_building_to_dict,
    seconds_left,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["buildings"])


class BuildRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    building_slug: str = Field(alias="buildingSlug", min_length=2, max_length=32)
    plot_id: Optional[str] = Field(default=None, alias="plotId", max_length=16)


def _get_building_or_404(db: Session, slug: str) -> Building:
    b = db.query(Building).filter(Building.slug == slug.strip().lower()).first()
    if not b:
        raise HTTPException(status_code=404, detail={"error": "Building not found", "requested": slug})
    return b


def _get_player_building_or_404(db: Session, city: City, pb_id: int) -> tuple[PlayerBuilding, Building]:
    row = (
        db.query(PlayerBuilding, Building)
        .join(Building, Building.id == PlayerBuilding.building_id)
        .filter(PlayerBuilding.id == pb_id, PlayerBuilding.city_id == city.id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Building not found in city")
    return row


def _open_window(db: Session, city: City, pb: PlayerBuilding, building: Building) -> float:
    seconds = construction_seconds(db, city.id, building)
    started = utcnow()
    pb.is_constructing = True
    pb.construction_started_at = started
    pb.construction_ends_at = started + timedelta(seconds=seconds)
    log.debug(
        "construction time city_id=%s building=%s base=%s adjusted=%s",
        city.id, building.slug, building.construction_time, seconds,
    )
    return seconds


@router.get("/buildings")
def list_catalog(db: Session = Depends(get_db)) -> list[dict]:
    return [building_to_dict(b) for b in db.query(Building).order_by(Building.name.asc()).all()]


@router.get("/city/{city_id}/build/preview")
def preview_build(
    city_id: int,
    building_slug: str = Query(..., alias="buildingSlug", min_length=2, max_length=32),
    plot_id: Optional[str] = Query(default=None, alias="plotId", max_length=16),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    building = _get_building_or_404(db, building_slug)

    ok, detail = validate_build(db, city, building, plot_id)
    return {
        "allowed": ok,
        **detail,
        "buildingSlug": building.slug,
        "plotId": plot_id,
        "cost": cost_of(building),
        "durationSeconds": construction_seconds(db, city.id, building),
        "resources": city_resources(city),
    }


@router.post("/city/{city_id}/build")
def start_build(
    city_id: int,
    payload: BuildRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    building = _get_building_or_404(db, payload.building_slug)

    ok, detail = validate_build(db, city, building, payload.plot_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    cost = cost_of(building)
    spend(city, cost)

    pb = PlayerBuilding(
        player_id=city.player_id,
        city_id=city.id,
        building_id=building.id,
        # Wall has no plot
        plot_id=None if building.slug == "wall" else normalize_plot_id(payload.plot_id),
        level=1,
    )
    seconds = _open_window(db, city, pb, building)
    db.add(pb)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Plot already has a building", "plotId": payload.plot_id},
        )
    db.refresh(pb)
    db.refresh(city)

    log.info(
        "construction started city_id=%s building=%s plot=%s ends_at=%s",
        city.id, building.slug, pb.plot_id, pb.construction_ends_at.isoformat(),
    )
    return {
        "success": True,
        "playerBuilding": player_building_to_dict(pb, building),
        "cost": cost,
        "durationSeconds": seconds,
        "resources": {k: getattr(city, k) for k in RESOURCE_TYPES},
    }


@router.post("/city/{city_id}/buildings/{pb_id}/upgrade")
def upgrade_building(
    city_id: int,
    pb_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    pb, building = _get_player_building_or_404(db, city, pb_id)

    ok, detail = validate_upgrade(db, city, pb, building)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    cost = cost_of(building)
    spend(city, cost)

    from_level = pb.level
    # Level is raised now; it counts once the window is completed
    pb.level = from_level + 1
    seconds = _open_window(db, city, pb, building)

    db.commit()
    db.refresh(pb)
    db.refresh(city)

    log.info(
        "upgrade started city_id=%s building=%s from=%s to=%s",
        city.id, building.slug, from_level, pb.level,
    )
    return {
        "success": True,
        "playerBuilding": player_building_to_dict(pb, building),
        "fromLevel": from_level,
        "toLevel": pb.level,
        "cost": cost,
        "durationSeconds": seconds,
        "resources": {k: getattr(city, k) for k in RESOURCE_TYPES},
    }


@router.post("/city/{city_id}/buildings/{pb_id}/demolish")
def demolish_building(
    city_id: int,
    pb_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    pb, building = _get_player_building_or_404(db, city, pb_id)

    if pb.is_constructing:
        raise HTTPException(status_code=400, detail="Cannot demolish building while under construction")
    if building.slug == "towncenter":
        raise HTTPException(status_code=400, detail=f"Cannot demolish the {building.name}")

    db.delete(pb)
    db.commit()

    log.info("building demolished city_id=%s building=%s plot=%s", city.id, building.slug, pb.plot_id)
    return {"success": True, "demolished": pb_id, "plotId": pb.plot_id}


@router.post("/city/{city_id}/buildings/{pb_id}/complete")
def complete_building(
    city_id: int,
    pb_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    pb, building = _get_player_building_or_404(db, city, pb_id)

    if not pb.is_constructing:
        raise HTTPException(status_code=400, detail="Building is not under construction")

    now = utcnow()
    if pb.construction_ends_at and pb.construction_ends_at > now:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Construction not finished yet",
                "secondsLeft": seconds_left(pb.construction_ends_at, now),
            },
        )

    pb.is_constructing = False
    pb.construction_started_at = None
    pb.construction_ends_at = None
    db.commit()
    db.refresh(pb)

    log.info("construction completed city_id=%s building=%s level=%s", city.id, building.slug, pb.level)
    return {"success": True, "playerBuilding": player_building_to_dict(pb, building)}
