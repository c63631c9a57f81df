# kingdoms/routes/research.py
from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.config import RESOURCE_TYPES
from kingdoms.database import get_db, utcnow
from kingdoms.game.catalog import cost_of
from kingdoms.game.economy import spend
from kingdoms.game.rules import active_research, validate_research
from kingdoms.models.player_research import PlayerResearch
from kingdoms.models.research import Research
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user
from kingdoms.routes.city_util import (
    city_research,
    get_city_or_404,
    player_research_to_dict,
    research_to_dict,
    seconds_left,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["research"])


class StartResearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    research_id: int = Field(alias="researchId", ge=1)


@router.get("/research")
def list_catalog(db: Session = Depends(get_db)) -> list[dict]:
    return [research_to_dict(r) for r in db.query(Research).order_by(Research.id.asc()).all()]


@router.get("/city/{city_id}/research")
def list_city_research(
    city_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    now = utcnow()
    return {
        "cityId": city.id,
        "research": [player_research_to_dict(pr, r, now) for pr, r in city_research(db, city.id)],
    }


@router.get("/city/{city_id}/research/active")
def get_active_research(
    city_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)
    running = active_research(db, city.id)
    if not running:
        return {"cityId": city.id, "active": None}

    pr, r = running
    return {"cityId": city.id, "active": player_research_to_dict(pr, r, utcnow())}


@router.post("/city/{city_id}/research/start")
def start_research(
    city_id: int,
    payload: StartResearchRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)

    research = db.query(Research).filter(Research.id == payload.research_id).first()
    if not research:
        raise HTTPException(status_code=404, detail="Research not found")

    existing = (
        db.query(PlayerResearch)
        .filter(PlayerResearch.city_id == city.id, PlayerResearch.research_id == research.id)
        .first()
    )

    ok, detail = validate_research(db, city, research, existing)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    cost = cost_of(research)
    spend(city, cost)

    started = utcnow()
    ends = started + timedelta(seconds=int(research.research_time))

    pr = existing
    if pr is None:
        pr = PlayerResearch(
            player_id=city.player_id,
            city_id=city.id,
            research_id=research.id,
            level=0,
        )
        db.add(pr)

    from_level = int(pr.level or 0)
    pr.level = from_level + 1
    pr.is_researching = True
    pr.research_started_at = started
    pr.research_ends_at = ends

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot start research: {research.name} is already being researched",
        )
    db.refresh(pr)
    db.refresh(city)

    log.info(
        "research started city_id=%s research=%s level=%s ends_at=%s",
        city.id, research.slug, pr.level, ends.isoformat(),
    )
    return {
        "success": True,
        "playerResearch": player_research_to_dict(pr, research),
        "fromLevel": from_level,
        "toLevel": pr.level,
        "cost": cost,
        "durationSeconds": int(research.research_time),
        "resources": {k: getattr(city, k) for k in RESOURCE_TYPES},
    }


@router.post("/city/{city_id}/research/{research_id}/complete")
def complete_research(
    city_id: int,
    research_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    city = get_city_or_404(db, city_id, current_user)

    row = (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(
            PlayerResearch.city_id == city.id,
            PlayerResearch.research_id == research_id,
            PlayerResearch.is_researching.is_(True),
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Research not in progress")

    pr, research = row
    now = utcnow()
    if pr.research_ends_at and pr.research_ends_at > now:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Research not finished yet",
                "secondsLeft": seconds_left(pr.research_ends_at, now),
            },
        )

    pr.is_researching = False
    pr.research_started_at = None
    pr.research_ends_at = None
    db.commit()
    db.refresh(pr)

    log.info("research completed city_id=%s research=%s level=%s", city.id, research.slug, pr.level)
    return {"success": True, "playerResearch": player_research_to_dict(pr, research)}
