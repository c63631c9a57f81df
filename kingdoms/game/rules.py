# kingdoms/game/rules.py
from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from kingdoms.config import (
    CITY_PLOT_COUNT,
    MAX_BUILDING_LEVEL,
    MAX_RESEARCH_LEVEL,
    MIN_CONSTRUCTION_TIME_RATIO,
    RESOURCE_TYPES,
)
from kingdoms.game.catalog import PLOTLESS_BUILDINGS, SINGLETON_BUILDINGS, cost_of
from kingdoms.game.economy import city_resources, effective_level, research_bonus_for, research_levels
from kingdoms.models.building import Building
from kingdoms.models.city import City
from kingdoms.models.player_building import PlayerBuilding
from kingdoms.models.player_research import PlayerResearch
from kingdoms.models.research import Research

Check = Tuple[bool, Dict[str, Any]]

OK: Check = (True, {})

_PLOT_RE = re.compile(r"^(plot|field)(\d+)$")


def _fail(error: str, **extra: Any) -> Check:
    return False, {"error": error, **extra}


def normalize_plot_id(plot_id: Optional[str]) -> Optional[str]:
    """Canonical plot id (plot027 -> plot27). Ids that do not parse come back unchanged."""
    m = _PLOT_RE.match(plot_id or "")
    if not m:
        return plot_id
    return f"{m.group(1)}{int(m.group(2))}"


# ----------------------------
# City state lookups
# ----------------------------

def building_levels(db: Session, city_id: int) -> Dict[str, int]:
    """Highest completed level per building slug in a city."""
    rows = (
        db.query(PlayerBuilding, Building)
        .join(Building, Building.id == PlayerBuilding.building_id)
        .filter(PlayerBuilding.city_id == city_id)
        .all()
    )
    levels: Dict[str, int] = {}
    for pb, b in rows:
        lvl = effective_level(pb.level, pb.is_constructing)
        levels[b.slug] = max(levels.get(b.slug, 0), lvl)
    return levels


def active_construction(db: Session, city_id: int) -> Optional[Tuple[PlayerBuilding, Building]]:
    return (
        db.query(PlayerBuilding, Building)
        .join(Building, Building.id == PlayerBuilding.building_id)
        .filter(PlayerBuilding.city_id == city_id, PlayerBuilding.is_constructing.is_(True))
        .order_by(PlayerBuilding.id.asc())
        .first()
    )


def active_research(db: Session, city_id: int) -> Optional[Tuple[PlayerResearch, Research]]:
    return (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(PlayerResearch.city_id == city_id, PlayerResearch.is_researching.is_(True))
        .order_by(PlayerResearch.id.asc())
        .first()
    )


def available_field_plots(town_center_level: int) -> int:
    # 10 fields at level 1, +2 per level, capped at 20
    return min(10 + (max(1, int(town_center_level)) - 1) * 2, 20)


# ----------------------------
# Individual checks
# ----------------------------

def check_construction_lock(db: Session, city_id: int) -> Check:
    active = active_construction(db, city_id)
    if active:
        pb, b = active
        return _fail(
            f"Cannot start construction: {b.name} is already under construction",
            blocking={
                "id": pb.id,
                "slug": b.slug,
                "name": b.name,
                "constructionEndsAt": pb.construction_ends_at.isoformat() if pb.construction_ends_at else None,
            },
        )
    return OK


def check_plot(db: Session, city_id: int, building: Building, plot_id: Optional[str], town_center_level: int) -> Check:
    if building.slug in PLOTLESS_BUILDINGS:
        return OK

    if not plot_id:
        return _fail("Missing plotId")

    m = _PLOT_RE.match(plot_id)
    if not m:
        return _fail("Invalid plotId", plotId=plot_id)

    kind, number = m.group(1), int(m.group(2))
    if building.field_type == 1:
        limit = available_field_plots(town_center_level)
        if kind != "field" or not 1 <= number <= limit:
            return _fail(f"{building.name} must be built on a field plot (field1..field{limit})", plotId=plot_id)
    else:
        if kind != "plot" or not 1 <= number <= CITY_PLOT_COUNT:
            return _fail(f"{building.name} must be built on a city plot (plot1..plot{CITY_PLOT_COUNT})", plotId=plot_id)

    taken = (
        db.query(PlayerBuilding)
        .filter(PlayerBuilding.city_id == city_id, PlayerBuilding.plot_id == f"{kind}{number}")
        .first()
    )
    if taken:
        return _fail("Plot already has a building", plotId=plot_id)
    return OK


def check_singleton(db: Session, city_id: int, building: Building) -> Check:
    if building.slug not in SINGLETON_BUILDINGS:
        return OK
    existing = (
        db.query(PlayerBuilding)
        .filter(PlayerBuilding.city_id == city_id, PlayerBuilding.building_id == building.id)
        .first()
    )
    if existing:
        return _fail(f"Cannot build {building.name}: Only one allowed per city")
    return OK


def check_requirements(
    requirements: Optional[Dict[str, Any]],
    *,
    city_age: int,
    buildings: Dict[str, int],
    research: Dict[str, int],
) -> Check:
    """requirements: {"age": n, "buildings": {slug: level}, "research": {slug: level}}"""
    req = requirements or {}

    need_age = int(req.get("age") or 0)
    if need_age and int(city_age) < need_age:
        return _fail(f"Requires city age {need_age}", need_age=need_age, have_age=int(city_age))

    for slug, need in (req.get("buildings") or {}).items():
        have = int(buildings.get(slug, 0))
        if have < int(need):
            return _fail(f"Requires {slug} level {need}", missing={"type": slug, "need": int(need), "have": have})

    for slug, need in (req.get("research") or {}).items():
        have = int(research.get(slug, 0))
        if have < int(need):
            return _fail(f"Requires {slug} research level {need}", missing={"type": slug, "need": int(need), "have": have})

    return OK


def check_affordable(have: Dict[str, int], cost: Dict[str, int]) -> Check:
    for k in RESOURCE_TYPES:
        need = int(cost.get(k, 0) or 0)
        avail = int(have.get(k, 0) or 0)
        if avail < need:
            return _fail(
                f"Insufficient {k}. Required: {need}, Available: {avail}",
                cost=cost,
                missing={k: need - avail},
            )
    return OK


# ----------------------------
# Time
# ----------------------------

def adjusted_construction_time(base_seconds: int, architecture_percent: int) -> float:
    """Architecture shortens construction, never below half the base time."""
    base = float(base_seconds)
    reduced = base * (1 - int(architecture_percent) / 100)
    return max(reduced, base * MIN_CONSTRUCTION_TIME_RATIO)


def construction_seconds(db: Session, city_id: int, building: Building) -> float:
    pct = research_bonus_for(db, city_id, "architecture")
    return adjusted_construction_time(building.construction_time, pct)


# ----------------------------
# Full validations (ordered, first failure wins)
# ----------------------------

def validate_build(db: Session, city: City, building: Building, plot_id: Optional[str]) -> Check:
    ok, detail = check_construction_lock(db, city.id)
    if not ok:
        return ok, detail

    levels = building_levels(db, city.id)

    ok, detail = check_plot(db, city.id, building, plot_id, levels.get("towncenter", 1))
    if not ok:
        return ok, detail

    ok, detail = check_singleton(db, city.id, building)
    if not ok:
        return ok, detail

    ok, detail = check_requirements(
        building.requirements,
        city_age=city.age,
        buildings=levels,
        research=research_levels(db, city.id),
    )
    if not ok:
        return ok, detail

    return check_affordable(city_resources(city), cost_of(building))


def validate_upgrade(db: Session, city: City, pb: PlayerBuilding, building: Building) -> Check:
    if pb.is_constructing:
        return _fail("Cannot upgrade building while under construction")

    ok, detail = check_construction_lock(db, city.id)
    if not ok:
        return ok, detail

    if pb.level >= MAX_BUILDING_LEVEL:
        return _fail(f"Building already at maximum level ({MAX_BUILDING_LEVEL})")

    return check_affordable(city_resources(city), cost_of(building))


def validate_research(
    db: Session, city: City, research: Research, existing: Optional[PlayerResearch]
) -> Check:
    running = active_research(db, city.id)
    if running:
        pr, r = running
        return _fail(
            f"Cannot start research: {r.name} is already being researched",
            blocking={"researchId": r.id, "slug": r.slug, "name": r.name},
        )

    if existing and existing.level >= MAX_RESEARCH_LEVEL:
        return _fail(f"Research already at maximum level ({MAX_RESEARCH_LEVEL})")

    levels = building_levels(db, city.id)
    if levels.get("academy", 0) < 1:
        return _fail("Academy building required to start research")

    ok, detail = check_requirements(
        research.requirements,
        city_age=city.age,
        buildings=levels,
        research=research_levels(db, city.id),
    )
    if not ok:
        return ok, detail

    return check_affordable(city_resources(city), cost_of(research))
