# kingdoms/game/economy.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from kingdoms.config import BASE_GENERATION, POLL_INTERVAL_SECONDS, RESOURCE_TYPES
from kingdoms.models.building import Building
from kingdoms.models.city import City
from kingdoms.models.player_building import PlayerBuilding
from kingdoms.models.player_research import PlayerResearch
from kingdoms.models.research import Research

log = logging.getLogger(__name__)

# producer slug -> (resource, research slug that boosts it)
# Market gold gets no research multiplier.
PRODUCERS: dict[str, tuple[str, Optional[str]]] = {
    "farm": ("food", "farming"),
    "lumbermill": ("wood", "woodworking"),
    "quarry": ("stone", "mining"),
    "mine": ("ore", "mining"),
    "market": ("gold", None),
}

BONUS_RESEARCH: tuple[str, ...] = ("farming", "woodworking", "mining")


def empty_bag() -> Dict[str, int]:
    return {k: 0 for k in RESOURCE_TYPES}


def city_resources(city: City) -> Dict[str, int]:
    return {k: int(getattr(city, k, 0) or 0) for k in RESOURCE_TYPES}


# ----------------------------
# Formulas
# ----------------------------

def research_bonus_percent(base_value: int, bonus_value: int, level: int) -> int:
    """Percentage bonus for a research at `level`; level 0 means not researched."""
    if level <= 0:
        return 0
    return int(base_value) + (int(level) - 1) * int(bonus_value)


def building_output(base_value: int, bonus_value: int, level: int) -> int:
    return int(base_value) + int(bonus_value) * (int(level) - 1)


def building_production(base_value: int, bonus_value: int, level: int, bonus_percent: int = 0) -> int:
    # floor(total * (1 + pct/100)) in integers so 100 * 1.15 is 115, not 114
    total = building_output(base_value, bonus_value, level)
    return (total * (100 + int(bonus_percent))) // 100


def offline_polls(elapsed_seconds: int) -> int:
    if elapsed_seconds > POLL_INTERVAL_SECONDS:
        return elapsed_seconds // POLL_INTERVAL_SECONDS
    return 0


def effective_level(level: int, in_progress: bool) -> int:
    # Levels are raised when work starts; the finished level is one lower until completion
    return max(0, int(level) - 1) if in_progress else max(0, int(level))


# ----------------------------
# Accrual
# ----------------------------

@dataclass(frozen=True)
class Producer:
    slug: str
    level: int
    base_value: int
    bonus_value: int


@dataclass
class Accrual:
    elapsed_seconds: int
    offline_polls: int
    current: Dict[str, int] = field(default_factory=empty_bag)
    offline: Dict[str, int] = field(default_factory=empty_bag)
    updated: Dict[str, int] = field(default_factory=empty_bag)

    @property
    def total(self) -> Dict[str, int]:
        return {k: self.current[k] + self.offline[k] for k in RESOURCE_TYPES}


def tick_generation(producers: Iterable[Producer], bonus_percents: Dict[str, int]) -> Dict[str, int]:
    """Resources produced by one poll tick: base income plus every producer."""
    out = {k: BASE_GENERATION for k in RESOURCE_TYPES}
    for p in producers:
        entry = PRODUCERS.get(p.slug)
        if entry is None:
            continue
        resource, research_slug = entry
        pct = bonus_percents.get(research_slug, 0) if research_slug else 0
        out[resource] += building_production(p.base_value, p.bonus_value, p.level, pct)
    return out


def compute_accrual(
    resources: Dict[str, int],
    producers: Iterable[Producer],
    bonus_percents: Dict[str, int],
    last_generation: Optional[datetime],
    now: datetime,
) -> Accrual:
    """
    One poll's worth of generation:
    - current tick (base + producers)
    - offline catch-up = current tick * floor(elapsed / 2) when elapsed > 2s
    The current tick is always added on top of the offline polls.
    """
    producers = list(producers)
    elapsed = 0
    if last_generation is not None:
        elapsed = max(0, int((now - last_generation).total_seconds()))

    polls = offline_polls(elapsed) if last_generation is not None else 0
    current = tick_generation(producers, bonus_percents)
    offline = {k: current[k] * polls for k in RESOURCE_TYPES}

    updated = {
        k: int(resources.get(k, 0) or 0) + current[k] + offline[k]
        for k in RESOURCE_TYPES
    }
    return Accrual(
        elapsed_seconds=elapsed,
        offline_polls=polls,
        current=current,
        offline=offline,
        updated=updated,
    )


# ----------------------------
# DB helpers
# ----------------------------

def research_levels(db: Session, city_id: int) -> Dict[str, int]:
    """Completed research level per slug for a city."""
    rows = (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(PlayerResearch.city_id == city_id)
        .all()
    )
    return {r.slug: effective_level(pr.level, pr.is_researching) for pr, r in rows}


def research_bonus_percents(db: Session, city_id: int) -> Dict[str, int]:
    # Bonuses follow the stored level, so research counts from the moment it starts
    rows = (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(PlayerResearch.city_id == city_id, Research.slug.in_(BONUS_RESEARCH))
        .all()
    )
    out = {slug: 0 for slug in BONUS_RESEARCH}
    for pr, r in rows:
        out[r.slug] = research_bonus_percent(r.base_value, r.bonus_value, pr.level)
    return out


def research_bonus_for(db: Session, city_id: int, slug: str) -> int:
    row = (
        db.query(PlayerResearch, Research)
        .join(Research, Research.id == PlayerResearch.research_id)
        .filter(PlayerResearch.city_id == city_id, Research.slug == slug)
        .first()
    )
    if not row:
        return 0
    pr, r = row
    return research_bonus_percent(r.base_value, r.bonus_value, pr.level)


def city_producers(db: Session, city_id: int) -> list[Producer]:
    rows = (
        db.query(PlayerBuilding, Building)
        .join(Building, Building.id == PlayerBuilding.building_id)
        .filter(
            PlayerBuilding.city_id == city_id,
            PlayerBuilding.is_constructing.is_(False),
            Building.slug.in_(list(PRODUCERS.keys())),
        )
        .order_by(PlayerBuilding.id.asc())
        .all()
    )
    return [
        Producer(slug=b.slug, level=int(pb.level), base_value=int(b.base_value), bonus_value=int(b.bonus_value))
        for pb, b in rows
    ]


def apply_city_poll(db: Session, city: City, now: datetime) -> Accrual:
    """
    Advance the city's resources to `now` and flush.

    The write is conditional on the last_resource_generation we read; a poll that
    overlaps another one for the same city finds the row already moved and applies
    nothing.
    """
    producers = city_producers(db, city.id)
    bonuses = research_bonus_percents(db, city.id)
    previous = city.last_resource_generation

    accrual = compute_accrual(city_resources(city), producers, bonuses, previous, now)

    log.debug(
        "city poll generation city_id=%s elapsed=%s offline_polls=%s bonuses=%s",
        city.id, accrual.elapsed_seconds, accrual.offline_polls, bonuses,
    )

    q = db.query(City).filter(City.id == city.id)
    if previous is None:
        q = q.filter(City.last_resource_generation.is_(None))
    else:
        q = q.filter(City.last_resource_generation == previous)

    values = dict(accrual.updated)
    values["last_resource_generation"] = now
    updated_rows = q.update(values, synchronize_session=False)
    db.flush()
    db.refresh(city)

    if updated_rows == 0:
        log.warning("city poll lost race city_id=%s, generation skipped", city.id)
        return Accrual(elapsed_seconds=accrual.elapsed_seconds, offline_polls=0, updated=city_resources(city))

    if accrual.offline_polls:
        log.info(
            "city poll offline generation city_id=%s seconds=%s polls=%s offline=%s",
            city.id, accrual.elapsed_seconds, accrual.offline_polls, accrual.offline,
        )
    return accrual


def spend(city: City, cost: Dict[str, int]) -> None:
    """Deduct an already-checked cost from the city's bag."""
    for k in RESOURCE_TYPES:
        setattr(city, k, int(getattr(city, k, 0) or 0) - int(cost.get(k, 0) or 0))
