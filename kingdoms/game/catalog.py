# kingdoms/game/catalog.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from kingdoms.config import DEFAULT_RESEARCH_TIME, RESOURCE_TYPES
from kingdoms.models.building import Building
from kingdoms.models.research import Research

# Short cost keys used by the static tables below
COST_KEYS: dict[str, str] = {"f": "food", "w": "wood", "s": "stone", "o": "ore", "g": "gold"}

# Only one of these per city
SINGLETON_BUILDINGS: frozenset[str] = frozenset(
    {"towncenter", "smith", "academy", "market", "arena", "wall", "tower", "storage"}
)

# Wall sits around the city, not on a plot
PLOTLESS_BUILDINGS: frozenset[str] = frozenset({"wall"})


def expand_costs(short: dict[str, int]) -> dict[str, int]:
    out = {k: 0 for k in RESOURCE_TYPES}
    for k, v in short.items():
        out[COST_KEYS.get(k, k)] = int(v)
    return out


def cost_of(row: Building | Research) -> dict[str, int]:
    return {k: int(getattr(row, f"cost_{k}", 0) or 0) for k in RESOURCE_TYPES}


@dataclass(frozen=True)
class BuildingDef:
    id: int
    slug: str
    name: str
    field_type: int
    costs: dict[str, int]
    construction_time: int
    power: int
    base_value: int
    bonus_value: int
    requirements: dict[str, Any] = field(default_factory=dict)
    description: str = ""


@dataclass(frozen=True)
class ResearchDef:
    id: int
    slug: str
    name: str
    costs: dict[str, int]
    power: int
    base_value: int
    bonus_value: int
    requirements: dict[str, Any] = field(default_factory=dict)
    research_time: int = DEFAULT_RESEARCH_TIME
    description: str = ""


BUILDINGS: list[BuildingDef] = [
    # City plots
    BuildingDef(1, "arena", "Arena", 0, {"f": 100, "w": 500, "s": 400, "g": 25}, 300, 500, 0, 10,
                {"age": 1}, "A large enclosed platform for performances and sporting events."),
    BuildingDef(2, "barracks", "Barracks", 0, {"f": 400, "w": 300, "s": 300, "g": 25}, 120, 100, 1, 10,
                {"age": 1}, "Train your troops. Stronger troops need a higher level Barracks."),
    BuildingDef(3, "academy", "Academy", 0, {"f": 1500, "w": 500, "s": 1500, "o": 500, "g": 200}, 180, 600, 0, 0,
                {"age": 1}, "Research new and better technologies."),
    BuildingDef(4, "cathedral", "Cathedral", 0, {"f": 1000, "w": 500, "s": 1000, "o": 500, "g": 100}, 300, 800, 1, 0,
                {"age": 2, "research": {"mysticism": 1}}, "The center of religion for your empire."),
    BuildingDef(5, "towncenter", "Towncenter", 0, {"f": 2000, "w": 5000, "s": 3000, "o": 500, "g": 500}, 600, 100, 0, 0,
                {"age": 1}, "The center of your city."),
    BuildingDef(6, "house", "House", 0, {"f": 100, "w": 500, "s": 100}, 60, 50, 1, 5,
                {"age": 1}, "Houses raise your population."),
    BuildingDef(7, "smith", "Blacksmith", 0, {"f": 100, "w": 500, "s": 500, "o": 400}, 120, 200, 1, 5,
                {"age": 1}, "Creates the metal weapons and armor for your troops."),
    BuildingDef(8, "archery", "Archery Range", 0, {"f": 400, "w": 300, "s": 300, "o": 100, "g": 50}, 120, 100, 1, 10,
                {"age": 1}, "Train ranged combat troops."),
    BuildingDef(9, "market", "Market", 0, {"f": 250, "w": 250, "s": 250, "o": 250, "g": 100}, 120, 100, 40, 5,
                {"age": 1}, "Trade resources between players. Produces gold."),
    BuildingDef(10, "stable", "Stable", 0, {"f": 600, "w": 200, "g": 25}, 120, 100, 1, 10,
                {"age": 1}, "Houses the horses used by cavalry."),
    BuildingDef(11, "tower", "Tower", 0, {"w": 500, "s": 500, "o": 100, "g": 100}, 90, 400, 0, 0,
                {"age": 1}, "Early warning of invasions."),
    BuildingDef(12, "storage", "Storehouse", 0, {"f": 300, "w": 300, "s": 100, "g": 100}, 90, 200, 0, 0,
                {"age": 1}, "Protects resources from being plundered."),
    BuildingDef(13, "wall", "Wall", 0, {"w": 500, "s": 500, "o": 500, "g": 50}, 240, 800, 0, 0,
                {"age": 1}, "Protects the city. Defensive units are built on the wall."),
    BuildingDef(17, "shrine", "Shrine", 0, {"f": 800, "w": 300, "s": 500, "o": 100, "g": 75}, 240, 300, 0, 20,
                {"age": 2, "research": {"mysticism": 2}}, "Offers blessings to your people."),

    # Resource fields
    BuildingDef(14, "farm", "Farm", 1, {"f": 200, "w": 200}, 30, 100, 100, 5,
                {"age": 1}, "Produces food."),
    BuildingDef(15, "lumbermill", "Lumbermill", 1, {"f": 100, "w": 300}, 30, 100, 100, 5,
                {"age": 1}, "Produces wood."),
    BuildingDef(16, "mine", "Mine", 1, {"f": 100, "w": 200, "s": 100}, 30, 100, 100, 5,
                {"age": 1}, "Produces ore."),
    BuildingDef(18, "quarry", "Quarry", 1, {"f": 100, "w": 200, "o": 100}, 30, 100, 100, 5,
                {"age": 1}, "Produces stone."),
]


RESEARCH: list[ResearchDef] = [
    ResearchDef(1, "woodworking", "Woodworking", {"f": 500, "w": 500, "o": 500}, 300, 10, 5,
                description="Better lumber production."),
    ResearchDef(2, "farming", "Farming", {"f": 500, "w": 500, "s": 500}, 300, 10, 5,
                description="Enhance your crop yields."),
    ResearchDef(3, "mining", "Mining", {"f": 500, "w": 1000}, 300, 10, 5,
                description="Harvest more stone and ore."),
    ResearchDef(4, "fletching", "Fletching", {"f": 1000, "w": 1000, "s": 500, "o": 500}, 600, 30, 2,
                description="Ranged troops and range."),
    ResearchDef(5, "architecture", "Architecture", {"f": 1000, "w": 2000, "s": 1000, "o": 500}, 500, 20, 2,
                description="Build faster."),
    ResearchDef(6, "metallurgy", "Metallurgy", {"f": 1000, "w": 1000, "s": 500, "o": 2000}, 600, 30, 2,
                {"buildings": {"smith": 1, "mine": 1}, "research": {"mining": 1}},
                description="Crafting of metal weapons."),
    ResearchDef(7, "craftsmanship", "Craftsmanship", {"f": 1000, "w": 2000, "s": 1000, "o": 500}, 400, 40, 5,
                {"buildings": {"lumbermill": 1}}, description="Siege engines."),
    ResearchDef(8, "conscription", "Conscription", {"f": 2000, "w": 1000}, 400, 20, 5,
                {"age": 2, "buildings": {"barracks": 1, "house": 1}}, description="Faster troop training."),
    ResearchDef(9, "mysticism", "Mysticism", {"f": 2000, "w": 2000, "s": 1000, "o": 1000}, 500, 20, 5,
                {"age": 2}, description="Cathedral and Monk units."),
    ResearchDef(10, "medicine", "Medicine", {"f": 3000, "w": 2000, "s": 1000, "o": 1000}, 500, 30, 5,
                {"age": 2}, description="Monks can heal."),
    ResearchDef(11, "engineering", "Engineering", {"f": 2000, "w": 2000, "s": 3000, "o": 2000}, 600, 40, 5,
                {"age": 2}, description="Siege units."),
    ResearchDef(12, "ballistics", "Ballistics", {"f": 2000, "w": 3000, "s": 2000, "o": 3000}, 600, 40, 5,
                {"age": 3}, description="Ranged accuracy."),
    ResearchDef(13, "hoardings", "Hoardings", {"f": 3000, "w": 3000, "s": 3000, "o": 3000, "g": 1000}, 500, 30, 5,
                {"age": 2, "buildings": {"storage": 3}}, description="More resource protection."),
    ResearchDef(14, "banking", "Banking", {"f": 3000, "w": 3000, "s": 3000, "o": 3000, "g": 3000}, 300, 20, 5,
                {"age": 2, "buildings": {"market": 3}, "research": {"hoardings": 1}},
                description="Cheaper trade."),
]


def seed_catalog(db: Session) -> dict[str, int]:
    """Insert missing catalog rows. Existing slugs are left alone."""
    have_b = {slug for (slug,) in db.query(Building.slug).all()}
    have_r = {slug for (slug,) in db.query(Research.slug).all()}

    added_b = 0
    for d in BUILDINGS:
        if d.slug in have_b:
            continue
        costs = expand_costs(d.costs)
        db.add(
            Building(
                id=d.id,
                slug=d.slug,
                name=d.name,
                description=d.description,
                field_type=d.field_type,
                construction_time=d.construction_time,
                power=d.power,
                base_value=d.base_value,
                bonus_value=d.bonus_value,
                requirements=dict(d.requirements),
                **{f"cost_{k}": v for k, v in costs.items()},
            )
        )
        added_b += 1

    added_r = 0
    for d in RESEARCH:
        if d.slug in have_r:
            continue
        costs = expand_costs(d.costs)
        db.add(
            Research(
                id=d.id,
                slug=d.slug,
                name=d.name,
                description=d.description,
                research_time=d.research_time,
                power=d.power,
                base_value=d.base_value,
                bonus_value=d.bonus_value,
                requirements=dict(d.requirements),
                **{f"cost_{k}": v for k, v in costs.items()},
            )
        )
        added_r += 1

    db.flush()
    return {"buildings": added_b, "research": added_r}
