# kingdoms/game/kingdom_map.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from kingdoms.config import MAX_VIEWPORT_SIZE
from kingdoms.models.city import City
from kingdoms.models.map_tile import MapTile
from kingdoms.models.player import Player

# type -> (frequency, {resource: (min, max)})
TILE_TYPES: dict[str, tuple[float, dict[str, tuple[int, int]]]] = {
    "plains":    (0.35, {"food": (50, 100),  "wood": (20, 50),   "stone": (10, 30),   "gold": (5, 15)}),
    "forests":   (0.25, {"food": (20, 50),   "wood": (120, 200), "stone": (5, 15),    "gold": (10, 25)}),
    "hills":     (0.20, {"food": (10, 30),   "wood": (15, 50),   "stone": (100, 180), "gold": (20, 45)}),
    "mountains": (0.10, {"food": (2, 10),    "wood": (5, 20),    "stone": (150, 300), "gold": (80, 200)}),
    "food":      (0.06, {"food": (150, 300), "wood": (10, 30),   "stone": (5, 20),    "gold": (5, 15)}),
    "barb":      (0.03, {"food": (10, 40),   "wood": (20, 60),   "stone": (40, 120),  "gold": (60, 180)}),
    "ruins":     (0.01, {"food": (0, 5),     "wood": (0, 10),    "stone": (100, 250), "gold": (200, 500)}),
}

MAX_TILE_LEVEL = 20


def tile_resources(tile_type: str, rng: random.Random) -> dict[str, int]:
    _, ranges = TILE_TYPES[tile_type]
    return {k: rng.randint(lo, hi) for k, (lo, hi) in ranges.items()}


def generate_tiles(size: int, rng: Optional[random.Random] = None) -> Iterator[dict]:
    """
    Yield one row per coordinate of a size x size grid.

    Each terrain type gets floor(total * frequency) tiles, plains take the
    remainder, and coordinates are shuffled so types are scattered.
    """
    rng = rng or random.Random()
    total = size * size

    counts = {t: int(total * freq) for t, (freq, _) in TILE_TYPES.items()}
    counts["plains"] += total - sum(counts.values())

    coords = [(x, y) for x in range(size) for y in range(size)]
    rng.shuffle(coords)

    i = 0
    for tile_type, count in counts.items():
        for _ in range(count):
            x, y = coords[i]
            i += 1
            yield {
                "x": x,
                "y": y,
                "type": tile_type,
                "level": rng.randint(1, MAX_TILE_LEVEL),
                "resources": tile_resources(tile_type, rng),
            }


def seed_tiles(db: Session, kingdom_id: int, size: int, *, batch_size: int = 5000, seed: Optional[int] = None) -> int:
    rng = random.Random(seed)
    batch: list[dict] = []
    created = 0
    for row in generate_tiles(size, rng):
        row["kingdom_id"] = kingdom_id
        batch.append(row)
        if len(batch) >= batch_size:
            db.bulk_insert_mappings(MapTile, batch)
            created += len(batch)
            batch = []
    if batch:
        db.bulk_insert_mappings(MapTile, batch)
        created += len(batch)
    db.flush()
    return created


# ----------------------------
# Viewport
# ----------------------------

@dataclass(frozen=True)
class Viewport:
    kingdom_id: int
    center_x: int
    center_y: int
    size: int
    start_x: int
    end_x: int
    start_y: int
    end_y: int

    @property
    def key(self) -> str:
        # Stable cache key for a client-side viewport cache
        return f"{self.kingdom_id}:{self.start_x}:{self.start_y}:{self.end_x}:{self.end_y}"

    def to_dict(self) -> dict:
        return {
            "startX": self.start_x,
            "endX": self.end_x,
            "startY": self.start_y,
            "endY": self.end_y,
            "centerX": self.center_x,
            "centerY": self.center_y,
            "size": self.size,
            "key": self.key,
        }


def viewport_bounds(kingdom_id: int, center_x: int, center_y: int, size: int, grid_size: int) -> Viewport:
    """size x size window (at most MAX_VIEWPORT_SIZE) around the center, clamped to [0, grid_size)."""
    size = max(1, min(int(size), MAX_VIEWPORT_SIZE))
    half = size // 2
    last = grid_size - 1
    center_x = min(max(0, int(center_x)), last)
    center_y = min(max(0, int(center_y)), last)
    left, top = center_x - half, center_y - half
    return Viewport(
        kingdom_id=kingdom_id,
        center_x=int(center_x),
        center_y=int(center_y),
        size=size,
        start_x=max(0, left),
        end_x=min(last, left + size - 1),
        start_y=max(0, top),
        end_y=min(last, top + size - 1),
    )


def tiles_in_viewport(db: Session, vp: Viewport) -> list[dict]:
    rows = (
        db.query(MapTile, City, Player)
        .outerjoin(City, City.map_tile_id == MapTile.id)
        .outerjoin(Player, Player.id == City.player_id)
        .filter(
            MapTile.kingdom_id == vp.kingdom_id,
            MapTile.x >= vp.start_x,
            MapTile.x <= vp.end_x,
            MapTile.y >= vp.start_y,
            MapTile.y <= vp.end_y,
        )
        .order_by(MapTile.y.asc(), MapTile.x.asc())
        .all()
    )
    return [tile_to_dict(t, c, p) for t, c, p in rows]


def tile_to_dict(tile: MapTile, city: Optional[City], player: Optional[Player]) -> dict:
    return {
        "id": tile.id,
        "type": tile.type,
        "x": tile.x,
        "y": tile.y,
        "level": tile.level,
        "city": (
            {
                "id": city.id,
                "name": city.name,
                "age": city.age,
                "player": {"id": player.id, "name": player.name} if player else None,
                "playerName": player.name if player else None,
            }
            if city
            else None
        ),
    }
