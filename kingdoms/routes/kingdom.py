# kingdoms/routes/kingdom.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kingdoms.config import DEFAULT_VIEWPORT_SIZE
from kingdoms.database import get_db
from kingdoms.game.kingdom_map import tiles_in_viewport, viewport_bounds
from kingdoms.models.kingdom import Kingdom
from kingdoms.models.player import Player
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user

router = APIRouter(prefix="/api/kingdom", tags=["kingdom"])


@router.get("/{kingdom_id}/tiles")
def get_tiles(
    kingdom_id: int,
    center_x: int = Query(default=0, alias="centerX"),
    center_y: int = Query(default=0, alias="centerY"),
    viewport_size: int = Query(default=DEFAULT_VIEWPORT_SIZE, alias="viewportSize", ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    kingdom = db.query(Kingdom).filter(Kingdom.id == kingdom_id).first()
    if not kingdom:
        raise HTTPException(status_code=404, detail="Kingdom not found")

    member = (
        db.query(Player)
        .filter(Player.user_id == current_user.id, Player.kingdom_id == kingdom.id)
        .first()
    )
    if not member:
        raise HTTPException(status_code=401, detail="Not a member of this kingdom")

    vp = viewport_bounds(kingdom.id, center_x, center_y, viewport_size, kingdom.size)
    tiles = tiles_in_viewport(db, vp)
    return {
        "kingdomId": kingdom.id,
        "tiles": tiles,
        "viewport": vp.to_dict(),
        "totalTiles": len(tiles),
    }
