# kingdoms/seed.py
"""
Seed the static catalog and a default kingdom.

    python -m kingdoms.seed [--kingdom NAME] [--size N] [--seed N] [--skip-tiles]
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from kingdoms.config import KINGDOM_SIZE, LOG_LEVEL
from kingdoms.database import SessionLocal
from kingdoms.game.catalog import seed_catalog
from kingdoms.game.kingdom_map import seed_tiles
from kingdoms.main import Base, engine
from kingdoms.models.kingdom import Kingdom
from kingdoms.models.map_tile import MapTile

log = logging.getLogger("kingdoms.seed")


def seed_kingdom(db: Session, name: str, size: int, *, seed: int | None = None, tiles: bool = True) -> Kingdom:
    kingdom = db.query(Kingdom).filter(Kingdom.name == name).first()
    if kingdom is None:
        kingdom = Kingdom(name=name, size=size)
        db.add(kingdom)
        db.flush()
        log.info("kingdom created id=%s name=%s size=%s", kingdom.id, name, size)

    if tiles:
        have = db.query(MapTile).filter(MapTile.kingdom_id == kingdom.id).count()
        if have:
            log.info("kingdom %s already has %s tiles, skipping", kingdom.id, have)
        else:
            created = seed_tiles(db, kingdom.id, kingdom.size, seed=seed)
            log.info("kingdom %s tiles created=%s", kingdom.id, created)
    return kingdom


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed catalog and kingdom map")
    parser.add_argument("--kingdom", default="Camelot")
    parser.add_argument("--size", type=int, default=KINGDOM_SIZE)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--skip-tiles", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        counts = seed_catalog(db)
        log.info("catalog seeded buildings=%s research=%s", counts["buildings"], counts["research"])
        seed_kingdom(db, args.kingdom, args.size, seed=args.seed, tiles=not args.skip_tiles)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
