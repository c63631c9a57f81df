# kingdoms/models/map_tile.py
from __future__ import annotations

from sqlalchemy import Integer, String, ForeignKey, UniqueConstraint, JSON
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base


class MapTile(Base):
    __tablename__ = "map_tiles"
    __table_args__ = (
        UniqueConstraint("kingdom_id", "x", "y", name="uq_map_tiles_kingdom_xy"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    kingdom_id: Mapped[int] = mapped_column(ForeignKey("kingdoms.id"), index=True, nullable=False)

    x: Mapped[int] = mapped_column(Integer, nullable=False)
    y: Mapped[int] = mapped_column(Integer, nullable=False)

    # plains, forests, hills, mountains, food, barb, ruins
    type: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    resources: Mapped[dict | None] = mapped_column(JSON, nullable=True)
