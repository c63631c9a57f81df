# kingdoms/models/city.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base, utcnow


class City(Base):
    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Ownership
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), index=True, nullable=False)

    # One city per tile
    map_tile_id: Mapped[int] = mapped_column(
        ForeignKey("map_tiles.id"), unique=True, index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    age: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    population: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    # Resource bag. Only the poll adds to it; actions subtract at start.
    food: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    wood: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stone: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ore: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Naive UTC; NULL until the first poll
    last_resource_generation: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
