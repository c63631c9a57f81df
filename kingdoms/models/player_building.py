# kingdoms/models/player_building.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base


class PlayerBuilding(Base):
    __tablename__ = "player_buildings"
    __table_args__ = (
        # NULL plot (wall) is exempt
        UniqueConstraint("city_id", "plot_id", name="uq_player_buildings_city_plot"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), index=True, nullable=False)
    city_id: Mapped[int] = mapped_column(ForeignKey("cities.id"), index=True, nullable=False)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id"), index=True, nullable=False)

    # "plot1".."plot45" or "field1".."field20"
    plot_id: Mapped[str | None] = mapped_column(String(16), nullable=True)

    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    is_constructing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    construction_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    construction_ends_at: Mapped[datetime | None] = mapped_column(DateTime, index=True, nullable=True)
