# kingdoms/models/player_research.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base


class PlayerResearch(Base):
    __tablename__ = "player_research"
    __table_args__ = (
        UniqueConstraint("city_id", "research_id", name="uq_player_research_city_research"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), index=True, nullable=False)
    city_id: Mapped[int] = mapped_column(ForeignKey("cities.id"), index=True, nullable=False)
    research_id: Mapped[int] = mapped_column(ForeignKey("research.id"), index=True, nullable=False)

    # Raised when research starts, so an in-progress row is one level ahead
    level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_researching: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    research_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    research_ends_at: Mapped[datetime | None] = mapped_column(DateTime, index=True, nullable=True)
