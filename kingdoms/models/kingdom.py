# kingdoms/models/kingdom.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.config import KINGDOM_PLAYER_LIMIT, KINGDOM_SIZE
from kingdoms.database import Base, utcnow


class Kingdom(Base):
    __tablename__ = "kingdoms"

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    # Square tile grid: x, y in [0, size)
    size: Mapped[int] = mapped_column(Integer, default=KINGDOM_SIZE, nullable=False)
    max_players: Mapped[int] = mapped_column(Integer, default=KINGDOM_PLAYER_LIMIT, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
