# kingdoms/models/player.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base, utcnow


class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    kingdom_id: Mapped[int] = mapped_column(ForeignKey("kingdoms.id"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(40), nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    avatar: Mapped[str] = mapped_column(String(64), nullable=False)

    # City the client opened last (not a FK, cities can be demolished later)
    last_city: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
