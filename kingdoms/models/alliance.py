# kingdoms/models/alliance.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base, utcnow


class Alliance(Base):
    __tablename__ = "alliances"

    id: Mapped[int] = mapped_column(primary_key=True)

    kingdom_id: Mapped[int] = mapped_column(ForeignKey("kingdoms.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class AllianceMember(Base):
    __tablename__ = "alliance_members"

    id: Mapped[int] = mapped_column(primary_key=True)

    alliance_id: Mapped[int] = mapped_column(ForeignKey("alliances.id"), index=True, nullable=False)
    # A player belongs to at most one alliance
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), unique=True, nullable=False)

    role: Mapped[str] = mapped_column(String(16), default="member", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
