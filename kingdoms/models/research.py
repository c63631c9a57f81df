# kingdoms/models/research.py
from __future__ import annotations

from sqlalchemy import Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.config import DEFAULT_RESEARCH_TIME
from kingdoms.database import Base


class Research(Base):
    """Catalog row. base_value/bonus_value are percentages."""

    __tablename__ = "research"

    id: Mapped[int] = mapped_column(primary_key=True)

    slug: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    cost_food: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_wood: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_stone: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_ore: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_gold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    research_time: Mapped[int] = mapped_column(Integer, default=DEFAULT_RESEARCH_TIME, nullable=False)

    power: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    base_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bonus_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    requirements: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
