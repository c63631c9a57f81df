# kingdoms/models/building.py
from __future__ import annotations

from sqlalchemy import Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base


class Building(Base):
    """Catalog row. Seeded once, read-only at runtime."""

    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(primary_key=True)

    slug: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # 0 = city plot, 1 = resource field
    field_type: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    cost_food: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_wood: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_stone: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_ore: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_gold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    construction_time: Mapped[int] = mapped_column(Integer, default=60, nullable=False)

    power: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    base_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bonus_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # {"age": 2, "buildings": {"smith": 1}, "research": {"mining": 1}}
    requirements: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
