# kingdoms/models/chat_message.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.database import Base, utcnow


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id: Mapped[int] = mapped_column(primary_key=True)

    # "global-<kingdom_id>" / "alliance-<alliance_id>"
    name: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # GLOBAL / ALLIANCE

    kingdom_id: Mapped[int | None] = mapped_column(ForeignKey("kingdoms.id"), index=True, nullable=True)
    alliance_id: Mapped[int | None] = mapped_column(ForeignKey("alliances.id"), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(primary_key=True)

    room_id: Mapped[int] = mapped_column(ForeignKey("chat_rooms.id"), index=True, nullable=False)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), index=True, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(16), default="TEXT", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True, nullable=False)
