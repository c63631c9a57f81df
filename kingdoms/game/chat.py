# kingdoms/game/chat.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from kingdoms.models.alliance import AllianceMember
from kingdoms.models.chat_message import ChatMessage, ChatRoom
from kingdoms.models.player import Player

ROOM_KINDS: tuple[str, ...] = ("global", "alliance")


def resolve_room(db: Session, player: Player, kind: str, *, create: bool = True) -> Optional[ChatRoom]:
    """
    global   -> the player's kingdom room
    alliance -> the player's alliance room (None without a membership)
    """
    if kind == "global":
        name, room_type = f"global-{player.kingdom_id}", "GLOBAL"
        owner = {"kingdom_id": player.kingdom_id}
    elif kind == "alliance":
        membership = db.query(AllianceMember).filter(AllianceMember.player_id == player.id).first()
        if not membership:
            return None
        name, room_type = f"alliance-{membership.alliance_id}", "ALLIANCE"
        owner = {"alliance_id": membership.alliance_id}
    else:
        return None

    room = db.query(ChatRoom).filter(ChatRoom.name == name).first()
    if room or not create:
        return room

    room = ChatRoom(name=name, type=room_type, **owner)
    db.add(room)
    db.flush()
    return room


def post_message(db: Session, *, room: ChatRoom, player: Player, content: str) -> ChatMessage:
    msg = ChatMessage(
        room_id=int(room.id),
        player_id=int(player.id),
        content=str(content).strip(),
        message_type="TEXT",
    )
    db.add(msg)
    db.flush()
    return msg


def recent_messages(db: Session, room: ChatRoom, limit: int) -> list[dict]:
    """Newest `limit` messages, returned oldest first."""
    rows = (
        db.query(ChatMessage, Player.name)
        .join(Player, Player.id == ChatMessage.player_id)
        .filter(ChatMessage.room_id == room.id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    rows.reverse()
    return [message_to_dict(m, name) for m, name in rows]


def message_to_dict(m: ChatMessage, player_name: str) -> dict:
    return {
        "id": int(m.id),
        "playerId": int(m.player_id),
        "playerName": player_name,
        "content": m.content,
        "messageType": m.message_type,
        "createdAt": m.created_at.isoformat() if m.created_at else None,
    }
