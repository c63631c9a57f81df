# kingdoms/routes/chat.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from kingdoms.config import CHAT_HISTORY_LIMIT, SESSION_COOKIE_NAME, SOCKET_HISTORY_LIMIT
from kingdoms.database import get_db
from kingdoms.game.chat import ROOM_KINDS, message_to_dict, post_message, recent_messages, resolve_room
from kingdoms.models.player import Player
from kingdoms.models.user import User
from kingdoms.routes.auth import get_current_user, user_for_token

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

MAX_MESSAGE_LENGTH = 500


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room: str
    content: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    player_id: Optional[int] = Field(default=None, alias="playerId")


class ChatHub:
    """Sockets subscribed per room name. Delivery is best effort, in arrival order."""

    def __init__(self) -> None:
        self.rooms: dict[str, set[WebSocket]] = {}

    def join(self, room_name: str, ws: WebSocket) -> None:
        self.rooms.setdefault(room_name, set()).add(ws)

    def leave(self, room_name: str, ws: WebSocket) -> None:
        members = self.rooms.get(room_name)
        if not members:
            return
        members.discard(ws)
        if not members:
            del self.rooms[room_name]

    def leave_all(self, ws: WebSocket) -> None:
        for room_name in list(self.rooms):
            self.leave(room_name, ws)

    async def broadcast(self, room_name: str, payload: dict) -> int:
        sent = 0
        for ws in list(self.rooms.get(room_name, ())):
            try:
                await ws.send_json(payload)
                sent += 1
            except (RuntimeError, WebSocketDisconnect):
                self.leave(room_name, ws)
        return sent


hub = ChatHub()


def _active_player(db: Session, user: User, player_id: Optional[int] = None) -> Optional[Player]:
    q = db.query(Player).filter(Player.user_id == user.id)
    if player_id is not None:
        return q.filter(Player.id == player_id).first()
    if user.last_played_kingdom is not None:
        player = q.filter(Player.kingdom_id == user.last_played_kingdom).first()
        if player:
            return player
    return q.order_by(Player.id.asc()).first()


def _room_or_400(db: Session, player: Player, kind: str):
    if kind not in ROOM_KINDS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid room")
    room = resolve_room(db, player, kind)
    if room is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chat room not available")
    return room


# ----------------------------
# REST fallback
# ----------------------------

@router.get("/chat/{room_kind}/messages")
def get_messages(
    room_kind: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    player = _active_player(db, current_user)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    room = _room_or_400(db, player, room_kind)
    db.commit()
    return {
        "room": room_kind,
        "roomName": room.name,
        "messages": recent_messages(db, room, CHAT_HISTORY_LIMIT),
    }


def _save_message(db: Session, user: User, payload: SendMessageRequest) -> tuple[str, dict]:
    player = _active_player(db, user, payload.player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required")

    room = _room_or_400(db, player, payload.room)
    msg = post_message(db, room=room, player=player, content=content)
    db.commit()
    db.refresh(msg)
    return room.name, message_to_dict(msg, player.name)


@router.post("/chat/send", status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: SendMessageRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    room_name, message = await run_in_threadpool(_save_message, db, current_user, payload)
    await hub.broadcast(room_name, {"event": "new-message", "room": payload.room, "message": message})
    return {"success": True, "message": message}


# ----------------------------
# Socket
# ----------------------------
# Database work runs in the threadpool; only socket sends stay on the event loop.

def _socket_player(db: Session, token: Optional[str]) -> tuple[Optional[User], Optional[Player]]:
    user = user_for_token(db, token)
    if user is None:
        return None, None
    return user, _active_player(db, user)


def _open_room(db: Session, player: Player, kind: str) -> Optional[tuple[str, list[dict]]]:
    room = resolve_room(db, player, kind) if kind in ROOM_KINDS else None
    if room is None:
        return None
    db.commit()
    return room.name, recent_messages(db, room, SOCKET_HISTORY_LIMIT)


def _existing_room_name(db: Session, player: Player, kind: str) -> Optional[str]:
    room = resolve_room(db, player, kind, create=False) if kind in ROOM_KINDS else None
    return room.name if room is not None else None


def _persist_socket_message(db: Session, player: Player, kind: str, content: str) -> tuple[str, dict]:
    """Raises LookupError when the room is unavailable, SQLAlchemyError when the write fails."""
    room = resolve_room(db, player, kind) if kind in ROOM_KINDS else None
    if room is None:
        raise LookupError(kind)
    try:
        msg = post_message(db, room=room, player=player, content=content)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return room.name, message_to_dict(msg, player.name)


@router.websocket("/socket")
async def chat_socket(ws: WebSocket, db: Session = Depends(get_db)):
    """
    JSON frames in:  {"event": "join-room" | "leave-room" | "send-message", "room": ..., "content": ...}
    JSON frames out: message-history, new-message, message-error
    """
    token = ws.query_params.get("token") or ws.cookies.get(SESSION_COOKIE_NAME)
    user, player = await run_in_threadpool(_socket_player, db, token)
    if user is None:
        await ws.close(code=4001, reason="Unauthorized")
        return
    if player is None:
        await ws.close(code=4004, reason="Player not found")
        return

    player_id = player.id
    await ws.accept()
    log.info("chat socket connected player_id=%s", player_id)

    try:
        while True:
            try:
                data = await ws.receive_json()
            except ValueError:
                await ws.send_json({"event": "message-error", "error": "Invalid JSON"})
                continue

            if not isinstance(data, dict):
                await ws.send_json({"event": "message-error", "error": "Must be JSON object"})
                continue

            event = data.get("event", "")
            kind = str(data.get("room", ""))

            if event == "join-room":
                opened = await run_in_threadpool(_open_room, db, player, kind)
                if opened is None:
                    await ws.send_json({"event": "message-error", "room": kind, "error": "Chat room not available"})
                    continue
                room_name, messages = opened
                hub.join(room_name, ws)
                await ws.send_json(
                    {"event": "message-history", "room": kind, "roomName": room_name, "messages": messages}
                )

            elif event == "leave-room":
                room_name = await run_in_threadpool(_existing_room_name, db, player, kind)
                if room_name is not None:
                    hub.leave(room_name, ws)

            elif event == "send-message":
                content = str(data.get("content") or "").strip()
                if not content or len(content) > MAX_MESSAGE_LENGTH:
                    await ws.send_json({"event": "message-error", "room": kind, "error": "Invalid message content"})
                    continue

                try:
                    room_name, message = await run_in_threadpool(_persist_socket_message, db, player, kind, content)
                except LookupError:
                    await ws.send_json({"event": "message-error", "room": kind, "error": "Chat room not available"})
                    continue
                except SQLAlchemyError:
                    log.exception("chat message persist failed player_id=%s room=%s", player_id, kind)
                    await ws.send_json({"event": "message-error", "room": kind, "error": "Failed to save message"})
                    continue

                sent = await hub.broadcast(room_name, {"event": "new-message", "room": kind, "message": message})
                log.info("chat message broadcast room=%s player_id=%s receivers=%s", room_name, player_id, sent)

            else:
                await ws.send_json({"event": "message-error", "error": f"Unknown event: {event}"})

    except WebSocketDisconnect:
        pass
    finally:
        hub.leave_all(ws)
        log.info("chat socket disconnected player_id=%s", player_id)
