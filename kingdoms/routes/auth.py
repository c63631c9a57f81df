# kingdoms/routes/auth.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_HOURS
from kingdoms.database import get_db, utcnow
from kingdoms.models.player import Player
from kingdoms.models.session import SessionToken
from kingdoms.models.user import User

log = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/api/auth", tags=["auth"])

# Pi-friendly hashing (no native deps)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime


def user_for_token(db: Session, token: str | None) -> User | None:
    """Resolve a session token to its user, or None if missing/expired."""
    if not token:
        return None
    sess = db.query(SessionToken).filter(SessionToken.token == token).first()
    if not sess or sess.expires_at <= utcnow():
        return None
    return db.query(User).filter(User.id == sess.user_id).first()


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session_cookie: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db),
) -> User:
    token = creds.credentials if creds else session_cookie
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    sess = db.query(SessionToken).filter(SessionToken.token == token).first()
    if not sess:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")

    if sess.expires_at <= utcnow():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

    user = db.query(User).filter(User.id == sess.user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session user")

    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    email = payload.email.strip().lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "User already exists",
                "details": "An account with this email address already exists.",
            },
        )

    user = User(email=email, password_hash=pwd_context.hash(payload.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
    db.refresh(user)

    log.info("user registered user_id=%s", user.id)
    return {
        "success": True,
        "message": "User created successfully",
        "user": {"id": user.id, "email": user.email},
    }


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> LoginResponse:
    user = db.query(User).filter(User.email == payload.email.strip().lower()).first()
    if not user or not pwd_context.verify(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = secrets.token_hex(32)
    now = utcnow()
    expires_at = now + timedelta(hours=SESSION_HOURS)

    db.add(SessionToken(user_id=user.id, token=token, created_at=now, expires_at=expires_at))
    db.commit()

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )
    log.info("user logged in user_id=%s", user.id)
    return LoginResponse(token=token, expires_at=expires_at)


@router.post("/logout")
def logout(
    response: Response,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session_cookie: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db),
) -> dict:
    token = creds.credentials if creds else session_cookie
    if token:
        db.query(SessionToken).filter(SessionToken.token == token).delete(synchronize_session=False)
        db.commit()
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me")
def me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    players = db.query(Player).filter(Player.user_id == current_user.id).order_by(Player.id.asc()).all()
    return {
        "user_id": current_user.id,
        "email": current_user.email,
        "last_played_kingdom": current_user.last_played_kingdom,
        "players": [
            {"id": p.id, "name": p.name, "kingdom_id": p.kingdom_id}
            for p in players
        ],
    }
