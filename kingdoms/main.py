# kingdoms/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from kingdoms.config import AUTO_CREATE_SCHEMA, CORS_ORIGINS, LOG_LEVEL
from kingdoms.database import Base, engine
from kingdoms.models.alliance import Alliance, AllianceMember  # noqa: F401
from kingdoms.models.building import Building  # noqa: F401
from kingdoms.models.chat_message import ChatMessage, ChatRoom  # noqa: F401
from kingdoms.models.city import City  # noqa: F401
from kingdoms.models.kingdom import Kingdom  # noqa: F401
from kingdoms.models.map_tile import MapTile  # noqa: F401
from kingdoms.models.player import Player  # noqa: F401
from kingdoms.models.player_building import PlayerBuilding  # noqa: F401
from kingdoms.models.player_research import PlayerResearch  # noqa: F401
from kingdoms.models.research import Research  # noqa: F401
from kingdoms.models.session import SessionToken  # noqa: F401
from kingdoms.models.user import User  # noqa: F401
from kingdoms.routes.auth import router as auth_router
from kingdoms.routes.buildings import router as buildings_router
from kingdoms.routes.chat import router as chat_router
from kingdoms.routes.cities import router as cities_router
from kingdoms.routes.kingdom import router as kingdom_router
from kingdoms.routes.players import router as players_router
from kingdoms.routes.research import router as research_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_SCHEMA:
        Base.metadata.create_all(bind=engine)
        log.info("schema ensured (AUTO_CREATE_SCHEMA)")
    yield


app = FastAPI(title="Kingdoms Server", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(players_router)
app.include_router(cities_router)
app.include_router(buildings_router)
app.include_router(research_router)
app.include_router(kingdom_router)
app.include_router(chat_router)


# ----------------------------
# Errors render as {"error": ...}
# ----------------------------

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        body = dict(exc.detail)
        body.setdefault("error", "Request failed")
    else:
        body = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/db-ping")
def db_ping() -> dict:
    with engine.connect() as conn:
        result = conn.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "select_1": result}
