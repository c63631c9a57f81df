# kingdoms/config.py
from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATA_DIR = PROJECT_ROOT / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = DATA_DIR / "game.db"
DATABASE_URL: str = os.getenv("KINGDOMS_DATABASE_URL", f"sqlite:///{DB_PATH.as_posix()}")

# Create tables on startup (dev). Alembic owns the schema when this is off.
AUTO_CREATE_SCHEMA: bool = os.getenv("AUTO_CREATE_SCHEMA", "1") == "1"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()
]

# Sessions
SESSION_HOURS: int = int(os.getenv("SESSION_HOURS", "24"))
SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "kingdoms_session")
SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "0") == "1"

# ----------------------------
# Game constants
# ----------------------------

RESOURCE_TYPES: tuple[str, ...] = ("food", "wood", "stone", "ore", "gold")

KINGDOM_SIZE: int = 750
KINGDOM_PLAYER_LIMIT: int = int(os.getenv("KINGDOM_PLAYER_LIMIT", "2000"))

MAX_VIEWPORT_SIZE: int = 100
DEFAULT_VIEWPORT_SIZE: int = 50
POLL_VIEWPORT_SIZE: int = 20

# Client polls every 2s; offline catch-up is counted in these units
POLL_INTERVAL_SECONDS: int = 2
BASE_GENERATION: int = 1

MAX_BUILDING_LEVEL: int = 25
MAX_RESEARCH_LEVEL: int = 25
MIN_CONSTRUCTION_TIME_RATIO: float = 0.5
DEFAULT_RESEARCH_TIME: int = 300

CITY_PLOT_COUNT: int = 45
TOWN_CENTER_PLOT: str = "plot27"

CHAT_HISTORY_LIMIT: int = 50
SOCKET_HISTORY_LIMIT: int = 20

STARTING_RESOURCES: dict[str, int] = {
    "food": 100,
    "wood": 100,
    "stone": 50,
    "ore": 50,
    "gold": 50,
}
