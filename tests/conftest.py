"""Shared fixtures: in-memory database, seeded catalog and kingdom, API client, fixed clock."""

import os
from datetime import datetime, timedelta

os.environ.setdefault("AUTO_CREATE_SCHEMA", "0")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kingdoms.database import get_db  # noqa: E402
from kingdoms.game.catalog import seed_catalog  # noqa: E402
from kingdoms.game.kingdom_map import seed_tiles  # noqa: E402
from kingdoms.main import Base, app  # noqa: E402
from kingdoms.models.building import Building  # noqa: E402
from kingdoms.models.city import City  # noqa: E402
from kingdoms.models.kingdom import Kingdom  # noqa: E402
from kingdoms.models.player_building import PlayerBuilding  # noqa: E402
from kingdoms.models.player_research import PlayerResearch  # noqa: E402
from kingdoms.models.research import Research  # noqa: E402

TEST_KINGDOM_SIZE = 30

# Modules that read the clock through kingdoms.database.utcnow
CLOCK_MODULES = (
    "kingdoms.routes.auth",
    "kingdoms.routes.cities",
    "kingdoms.routes.buildings",
    "kingdoms.routes.research",
)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    db = factory()
    seed_catalog(db)
    kingdom = Kingdom(name="Camelot", size=TEST_KINGDOM_SIZE)
    db.add(kingdom)
    db.flush()
    seed_tiles(db, kingdom.id, TEST_KINGDOM_SIZE, seed=7)
    db.commit()
    db.close()
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2026, 1, 1, 12, 0, 0))
    for module in CLOCK_MODULES:
        monkeypatch.setattr(f"{module}.utcnow", frozen)
    return frozen


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ----------------------------
# Helpers
# ----------------------------

def register_and_login(client, email="knight@example.com", password="excalibur1"):
    r = client.post("/api/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


def create_player(client, headers, name="Arthur"):
    r = client.post(
        "/api/player/create",
        json={"name": name, "gender": "male", "avatar": "avatar1"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def player(client):
    """A registered user with a player and a founded capital."""
    headers = register_and_login(client)
    body = create_player(client, headers)
    return {
        "headers": headers,
        "player_id": body["player"]["id"],
        "city_id": body["city"]["id"],
        "kingdom_id": body["kingdom"]["id"],
    }


def set_resources(db, city_id, **amounts):
    city = db.get(City, city_id)
    for k, v in amounts.items():
        setattr(city, k, v)
    db.commit()


def rich(db, city_id, amount=100_000):
    set_resources(db, city_id, food=amount, wood=amount, stone=amount, ore=amount, gold=amount)


def add_building(db, city_id, slug, plot_id=None, level=1, constructing=False, ends_at=None):
    city = db.get(City, city_id)
    b = db.query(Building).filter(Building.slug == slug).one()
    pb = PlayerBuilding(
        player_id=city.player_id,
        city_id=city.id,
        building_id=b.id,
        plot_id=plot_id,
        level=level,
        is_constructing=constructing,
        construction_started_at=ends_at - timedelta(seconds=b.construction_time) if ends_at else None,
        construction_ends_at=ends_at,
    )
    db.add(pb)
    db.commit()
    return pb.id


def add_research(db, city_id, slug, level=1, researching=False, ends_at=None):
    city = db.get(City, city_id)
    r = db.query(Research).filter(Research.slug == slug).one()
    pr = PlayerResearch(
        player_id=city.player_id,
        city_id=city.id,
        research_id=r.id,
        level=level,
        is_researching=researching,
        research_ends_at=ends_at,
    )
    db.add(pr)
    db.commit()
    return r.id
