from datetime import timedelta

from kingdoms.game.economy import apply_city_poll
from kingdoms.models.city import City
from kingdoms.models.map_tile import MapTile

from conftest import add_building, add_research, register_and_login, rich, set_resources


def poll(client, player):
    r = client.get(f"/api/city/{player['city_id']}/poll", headers=player["headers"])
    assert r.status_code == 200, r.text
    return r.json()


def last_generated(db, player, clock, seconds_ago):
    set_resources(db, player["city_id"], last_resource_generation=clock.now - timedelta(seconds=seconds_ago))


def test_first_poll_adds_base_generation(client, player, clock):
    body = poll(client, player)
    assert body["generation"]["amounts"] == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}
    assert body["generation"]["offlinePolls"] == 0
    assert body["city"]["food"] == 101
    assert body["city"]["gold"] == 51
    assert body["city"]["lastResourceGeneration"] == clock.now.isoformat()


def test_poll_with_no_producers_after_two_seconds(client, db, player, clock):
    last_generated(db, player, clock, 2)
    body = poll(client, player)
    assert body["generation"]["amounts"] == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}


def test_offline_catch_up(client, db, player, clock):
    last_generated(db, player, clock, 10)
    body = poll(client, player)
    assert body["generation"]["offlinePolls"] == 5
    assert body["generation"]["elapsedSeconds"] == 10
    assert body["city"]["food"] == 106


def test_level_one_farm_adds_101_food(client, db, player, clock):
    add_building(db, player["city_id"], "farm", "field1", level=1)
    last_generated(db, player, clock, 2)
    body = poll(client, player)
    assert body["generation"]["amounts"]["food"] == 101
    assert body["generation"]["amounts"]["wood"] == 1
    assert body["city"]["food"] == 201

    farm = body["resourceBuildings"][0]
    assert farm["slug"] == "farm"
    assert farm["production"] == 100
    assert body["cityStats"]["productionPerPoll"]["food"] == 100


def test_farming_research_boosts_food(client, db, player, clock):
    add_building(db, player["city_id"], "farm", "field1", level=1)
    add_research(db, player["city_id"], "farming", level=1)
    last_generated(db, player, clock, 2)
    body = poll(client, player)
    assert body["researchBonuses"]["farming"] == 10
    assert body["generation"]["amounts"]["food"] == 111


def test_farming_counts_while_researching(client, db, player, clock):
    add_building(db, player["city_id"], "farm", "field1", level=1)
    add_research(db, player["city_id"], "farming", level=1, researching=True, ends_at=clock.now)
    last_generated(db, player, clock, 2)
    body = poll(client, player)
    assert body["researchBonuses"]["farming"] == 10
    assert body["generation"]["amounts"]["food"] == 111


def test_constructing_buildings_do_not_produce(client, db, player, clock):
    add_building(db, player["city_id"], "farm", "field1", level=1, constructing=True, ends_at=clock.now)
    last_generated(db, player, clock, 2)
    body = poll(client, player)
    assert body["generation"]["amounts"]["food"] == 1
    assert body["resourceBuildings"] == []


def test_poll_reports_due_timers_without_completing_them(client, db, player, clock):
    rich(db, player["city_id"])
    r = client.post(
        f"/api/city/{player['city_id']}/build",
        json={"buildingSlug": "house", "plotId": "plot1"},
        headers=player["headers"],
    )
    pb_id = r.json()["playerBuilding"]["id"]

    body = poll(client, player)
    assert [c["id"] for c in body["timers"]["constructing"]] == [pb_id]
    assert body["timers"]["readyConstructions"] == []

    clock.advance(60)
    body = poll(client, player)
    assert body["timers"]["readyConstructions"] == [pb_id]
    # Still constructing until completed explicitly
    assert body["timers"]["constructing"][0]["isConstructing"] is True


def test_poll_never_decreases_resources(client, db, player, clock):
    seen = []
    for step in (0, 1, 3, 30):
        clock.advance(step)
        seen.append(poll(client, player)["city"]["food"])
    assert seen == sorted(seen)


def test_kingdom_map_window_centred_on_city(client, db, player):
    body = poll(client, player)
    tile = db.get(MapTile, body["city"]["mapTileId"])
    vp = body["kingdomMap"]["viewport"]
    assert vp["size"] == 20
    assert vp["startX"] == max(0, tile.x - 10)
    assert vp["endX"] == min(29, tile.x + 9)
    assert vp["startY"] == max(0, tile.y - 10)
    assert vp["endY"] == min(29, tile.y + 9)

    tiles = body["kingdomMap"]["tiles"]
    assert len(tiles) == (vp["endX"] - vp["startX"] + 1) * (vp["endY"] - vp["startY"] + 1)
    mine = next(t for t in tiles if t["id"] == tile.id)
    assert mine["city"]["id"] == player["city_id"]
    assert mine["city"]["playerName"] == "Arthur"


def test_city_data_does_not_accrue(client, db, player):
    r = client.get(f"/api/city/{player['city_id']}/data", headers=player["headers"])
    assert r.status_code == 200
    assert r.json()["city"]["food"] == 100
    assert r.json()["city"]["lastResourceGeneration"] is None


def test_poll_other_users_city_is_404(client, player):
    other = register_and_login(client, email="mordred@example.com")
    r = client.get(f"/api/city/{player['city_id']}/poll", headers=other)
    assert r.status_code == 404


def test_overlapping_poll_applies_nothing(db, session_factory, player, clock):
    last_generated(db, player, clock, 10)
    city = db.get(City, player["city_id"])
    stale_food = city.food

    # Another poll moves the row first
    other = session_factory()
    other_city = other.get(City, player["city_id"])
    apply_city_poll(other, other_city, clock.now)
    other.commit()
    moved_food = other_city.food
    other.close()

    accrual = apply_city_poll(db, city, clock.now + timedelta(seconds=1))
    db.commit()
    assert accrual.offline_polls == 0
    assert accrual.total == {"food": 0, "wood": 0, "stone": 0, "ore": 0, "gold": 0}
    assert moved_food == stale_food + 6
    assert city.food == moved_food
