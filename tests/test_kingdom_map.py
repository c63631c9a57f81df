import random
from collections import Counter

from kingdoms.game.kingdom_map import TILE_TYPES, generate_tiles, viewport_bounds

from conftest import register_and_login


def test_generate_tiles_covers_grid_once():
    rows = list(generate_tiles(40, random.Random(1)))
    assert len(rows) == 1600
    assert len({(r["x"], r["y"]) for r in rows}) == 1600
    assert all(1 <= r["level"] <= 20 for r in rows)


def test_generate_tiles_follows_frequencies():
    counts = Counter(r["type"] for r in generate_tiles(100, random.Random(2)))
    assert counts["forests"] == 2500
    assert counts["ruins"] == 100
    assert sum(counts.values()) == 10_000
    assert set(counts) == set(TILE_TYPES)


def test_generate_tiles_is_reproducible_with_seed():
    a = list(generate_tiles(10, random.Random(5)))
    b = list(generate_tiles(10, random.Random(5)))
    assert a == b


def test_viewport_is_clamped():
    vp = viewport_bounds(1, 0, 0, 50, 750)
    assert (vp.start_x, vp.end_x, vp.start_y, vp.end_y) == (0, 24, 0, 24)

    vp = viewport_bounds(1, 749, 749, 50, 750)
    assert (vp.start_x, vp.end_x) == (724, 749)

    vp = viewport_bounds(1, 5000, -10, 500, 750)
    assert vp.size == 100
    assert (vp.start_x, vp.end_x, vp.start_y, vp.end_y) == (699, 749, 0, 49)
    assert vp.key == "1:699:0:749:49"


def test_viewport_is_never_wider_than_its_size():
    vp = viewport_bounds(1, 375, 375, 100, 750)
    assert (vp.start_x, vp.end_x) == (325, 424)
    assert vp.end_x - vp.start_x + 1 == 100
    assert vp.end_y - vp.start_y + 1 == 100


def test_tiles_endpoint(client, player):
    r = client.get(
        f"/api/kingdom/{player['kingdom_id']}/tiles",
        params={"centerX": 5, "centerY": 5, "viewportSize": 6},
        headers=player["headers"],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["viewport"]["startX"] == 2
    assert body["viewport"]["endX"] == 7
    assert body["totalTiles"] == 36
    coords = [(t["y"], t["x"]) for t in body["tiles"]]
    assert coords == sorted(coords)


def test_tiles_endpoint_defaults_to_fifty(client, player):
    r = client.get(f"/api/kingdom/{player['kingdom_id']}/tiles", headers=player["headers"])
    vp = r.json()["viewport"]
    assert vp["size"] == 50
    # The test kingdom is 30 x 30
    assert (vp["startX"], vp["endX"]) == (0, 24)


def test_tiles_require_membership(client, player):
    outsider = register_and_login(client, email="outsider@example.com")
    r = client.get(f"/api/kingdom/{player['kingdom_id']}/tiles", headers=outsider)
    assert r.status_code == 401


def test_unknown_kingdom_is_404(client, player):
    r = client.get("/api/kingdom/999/tiles", headers=player["headers"])
    assert r.status_code == 404
