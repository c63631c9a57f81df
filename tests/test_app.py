def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_validation_errors_render_as_error_body(client, player):
    r = client.post(f"/api/city/{player['city_id']}/build", json={}, headers=player["headers"])
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Invalid request"
    assert any("buildingSlug" in d["loc"] for d in body["details"])


def test_unknown_city_is_404(client, player):
    r = client.get("/api/city/12345/poll", headers=player["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "City not found or access denied"}
