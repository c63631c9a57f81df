from conftest import register_and_login


def test_register_login_me(client):
    r = client.post("/api/auth/register", json={"email": "Lancelot@Example.com", "password": "guinevere1"})
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["user"]["email"] == "lancelot@example.com"

    r = client.post("/api/auth/login", json={"email": "lancelot@example.com", "password": "guinevere1"})
    assert r.status_code == 200
    token = r.json()["token"]
    assert r.json()["token_type"] == "bearer"

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["email"] == "lancelot@example.com"
    assert r.json()["players"] == []


def test_login_sets_session_cookie(client):
    register_and_login(client)
    # No Authorization header: the cookie from login authenticates
    r = client.get("/api/auth/me")
    assert r.status_code == 200


def test_duplicate_email_is_rejected(client):
    register_and_login(client)
    r = client.post("/api/auth/register", json={"email": "knight@example.com", "password": "excalibur1"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"


def test_missing_fields_are_400(client):
    r = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_bad_credentials(client):
    register_and_login(client)
    r = client.post("/api/auth/login", json={"email": "knight@example.com", "password": "wrongpass"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials"}


def test_unauthenticated_requests_are_401(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert "error" in r.json()


def test_expired_session(client, clock):
    headers = register_and_login(client)
    clock.advance(25 * 3600)
    r = client.get("/api/auth/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["error"] == "Session expired"


def test_logout_invalidates_token(client):
    headers = register_and_login(client)
    r = client.post("/api/auth/logout", headers=headers)
    assert r.status_code == 200
    r = client.get("/api/auth/me", headers=headers)
    assert r.status_code == 401
