from security.hashing import hash_password, verify_password

PASSWORD = "secret123"


def _register(client, username, email, role="driver", headers=None):
    return client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": PASSWORD, "role": role},
        headers=headers or {},
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "OK"}


def test_first_account_can_register_without_token(client):
    r = _register(client, "owner", "owner@eastmeadow.com", role="admin")
    assert r.status_code == 201
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["user"]["role"] == "admin"


def test_register_closed_once_users_exist(client, office, admin):
    assert _register(client, "newbie", "newbie@eastmeadow.com").status_code == 401
    assert _register(client, "newbie", "newbie@eastmeadow.com", headers=office["headers"]).status_code == 403

    r = _register(client, "newbie", "newbie@eastmeadow.com", headers=admin["headers"])
    assert r.status_code == 201
    assert r.json()["user"]["role"] == "driver"


def test_register_duplicate(client, admin):
    r = _register(client, "admin2", admin["email"], headers=admin["headers"])
    assert r.status_code == 400
    assert "already exists" in r.json()["detail"]


def test_register_validates_payload(client):
    r = client.post("/api/auth/register", json={"username": "ab", "email": "x@eastmeadow.com", "password": "123"})
    assert r.status_code == 422


def test_login(client, office):
    r = client.post("/api/auth/login", json={"email": office["email"].upper(), "password": PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["id"] == office["id"]
    assert body["user"]["role"] == "office"
    assert "password_hash" not in body["user"]


def test_login_wrong_password(client, office):
    r = client.post("/api/auth/login", json={"email": office["email"], "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


def test_login_unknown_email(client):
    r = client.post("/api/auth/login", json={"email": "ghost@eastmeadow.com", "password": PASSWORD})
    assert r.status_code == 401


def test_me(client, driver):
    r = client.get("/api/auth/me", headers=driver["headers"])
    assert r.status_code == 200
    assert r.json()["username"] == "driver1"


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Could not validate credentials"


def test_refresh_and_logout(client, office):
    r = client.post("/api/auth/refresh", headers=office["headers"])
    assert r.status_code == 200
    new_headers = {"Authorization": f"Bearer {r.json()['access_token']}"}
    assert client.get("/api/auth/me", headers=new_headers).status_code == 200
    assert client.post("/api/auth/logout", headers=office["headers"]).status_code == 200


def test_overlong_password_rejected(client):
    r = client.post(
        "/api/auth/register",
        json={"username": "owner", "email": "owner@eastmeadow.com", "password": "p" * 73, "role": "admin"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Password is too long (max 72 bytes)"


def test_overlong_password_never_verifies():
    hashed = hash_password("p" * 72)
    assert verify_password("p" * 72, hashed)
    assert not verify_password("p" * 73, hashed)
