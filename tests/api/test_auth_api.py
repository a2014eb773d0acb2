from fastapi.testclient import TestClient

from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD
from tests.utils.users import create_random_user, get_user_authentication_headers


def test_register_and_login(client: TestClient) -> None:
    data = {"name": "Jane", "email": "jane@example.com", "password": "secret123", "role": "ORGANIZER"}

    response = client.post("/api/v1/auth/register", json=data)

    assert response.status_code == 201
    content = response.json()
    assert content["token_type"] == "bearer"
    assert content["user"]["role"] == "ORGANIZER"
    assert "password" not in content["user"]

    login = client.post("/api/v1/auth/login", json={"email": "JANE@example.com", "password": "secret123"})
    assert login.status_code == 200
    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"})
    assert me.json()["email"] == "jane@example.com"


def test_duplicate_email_is_a_conflict(client: TestClient) -> None:
    data = {"name": "Jane", "email": "dup@example.com", "password": "secret123"}
    assert client.post("/api/v1/auth/register", json=data).status_code == 201

    response = client.post("/api/v1/auth/register", json=data)

    assert response.status_code == 409
    assert response.json() == {"detail": "Email already exists", "error": "conflict"}


def test_admin_role_cannot_be_self_registered(client: TestClient) -> None:
    data = {"name": "Eve", "email": "eve@example.com", "password": "secret123", "role": "ADMIN"}

    response = client.post("/api/v1/auth/register", json=data)

    assert response.status_code == 403


def test_bad_credentials(client: TestClient) -> None:
    response = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert response.status_code == 401

    ok = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["user"]["role"] == "ADMIN"


def test_missing_or_invalid_token(client: TestClient) -> None:
    assert client.get("/api/v1/users/me").status_code == 401
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401


def test_deactivated_user_token_stops_working(client: TestClient, admin) -> None:
    user = create_random_user()
    headers = get_user_authentication_headers(user)
    assert client.get("/api/v1/users/me", headers=headers).status_code == 200

    response = client.put(
        f"/api/v1/users/{user.id}/status",
        headers=get_user_authentication_headers(admin),
        json={"is_active": False},
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert client.get("/api/v1/users/me", headers=headers).status_code == 401


def test_user_administration_is_admin_only(client: TestClient, admin) -> None:
    visitor = create_random_user()
    admin_headers = get_user_authentication_headers(admin)

    assert client.get("/api/v1/users/", headers=get_user_authentication_headers(visitor)).status_code == 403

    response = client.get("/api/v1/users/", headers=admin_headers, params={"role": "VISITOR"})
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [visitor.id]

    assert client.delete(f"/api/v1/users/{visitor.id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/v1/users/{visitor.id}", headers=admin_headers).status_code == 404
