"""Tests covering the /auth endpoints."""

from __future__ import annotations

from flask.testing import FlaskClient
from flask_jwt_extended import create_access_token


def _register(client: FlaskClient, **payload) -> dict:
    payload.setdefault("email", "a@x.com")
    response = client.post("/auth/register", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def test_register_provisions_user_and_sends_welcome(client, outbox):
    data = _register(client, email="a@x.com", role="Trainer")

    assert data["mode"] == "durable"
    assert data["notified"] is True
    user = data["user"]
    assert user["role"] == "Trainer"
    assert user["skills"] == []
    assert user["profilePic"] is None
    assert "password_hash" not in user

    (message,) = outbox
    assert message.kind == "welcome"
    assert message.to == "a@x.com"


def test_register_then_login_with_temporary_password(client, outbox):
    _register(client)
    temp_password = outbox[0].params["temp_password"]

    response = client.post("/auth/login", json={"email": "a@x.com", "password": temp_password})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["access_token"]
    assert payload["user"]["email"] == "a@x.com"


def test_login_rejects_bad_credentials(client):
    _register(client)

    response = client.post("/auth/login", json={"email": "a@x.com", "password": "nope"})

    assert response.status_code == 401
    assert response.get_json()["error"] == "Unauthorized"


def test_register_validation_errors(client):
    missing = client.post("/auth/register", json={"role": "Trainer"})
    assert missing.status_code == 400
    assert "email" in missing.get_json()["detail"]

    invalid = client.post("/auth/register", json={"email": "not-an-email"})
    assert invalid.status_code == 400
    assert invalid.get_json()["error"] == "Bad Request"

    bad_role = client.post("/auth/register", json={"email": "a@x.com", "role": "Janitor"})
    assert bad_role.status_code == 400


def test_register_duplicate_email_conflicts(client):
    _register(client)

    response = client.post("/auth/register", json={"email": "A@X.com"})

    assert response.status_code == 409
    payload = response.get_json()
    assert payload["error"] == "Conflict"
    assert payload["request_id"]


def test_list_get_update_delete(client):
    user = _register(client, name="Ann")["user"]

    listing = client.get("/auth")
    assert listing.status_code == 200
    assert listing.get_json()["success"] is True
    assert [item["email"] for item in listing.get_json()["data"]] == ["a@x.com"]

    fetched = client.get(f"/auth/{user['id']}")
    assert fetched.status_code == 200
    assert fetched.get_json()["name"] == "Ann"

    patched = client.patch(
        f"/auth/{user['id']}", json={"skills": '["react","nest"]', "phone": "555"}
    )
    assert patched.status_code == 200
    body = patched.get_json()
    assert body["skills"] == ["react", "nest"]
    assert body["phone"] == "555"
    assert body["name"] == "Ann"

    deleted = client.delete(f"/auth/users/{user['id']}")
    assert deleted.status_code == 200
    assert client.get(f"/auth/{user['id']}").status_code == 404


def test_missing_users_return_404(client):
    assert client.get("/auth/999").status_code == 404
    assert client.patch("/auth/999", json={"name": "x"}).status_code == 404

    response = client.delete("/auth/users/999")
    assert response.status_code == 404
    assert "999" in response.get_json()["detail"]


def test_outage_create_list_delete_use_fallback(client, outbox, store_outage):
    created = _register(client, email="jane@x.com")

    assert created["mode"] == "fallback"
    assert created["user"]["name"] == "jane"
    assert outbox[0].to == "jane@x.com"

    listed = client.get("/auth").get_json()["data"]
    assert [user["email"] for user in listed] == ["khalil@gmail.com", "jane@x.com"]

    deleted = client.delete(f"/auth/users/{created['user']['id']}")
    assert deleted.status_code == 200
    assert [user["email"] for user in client.get("/auth").get_json()["data"]] == ["khalil@gmail.com"]

    assert client.delete("/auth/users/424242").status_code == 404


def test_outage_single_reads_are_not_served_from_fallback(client, store_outage):
    response = client.get("/auth/1")

    assert response.status_code == 500
    assert response.get_json()["error"] == "Internal Server Error"


def test_forgot_and_reset_password(client, outbox):
    _register(client)

    response = client.post("/auth/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    message = outbox[-1]
    assert message.kind == "password_reset"
    token = message.params["token"]

    reset = client.post("/auth/reset-password", json={"token": token, "password": "BrandNew123"})
    assert reset.status_code == 200

    login = client.post("/auth/login", json={"email": "a@x.com", "password": "BrandNew123"})
    assert login.status_code == 200

    reused = client.post("/auth/reset-password", json={"token": token, "password": "Hijacked123"})
    assert reused.status_code == 400
    relogin = client.post("/auth/login", json={"email": "a@x.com", "password": "BrandNew123"})
    assert relogin.status_code == 200


def test_forgot_password_for_unknown_email_sends_nothing(client, outbox):
    response = client.post("/auth/forgot-password", json={"email": "ghost@x.com"})

    assert response.status_code == 200
    assert outbox == []


def test_reset_password_rejects_bad_tokens(app, client):
    user = _register(client)["user"]

    garbage = client.post("/auth/reset-password", json={"token": "garbage", "password": "BrandNew123"})
    assert garbage.status_code == 400

    with app.app_context():
        access_token = create_access_token(identity=str(user["id"]))
    wrong_purpose = client.post(
        "/auth/reset-password", json={"token": access_token, "password": "BrandNew123"}
    )
    assert wrong_purpose.status_code == 400


def test_email_verification_flow(client, outbox):
    _register(client)

    issued = client.post("/auth/verification-code", json={"email": "a@x.com"})
    assert issued.status_code == 200
    assert issued.get_json()["notified"] is True
    code = outbox[-1].params["code"]

    wrong_code = "111111" if code == "000000" else "000000"
    wrong = client.post("/auth/verify-email", json={"email": "a@x.com", "code": wrong_code})
    assert wrong.status_code == 400

    verified = client.post("/auth/verify-email", json={"email": "a@x.com", "code": code})
    assert verified.status_code == 200
    assert verified.get_json()["user"]["isVerified"] is True


def test_verification_code_for_unknown_email(client):
    response = client.post("/auth/verification-code", json={"email": "ghost@x.com"})

    assert response.status_code == 404
