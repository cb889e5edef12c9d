"""
tests/test_profile_routes.py -- Authorization guard and profile picture upload.

Guarded paths use the shared api_client. The unguarded_client fixture (see
conftest.py) builds a second app with GUARD_PROFILE_UPLOAD off, where the
upload route is public and an unknown username reaches the store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from auth.tokens import issue_token

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _login(client: TestClient, body: dict) -> dict:
    resp = client.post("/user/login", json={"username": body["username"], "password": body["password"]})
    assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
    return resp.json()


def _upload(client: TestClient, username: str | None, file=None, token: str | None = None):
    headers = {"authorization": token} if token else {}
    data = {"username": username} if username is not None else {}
    files = {"profilePicture": file} if file is not None else None
    return client.post("/user/upload-profile-picture", data=data, files=files, headers=headers)


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


class TestGuard:
    def test_no_token_rejected_before_handler(self, api_client: TestClient) -> None:
        # The user does not exist; a 404 would mean the handler ran.
        resp = api_client.get("/user/profile-page/999999")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "no_token"

    def test_garbage_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/user/profile-page/1", headers={"authorization": "not-a-jwt"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_expired_token(self, api_client: TestClient, new_user) -> None:
        body = new_user()
        token = _login(api_client, body)["accessToken"]
        user_id = api_client.app.state.tokens.decode_access_token(token).id
        expired = issue_token(
            {"id": user_id, "username": body["username"], "email": body["email"]},
            api_client.app.state.settings.access_token_secret,
            900,
            now=datetime.now(timezone.utc) - timedelta(hours=1),
        )
        resp = api_client.get(f"/user/profile-page/{user_id}", headers={"authorization": expired})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_refresh_token_is_not_an_access_token(self, api_client: TestClient, new_user) -> None:
        tokens = _login(api_client, new_user())
        resp = api_client.get("/user/profile-page/1", headers={"authorization": tokens["refreshToken"]})
        assert resp.status_code == 403

    def test_bearer_prefix_accepted(self, api_client: TestClient, new_user) -> None:
        token = _login(api_client, new_user())["accessToken"]
        user_id = api_client.app.state.tokens.decode_access_token(token).id
        resp = api_client.get(f"/user/profile-page/{user_id}", headers={"authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_access_token_survives_logout(self, api_client: TestClient, new_user) -> None:
        tokens = _login(api_client, new_user())
        user_id = api_client.app.state.tokens.decode_access_token(tokens["accessToken"]).id
        api_client.post("/user/logout", json={"refreshToken": tokens["refreshToken"]})
        resp = api_client.get(f"/user/profile-page/{user_id}", headers={"authorization": tokens["accessToken"]})
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Upload (guarded)
# ---------------------------------------------------------------------------


class TestGuardedUpload:
    def test_success(self, api_client: TestClient, new_user) -> None:
        body = new_user()
        token = _login(api_client, body)["accessToken"]
        resp = _upload(api_client, body["username"], ("me.png", PNG, "image/png"), token)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["message"]
        assert data["user"]["profilePicture"] == {"contentType": "image/png", "size": len(PNG)}
        assert "passwordHash" not in data["user"]

    def test_no_token(self, api_client: TestClient, new_user) -> None:
        body = new_user()
        resp = _upload(api_client, body["username"], ("me.png", PNG, "image/png"))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "no_token"

    def test_other_users_name_forbidden(self, api_client: TestClient, new_user) -> None:
        owner = new_user()
        victim = new_user()
        token = _login(api_client, owner)["accessToken"]
        resp = _upload(api_client, victim["username"], ("me.png", PNG, "image/png"), token)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_non_image_rejected(self, api_client: TestClient, new_user) -> None:
        body = new_user()
        token = _login(api_client, body)["accessToken"]
        resp = _upload(api_client, body["username"], ("doc.pdf", b"%PDF-1.7", "application/pdf"), token)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "unsupported_media_type"

    def test_no_file(self, api_client: TestClient, new_user) -> None:
        body = new_user()
        token = _login(api_client, body)["accessToken"]
        resp = _upload(api_client, body["username"], token=token)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "no_file"


# ---------------------------------------------------------------------------
# Upload (unguarded)
# ---------------------------------------------------------------------------


class TestUnguardedUpload:
    def _register(self, client: TestClient, username: str) -> None:
        resp = client.post(
            "/user/register",
            json={
                "name": "Pic Owner",
                "username": username,
                "email": f"{username}@example.com",
                "password": "pw123",
                "phone": "555-0100",
                "postalCode": "10115",
            },
        )
        assert resp.status_code == 201

    def test_public_when_guard_off(self, unguarded_client: TestClient) -> None:
        self._register(unguarded_client, "open_upload")
        resp = _upload(unguarded_client, "open_upload", ("me.gif", b"GIF89a", "image/gif"))
        assert resp.status_code == 200
        assert resp.json()["user"]["profilePicture"]["contentType"] == "image/gif"

    def test_unknown_user(self, unguarded_client: TestClient) -> None:
        resp = _upload(unguarded_client, "nobody_here", ("me.png", PNG, "image/png"))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_missing_username(self, unguarded_client: TestClient) -> None:
        resp = _upload(unguarded_client, None, ("me.png", PNG, "image/png"))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "missing_field"

    def test_too_large(self, unguarded_client: TestClient) -> None:
        self._register(unguarded_client, "big_upload")
        resp = _upload(unguarded_client, "big_upload", ("big.png", b"x" * 129, "image/png"))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "file_too_large"

    def test_at_cap_accepted(self, unguarded_client: TestClient) -> None:
        self._register(unguarded_client, "cap_upload")
        resp = _upload(unguarded_client, "cap_upload", ("cap.png", b"x" * 128, "image/png"))
        assert resp.status_code == 200
        assert resp.json()["user"]["profilePicture"]["size"] == 128
