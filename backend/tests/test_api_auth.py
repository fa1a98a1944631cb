"""HTTP-level tests for the /api/v1/auth routes over the memory backend."""
import pytest
from fastapi.testclient import TestClient

from conftest import ALICE_EMAIL, ALICE_PASSWORD, SECRET
from sessionauth.config import Settings
from sessionauth.interfaces.dependencies import build_facade
from sessionauth.main import create_app

AUTH = "/api/v1/auth"


def _settings(**overrides) -> Settings:
    values = {
        "secret_key": SECRET,
        "store_backend": "memory",
        "environment": "test",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return _settings()


@pytest.fixture
def client(settings, clock, hasher):
    facade = build_facade(settings, clock=clock, hasher=hasher)
    with TestClient(create_app(settings, facade)) as test_client:
        yield test_client


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client, email=ALICE_EMAIL, password=ALICE_PASSWORD):
    return client.post(f"{AUTH}/register", json={"email": email, "password": password})


def _login(client, email=ALICE_EMAIL, password=ALICE_PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


class TestRegister:
    def test_register_returns_usable_token(self, client):
        response = _register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        me = client.get(f"{AUTH}/me", headers=_bearer(data["access_token"]))
        assert me.status_code == 200
        assert me.json()["email"] == ALICE_EMAIL
        assert me.json()["has_password"] is True

    def test_duplicate_email_is_conflict(self, client):
        _register(client)

        response = _register(client, email="ALICE@example.com")

        assert response.status_code == 409
        assert response.json()["type"] == "conflict"

    def test_short_password_is_rejected(self, client):
        response = _register(client, password="short")

        assert response.status_code == 422


class TestLogin:
    def test_login_after_register(self, client):
        _register(client)

        response = _login(client)

        assert response.status_code == 200
        assert response.json()["access_token"]

    def test_unknown_and_wrong_password_look_the_same(self, client):
        _register(client)

        unknown = _login(client, email="nobody@example.com", password="whatever123")
        wrong = _login(client, password="wrong-password")

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"message": "Invalid credentials", "type": "authentication_error"}


class TestBearerChecks:
    def test_missing_bearer_requires_sign_in(self, client):
        response = client.get(f"{AUTH}/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["message"] == "Please sign in again"

    def test_garbage_bearer_requires_sign_in(self, client):
        response = client.get(f"{AUTH}/me", headers=_bearer("not-a-token"))

        assert response.status_code == 401
        assert response.json()["message"] == "Please sign in again"

    def test_expired_session_requires_sign_in(self, client, clock):
        token = _register(client).json()["access_token"]
        clock.advance(hours=25)

        response = client.get(f"{AUTH}/me", headers=_bearer(token))

        assert response.status_code == 401
        assert response.json()["message"] == "Please sign in again"


class TestSessions:
    def test_refresh_rotates_token(self, client):
        old = _register(client).json()["access_token"]

        response = client.post(f"{AUTH}/refresh", headers=_bearer(old))

        assert response.status_code == 200
        new = response.json()["access_token"]
        assert client.get(f"{AUTH}/me", headers=_bearer(new)).status_code == 200
        assert client.get(f"{AUTH}/me", headers=_bearer(old)).status_code == 401

    def test_logout_revokes_only_that_session(self, client):
        first = _register(client).json()["access_token"]
        second = _login(client).json()["access_token"]

        response = client.post(f"{AUTH}/logout", headers=_bearer(first))

        assert response.status_code == 204
        assert client.get(f"{AUTH}/me", headers=_bearer(first)).status_code == 401
        assert client.get(f"{AUTH}/me", headers=_bearer(second)).status_code == 200

    def test_logout_with_garbage_token_succeeds(self, client):
        response = client.post(f"{AUTH}/logout", headers=_bearer("garbage"))

        assert response.status_code == 204

    def test_logout_all_revokes_every_session(self, client):
        first = _register(client).json()["access_token"]
        second = _login(client).json()["access_token"]

        response = client.post(f"{AUTH}/logout-all", headers=_bearer(second))

        assert response.json() == {"revoked": 2}
        for token in (first, second):
            assert client.get(f"{AUTH}/me", headers=_bearer(token)).status_code == 401
        third = _login(client).json()["access_token"]
        assert client.get(f"{AUTH}/me", headers=_bearer(third)).status_code == 200

    def test_sessions_lists_live_sessions_and_marks_current(self, client, clock):
        _register(client)
        clock.advance(minutes=1)
        current = _login(client).json()["access_token"]

        response = client.get(f"{AUTH}/sessions", headers=_bearer(current))

        sessions = response.json()
        assert len(sessions) == 2
        assert [s["current"] for s in sessions] == [True, False]
        assert all(len(s["id_prefix"]) == 8 for s in sessions)


class TestAccountLifecycle:
    def test_change_password_signs_out_everywhere(self, client):
        token = _register(client).json()["access_token"]

        response = client.post(
            f"{AUTH}/password",
            json={"current_password": ALICE_PASSWORD, "new_password": "N3w!Password"},
            headers=_bearer(token),
        )

        assert response.json() == {"revoked": 1}
        assert client.get(f"{AUTH}/me", headers=_bearer(token)).status_code == 401
        assert _login(client, password="N3w!Password").status_code == 200
        assert _login(client).status_code == 401

    def test_change_password_with_wrong_current_is_forbidden(self, client):
        token = _register(client).json()["access_token"]

        response = client.post(
            f"{AUTH}/password",
            json={"current_password": "not-my-password", "new_password": "N3w!Password"},
            headers=_bearer(token),
        )

        assert response.status_code == 403
        assert client.get(f"{AUTH}/me", headers=_bearer(token)).status_code == 200

    def test_delete_account_frees_email(self, client):
        token = _register(client).json()["access_token"]

        response = client.delete(f"{AUTH}/account", headers=_bearer(token))

        assert response.json() == {"revoked": 1}
        assert client.get(f"{AUTH}/me", headers=_bearer(token)).status_code == 401
        assert _login(client).status_code == 401
        assert _register(client).status_code == 201


class TestProfile:
    def test_patch_me_updates_and_me_reflects_it(self, client):
        token = _register(client).json()["access_token"]

        response = client.patch(
            f"{AUTH}/me",
            json={"display_name": "Alice", "preferences": {"theme": "dark"}},
            headers=_bearer(token),
        )

        assert response.status_code == 200
        assert response.json()["display_name"] == "Alice"
        me = client.get(f"{AUTH}/me", headers=_bearer(token)).json()
        assert me["display_name"] == "Alice"
        assert me["preferences"] == {"theme": "dark"}
        assert me["profile_picture_url"] is None

    def test_too_long_display_name_is_rejected(self, client):
        token = _register(client).json()["access_token"]

        response = client.patch(f"{AUTH}/me", json={"display_name": "a" * 101}, headers=_bearer(token))

        assert response.status_code == 422
        assert client.get(f"{AUTH}/me", headers=_bearer(token)).json()["display_name"] is None

    def test_bad_picture_url_is_rejected(self, client):
        token = _register(client).json()["access_token"]

        response = client.patch(
            f"{AUTH}/me", json={"profile_picture_url": "ftp://files.example.com/a.png"}, headers=_bearer(token),
        )

        assert response.status_code == 422

    def test_empty_body_is_rejected(self, client):
        token = _register(client).json()["access_token"]

        response = client.patch(f"{AUTH}/me", json={}, headers=_bearer(token))

        assert response.status_code == 422

    def test_email_cannot_be_changed_here(self, client):
        token = _register(client).json()["access_token"]

        response = client.patch(f"{AUTH}/me", json={"email": "mallory@example.com"}, headers=_bearer(token))

        assert response.status_code == 422
        assert client.get(f"{AUTH}/me", headers=_bearer(token)).json()["email"] == ALICE_EMAIL

    def test_requires_sign_in(self, client):
        response = client.patch(f"{AUTH}/me", json={"display_name": "Alice"})

        assert response.status_code == 401


class TestRateLimit:
    @pytest.fixture
    def settings(self):
        return _settings(register_rate_limit=2, login_rate_limit=3)

    def test_register_is_throttled_per_client(self, client):
        _register(client, email="a@example.com")
        _register(client, email="b@example.com")

        response = _register(client, email="c@example.com")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_login_throttle_resets_after_window(self, client, clock):
        _register(client)
        for _ in range(3):
            _login(client, password="wrong-password")
        assert _login(client).status_code == 429

        clock.advance(minutes=5)

        assert _login(client).status_code == 200


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
