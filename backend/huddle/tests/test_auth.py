"""Tests for sign-up, sign-in, profiles and the identity session."""

import pytest
from fastapi.testclient import TestClient

from huddle.core.errors import (
    InvalidCredentials,
    NotAuthenticated,
    ProfileCreationFailed,
    UsernameTaken,
)
from huddle.models.auth_identity import AuthIdentity
from huddle.services import auth_service, identity
from huddle.services.identity import IdentitySession
from huddle.tests.conftest import auth_headers, make_user, sign_up


class TestSignUpRoute:
    def test_sign_up_success(self, client: TestClient):
        resp = sign_up(client, username="TestUser")
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["username"] == "testuser"
        assert data["user"]["avatar_url"] == "https://api.dicebear.com/7.x/avataaars/svg?seed=testuser"

    def test_duplicate_username_is_case_insensitive(self, client: TestClient):
        sign_up(client, username="alice", email="a@example.com")
        resp = sign_up(client, username="ALICE", email="b@example.com")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Username is already taken"

    def test_duplicate_email(self, client: TestClient):
        sign_up(client, username="user1")
        resp = sign_up(client, username="user2")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "User already registered"

    def test_short_password(self, client: TestClient):
        resp = sign_up(client, password="abc")
        assert resp.status_code == 400

    def test_invalid_username(self, client: TestClient):
        resp = sign_up(client, username="bad user!")
        assert resp.status_code == 400


class TestSignInRoute:
    def test_sign_in_success(self, client: TestClient):
        sign_up(client)
        resp = client.post("/api/auth/signin", json={"email": "TEST@example.com", "password": "Password1!"})
        assert resp.status_code == 200
        assert resp.json()["user"]["username"] == "testuser"

    def test_wrong_password(self, client: TestClient):
        sign_up(client)
        resp = client.post("/api/auth/signin", json={"email": "test@example.com", "password": "wrong-pass"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid login credentials"


class TestMe:
    def test_get_me(self, client: TestClient):
        headers = auth_headers(client)
        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "test@example.com"

    def test_invalid_token(self, client: TestClient):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_update_username(self, client: TestClient):
        headers = auth_headers(client)
        resp = client.patch("/api/auth/me", json={"username": "NewName"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["username"] == "newname"

    def test_update_to_taken_username(self, client: TestClient):
        auth_headers(client, username="bob", email="bob@example.com")
        headers = auth_headers(client)
        resp = client.patch("/api/auth/me", json={"username": "bob"}, headers=headers)
        assert resp.status_code == 409


class TestIdentityService:
    def test_username_taken_before_any_auth_call(self, gateway, monkeypatch):
        make_user(gateway, "Alice")
        calls = []
        monkeypatch.setattr(auth_service, "create_identity", lambda *args: calls.append(args))

        with pytest.raises(UsernameTaken):
            identity.sign_up(gateway, "other@example.com", "secret123", "alice")
        assert calls == []

    def test_profile_failure_leaves_no_identity(self, gateway, db, monkeypatch):
        make_user(gateway, "alice")
        # Skip the pre-check so the profile insert hits the unique index
        monkeypatch.setattr(identity, "is_username_available", lambda gw, name: True)

        with pytest.raises(ProfileCreationFailed):
            identity.sign_up(gateway, "second@example.com", "secret123", "alice")

        assert db.query(AuthIdentity).filter_by(email="second@example.com").first() is None

    def test_sign_in_rejects_unknown_email(self, gateway):
        with pytest.raises(InvalidCredentials):
            identity.sign_in(gateway, "ghost@example.com", "secret123")

    def test_update_profile_requires_user(self, gateway):
        with pytest.raises(NotAuthenticated):
            identity.update_profile(gateway, None, {"username": "x"})

    def test_token_round_trip(self, gateway):
        user = make_user(gateway, "alice")
        token = auth_service.create_access_token(user.id)
        assert auth_service.get_user_from_token(token, gateway).username == "alice"
        assert auth_service.get_user_from_token("garbage", gateway) is None


class TestIdentitySession:
    def test_notifies_on_every_change(self, gateway):
        session = IdentitySession(gateway)
        seen = []
        session.subscribe(lambda s: seen.append(s.profile.username if s.profile else None))

        session.sign_up("alice@example.com", "secret123", "alice")
        session.update_profile({"username": "alicia"})
        session.sign_out()

        assert seen == ["alice", "alicia", None]
        assert not session.is_authenticated

    def test_restore_from_token(self, gateway):
        user = make_user(gateway, "alice")
        session = IdentitySession(gateway)

        assert session.restore(auth_service.create_access_token(user.id))
        assert session.profile.username == "alice"
        assert not session.restore("bad-token")
        assert session.profile is None

    def test_unsubscribe(self, gateway):
        session = IdentitySession(gateway)
        seen = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()

        session.sign_up("alice@example.com", "secret123", "alice")
        assert seen == []

    def test_update_without_session(self, gateway):
        with pytest.raises(NotAuthenticated):
            IdentitySession(gateway).update_profile({"username": "x"})
