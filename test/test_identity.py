"""
Tests for credential extraction and principal resolution.
"""
from datetime import timedelta

import config
from auth.identity import IdentityProvider
from auth.security import _token_from_cookie
from conftest import TEST_SECRET, cookie_header

PROFILE_URL = "/api/focus-group/profile"
ADMIN_URL = "/api/focus-group/admin/participants"


class TestIdentityProvider:
    def test_round_trip(self, identity):
        user = identity.create_confirmed_user("Someone@Example.com")
        resolved = identity.get_user(identity.issue_access_token(user))
        assert resolved.id == user.id
        assert resolved.email == "someone@example.com"

    def test_rejects_other_secret(self, identity):
        other = IdentityProvider("another-secret", audience=config.AUTH_JWT_AUDIENCE)
        user = other.create_confirmed_user("x@example.com")
        assert identity.get_user(other.issue_access_token(user)) is None

    def test_rejects_wrong_audience(self, identity):
        other = IdentityProvider(TEST_SECRET, audience="somebody-else")
        user = other.create_confirmed_user("x@example.com")
        assert identity.get_user(other.issue_access_token(user)) is None

    def test_rejects_expired_token(self, identity):
        user = identity.create_confirmed_user("x@example.com")
        token = identity.issue_access_token(user, expires_delta=timedelta(seconds=-10))
        assert identity.get_user(token) is None

    def test_rejects_file_token(self, identity, store):
        url = store.get_presigned_url("some-profile/week-1-1-abcd.jpg", expires_in=60)
        file_token = url.split("token=", 1)[1]
        assert identity.get_user(file_token) is None


class TestCookieParsing:
    def test_json_cookie(self):
        assert _token_from_cookie('{"access_token": "abc"}') == "abc"

    def test_list_cookie(self):
        assert _token_from_cookie('["abc", "refresh"]') == "abc"

    def test_raw_cookie(self):
        assert _token_from_cookie("abc.def.ghi") == "abc.def.ghi"

    def test_json_without_token(self):
        assert _token_from_cookie('{"refresh_token": "r"}') is None


class TestPrincipalResolution:
    """Credential sources and administrator flag."""

    def test_missing_credentials(self, client):
        response = client.get(PROFILE_URL)
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, client):
        response = client.get(PROFILE_URL, headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired credentials"

    def test_session_cookie(self, client, identity, participant):
        token = identity.issue_access_token(participant["user"])
        response = client.get(PROFILE_URL, headers=cookie_header(token))
        assert response.status_code == 200
        assert response.json()["data"]["user_id"] == participant["user"].id

    def test_json_session_cookie(self, client, identity, participant):
        token = identity.issue_access_token(participant["user"])
        response = client.get(PROFILE_URL, headers=cookie_header(token, as_json=True))
        assert response.status_code == 200

    def test_header_wins_over_cookie(self, client, identity, participant, make_user):
        other, _ = make_user("other@example.com")
        headers = dict(participant["headers"])
        headers.update(cookie_header(identity.issue_access_token(other)))
        response = client.get(PROFILE_URL, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["user_id"] == participant["user"].id

    def test_participant_is_not_admin(self, client, participant):
        response = client.get(ADMIN_URL, headers=participant["headers"])
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_profile_flag_grants_admin(self, client, admin):
        assert client.get(ADMIN_URL, headers=admin["headers"]).status_code == 200

    def test_allow_list_without_profile(self, client, make_user, monkeypatch):
        monkeypatch.setattr(config, "ADMIN_EMAILS", ["boss@example.com"])
        _, headers = make_user("boss@example.com")
        assert client.get(ADMIN_URL, headers=headers).status_code == 200

    def test_allow_listed_profile_created_as_admin(self, client, make_user, monkeypatch):
        monkeypatch.setattr(config, "ADMIN_EMAILS", ["boss@example.com"])
        _, headers = make_user("boss@example.com")
        response = client.post(PROFILE_URL, json={}, headers=headers)
        assert response.status_code == 201
        assert response.json()["data"]["is_admin"] is True

    def test_profile_flag_overrides_allow_list(self, client, admin, make_user, monkeypatch):
        monkeypatch.setattr(config, "ADMIN_EMAILS", ["boss@example.com"])
        _, headers = make_user("boss@example.com")
        created = client.post(PROFILE_URL, json={}, headers=headers).json()["data"]

        revoke = client.patch(f"{ADMIN_URL}/{created['id']}", json={"is_admin": False}, headers=admin["headers"])
        assert revoke.status_code == 200

        assert client.get(ADMIN_URL, headers=headers).status_code == 403
