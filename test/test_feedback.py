"""
Tests for the weekly feedback register.
"""
import pytest

from auth.dependencies import Principal
from core.errors import Conflict, InternalError, NotFound
from services.feedback_service import FeedbackService

FEEDBACK_URL = "/api/focus-group/feedback"

SAMPLE = {
    "product_usage": "Applied the serum every evening",
    "perceived_changes": "Skin feels softer",
    "overall_rating": 8,
}


class TestSubmitFeedback:
    def test_submit_explicit_week(self, client, participant):
        response = client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 3}, headers=participant["headers"])
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["week_number"] == 3
        assert body["data"]["overall_rating"] == 8
        assert body["data"]["profile_id"] == participant["profile"]["id"]

    def test_week_derived_from_enrollment(self, client, participant, backdate_enrollment):
        backdate_enrollment(participant["profile"]["id"], days=10)
        response = client.post(FEEDBACK_URL, json=SAMPLE, headers=participant["headers"])
        assert response.status_code == 201
        assert response.json()["data"]["week_number"] == 2

    def test_duplicate_week_conflict(self, client, participant):
        first = client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 1}, headers=participant["headers"])
        assert first.status_code == 201

        second = client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 1}, headers=participant["headers"])
        assert second.status_code == 409
        body = second.json()
        assert body["success"] is False
        assert body["code"] == "CONFLICT"
        assert "week 1" in body["error"]
        assert body["details"]["update_path"] == "/api/focus-group/feedback/1"

        listing = client.get(FEEDBACK_URL, headers=participant["headers"]).json()["data"]
        assert len(listing) == 1

    def test_rating_out_of_range(self, client, participant):
        response = client.post(FEEDBACK_URL, json={**SAMPLE, "overall_rating": 11}, headers=participant["headers"])
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    @pytest.mark.parametrize("week", [0, 13])
    def test_week_out_of_range(self, client, participant, week):
        response = client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": week}, headers=participant["headers"])
        assert response.status_code == 400

    def test_text_too_long(self, client, participant):
        response = client.post(FEEDBACK_URL, json={"product_usage": "x" * 5001}, headers=participant["headers"])
        assert response.status_code == 400

    def test_requires_profile(self, client, make_user):
        _, headers = make_user("new@example.com")
        response = client.post(FEEDBACK_URL, json=SAMPLE, headers=headers)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
        assert response.json()["error"].startswith("Profile not found")

    def test_requires_authentication(self, client):
        response = client.post(FEEDBACK_URL, json=SAMPLE)
        assert response.status_code == 401

    def test_unique_constraint_backs_conflict(self, database, participant, monkeypatch):
        """An insert that slips past the existence check still maps to Conflict."""
        principal = Principal(participant["user"].id, participant["user"].email, False)
        with database.get_session() as session:
            FeedbackService.submit(session, principal, SAMPLE, week=4)

        monkeypatch.setattr(FeedbackService, "_find", staticmethod(lambda db, profile_id, week: None))
        with database.get_session() as session:
            with pytest.raises(Conflict):
                FeedbackService.submit(session, principal, SAMPLE, week=4)

    def test_other_constraint_violation_is_not_conflict(self, database, participant):
        """A week outside the stored range fails the check constraint, which is not a duplicate."""
        principal = Principal(participant["user"].id, participant["user"].email, False)
        with database.get_session() as session:
            with pytest.raises(InternalError):
                FeedbackService.submit(session, principal, SAMPLE, week=20)


class TestReadFeedback:
    def test_list_ordered_by_week(self, client, participant):
        for week in (5, 2, 9):
            client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": week}, headers=participant["headers"])
        data = client.get(FEEDBACK_URL, headers=participant["headers"]).json()["data"]
        assert [e["week_number"] for e in data] == [2, 5, 9]

    def test_single_week(self, client, participant):
        client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 2}, headers=participant["headers"])
        data = client.get(FEEDBACK_URL, params={"week": 2}, headers=participant["headers"]).json()["data"]
        assert data["feedback"]["week_number"] == 2

    def test_missing_week_is_null(self, client, participant):
        response = client.get(FEEDBACK_URL, params={"week": 5}, headers=participant["headers"])
        assert response.status_code == 200
        assert response.json()["data"] == {"feedback": None}

    def test_entries_are_private(self, client, participant, make_user):
        client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 1}, headers=participant["headers"])
        _, other_headers = make_user("other@example.com")
        client.post("/api/focus-group/profile", json={}, headers=other_headers)
        assert client.get(FEEDBACK_URL, headers=other_headers).json()["data"] == []


class TestUpdateFeedback:
    def test_update_own_entry(self, client, participant):
        client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 1}, headers=participant["headers"])
        response = client.put(f"{FEEDBACK_URL}/1", json={"overall_rating": 9}, headers=participant["headers"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overall_rating"] == 9
        assert data["product_usage"] == SAMPLE["product_usage"]

    def test_update_missing_week(self, client, participant):
        response = client.put(f"{FEEDBACK_URL}/6", json={"overall_rating": 9}, headers=participant["headers"])
        assert response.status_code == 404

    def test_service_update_requires_entry(self, database, participant):
        principal = Principal(participant["user"].id, participant["user"].email, False)
        with database.get_session() as session:
            with pytest.raises(NotFound):
                FeedbackService.update(session, principal, 3, {"overall_rating": 5})


class TestEnrollmentScenario:
    def test_ten_days_after_enrollment(self, client, participant, backdate_enrollment):
        backdate_enrollment(participant["profile"]["id"], days=10)
        headers = participant["headers"]

        first = client.post(FEEDBACK_URL, json=SAMPLE, headers=headers)
        assert first.status_code == 201
        assert first.json()["data"]["week_number"] == 2

        again = client.post(FEEDBACK_URL, json=SAMPLE, headers=headers)
        assert again.status_code == 409
        assert again.json()["code"] == "CONFLICT"

        third = client.post(FEEDBACK_URL, json={**SAMPLE, "week_number": 3}, headers=headers)
        assert third.status_code == 201

        listing = client.get(FEEDBACK_URL, headers=headers).json()["data"]
        assert [e["week_number"] for e in listing] == [2, 3]
