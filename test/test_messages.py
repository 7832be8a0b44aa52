"""
Tests for participant/administrator messaging.
"""
import config

SEND_URL = "/api/focus-group/messages/send"
FETCH_URL = "/api/focus-group/messages/fetch"
MARK_READ_URL = "/api/focus-group/messages/mark-read"
UNREAD_URL = "/api/focus-group/messages/unread-count"


def send(client, headers, text, recipient=None):
    payload = {"message": text}
    if recipient is not None:
        payload["recipientUserId"] = recipient
    return client.post(SEND_URL, json=payload, headers=headers)


class TestSend:
    def test_participant_writes_to_admin_channel(self, client, participant):
        response = send(client, participant["headers"], "  Hello team  ", recipient="someone-else")
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["recipient_id"] == config.ADMIN_CHANNEL_ID
        assert data["sender_role"] == "participant"
        assert data["sender_id"] == participant["user"].id
        assert data["body"] == "Hello team"
        assert data["is_read"] is False

    def test_admin_message_to_participant(self, client, admin, participant):
        response = send(client, admin["headers"], "How is week 2?", recipient=participant["user"].id)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["sender_role"] == "administrator"
        assert data["recipient_id"] == participant["user"].id

    def test_admin_requires_recipient(self, client, admin):
        response = send(client, admin["headers"], "Hi")
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_admin_unknown_recipient(self, client, admin):
        response = send(client, admin["headers"], "Hi", recipient="no-such-user")
        assert response.status_code == 404

    def test_empty_message(self, client, participant):
        assert send(client, participant["headers"], "   ").status_code == 400

    def test_message_too_long(self, client, participant):
        assert send(client, participant["headers"], "x" * 5001).status_code == 400

    def test_requires_authentication(self, client):
        assert client.post(SEND_URL, json={"message": "hi"}).status_code == 401


class TestFetch:
    def test_thread_in_order(self, client, admin, participant):
        send(client, participant["headers"], "first")
        send(client, admin["headers"], "second", recipient=participant["user"].id)
        send(client, participant["headers"], "third")

        response = client.get(FETCH_URL, headers=participant["headers"])
        assert response.status_code == 200
        assert [m["body"] for m in response.json()["data"]] == ["first", "second", "third"]

    def test_participant_cannot_read_other_thread(self, client, participant, make_user):
        other, _ = make_user("other@example.com")
        response = client.get(FETCH_URL, params={"userId": other.id}, headers=participant["headers"])
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_participant_may_pass_own_id(self, client, participant):
        send(client, participant["headers"], "mine")
        response = client.get(FETCH_URL, params={"userId": participant["user"].id}, headers=participant["headers"])
        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

    def test_admin_reads_participant_thread(self, client, admin, participant, make_user):
        other, other_headers = make_user("other@example.com")
        client.post("/api/focus-group/profile", json={}, headers=other_headers)
        send(client, participant["headers"], "from participant")
        send(client, other_headers, "from someone else")

        response = client.get(FETCH_URL, params={"userId": participant["user"].id}, headers=admin["headers"])
        assert response.status_code == 200
        assert [m["body"] for m in response.json()["data"]] == ["from participant"]


class TestReadState:
    def test_mark_read_and_unread_count(self, client, admin, participant):
        send(client, admin["headers"], "one", recipient=participant["user"].id)
        send(client, admin["headers"], "two", recipient=participant["user"].id)
        send(client, participant["headers"], "reply")

        count = client.get(UNREAD_URL, headers=participant["headers"]).json()["data"]["count"]
        assert count == 2

        response = client.post(MARK_READ_URL, headers=participant["headers"])
        assert response.status_code == 200
        assert response.json()["data"] == {"updated": 2}

        assert client.get(UNREAD_URL, headers=participant["headers"]).json()["data"]["count"] == 0
        assert client.post(MARK_READ_URL, headers=participant["headers"]).json()["data"] == {"updated": 0}

    def test_own_messages_untouched(self, client, participant):
        send(client, participant["headers"], "just me")
        assert client.post(MARK_READ_URL, headers=participant["headers"]).json()["data"] == {"updated": 0}
        thread = client.get(FETCH_URL, headers=participant["headers"]).json()["data"]
        assert thread[0]["is_read"] is False
