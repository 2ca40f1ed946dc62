"""Integration tests for the message endpoints."""

import pytest
from fastapi.testclient import TestClient

from schoolhub import app as app_module


@pytest.fixture
def client():
    return TestClient(app_module.app)


def _register_and_login(client, username, role, additional):
    client.post(
        "/auth/register",
        json={"username": username, "password": "pw", "role": role, "additionalData": additional},
    )
    response = client.post("/auth/login", json={"username": username, "password": "pw"})
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture
def admin(client):
    return _register_and_login(client, "root", "admin", {"permissions": ["all"]})


@pytest.fixture
def alice(client):
    return _register_and_login(
        client, "alice", "student", {"studentId": "S1", "course": "CS", "year": 1, "group": "G1"}
    )


@pytest.fixture
def bob(client):
    return _register_and_login(
        client, "bob", "teacher", {"teacherId": "T1", "department": "Math", "subjects": ["algebra"]}
    )


@pytest.fixture
def seeded(client, admin):
    response = client.post(
        "/messages",
        headers=admin,
        json=[
            {"from": "root", "to": "alice", "subject": "Welcome", "body": "Hi Alice"},
            {"from": "root", "to": "bob", "subject": "Staff", "body": "Meeting"},
        ],
    )
    assert response.status_code == 201
    return {m["to"]: m for m in response.json()["data"]["messages"]}


class TestCreateMessages:
    def test_bulk_create(self, client, admin):
        response = client.post(
            "/messages",
            headers=admin,
            json=[{"from": "root", "to": "alice", "subject": "s", "body": "b"}] * 3,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["message"] == "Created 3 messages."
        first = data["messages"][0]
        assert first["read"] is False
        assert len(first["date"]) == 10 and len(first["time"]) == 8

    def test_requires_admin(self, client, alice):
        response = client.post(
            "/messages", headers=alice, json=[{"from": "alice", "to": "bob", "subject": "s", "body": "b"}]
        )
        assert response.status_code == 403


class TestReadMessages:
    def test_admin_lists_all(self, client, admin, seeded):
        response = client.get("/messages", headers=admin)
        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

    def test_list_all_requires_admin(self, client, alice, seeded):
        assert client.get("/messages", headers=alice).status_code == 403

    def test_user_inbox(self, client, alice, seeded):
        response = client.get("/messages/user", headers=alice)
        assert response.status_code == 200
        assert [m["subject"] for m in response.json()["data"]] == ["Welcome"]

    def test_recipient_reads_message(self, client, alice, seeded):
        response = client.get(f"/messages/{seeded['alice']['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json()["data"]["from"] == "root"

    def test_admin_reads_any_message(self, client, admin, seeded):
        assert client.get(f"/messages/{seeded['bob']['id']}", headers=admin).status_code == 200

    def test_other_user_forbidden(self, client, alice, seeded):
        response = client.get(f"/messages/{seeded['bob']['id']}", headers=alice)
        assert response.status_code == 403

    def test_missing_message(self, client, alice):
        assert client.get("/messages/does-not-exist", headers=alice).status_code == 404

    def test_requires_authentication(self, client, seeded):
        assert client.get("/messages/user").status_code == 401


class TestModifyMessages:
    def test_update_marks_read(self, client, admin, alice, seeded):
        message_id = seeded["alice"]["id"]
        response = client.put(f"/messages/{message_id}", headers=admin, json={"readed": True})
        assert response.status_code == 200
        assert response.json()["data"]["read"] is True
        assert response.json()["data"]["subject"] == "Welcome"

        fetched = client.get(f"/messages/{message_id}", headers=alice).json()["data"]
        assert fetched["read"] is True

    def test_update_missing(self, client, admin):
        assert client.put("/messages/nope", headers=admin, json={"subject": "x"}).status_code == 404

    def test_update_requires_admin(self, client, alice, seeded):
        response = client.put(f"/messages/{seeded['alice']['id']}", headers=alice, json={"readed": True})
        assert response.status_code == 403

    def test_delete(self, client, admin, alice, seeded):
        message_id = seeded["alice"]["id"]
        assert client.delete(f"/messages/{message_id}", headers=admin).status_code == 200
        assert client.get(f"/messages/{message_id}", headers=alice).status_code == 404
        assert client.delete(f"/messages/{message_id}", headers=admin).status_code == 404
