"""Integration tests for the schedule endpoints."""

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
def student(client):
    return _register_and_login(
        client, "alice", "student", {"studentId": "S1", "course": "CS", "year": 1, "group": "G1"}
    )


@pytest.fixture
def teacher(client):
    return _register_and_login(
        client, "tom", "teacher", {"teacherId": "T1", "department": "Math", "subjects": ["algebra"]}
    )


@pytest.fixture
def seeded(client, admin):
    response = client.post(
        "/schedules",
        headers=admin,
        json=[
            {"day": "monday", "startTime": "08:00", "endTime": "09:30", "subject": "Algebra",
             "year": 1, "classroom": "101", "teacher": "tom", "course": "CS", "group": "G1"},
            {"day": "monday", "startTime": "10:00", "endTime": "11:30", "subject": "Physics",
             "year": "2", "classroom": "202", "teacher": "ann", "course": "PHY", "group": "G2"},
            {"day": "friday", "startTime": "12:00", "endTime": "13:30", "subject": "Algebra",
             "year": 1, "classroom": "101", "teacher": "tom", "course": "CS", "group": "G1"},
        ],
    )
    assert response.status_code == 200
    return response.json()["data"]["schedules"]


class TestCreateSchedules:
    def test_bulk_create(self, client, admin, seeded):
        assert len(seeded) == 3
        assert seeded[0]["startTime"] == "08:00"
        assert seeded[0]["year"] == "1"

    def test_create_message_text(self, client, admin):
        response = client.post(
            "/schedules",
            headers=admin,
            json=[{"day": "monday", "startTime": "08:00", "endTime": "09:00", "subject": "Art"}],
        )
        assert response.json()["data"]["message"] == "1 schedules created."

    def test_requires_admin(self, client, student):
        response = client.post(
            "/schedules",
            headers=student,
            json=[{"day": "monday", "startTime": "08:00", "endTime": "09:00", "subject": "Art"}],
        )
        assert response.status_code == 403


class TestReadSchedules:
    def test_list_all(self, client, student, seeded):
        response = client.get("/schedules", headers=student)
        assert response.status_code == 200
        assert len(response.json()["data"]) == 3

    def test_admin_sees_whole_day(self, client, admin, seeded):
        response = client.get("/schedules/monday", headers=admin)
        assert {s["subject"] for s in response.json()["data"]} == {"Algebra", "Physics"}

    def test_student_sees_whole_day(self, client, student, seeded):
        response = client.get("/schedules/monday", headers=student)
        assert len(response.json()["data"]) == 2

    def test_teacher_sees_own_classes(self, client, teacher, seeded):
        response = client.get("/schedules/monday", headers=teacher)
        assert [s["teacher"] for s in response.json()["data"]] == ["tom"]

    @pytest.mark.parametrize(
        "query,expected",
        [
            ({"classroom": "202"}, ["Physics"]),
            ({"year": "1"}, ["Algebra"]),
            ({"course": "CS", "group": "G1"}, ["Algebra"]),
            ({"subject": "Chemistry"}, []),
        ],
    )
    def test_filters(self, client, admin, seeded, query, expected):
        response = client.get("/schedules/monday", headers=admin, params=query)
        assert [s["subject"] for s in response.json()["data"]] == expected

    def test_get_one(self, client, student, seeded):
        schedule = seeded[2]
        response = client.get(f"/schedules/friday/{schedule['id']}", headers=student)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == schedule["id"]

    def test_get_one_wrong_day(self, client, student, seeded):
        response = client.get(f"/schedules/monday/{seeded[2]['id']}", headers=student)
        assert response.status_code == 404

    def test_requires_authentication(self, client, seeded):
        assert client.get("/schedules").status_code == 401


class TestModifySchedules:
    def test_partial_update(self, client, admin, seeded):
        schedule = seeded[0]
        response = client.put(
            f"/schedules/monday/{schedule['id']}", headers=admin, json={"classroom": "303"}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["classroom"] == "303"
        assert data["subject"] == "Algebra"
        assert data["startTime"] == "08:00"

    def test_update_missing(self, client, admin):
        response = client.put("/schedules/monday/nope", headers=admin, json={"subject": "x"})
        assert response.status_code == 404

    def test_update_requires_admin(self, client, teacher, seeded):
        response = client.put(
            f"/schedules/monday/{seeded[0]['id']}", headers=teacher, json={"classroom": "1"}
        )
        assert response.status_code == 403

    def test_delete(self, client, admin, seeded):
        path = f"/schedules/monday/{seeded[0]['id']}"
        assert client.delete(path, headers=admin).status_code == 200
        assert client.get(path, headers=admin).status_code == 404
        assert client.delete(path, headers=admin).status_code == 404
