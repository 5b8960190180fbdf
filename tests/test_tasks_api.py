# PURPOSE: task CRUD, filters, due-date normalisation and soft delete over HTTP.

from datetime import UTC, datetime, timedelta
from typing import Dict

import pytest


def _create(client, headers, title: str = "Task", **fields) -> Dict:
    payload = {"title": title, "status": "Pending", "priority": "Medium", **fields}
    r = client.post("/tasks", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@pytest.fixture()
def headers(register):
    h, _ = register("tasks@example.com")
    return h


def test_create_then_list_round_trip(client, headers):
    created = _create(
        client,
        headers,
        "Write report",
        description="quarterly",
        status="In-Progress",
        priority="High",
        due_date="2024-03-15",
    )
    assert created["title"] == "Write report"
    assert created["description"] == "quarterly"
    assert created["status"] == "In-Progress"
    assert created["priority"] == "High"
    assert created["due_date"] == "2024-03-15T00:00:00Z"

    listed = client.get("/tasks", headers=headers).json()
    assert listed == [created]


def test_create_defaults_description(client, headers):
    created = _create(client, headers, "No description")
    assert created["description"] == ""


def test_create_keeps_time_of_day(client, headers):
    created = _create(client, headers, due_date="2024-03-15T10:30:00Z")
    assert created["due_date"] == "2024-03-15T10:30:00Z"


def test_create_keeps_fractional_seconds(client, headers):
    created = _create(client, headers, due_date="2024-03-15T10:30:00.123")
    assert created["due_date"] == "2024-03-15T10:30:00.123000Z"


def test_timestamps_are_marked_utc(client, headers):
    created = _create(client, headers, due_date="2024-03-15")
    for field in ("due_date", "created_at", "updated_at"):
        assert created[field].endswith("Z")


def test_create_converts_offset_to_utc(client, headers):
    created = _create(client, headers, due_date="2024-03-15T12:30:00+02:00")
    assert created["due_date"] == "2024-03-15T10:30:00Z"


@pytest.mark.parametrize("raw", ["not-a-date", "", None])
def test_create_unparseable_or_missing_due_date_falls_back_to_now(client, headers, raw):
    before = _utcnow() - timedelta(seconds=5)
    payload = {} if raw is None else {"due_date": raw}
    created = _create(client, headers, **payload)
    due = datetime.fromisoformat(created["due_date"]).replace(tzinfo=None)
    assert before <= due <= _utcnow() + timedelta(seconds=5)


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"status": "Pending", "priority": "Low"}, "title"),
        ({"title": "", "status": "Pending", "priority": "Low"}, "title"),
        ({"title": "x", "status": "Done", "priority": "Low"}, "status"),
        ({"title": "x", "status": "Pending", "priority": "Urgent"}, "priority"),
        ({"title": "x", "priority": "Low"}, "status"),
    ],
)
def test_create_validation(client, headers, payload, field):
    r = client.post("/tasks", json=payload, headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert field in {d["field"] for d in body["details"]}
    # nothing persisted
    assert client.get("/tasks", headers=headers).json() == []


def test_create_rejects_non_object_body(client, headers):
    r = client.post("/tasks", json=["title"], headers=headers)
    assert r.status_code == 400


def test_update_replaces_fields(client, headers):
    task = _create(client, headers, "Old", due_date="2024-01-01")
    r = client.put(
        f"/tasks/{task['id']}",
        json={
            "title": "New",
            "description": "changed",
            "status": "Completed",
            "priority": "Critical",
            "due_date": "03/20/2024",
        },
        headers=headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == task["id"]
    assert data["title"] == "New"
    assert data["description"] == "changed"
    assert data["status"] == "Completed"
    assert data["priority"] == "Critical"
    assert data["due_date"] == "2024-03-20T00:00:00Z"
    assert data["created_at"] == task["created_at"]


def test_update_allows_any_status_jump(client, headers):
    task = _create(client, headers, status="Completed")
    r = client.put(
        f"/tasks/{task['id']}",
        json={"title": "back", "status": "Pending", "priority": "Low"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "Pending"


@pytest.mark.parametrize("raw", ["not-a-date", ""])
def test_update_unparseable_due_date_keeps_previous(client, headers, raw):
    task = _create(client, headers, due_date="2024-05-01T08:00:00")
    r = client.put(
        f"/tasks/{task['id']}",
        json={"title": "t", "status": "Pending", "priority": "Low", "due_date": raw},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["due_date"] == "2024-05-01T08:00:00Z"


def test_update_validation(client, headers):
    task = _create(client, headers)
    r = client.put(
        f"/tasks/{task['id']}",
        json={"title": "t", "status": "Archived", "priority": "Low"},
        headers=headers,
    )
    assert r.status_code == 400
    assert client.get("/tasks", headers=headers).json()[0]["status"] == "Pending"


def test_update_missing_task(client, headers):
    r = client.put(
        "/tasks/9999", json={"title": "t", "status": "Pending", "priority": "Low"}, headers=headers
    )
    assert r.status_code == 404


def test_update_missing_task_checked_before_body(client, headers):
    r = client.put("/tasks/9999", json={"title": ""}, headers=headers)
    assert r.status_code == 404


def test_delete_then_delete_again(client, headers):
    task = _create(client, headers)
    r = client.delete(f"/tasks/{task['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Task deleted successfully"}

    again = client.delete(f"/tasks/{task['id']}", headers=headers)
    assert again.status_code == 404
    assert client.get("/tasks", headers=headers).json() == []


def test_deleted_task_cannot_be_updated(client, headers):
    task = _create(client, headers)
    client.delete(f"/tasks/{task['id']}", headers=headers)
    r = client.put(
        f"/tasks/{task['id']}",
        json={"title": "zombie", "status": "Pending", "priority": "Low"},
        headers=headers,
    )
    assert r.status_code == 404


def test_filter_composition(client, headers):
    hit = _create(client, headers, "hit", status="Completed", priority="High")
    _create(client, headers, "wrong priority", status="Completed", priority="Low")
    _create(client, headers, "wrong status", status="Pending", priority="High")

    r = client.get("/tasks?status=Completed&priority=High", headers=headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [hit["id"]]


def test_filter_due_date_is_inclusive_upper_bound(client, headers):
    early = _create(client, headers, "early", due_date="2024-03-10")
    same_day = _create(client, headers, "same day", due_date="2024-03-15")
    _create(client, headers, "later", due_date="2024-03-20")

    r = client.get("/tasks?due_date=2024-03-15", headers=headers)
    assert [t["id"] for t in r.json()] == [early["id"], same_day["id"]]


def test_filter_bad_due_date_is_ignored(client, headers):
    _create(client, headers, "a")
    _create(client, headers, "b")
    r = client.get("/tasks?due_date=someday", headers=headers)
    assert r.status_code == 200
    assert len(r.json()) == 2


def test_filter_unknown_status_matches_nothing(client, headers):
    _create(client, headers)
    r = client.get("/tasks?status=Archived", headers=headers)
    assert r.status_code == 200
    assert r.json() == []


def test_versioned_namespace(client, headers):
    created = client.post(
        "/api/v1/tasks",
        json={"title": "v1", "status": "Pending", "priority": "Low"},
        headers=headers,
    )
    assert created.status_code == 201
    assert client.get("/tasks", headers=headers).json() == [created.json()]
    info = client.get("/api/v1/")
    assert info.json()["tasks"] == "/api/v1/tasks"
