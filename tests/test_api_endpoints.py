"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end.
"""

import pytest
from fastapi.testclient import TestClient

PLAN_DAY = "2024-01-15"  # a Monday


def _create_task(test_client: TestClient, **overrides) -> dict:
    payload = {"title": "Write report", "duration_min": 60}
    payload.update(overrides)
    response = test_client.post("/tasks", json=payload)
    assert response.status_code == 201
    return response.json()["task"]


def _create_fixed_schedule(test_client: TestClient, start: str, end: str, weekday: int = 1) -> dict:
    response = test_client.post(
        "/fixed-schedules",
        json={"title": "Lecture", "weekday": weekday, "start_time": start, "end_time": end},
    )
    assert response.status_code == 201
    return response.json()["fixed_schedule"]


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestTaskEndpoints:
    """Test task API endpoints."""

    def test_create_task(self, test_client):
        """Test POST /tasks endpoint."""
        task = _create_task(test_client, priority="high", energy_level="low", notes="Quarterly numbers")

        assert task["title"] == "Write report"
        assert task["priority"] == "high"
        assert task["energy_level"] == "low"
        assert task["completed"] is False
        assert "id" in task

    def test_create_task_validation(self, test_client):
        """Test POST /tasks with invalid data."""
        assert test_client.post("/tasks", json={"title": "", "duration_min": 30}).status_code == 422
        assert test_client.post("/tasks", json={"title": "x", "duration_min": 0}).status_code == 422

    def test_list_tasks(self, test_client):
        _create_task(test_client, title="First")
        _create_task(test_client, title="Second")

        response = test_client.get("/tasks")

        assert response.status_code == 200
        assert response.json()["count"] == 2

    def test_complete_task(self, test_client):
        task = _create_task(test_client)

        response = test_client.post(f"/tasks/{task['id']}/complete")

        assert response.status_code == 200
        assert response.json()["task"]["completed"] is True
        assert test_client.get("/tasks", params={"pending_only": True}).json()["count"] == 0

    def test_complete_nonexistent_task(self, test_client):
        response = test_client.post("/tasks/nonexistent-id/complete")
        assert response.status_code == 404


class TestFixedScheduleEndpoints:
    """Test fixed schedule API endpoints."""

    def test_create_and_list(self, test_client):
        _create_fixed_schedule(test_client, "09:00:00", "10:00:00", weekday=1)
        _create_fixed_schedule(test_client, "13:00:00", "14:00:00", weekday=3)

        assert test_client.get("/fixed-schedules").json()["count"] == 2
        monday = test_client.get("/fixed-schedules", params={"weekday": 1}).json()
        assert monday["count"] == 1
        assert monday["fixed_schedules"][0]["start_time"] == "09:00:00"

    def test_end_before_start_rejected(self, test_client):
        response = test_client.post(
            "/fixed-schedules",
            json={"title": "Backwards", "weekday": 1, "start_time": "10:00:00", "end_time": "09:00:00"},
        )
        assert response.status_code == 422

    def test_invalid_weekday_filter_rejected(self, test_client):
        assert test_client.get("/fixed-schedules", params={"weekday": 8}).status_code == 422


class TestPlanEndpoints:
    """Test planning endpoints end-to-end."""

    def test_free_slots_subtract_fixed_schedules(self, test_client):
        _create_fixed_schedule(test_client, "09:00:00", "10:00:00")

        response = test_client.get(f"/plans/{PLAN_DAY}/free-slots")

        assert response.status_code == 200
        data = response.json()
        assert [(s["start"], s["end"]) for s in data["free_slots"]] == [
            ("2024-01-15T10:00:00", "2024-01-15T12:00:00"),
            ("2024-01-15T14:00:00", "2024-01-15T18:00:00"),
        ]
        assert data["free_minutes"] == 360

    def test_generate_and_view_plan(self, test_client):
        _create_fixed_schedule(test_client, "09:00:00", "10:00:00")
        task = _create_task(test_client, title="Write report", priority="high")

        response = test_client.post(f"/plans/{PLAN_DAY}")

        assert response.status_code == 200
        result = response.json()
        assert result["strategy"] == "balanced"
        assert len(result["planned_items"]) == 1
        assert result["planned_items"][0]["start"] == "2024-01-15T10:00:00"
        assert result["unscheduled_tasks"] == []
        assert result["stats"]["scheduled_tasks"] == 1

        stored = test_client.get(f"/plans/{PLAN_DAY}").json()
        assert [i["task_id"] for i in stored["items"]] == [task["id"]]
        assert stored["task_titles"] == {task["id"]: "Write report"}

    def test_regenerating_replaces_stored_plan(self, test_client):
        first = _create_task(test_client, title="First")
        test_client.post(f"/plans/{PLAN_DAY}")
        test_client.post(f"/tasks/{first['id']}/complete")
        second = _create_task(test_client, title="Second")

        test_client.post(f"/plans/{PLAN_DAY}", json={"strategy": "deadline_driven"})

        stored = test_client.get(f"/plans/{PLAN_DAY}").json()
        assert [i["task_id"] for i in stored["items"]] == [second["id"]]

    def test_keep_existing_frees_time_of_completed_tasks(self, test_client):
        done = _create_task(test_client, title="Done", priority="high")
        kept = _create_task(test_client, title="Kept", duration_min=30)
        test_client.post(f"/plans/{PLAN_DAY}")
        test_client.post(f"/tasks/{done['id']}/complete")
        fresh = _create_task(test_client, title="Fresh", duration_min=30)

        result = test_client.post(f"/plans/{PLAN_DAY}", json={"keep_existing": True}).json()

        starts = {i["task_id"]: i["start"] for i in result["planned_items"]}
        assert starts == {
            kept["id"]: "2024-01-15T10:05:00",
            fresh["id"]: "2024-01-15T09:00:00",
        }
        stored = test_client.get(f"/plans/{PLAN_DAY}").json()
        assert sorted(i["task_id"] for i in stored["items"]) == sorted([kept["id"], fresh["id"]])

    def test_task_too_long_stays_unscheduled(self, test_client):
        _create_task(test_client, title="Marathon", duration_min=600)

        result = test_client.post(f"/plans/{PLAN_DAY}").json()

        assert result["planned_items"] == []
        assert [t["title"] for t in result["unscheduled_tasks"]] == ["Marathon"]

    def test_invalid_strategy_rejected(self, test_client):
        response = test_client.post(f"/plans/{PLAN_DAY}", json={"strategy": "random"})
        assert response.status_code == 422

    def test_view_empty_plan(self, test_client):
        response = test_client.get(f"/plans/{PLAN_DAY}")
        assert response.status_code == 200
        assert response.json()["items"] == []


class TestEmergencyEndpoint:
    def test_emergency_task_inserted_into_stored_plan(self, test_client):
        _create_fixed_schedule(test_client, "09:00:00", "10:00:00")
        _create_task(test_client, title="Write report")
        test_client.post(f"/plans/{PLAN_DAY}")

        response = test_client.post(
            f"/plans/{PLAN_DAY}/emergency",
            json={"title": "Server down", "duration_min": 60},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["task"]["kind"] == "emergency"
        assert data["task"]["priority"] == "urgent"
        assert data["result"]["success"] is True
        assert data["result"]["strategy"] == "direct"
        assert data["result"]["inserted_item"]["start"] == "2024-01-15T14:00:00"

        stored = test_client.get(f"/plans/{PLAN_DAY}").json()
        assert len(stored["items"]) == 2
        assert "Server down" in stored["task_titles"].values()

    def test_emergency_on_empty_day(self, test_client):
        response = test_client.post(
            f"/plans/{PLAN_DAY}/emergency",
            json={"title": "Call plumber", "duration_min": 30},
        )

        assert response.status_code == 200
        assert response.json()["result"]["inserted_item"]["start"] == "2024-01-15T09:00:00"

    @pytest.mark.parametrize("payload", [{"title": "x"}, {"title": "x", "duration_min": -5}])
    def test_emergency_validation(self, test_client, payload):
        response = test_client.post(f"/plans/{PLAN_DAY}/emergency", json=payload)
        assert response.status_code == 422
