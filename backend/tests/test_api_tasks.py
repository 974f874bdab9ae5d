"""
Tests for task API endpoints.
"""
import pytest
from datetime import date


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["app"] == "TaskLane"


class TestGetTasks:
    """Tests for task retrieval endpoints."""

    def test_get_today_tasks_empty(self, client):
        response = client.get("/api/tasks/today")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_today_tasks(self, client, standalone_task):
        data = client.get("/api/tasks/today").json()
        assert len(data) == 1
        assert data[0]["title"] == "Fix Door Handle"
        assert data[0]["repeat_pattern"] is None

    def test_get_tasks_includes_repeat_pattern(self, client, weekly_template):
        """Template instances carry their template's pattern."""
        response = client.get("/api/tasks/date/2025-12-31")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["repeat_pattern"] == "Every Mon & Wed & Fri"

    def test_hide_completed(self, client, weekly_template):
        response = client.get("/api/tasks/date/2025-12-29", params={"include_completed": False})
        assert response.json() == []

    def test_week_view(self, client, weekly_template):
        response = client.get("/api/tasks/week/2025-12-31")

        assert response.status_code == 200
        data = response.json()
        assert list(data["days"]) == [
            "2025-12-29", "2025-12-30", "2025-12-31",
            "2026-01-01", "2026-01-02", "2026-01-03", "2026-01-04",
        ]
        assert len(data["days"]["2025-12-31"]) == 1
        assert data["label"].startswith("Dec 29")

    def test_backlog(self, client, workspace):
        client.post("/api/tasks", json={"workspace_id": workspace.id, "title": "Sort photos"})
        data = client.get("/api/tasks/backlog").json()
        assert [t["title"] for t in data] == ["Sort photos"]

    def test_search(self, client, standalone_task):
        data = client.get("/api/tasks/search", params={"q": "door"}).json()
        assert [t["id"] for t in data] == [standalone_task.id]

    def test_get_missing_task(self, client):
        assert client.get("/api/tasks/9999").status_code == 404

    def test_requires_user_header(self, client):
        response = client.get("/api/tasks/today", headers={"X-User-Id": ""})
        assert response.status_code == 401


class TestCreateTask:

    def test_create_task(self, client, workspace):
        response = client.post("/api/tasks", json={
            "workspace_id": workspace.id,
            "title": "Call plumber",
            "scheduled_date": "2026-02-02",
            "priority": 2,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["id"] is not None
        assert data["scheduled_date"] == "2026-02-02"
        assert data["recurring_task_id"] is None

    def test_due_date_before_scheduled(self, client, workspace):
        response = client.post("/api/tasks", json={
            "workspace_id": workspace.id,
            "title": "Call plumber",
            "scheduled_date": "2026-02-02",
            "due_date": "2026-01-30",
        })
        assert response.status_code == 422
        assert response.json()["field"] == "due_date"

    def test_empty_title(self, client, workspace):
        response = client.post("/api/tasks", json={"workspace_id": workspace.id, "title": ""})
        assert response.status_code == 422

    def test_create_in_other_users_workspace(self, client, workspace):
        response = client.post(
            "/api/tasks",
            json={"workspace_id": workspace.id, "title": "Sneaky"},
            headers={"X-User-Id": "user-2"},
        )
        assert response.status_code == 422
        assert response.json()["field"] == "workspace_id"
        assert client.get("/api/tasks/backlog").json() == []


class TestCompleteTask:
    """Tests for task completion endpoints."""

    def test_complete_task(self, client, standalone_task):
        response = client.post(f"/api/tasks/{standalone_task.id}/complete")

        assert response.status_code == 200
        data = response.json()
        assert data["is_completed"] is True
        assert data["completed_at"] is not None

    def test_complete_nonexistent_task(self, client):
        response = client.post("/api/tasks/9999/complete")
        assert response.status_code == 404

    def test_uncomplete_task(self, client, standalone_task):
        client.post(f"/api/tasks/{standalone_task.id}/complete")
        response = client.post(f"/api/tasks/{standalone_task.id}/uncomplete")

        assert response.status_code == 200
        data = response.json()
        assert data["is_completed"] is False
        assert data["completed_at"] is None

    def test_complete_instance_generates_next(self, client, weekly_template):
        """Completing the Wednesday instance schedules Friday."""
        pending = client.get("/api/tasks/date/2025-12-31").json()[0]
        client.post(f"/api/tasks/{pending['id']}/complete")

        friday = client.get("/api/tasks/date/2026-01-02").json()
        assert len(friday) == 1
        assert friday[0]["recurring_task_id"] == weekly_template.id

        template = client.get(f"/api/recurring/{weekly_template.id}").json()
        assert template["next_due_date"] == "2026-01-02"
        assert template["occurrences_generated"] == 3

    def test_complete_with_users_date(self, client, workspace):
        """Interval-from-completion counts from the date the user reports."""
        template = client.post("/api/recurring", json={
            "workspace_id": workspace.id,
            "title": "Change filter",
            "recurrence": {"recurrence_type": "interval_from_completion", "interval_days": 3},
            "start_date": "2026-05-01",
        }).json()
        first = client.get("/api/tasks/date/2026-05-01").json()[0]

        response = client.post(f"/api/tasks/{first['id']}/complete", params={"completed_on": "2026-05-04"})

        assert response.status_code == 200
        assert client.get(f"/api/recurring/{template['id']}").json()["next_due_date"] == "2026-05-07"


class TestUpdateTask:

    def test_update_task(self, client, standalone_task):
        response = client.patch(f"/api/tasks/{standalone_task.id}", json={"title": "Fix Door", "priority": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Fix Door"
        assert data["priority"] == 3

    def test_editing_instance_detaches(self, client, weekly_template):
        pending = client.get("/api/tasks/date/2025-12-31").json()[0]
        response = client.patch(f"/api/tasks/{pending['id']}", json={"title": "Clean Kitchen (guests)"})
        assert response.json()["is_detached"] is True

        client.patch(f"/api/recurring/{weekly_template.id}", json={"title": "Deep Clean"})
        task = client.get(f"/api/tasks/{pending['id']}").json()
        assert task["title"] == "Clean Kitchen (guests)"

    def test_update_missing(self, client):
        assert client.patch("/api/tasks/9999", json={"title": "X"}).status_code == 404


class TestDeleteAndReorder:

    def test_delete_task(self, client, standalone_task):
        response = client.delete(f"/api/tasks/{standalone_task.id}")
        assert response.status_code == 200
        assert client.get(f"/api/tasks/{standalone_task.id}").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/api/tasks/9999").status_code == 404

    def test_reorder(self, client, workspace):
        day = date(2026, 3, 2).isoformat()
        first = client.post("/api/tasks", json={"workspace_id": workspace.id, "title": "A", "scheduled_date": day}).json()
        second = client.post("/api/tasks", json={"workspace_id": workspace.id, "title": "B", "scheduled_date": day}).json()

        response = client.post("/api/tasks/reorder", json=[
            {"id": first["id"], "position": 1},
            {"id": second["id"], "position": 0},
        ])
        assert response.status_code == 200

        titles = [t["title"] for t in client.get(f"/api/tasks/date/{day}").json()]
        assert titles == ["B", "A"]
