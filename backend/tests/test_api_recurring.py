"""
Tests for recurring task API endpoints.
"""
import pytest

from tasklane import store
from tasklane.errors import StoreError
from tasklane.models import Task


@pytest.fixture
def daily_payload(workspace) -> dict:
    return {
        "workspace_id": workspace.id,
        "title": "Stretch",
        "priority": 1,
        "recurrence": {"recurrence_type": "fixed_daily", "interval_days": 1},
        "start_date": "2025-01-01",
    }


class TestCreateRecurring:

    def test_create_returns_template_with_display_text(self, client, daily_payload):
        response = client.post("/api/recurring", json=daily_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] is not None
        assert data["recurrence"] == {"recurrence_type": "fixed_daily", "interval_days": 1}
        assert data["next_due_date"] == "2025-01-01"
        assert data["occurrences_generated"] == 1
        assert data["pattern"] == "Every day"
        assert data["date_range"] == "Started Jan 1, 2025"

    def test_first_instance_is_scheduled_on_start_date(self, client, daily_payload):
        template = client.post("/api/recurring", json=daily_payload).json()

        response = client.get("/api/tasks/date/2025-01-01")
        tasks = response.json()
        assert len(tasks) == 1
        assert tasks[0]["recurring_task_id"] == template["id"]
        assert tasks[0]["repeat_pattern"] == "Every day"
        assert tasks[0]["is_completed"] is False

    def test_monthly_weekday_template(self, client, daily_payload):
        payload = {
            **daily_payload,
            "title": "Book club",
            "recurrence": {
                "recurrence_type": "fixed_monthly",
                "week_of_month": -1,
                "days_of_week": [4],
            },
            "end_date": "2025-12-31",
        }
        response = client.post("/api/recurring", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["pattern"] == "Last Friday of each month"
        assert data["date_range"] == "Jan 1 – Dec 31, 2025"

    def test_invalid_recurrence_is_rejected(self, client, daily_payload):
        payload = {**daily_payload, "recurrence": {"recurrence_type": "fixed_weekly", "days_of_week": []}}
        response = client.post("/api/recurring", json=payload)

        assert response.status_code == 422
        assert client.get("/api/recurring").json() == []

    def test_end_date_before_start(self, client, daily_payload):
        response = client.post("/api/recurring", json={**daily_payload, "end_date": "2024-06-01"})

        assert response.status_code == 422
        assert response.json()["field"] == "end_date"

    def test_missing_user_header(self, client, daily_payload):
        response = client.post("/api/recurring", json=daily_payload, headers={"X-User-Id": ""})
        assert response.status_code == 401

    def test_store_failure_leaves_nothing_behind(self, client, daily_payload, monkeypatch):
        real_insert = store.insert_row

        def failing_insert(session, row):
            if isinstance(row, Task):
                raise StoreError("NOT NULL constraint failed: tasks.title")
            return real_insert(session, row)

        monkeypatch.setattr(store, "insert_row", failing_insert)
        response = client.post("/api/recurring", json=daily_payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "NOT NULL constraint failed: tasks.title"
        assert client.get("/api/recurring").json() == []


class TestListAndGet:

    def test_list(self, client, weekly_template):
        response = client.get("/api/recurring")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["pattern"] == "Every Mon & Wed & Fri"
        assert data[0]["recurrence"]["days_of_week"] == [0, 2, 4]

    def test_list_active_only(self, client, weekly_template):
        client.post(f"/api/recurring/{weekly_template.id}/pause")
        assert client.get("/api/recurring", params={"active_only": True}).json() == []

    def test_get_other_users_template(self, client, weekly_template):
        response = client.get(f"/api/recurring/{weekly_template.id}", headers={"X-User-Id": "user-2"})
        assert response.status_code == 404

    def test_get_missing(self, client):
        assert client.get("/api/recurring/9999").status_code == 404


class TestUpdateRecurring:

    def test_update_propagates_to_pending_instance(self, client, weekly_template):
        response = client.patch(f"/api/recurring/{weekly_template.id}", json={"title": "Deep Clean"})

        assert response.status_code == 200
        assert response.json()["title"] == "Deep Clean"

        completed = client.get("/api/tasks/date/2025-12-29").json()[0]
        pending = client.get("/api/tasks/date/2025-12-31").json()[0]
        assert completed["title"] == "Clean Kitchen"
        assert pending["title"] == "Deep Clean"

    def test_change_recurrence(self, client, weekly_template):
        response = client.patch(
            f"/api/recurring/{weekly_template.id}",
            json={"recurrence": {"recurrence_type": "fixed_yearly", "month_of_year": 2, "day_of_month": 29}},
        )
        assert response.status_code == 200
        assert response.json()["pattern"] == "February 29th every year"

    def test_update_missing(self, client):
        response = client.patch("/api/recurring/9999", json={"title": "Nope"})
        assert response.status_code == 404

    def test_null_title(self, client, weekly_template):
        response = client.patch(f"/api/recurring/{weekly_template.id}", json={"title": None})
        assert response.status_code == 422


class TestDeleteRecurring:

    def test_delete(self, client, weekly_template):
        response = client.delete(f"/api/recurring/{weekly_template.id}")

        assert response.status_code == 200
        assert client.get(f"/api/recurring/{weekly_template.id}").status_code == 404
        assert client.get("/api/tasks/date/2025-12-31").json() == []
        history = client.get("/api/tasks/date/2025-12-29").json()
        assert len(history) == 1
        assert history[0]["recurring_task_id"] is None

    def test_delete_missing(self, client):
        assert client.delete("/api/recurring/9999").status_code == 404


class TestStateRoutes:

    @pytest.mark.parametrize("action,field,value", [
        ("pause", "is_paused", True),
        ("resume", "is_paused", False),
        ("deactivate", "is_active", False),
        ("activate", "is_active", True),
    ])
    def test_state_change(self, client, weekly_template, action, field, value):
        response = client.post(f"/api/recurring/{weekly_template.id}/{action}")
        assert response.status_code == 200
        assert response.json()[field] is value

    def test_unknown_template(self, client):
        assert client.post("/api/recurring/9999/pause").status_code == 404
