"""
Integration Tests for task creation and listing.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.utils import utc_now
from trudify.backend.models.task import Task, TaskStatus


@pytest.fixture
def task_payload() -> dict:
    return {
        "category": "plumbing",
        "title": "Fix a leaking kitchen tap",
        "description": "The kitchen tap drips constantly and needs a new cartridge.",
        "city": "Sofia",
        "budgetType": "fixed",
        "budgetMax": 80,
        "urgency": "same_day",
    }


class TestCreateTask:
    """POST /api/tasks"""

    async def test_create_task(
        self, client: AsyncClient, api, db_session: AsyncSession, make_user, auth_headers, task_payload,
    ):
        """Should create an open task owned by the caller."""
        customer = await make_user()

        response = await client.post("/api/tasks", json=task_payload, headers=auth_headers(customer))

        data = api.assert_success(response, expected_status=201)["data"]
        assert data["status"] == "open"
        assert data["customerId"] == customer.id
        assert data["budgetMinBgn"] == data["budgetMaxBgn"] == 80
        assert data["isUrgent"] is True
        assert await db_session.scalar(select(func.count()).select_from(Task)) == 1

    async def test_profanity_is_rejected(
        self, client: AsyncClient, api, db_session: AsyncSession, make_user, auth_headers, task_payload,
    ):
        customer = await make_user()
        task_payload["description"] = "This shitty tap will not stop dripping all night."

        response = await client.post("/api/tasks", json=task_payload, headers=auth_headers(customer))

        data = api.assert_error(response, 400, "VAL_PROFANITY")
        assert data["error"]["details"]["fields"] == ["description"]
        assert await db_session.scalar(select(func.count()).select_from(Task)) == 0

    async def test_word_containing_a_listed_stem_is_allowed(
        self, client: AsyncClient, api, make_user, auth_headers, task_payload,
    ):
        customer = await make_user()
        task_payload["title"] = "Ремонт на колелото на Себастиан"
        task_payload["description"] = "Колелото е в Себастопол, трябва смяна на педалите и спирачките."

        response = await client.post("/api/tasks", json=task_payload, headers=auth_headers(customer))

        assert api.assert_success(response, expected_status=201)["data"]["title"] == "Ремонт на колелото на Себастиан"

    async def test_short_title_is_422(self, client: AsyncClient, api, make_user, auth_headers, task_payload):
        customer = await make_user()
        task_payload["title"] = "Fix tap"

        response = await client.post("/api/tasks", json=task_payload, headers=auth_headers(customer))

        api.assert_validation_error(response, field="title")

    async def test_inverted_budget_range_is_422(
        self, client: AsyncClient, api, make_user, auth_headers, task_payload,
    ):
        customer = await make_user()
        task_payload.update(budgetType="range", budgetMin=100, budgetMax=50)

        response = await client.post("/api/tasks", json=task_payload, headers=auth_headers(customer))

        api.assert_validation_error(response)

    async def test_anonymous_is_401(self, client: AsyncClient, api, task_payload):
        response = await client.post("/api/tasks", json=task_payload)

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")


class TestListTasks:
    """GET /api/tasks"""

    async def test_browse_lists_open_tasks_only(self, client: AsyncClient, api, make_user, make_task):
        customer = await make_user()
        open_task = await make_task(customer)
        await make_task(customer, status=TaskStatus.CANCELLED.value)

        response = await client.get("/api/tasks")

        body = api.assert_success(response)
        assert [item["id"] for item in body["data"]] == [open_task.id]
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["has_more"] is False

    async def test_browse_filters_by_city(self, client: AsyncClient, api, make_user, make_task):
        customer = await make_user()
        await make_task(customer, city="Sofia")
        plovdiv = await make_task(customer, city="Plovdiv")

        response = await client.get("/api/tasks", params={"city": "Plovdiv"})

        assert [item["id"] for item in api.assert_success(response)["data"]] == [plovdiv.id]

    async def test_pagination(self, client: AsyncClient, api, make_user, make_task):
        customer = await make_user()
        now = utc_now()
        for minutes in range(3):
            await make_task(customer, created_at=now - timedelta(minutes=minutes))

        response = await client.get("/api/tasks", params={"limit": 2})

        body = api.assert_success(response)
        assert len(body["data"]) == 2
        assert body["pagination"]["has_more"] is True

    async def test_posted_lists_callers_tasks(
        self, client: AsyncClient, api, make_user, make_task, auth_headers,
    ):
        """Should include the caller's tasks in every status."""
        customer = await make_user()
        other = await make_user()
        mine = await make_task(customer, status=TaskStatus.COMPLETED.value)
        await make_task(other)

        response = await client.get("/api/tasks", params={"mode": "posted"}, headers=auth_headers(customer))

        assert [item["id"] for item in api.assert_success(response)["data"]] == [mine.id]

    async def test_posted_requires_auth(self, client: AsyncClient, api):
        response = await client.get("/api/tasks", params={"mode": "posted"})

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    async def test_applications_mode_is_empty(self, client: AsyncClient, api, make_user, auth_headers):
        professional = await make_user(user_type="professional")

        response = await client.get(
            "/api/tasks", params={"mode": "applications"}, headers=auth_headers(professional),
        )

        body = api.assert_success(response)
        assert body["data"] == []
        assert body["pagination"]["total"] == 0

    async def test_unknown_mode_is_422(self, client: AsyncClient, api):
        response = await client.get("/api/tasks", params={"mode": "everything"})

        api.assert_validation_error(response, field="mode")

    async def test_featured_prefers_distinct_categories(self, client: AsyncClient, api, make_user, make_task):
        customer = await make_user()
        now = utc_now()
        newest_plumbing = await make_task(customer, category="plumbing", created_at=now)
        older_plumbing = await make_task(customer, category="plumbing", created_at=now - timedelta(hours=1))
        cleaning = await make_task(customer, category="cleaning", created_at=now - timedelta(hours=2))

        response = await client.get("/api/tasks", params={"featured": "true"})

        ids = [item["id"] for item in api.assert_success(response)["data"]]
        assert ids == [newest_plumbing.id, cleaning.id, older_plumbing.id]


class TestGetTask:
    async def test_get_task(self, client: AsyncClient, api, make_user, make_task):
        task = await make_task(await make_user())

        response = await client.get(f"/api/tasks/{task.id}")

        assert api.assert_success(response)["data"]["title"] == task.title

    async def test_unknown_task_is_404(self, client: AsyncClient, api):
        response = await client.get("/api/tasks/does-not-exist")

        api.assert_error(response, 404, "RES_NOT_FOUND")
