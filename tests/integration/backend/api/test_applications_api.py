"""
Integration Tests for submitting, rejecting and withdrawing applications
and for removing an assigned professional.
"""

from datetime import timedelta

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.utils import utc_now
from trudify.backend.models.application import Application, ApplicationStatus
from trudify.backend.models.notification import Notification
from trudify.backend.models.task import TaskStatus

MISSING_ID = "00000000-0000-0000-0000-000000000000"


async def notifications_for(db_session: AsyncSession, user_id: str) -> list[Notification]:
    result = await db_session.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


def application_body(task_id: str, **overrides) -> dict:
    body = {"taskId": task_id, "proposedPrice": 80, "message": "Available this weekend with my own tools."}
    body.update(overrides)
    return body


class TestSubmitApplication:
    """POST /api/applications"""

    async def test_submit_creates_pending_application_and_notifies_customer(
        self, client: AsyncClient, api, db_session: AsyncSession, make_user, make_task, auth_headers,
    ):
        customer = await make_user(full_name="Maria Customer")
        professional = await make_user(full_name="Petar Pro", user_type="professional")
        task = await make_task(customer)

        response = await client.post(
            "/api/applications",
            json=application_body(task.id, estimatedDurationHours=3, availabilityDate="2026-11-02T09:00:00Z"),
            headers=auth_headers(professional),
        )

        data = api.assert_success(response, 201)["data"]
        application = data["application"]
        assert application["status"] == "pending"
        assert application["professionalId"] == professional.id
        assert application["proposedPriceBgn"] == 80
        assert application["estimatedDurationHours"] == 3

        [notification] = await notifications_for(db_session, customer.id)
        assert notification.type == "application_received"
        assert notification.delivery_channel == "both"
        assert "Petar Pro" in notification.message
        assert notification.meta["applicationId"] == application["id"]
        assert f"application={application['id']}" in notification.action_url

    async def test_zero_price_is_accepted(self, client: AsyncClient, api, make_user, make_task, auth_headers):
        """Should accept a volunteer offer."""
        customer = await make_user()
        professional = await make_user(user_type="professional")
        task = await make_task(customer)

        response = await client.post(
            "/api/applications", json=application_body(task.id, proposedPrice=0), headers=auth_headers(professional),
        )

        assert api.assert_success(response, 201)["data"]["application"]["proposedPriceBgn"] == 0

    async def test_missing_fields_are_400(self, client: AsyncClient, api, make_user, auth_headers):
        professional = await make_user(user_type="professional")

        response = await client.post(
            "/api/applications", json={"proposedPrice": 50}, headers=auth_headers(professional),
        )

        data = api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert data["error"]["details"]["missing_fields"] == ["taskId", "message"]

    async def test_negative_price_is_400(self, client: AsyncClient, api, make_user, make_task, auth_headers):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        task = await make_task(customer)

        response = await client.post(
            "/api/applications", json=application_body(task.id, proposedPrice=-5), headers=auth_headers(professional),
        )

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    async def test_anonymous_is_401(self, client: AsyncClient, api):
        response = await client.post("/api/applications", json=application_body(MISSING_ID))

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    async def test_unknown_task_is_404(self, client: AsyncClient, api, make_user, auth_headers):
        professional = await make_user(user_type="professional")

        response = await client.post(
            "/api/applications", json=application_body(MISSING_ID), headers=auth_headers(professional),
        )

        api.assert_error(response, 404, "RES_NOT_FOUND")

    async def test_own_task_is_403(self, client: AsyncClient, api, make_user, make_task, auth_headers):
        customer = await make_user()
        task = await make_task(customer)

        response = await client.post("/api/applications", json=application_body(task.id), headers=auth_headers(customer))

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    async def test_task_not_open_is_400(self, client: AsyncClient, api, assigned_task, make_user, auth_headers):
        _, _, task, _ = await assigned_task()
        latecomer = await make_user(user_type="professional")

        response = await client.post("/api/applications", json=application_body(task.id), headers=auth_headers(latecomer))

        api.assert_error(response, 400, "RES_INVALID_STATE")

    async def test_second_application_is_409(
        self, client: AsyncClient, api, make_user, make_task, make_application, auth_headers,
    ):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        task = await make_task(customer)
        await make_application(task, professional)

        response = await client.post(
            "/api/applications", json=application_body(task.id), headers=auth_headers(professional),
        )

        api.assert_error(response, 409, "RES_CONFLICT")

    async def test_submit_purges_old_rejected_and_withdrawn_applications(
        self, client: AsyncClient, api, db_session: AsyncSession,
        make_user, make_task, make_application, auth_headers,
    ):
        """Should delete the professional's stale closed bids but keep recent and pending ones."""
        customer = await make_user()
        professional = await make_user(user_type="professional")
        long_ago = utc_now() - timedelta(days=45)
        stale_rejected = await make_application(
            await make_task(customer), professional, status=ApplicationStatus.REJECTED.value, updated_at=long_ago,
        )
        stale_withdrawn = await make_application(
            await make_task(customer), professional, status=ApplicationStatus.WITHDRAWN.value, updated_at=long_ago,
        )
        recent_rejected = await make_application(
            await make_task(customer), professional, status=ApplicationStatus.REJECTED.value,
        )
        old_pending = await make_application(await make_task(customer), professional, updated_at=long_ago)
        task = await make_task(customer)

        response = await client.post(
            "/api/applications", json=application_body(task.id), headers=auth_headers(professional),
        )

        api.assert_success(response, 201)
        result = await db_session.execute(
            select(Application.id).where(Application.professional_id == professional.id)
        )
        remaining = set(result.scalars().all())
        assert stale_rejected.id not in remaining
        assert stale_withdrawn.id not in remaining
        assert {recent_rejected.id, old_pending.id} <= remaining


class TestRejectApplication:
    """PATCH /api/applications/{id}/reject"""

    async def test_owner_rejects_pending_application(
        self, client: AsyncClient, api, db_session: AsyncSession,
        make_user, make_task, make_application, auth_headers,
    ):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        task = await make_task(customer)
        application = await make_application(task, professional)

        response = await client.patch(
            f"/api/applications/{application.id}/reject",
            json={"reason": "Price too high"},
            headers=auth_headers(customer),
        )

        data = api.assert_success(response)["data"]["application"]
        assert data["status"] == "rejected"
        assert data["rejectionReason"] == "Price too high"
        assert data["respondedAt"] is not None

        [notification] = await notifications_for(db_session, professional.id)
        assert notification.type == "application_rejected"
        assert notification.delivery_channel == "in_app"

        await db_session.refresh(task)
        assert task.status == TaskStatus.OPEN.value

    async def test_reject_without_body(self, client: AsyncClient, api, make_user, make_task, make_application, auth_headers):
        """Should accept a rejection with no reason."""
        customer = await make_user()
        application = await make_application(await make_task(customer), await make_user(user_type="professional"))

        response = await client.patch(f"/api/applications/{application.id}/reject", headers=auth_headers(customer))

        assert api.assert_success(response)["data"]["application"]["rejectionReason"] is None

    async def test_non_owner_is_403(self, client: AsyncClient, api, make_user, make_task, make_application, auth_headers):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        application = await make_application(await make_task(customer), professional)

        response = await client.patch(
            f"/api/applications/{application.id}/reject", headers=auth_headers(professional),
        )

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    async def test_already_accepted_is_400(self, client: AsyncClient, api, assigned_task, auth_headers):
        customer, _, _, application = await assigned_task()

        response = await client.patch(f"/api/applications/{application.id}/reject", headers=auth_headers(customer))

        api.assert_error(response, 400, "RES_INVALID_STATE")

    async def test_unknown_application_is_404(self, client: AsyncClient, api, make_user, auth_headers):
        customer = await make_user()

        response = await client.patch(f"/api/applications/{MISSING_ID}/reject", headers=auth_headers(customer))

        api.assert_error(response, 404, "RES_NOT_FOUND")

    async def test_anonymous_is_401(self, client: AsyncClient, api):
        response = await client.patch(f"/api/applications/{MISSING_ID}/reject")

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")


class TestWithdrawApplication:
    """PATCH /api/applications/{id}/withdraw"""

    async def test_applicant_withdraws_pending_application(
        self, client: AsyncClient, api, db_session: AsyncSession,
        make_user, make_task, make_application, auth_headers,
    ):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        application = await make_application(await make_task(customer), professional)

        response = await client.patch(
            f"/api/applications/{application.id}/withdraw",
            json={"reason": "Found another job"},
            headers=auth_headers(professional),
        )

        data = api.assert_success(response)["data"]["application"]
        assert data["status"] == "withdrawn"
        assert data["withdrawalReason"] == "Found another job"
        assert data["withdrawnAt"] is not None
        assert data["withdrawalTimingImpact"] is None

    async def test_other_professional_is_403(
        self, client: AsyncClient, api, make_user, make_task, make_application, auth_headers,
    ):
        customer = await make_user()
        application = await make_application(await make_task(customer), await make_user(user_type="professional"))
        stranger = await make_user(user_type="professional")

        response = await client.patch(
            f"/api/applications/{application.id}/withdraw", headers=auth_headers(stranger),
        )

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    async def test_accepted_application_is_400(self, client: AsyncClient, api, assigned_task, auth_headers):
        """Should send an assigned professional to the task withdrawal instead."""
        _, professional, _, application = await assigned_task()

        response = await client.patch(
            f"/api/applications/{application.id}/withdraw", headers=auth_headers(professional),
        )

        api.assert_error(response, 400, "RES_INVALID_STATE")

    async def test_unknown_application_is_404(self, client: AsyncClient, api, make_user, auth_headers):
        professional = await make_user(user_type="professional")

        response = await client.patch(
            f"/api/applications/{MISSING_ID}/withdraw", headers=auth_headers(professional),
        )

        api.assert_error(response, 404, "RES_NOT_FOUND")


class TestRemoveProfessional:
    """POST /api/tasks/{id}/remove-professional"""

    @staticmethod
    def url(task_id: str) -> str:
        return f"/api/tasks/{task_id}/remove-professional"

    async def test_removal_reopens_task_and_notifies_professional(
        self, client: AsyncClient, api, db_session: AsyncSession, assigned_task, auth_headers,
    ):
        customer, professional, task, application = await assigned_task(hours_ago=60)

        response = await client.post(
            self.url(task.id),
            json={"reason": "no_show", "description": "Did not arrive twice"},
            headers=auth_headers(customer),
        )

        data = api.assert_success(response)["data"]
        assert data["task"]["status"] == "open"
        assert data["task"]["selectedProfessionalId"] is None
        assert data["application"]["status"] == "removed_by_customer"
        assert data["application"]["removalReason"] == "no_show"
        assert data["application"]["daysWorkedBeforeRemoval"] == 2
        assert data["remainingRemovals"] == 0

        [notification] = await notifications_for(db_session, professional.id)
        assert notification.type == "task_status_changed"
        assert notification.delivery_channel == "both"
        assert task.title in notification.message

    async def test_missing_reason_is_400(self, client: AsyncClient, api, assigned_task, auth_headers):
        customer, _, task, _ = await assigned_task()

        response = await client.post(self.url(task.id), json={"description": "x"}, headers=auth_headers(customer))

        data = api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert data["error"]["details"]["missing_fields"] == ["reason"]

    async def test_anonymous_is_401(self, client: AsyncClient, api):
        response = await client.post(self.url(MISSING_ID), json={"reason": "no_show"})

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    async def test_professional_cannot_remove_themselves(self, client: AsyncClient, api, assigned_task, auth_headers):
        _, professional, task, _ = await assigned_task()

        response = await client.post(self.url(task.id), json={"reason": "no_show"}, headers=auth_headers(professional))

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    async def test_task_not_in_progress_is_400(self, client: AsyncClient, api, assigned_task, auth_headers):
        customer, _, task, _ = await assigned_task(status=TaskStatus.PENDING_CUSTOMER_CONFIRMATION)

        response = await client.post(self.url(task.id), json={"reason": "no_show"}, headers=auth_headers(customer))

        api.assert_error(response, 400, "RES_INVALID_STATE")

    async def test_no_accepted_application_is_400(
        self, client: AsyncClient, api, make_user, make_task, auth_headers,
    ):
        customer = await make_user()
        professional = await make_user(user_type="professional")
        task = await make_task(customer, status=TaskStatus.IN_PROGRESS.value, selected_professional_id=professional.id)

        response = await client.post(self.url(task.id), json={"reason": "no_show"}, headers=auth_headers(customer))

        data = api.assert_error(response, 400, "RES_INVALID_STATE")
        assert data["error"]["message"] == "No professional assigned to this task"

    async def test_second_removal_in_a_month_is_429(
        self, client: AsyncClient, api, db_session: AsyncSession,
        assigned_task, make_user, make_task, make_application, auth_headers,
    ):
        customer, professional, task, application = await assigned_task()
        earlier = await make_task(customer)
        await make_application(
            earlier,
            await make_user(user_type="professional"),
            status=ApplicationStatus.REMOVED_BY_CUSTOMER.value,
            removed_by_customer_at=utc_now(),
        )

        response = await client.post(self.url(task.id), json={"reason": "no_show"}, headers=auth_headers(customer))

        api.assert_error(response, 429, "RATE_LIMITED")
        await db_session.refresh(task)
        await db_session.refresh(application)
        assert task.status == TaskStatus.IN_PROGRESS.value
        assert application.status == ApplicationStatus.ACCEPTED.value

    async def test_removal_limit_not_enforced_when_disabled(
        self, client: AsyncClient, api, assigned_task, make_user, make_task, make_application, auth_headers, features,
    ):
        features(lifecycle_removal_quota_enforced=False)
        customer, _, task, _ = await assigned_task()
        await make_application(
            await make_task(customer),
            await make_user(user_type="professional"),
            status=ApplicationStatus.REMOVED_BY_CUSTOMER.value,
            removed_by_customer_at=utc_now(),
        )

        response = await client.post(self.url(task.id), json={"reason": "no_show"}, headers=auth_headers(customer))

        assert api.assert_success(response)["data"]["remainingRemovals"] == 0
